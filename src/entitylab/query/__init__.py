"""
Declarative query language, named queries, and native result shapes.
"""

from .compiler import CompiledQuery, SQLCompiler
from .named import NamedQueryRegistry
from .parser import parse_query
from .shapes import MappedRows, ResultShape, TypedRows, UntypedRows, resolve_shape

__all__ = [
    "CompiledQuery",
    "MappedRows",
    "NamedQueryRegistry",
    "ResultShape",
    "SQLCompiler",
    "TypedRows",
    "UntypedRows",
    "parse_query",
    "resolve_shape",
]
