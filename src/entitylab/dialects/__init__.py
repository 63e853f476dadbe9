"""
Dialect strategy registry.
"""

from .base import Dialect, DialectCapabilities, LockStatement
from .postgres import PostgresDialect
from .sqlite import SQLiteDialect

__all__ = ["Dialect", "DialectCapabilities", "LockStatement", "SQLiteDialect", "PostgresDialect"]
