"""
Syntax tree for the declarative query language.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union


@dataclass(frozen=True)
class Path:
    """``alias.field`` reference."""

    alias: str
    field: str


@dataclass(frozen=True)
class Parameter:
    name: str


@dataclass(frozen=True)
class Literal:
    value: Any


Operand = Union[Path, Parameter, Literal]


@dataclass(frozen=True)
class Comparison:
    left: Operand
    operator: str
    right: Operand


@dataclass(frozen=True)
class Like:
    subject: Operand
    pattern: Operand
    negated: bool = False


@dataclass(frozen=True)
class NullCheck:
    subject: Operand
    negated: bool = False


@dataclass(frozen=True)
class BoolOp:
    operator: str  # "AND" or "OR"
    operands: Tuple["Condition", ...]


@dataclass(frozen=True)
class Not:
    operand: "Condition"


Condition = Union[Comparison, Like, NullCheck, BoolOp, Not]


@dataclass(frozen=True)
class OrderItem:
    path: Path
    descending: bool = False


@dataclass(frozen=True)
class SelectStatement:
    """
    ``SELECT <result_alias> FROM <entity> <alias> [WHERE ...] [ORDER BY ...]``
    """

    result_alias: str
    entity: str
    alias: str
    where: Optional[Condition] = None
    order_by: Tuple[OrderItem, ...] = ()
