"""
SQL compilation utilities translating parsed queries into SQL strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from ..dialects.base import Dialect
from ..errors import QuerySyntaxError
from .expressions import (
    BoolOp,
    Comparison,
    Condition,
    Like,
    Literal,
    Not,
    NullCheck,
    Operand,
    OrderItem,
    Parameter,
    Path,
    SelectStatement,
)

if TYPE_CHECKING:
    from ..core.model import Model


@dataclass(frozen=True)
class CompiledQuery:
    model: type["Model"]
    sql: str
    params: Tuple[Any, ...]


class SQLCompiler:
    """
    Compile a :class:`SelectStatement` against the known entities.

    Every literal and parameter becomes a bound placeholder. Without an
    ``ORDER BY`` the rows come back in primary key order.
    """

    def __init__(self, dialect: Dialect, entities: Mapping[str, type["Model"]]) -> None:
        self.dialect = dialect
        self.entities = dict(entities)

    def compile(
        self, statement: SelectStatement, params: Optional[Mapping[str, Any]] = None
    ) -> CompiledQuery:
        model = self.entities.get(statement.entity)
        if model is None:
            raise QuerySyntaxError(f"Unknown entity '{statement.entity}'")
        if statement.result_alias != statement.alias:
            raise QuerySyntaxError(
                f"Selected alias '{statement.result_alias}' is not declared in FROM "
                f"(declared alias is '{statement.alias}')"
            )

        state = _CompileState(model, statement.alias, dict(params or {}))
        table = self.dialect.format_table(model._meta.table_name)
        select_list = ", ".join(
            self.dialect.quote_identifier(field.column_name()) for field in model._meta.get_fields()
        )
        sql_parts: List[str] = [f"SELECT {select_list}", "FROM", table]

        if statement.where is not None:
            sql_parts.append("WHERE")
            sql_parts.append(self._compile_condition(statement.where, state))

        ordering = statement.order_by or (
            OrderItem(Path(statement.alias, model._meta.primary_key.require_name())),  # type: ignore[union-attr]
        )
        sql_parts.append("ORDER BY")
        sql_parts.append(", ".join(self._compile_ordering(item, state) for item in ordering))

        return CompiledQuery(model, " ".join(sql_parts), tuple(state.bound))

    # Compilation helpers -----------------------------------------------
    def _compile_ordering(self, item: OrderItem, state: "_CompileState") -> str:
        clause = self._compile_path(item.path, state)
        if item.descending:
            clause += " DESC"
        return clause

    def _compile_condition(self, condition: Condition, state: "_CompileState") -> str:
        if isinstance(condition, BoolOp):
            separator = f" {condition.operator} "
            return separator.join(
                f"({self._compile_condition(operand, state)})" for operand in condition.operands
            )
        if isinstance(condition, Not):
            return f"NOT ({self._compile_condition(condition.operand, state)})"
        if isinstance(condition, Comparison):
            left = self._compile_operand(condition.left, state)
            right = self._compile_operand(condition.right, state)
            return f"{left} {condition.operator} {right}"
        if isinstance(condition, Like):
            subject = self._compile_operand(condition.subject, state)
            pattern = self._compile_operand(condition.pattern, state)
            keyword = "NOT LIKE" if condition.negated else "LIKE"
            return f"{subject} {keyword} {pattern}"
        if isinstance(condition, NullCheck):
            subject = self._compile_operand(condition.subject, state)
            return f"{subject} IS NOT NULL" if condition.negated else f"{subject} IS NULL"
        raise QuerySyntaxError(f"Unsupported condition {condition!r}")

    def _compile_operand(self, operand: Operand, state: "_CompileState") -> str:
        if isinstance(operand, Path):
            return self._compile_path(operand, state)
        if isinstance(operand, Parameter):
            if operand.name not in state.params:
                raise QuerySyntaxError(f"Unbound parameter ':{operand.name}'")
            state.bound.append(state.params[operand.name])
            return self.dialect.parameter_placeholder()
        if isinstance(operand, Literal):
            state.bound.append(operand.value)
            return self.dialect.parameter_placeholder()
        raise QuerySyntaxError(f"Unsupported operand {operand!r}")

    def _compile_path(self, path: Path, state: "_CompileState") -> str:
        if path.alias != state.alias:
            raise QuerySyntaxError(f"Unknown alias '{path.alias}' (declared alias is '{state.alias}')")
        field = state.model._meta.fields.get(path.field)
        if field is None:
            raise QuerySyntaxError(
                f"Unknown field '{path.field}' on entity '{state.model._meta.entity_name}'"
            )
        return self.dialect.quote_identifier(field.column_name())


class _CompileState:
    def __init__(self, model: type["Model"], alias: str, params: Dict[str, Any]) -> None:
        self.model = model
        self.alias = alias
        self.params = params
        self.bound: List[Any] = []
