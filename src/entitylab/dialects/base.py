"""
Dialect strategy interfaces describing SQL rendering behaviors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class DialectCapabilities:
    """
    Feature flags describing backend capabilities.
    """

    supports_returning: bool = False


@dataclass(frozen=True)
class LockStatement:
    """
    SQL that takes a row lock; ``returns_rows`` tells whether existence is
    read from the result set or from the affected row count.
    """

    sql: str
    returns_rows: bool


class Dialect(Protocol):
    """
    Strategy interface consumed across query, schema, and session layers.
    """

    @property
    def name(self) -> str: ...

    @property
    def param_style(self) -> str: ...

    @property
    def capabilities(self) -> DialectCapabilities: ...

    def quote_identifier(self, identifier: str) -> str: ...

    def format_table(self, table_name: str) -> str: ...

    def parameter_placeholder(self, position: int | None = None) -> str: ...

    def render_column_definition(self, column: str, column_type: str, *, nullable: bool) -> str: ...

    def render_primary_key(self, column: str) -> str: ...

    def returning_clause(self, columns: list[str]) -> str: ...

    def lock_statement(
        self, table: str, pk_column: str, version_column: str, *, exclusive: bool
    ) -> LockStatement: ...
