"""
PostgreSQL dialect implementation.
"""

from __future__ import annotations

from typing import Final

from .base import Dialect, DialectCapabilities, LockStatement


class PostgresDialect:
    """
    PostgreSQL dialect using percent positional parameters and real row locks.
    """

    name: Final[str] = "postgresql"
    param_style: Final[str] = "pyformat"
    capabilities: Final[DialectCapabilities] = DialectCapabilities(
        supports_returning=True,
    )

    def quote_identifier(self, identifier: str) -> str:
        escaped = identifier.replace('"', '""')
        return f'"{escaped}"'

    def format_table(self, table_name: str) -> str:
        if "." in table_name:
            schema, table = table_name.split(".", 1)
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table_name)

    def parameter_placeholder(self, position: int | None = None) -> str:
        return "%s"

    def render_column_definition(self, column: str, column_type: str, *, nullable: bool) -> str:
        null_clause = "" if nullable else " NOT NULL"
        return f"{self.quote_identifier(column)} {column_type}{null_clause}"

    def render_primary_key(self, column: str) -> str:
        return f"{self.quote_identifier(column)} SERIAL PRIMARY KEY"

    def returning_clause(self, columns: list[str]) -> str:
        quoted = ", ".join(self.quote_identifier(column) for column in columns)
        return f" RETURNING {quoted}"

    def lock_statement(
        self, table: str, pk_column: str, version_column: str, *, exclusive: bool
    ) -> LockStatement:
        mode = "FOR UPDATE" if exclusive else "FOR SHARE"
        sql = (
            f"SELECT {self.quote_identifier(version_column)} FROM {self.format_table(table)} "
            f"WHERE {self.quote_identifier(pk_column)} = %s {mode}"
        )
        return LockStatement(sql=sql, returns_rows=True)


def get_postgres_dialect() -> Dialect:
    return PostgresDialect()
