"""
SQLite dialect implementation.
"""

from __future__ import annotations

from typing import Final

from .base import Dialect, DialectCapabilities, LockStatement


class SQLiteDialect:
    """
    SQLite dialect using qmark param style.

    SQLite has no row locks. An exclusive lock is approximated by a no-op
    write that takes the database RESERVED lock for the rest of the
    transaction; a shared lock by a read that takes the SHARED lock.
    """

    name: Final[str] = "sqlite"
    param_style: Final[str] = "qmark"
    capabilities: Final[DialectCapabilities] = DialectCapabilities(
        supports_returning=False,
    )

    def quote_identifier(self, identifier: str) -> str:
        escaped = identifier.replace('"', '""')
        return f'"{escaped}"'

    def format_table(self, table_name: str) -> str:
        return self.quote_identifier(table_name)

    def parameter_placeholder(self, position: int | None = None) -> str:
        return "?"

    def render_column_definition(self, column: str, column_type: str, *, nullable: bool) -> str:
        null_clause = "" if nullable else " NOT NULL"
        return f"{self.quote_identifier(column)} {column_type}{null_clause}"

    def render_primary_key(self, column: str) -> str:
        return f"{self.quote_identifier(column)} INTEGER PRIMARY KEY AUTOINCREMENT"

    def returning_clause(self, columns: list[str]) -> str:
        return ""

    def lock_statement(
        self, table: str, pk_column: str, version_column: str, *, exclusive: bool
    ) -> LockStatement:
        pk = self.quote_identifier(pk_column)
        version = self.quote_identifier(version_column)
        if exclusive:
            sql = f"UPDATE {self.format_table(table)} SET {version} = {version} WHERE {pk} = ?"
            return LockStatement(sql=sql, returns_rows=False)
        sql = f"SELECT {version} FROM {self.format_table(table)} WHERE {pk} = ?"
        return LockStatement(sql=sql, returns_rows=True)


def get_sqlite_dialect() -> Dialect:
    return SQLiteDialect()
