"""
Schema builder converting model metadata into DDL statements.
"""

from __future__ import annotations

from typing import List

from ..core.model import Model
from ..dialects.base import Dialect
from ..utils import get_logger


class SchemaBuilder:
    """
    Produces dialect-specific SQL for the entity table.
    """

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect
        self.logger = get_logger("schema.builder")

    def create_table_sql(self, model: type[Model]) -> str:
        table_name = self.dialect.format_table(model._meta.table_name)
        column_list = ", ".join(self._render_columns(model))
        return f"CREATE TABLE IF NOT EXISTS {table_name} ({column_list})"

    def drop_table_sql(self, model: type[Model]) -> str:
        table_name = self.dialect.format_table(model._meta.table_name)
        self.logger.warning("DROP TABLE generated for %s", table_name)
        return f"DROP TABLE IF EXISTS {table_name}"

    def _render_columns(self, model: type[Model]) -> List[str]:
        pieces: List[str] = []
        for field in model._meta.get_fields():
            if field.primary_key:
                pieces.append(self.dialect.render_primary_key(field.column_name()))
                continue
            column_type = field.db_type
            if not column_type:
                raise ValueError(f"Field '{field.name}' missing db_type for schema generation.")
            column_def = self.dialect.render_column_definition(
                field.column_name(), column_type, nullable=field.nullable
            )
            if field.unique:
                column_def += " UNIQUE"
            default = field.get_default()
            if default is not None:
                column_def += f" DEFAULT {self._literal(default)}"
            pieces.append(column_def)
        return pieces

    @staticmethod
    def _literal(value) -> str:
        if isinstance(value, str):
            escaped = value.replace("'", "''")
            return f"'{escaped}'"
        if isinstance(value, bool):
            return "1" if value else "0"
        return str(value)
