"""
Query gateway: declarative, named, and native queries as :class:`Result` values.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from ..core.model import Model
from ..core.person import FIND_BY_NAME, Person
from ..errors import EntityLabError, Result
from ..persistence import Session
from ..query import NamedQueryRegistry, SQLCompiler, parse_query, resolve_shape
from ..query.expressions import SelectStatement
from ..utils import get_logger


class QueryGateway:
    """
    Runs queries through a session without opening or closing transactions.

    Declarative queries return managed entities hydrated through the
    persistence context, so an instance already managed is returned as is.
    """

    def __init__(self, session: Session, *, models: Iterable[type[Model]] = (Person,)) -> None:
        self.session = session
        self.models = {model._meta.entity_name: model for model in models}
        self.compiler = SQLCompiler(session.dialect, self.models)
        self.named_queries = NamedQueryRegistry(self.models.values())
        self.logger = get_logger("services.queries")

    def query(self, text: str, params: Optional[Mapping[str, Any]] = None) -> Result[List[Model]]:
        return self._guard("run query", lambda: self._select(parse_query(text), params))

    def named_query(self, name: str, params: Optional[Mapping[str, Any]] = None) -> Result[List[Model]]:
        return self._guard("run named query", lambda: self._select(self.named_queries.get(name), params))

    def find_by_name(self, fragment: str) -> Result[List[Model]]:
        return self.named_query(FIND_BY_NAME, {"name": f"%{fragment}%"})

    def native_query(
        self, sql: str, shape: Any = None, params: Optional[Sequence[Any]] = None
    ) -> Result[List[Any]]:
        """
        Run raw SQL; ``shape`` is ``None`` (tuples), a model class (managed
        entities), or the name of a result-set mapping (detached values).
        """

        def operation() -> Result[List[Any]]:
            decoder = resolve_shape(shape, self.models.values())
            columns, rows = self.session.fetch_raw(sql, params or ())
            values = decoder.decode(self.session, columns, rows)
            return Result.success(values, f"{len(values)} row(s)")

        return self._guard("run native query", operation)

    # ------------------------------------------------------------------ #
    def _select(self, statement: SelectStatement, params: Optional[Mapping[str, Any]]) -> Result[List[Model]]:
        compiled = self.compiler.compile(statement, params)
        rows = self.session.load_all(compiled.model, compiled.sql, compiled.params)
        return Result.success(rows, f"{len(rows)} result(s)")

    def _guard(self, action: str, operation: Callable[[], Result[Any]]) -> Result[Any]:
        try:
            return operation()
        except EntityLabError as exc:
            self.logger.warning("Failed to %s: %s", action, exc)
            return Result.failure(exc)
