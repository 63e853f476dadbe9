"""
Named queries declared on entity ``Meta`` classes, parsed once up front.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable

from ..errors import QuerySyntaxError
from ..utils import get_logger
from .expressions import SelectStatement
from .parser import parse_query

if TYPE_CHECKING:
    from ..core.model import Model


class NamedQueryRegistry:
    """
    Collects ``Meta.named_queries`` from the given models.

    A named query that does not parse fails registry construction, not the
    first call.
    """

    def __init__(self, models: Iterable[type["Model"]]) -> None:
        self._statements: Dict[str, SelectStatement] = {}
        self.logger = get_logger("query.named")
        for model in models:
            for name, text in model._meta.named_queries.items():
                self.register(name, text)

    def register(self, name: str, text: str) -> None:
        if name in self._statements:
            raise QuerySyntaxError(f"Named query '{name}' is declared twice")
        self._statements[name] = parse_query(text)
        self.logger.debug("Registered named query %s", name)

    def get(self, name: str) -> SelectStatement:
        try:
            return self._statements[name]
        except KeyError as exc:
            raise QuerySyntaxError(f"No named query '{name}' is registered") from exc

    def __contains__(self, name: object) -> bool:
        return name in self._statements
