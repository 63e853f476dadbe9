"""
Error taxonomy and result values shared by the service layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar


class ErrorKind(str, Enum):
    """
    Closed set of failure kinds reported to callers.
    """

    NOT_FOUND = "not_found"
    INVALID_ATTRIBUTE = "invalid_attribute"
    CONCURRENCY_CONFLICT = "concurrency_conflict"
    LOCK = "lock"
    QUERY_SYNTAX = "query_syntax"
    RAW_QUERY = "raw_query"
    PERSISTENCE = "persistence"
    SESSION_CLOSED = "session_closed"


class EntityLabError(Exception):
    """Base error for lifecycle, query, and registry failures."""

    kind: ErrorKind = ErrorKind.PERSISTENCE


class NotFoundError(EntityLabError):
    """Raised when no entity matches the requested identity or selector."""

    kind = ErrorKind.NOT_FOUND


class EntityNotFoundError(NotFoundError):
    """Raised on first access to a lazy reference whose row does not exist."""


class InvalidAttributeError(EntityLabError):
    """Raised when an attribute outside the mutable field set is requested."""

    kind = ErrorKind.INVALID_ATTRIBUTE


class ConcurrencyConflictError(EntityLabError):
    """Raised when the stored version differs from the version being written."""

    kind = ErrorKind.CONCURRENCY_CONFLICT


class LockError(EntityLabError):
    """Raised when the store cannot grant the requested lock mode."""

    kind = ErrorKind.LOCK


class QuerySyntaxError(EntityLabError):
    """Raised when a declarative query cannot be parsed or bound."""

    kind = ErrorKind.QUERY_SYNTAX


class RawQueryError(EntityLabError):
    """Raised when a native query fails at the connection layer or cannot be decoded."""

    kind = ErrorKind.RAW_QUERY


class PersistenceError(EntityLabError):
    """Generic store failure such as a constraint violation."""

    kind = ErrorKind.PERSISTENCE


class SessionClosedError(EntityLabError):
    """Raised when an operation is attempted on a closed session."""

    kind = ErrorKind.SESSION_CLOSED


T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a service operation: a value and message, or an error.

    Service methods never raise for the failure kinds above; callers inspect
    ``ok`` / ``kind`` or call :meth:`unwrap` to turn a failure back into the
    original exception.
    """

    value: Optional[T] = None
    message: str = ""
    error: Optional[EntityLabError] = None

    @classmethod
    def success(cls, value: Any = None, message: str = "") -> "Result[Any]":
        return cls(value=value, message=message)

    @classmethod
    def failure(cls, error: EntityLabError) -> "Result[Any]":
        return cls(message=str(error), error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        if self.error is None:
            return None
        return self.error.kind

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
