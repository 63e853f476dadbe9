"""
EntityLab public package initialization.

Transactional lifecycle management of ``Person`` entities over a SQL store,
next to a caller-owned in-memory registry.
"""

from .adapters import ConnectionConfig, PostgresAdapter, SQLiteAdapter  # noqa: F401
from .core import EntityState, LockMode, Model, Person  # noqa: F401
from .errors import (  # noqa: F401
    ConcurrencyConflictError,
    EntityLabError,
    EntityNotFoundError,
    ErrorKind,
    InvalidAttributeError,
    LockError,
    NotFoundError,
    PersistenceError,
    QuerySyntaxError,
    RawQueryError,
    Result,
    SessionClosedError,
)
from .hooks import hooks  # noqa: F401
from .persistence import EntityReference, Session, TransactionError  # noqa: F401
from .registry import InMemoryRegistry, seed_people  # noqa: F401
from .schema import SchemaBuilder  # noqa: F401
from .services import ConsistencyReconciler, LifecycleManager, QueryGateway  # noqa: F401

__all__ = [
    "ConnectionConfig",
    "SQLiteAdapter",
    "PostgresAdapter",
    "EntityState",
    "LockMode",
    "Model",
    "Person",
    "ErrorKind",
    "Result",
    "EntityLabError",
    "NotFoundError",
    "EntityNotFoundError",
    "InvalidAttributeError",
    "ConcurrencyConflictError",
    "LockError",
    "QuerySyntaxError",
    "RawQueryError",
    "PersistenceError",
    "SessionClosedError",
    "TransactionError",
    "EntityReference",
    "Session",
    "InMemoryRegistry",
    "seed_people",
    "SchemaBuilder",
    "ConsistencyReconciler",
    "LifecycleManager",
    "QueryGateway",
    "hooks",
]
