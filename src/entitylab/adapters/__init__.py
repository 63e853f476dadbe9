"""
Database adapter interfaces and implementations.
"""

from .base import (
    AdapterConfigurationError,
    AdapterConnectionError,
    AdapterError,
    AdapterExecutionError,
    AdapterIntegrityError,
    AdapterLockError,
    AdapterTransactionError,
    ConnectionConfig,
    DatabaseAdapter,
    SSLConfig,
)
from .postgres import PostgresAdapter
from .sqlite import SQLiteAdapter

__all__ = [
    "ConnectionConfig",
    "DatabaseAdapter",
    "SSLConfig",
    "AdapterError",
    "AdapterConfigurationError",
    "AdapterConnectionError",
    "AdapterExecutionError",
    "AdapterIntegrityError",
    "AdapterLockError",
    "AdapterTransactionError",
    "SQLiteAdapter",
    "PostgresAdapter",
]
