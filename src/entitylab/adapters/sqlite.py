"""
SQLite database adapter implementation.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Sequence

from ..dialects.sqlite import SQLiteDialect
from ..security.redaction import redact_params
from ..utils import get_logger, resolve_slow_query_ms, time_call
from .base import (
    AdapterConnectionError,
    AdapterExecutionError,
    AdapterIntegrityError,
    AdapterLockError,
    AdapterTransactionError,
    ConnectionConfig,
    DatabaseAdapter,
)

_BEGIN_MODES = {"DEFERRED", "IMMEDIATE", "EXCLUSIVE"}
_LOCK_MARKERS = ("database is locked", "database table is locked", "busy")


@dataclass(slots=True)
class SQLiteConnectionState:
    connection: sqlite3.Connection
    begin_sql: str


class SQLiteAdapter(DatabaseAdapter):
    """
    Adapter wrapping the Python stdlib sqlite3 module.

    The driver runs in autocommit mode and transactions are opened with an
    explicit ``BEGIN`` so statements outside a unit of work never leave an
    implicit transaction behind. ``ConnectionConfig.isolation_level`` selects
    the BEGIN flavour (DEFERRED, IMMEDIATE, EXCLUSIVE).
    """

    def __init__(self, slow_query_ms: int | None = None) -> None:
        self.dialect = SQLiteDialect()
        self._state: SQLiteConnectionState | None = None
        self.logger = get_logger("adapters.sqlite")
        self.slow_query_ms = resolve_slow_query_ms(default=100, override=slow_query_ms)

    # ------------------------------------------------------------------ #
    # Connection management
    # ------------------------------------------------------------------ #
    def connect(self, config: ConnectionConfig) -> sqlite3.Connection:
        path = self._normalize_path(config)
        timeout = config.timeout if config.timeout is not None else 5.0
        begin_sql = "BEGIN"
        if config.isolation_level:
            mode = config.isolation_level.upper()
            if mode not in _BEGIN_MODES:
                raise AdapterConnectionError(f"Unsupported SQLite isolation level {config.isolation_level!r}")
            begin_sql = f"BEGIN {mode}"

        try:
            connection = sqlite3.connect(
                path,
                isolation_level=None,
                timeout=timeout,
                check_same_thread=False,
            )
        except sqlite3.Error as exc:
            raise AdapterConnectionError(f"Failed to open SQLite database {path!r}.") from exc
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")

        self.logger.info("Connected to SQLite %s (timeout=%ss)", config.descriptive_label(), timeout)
        self._state = SQLiteConnectionState(connection, begin_sql)
        return connection

    def close(self) -> None:
        if self._state:
            self._state.connection.close()
            self._state = None

    @property
    def is_connected(self) -> bool:
        return self._state is not None

    def _ensure_connection(self) -> sqlite3.Connection:
        if not self._state:
            raise AdapterConnectionError("SQLiteAdapter is not connected.")
        return self._state.connection

    # ------------------------------------------------------------------ #
    # Execution helpers
    # ------------------------------------------------------------------ #
    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        connection = self._ensure_connection()
        cursor = connection.cursor()
        params = params or ()
        try:
            with time_call(
                "sqlite.execute",
                self.logger,
                sql=sql,
                params=redact_params(params),
                threshold_ms=self.slow_query_ms,
            ):
                cursor.execute(sql, params)
        except sqlite3.IntegrityError as exc:
            raise AdapterIntegrityError(str(exc)) from exc
        except sqlite3.OperationalError as exc:
            if self._is_lock_failure(exc):
                raise AdapterLockError(str(exc)) from exc
            raise AdapterExecutionError(str(exc)) from exc
        except (sqlite3.Error, sqlite3.Warning) as exc:
            raise AdapterExecutionError(str(exc)) from exc
        return cursor

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #
    def begin(self) -> None:
        connection = self._ensure_connection()
        try:
            connection.execute(self._state.begin_sql)  # type: ignore[union-attr]
        except sqlite3.Error as exc:
            raise AdapterTransactionError(f"Failed to begin transaction: {exc}") from exc

    def commit(self) -> None:
        connection = self._ensure_connection()
        try:
            connection.commit()
        except sqlite3.OperationalError as exc:
            if self._is_lock_failure(exc):
                raise AdapterLockError(str(exc)) from exc
            raise AdapterTransactionError(f"Failed to commit transaction: {exc}") from exc

    def rollback(self) -> None:
        connection = self._ensure_connection()
        try:
            connection.rollback()
        except sqlite3.Error as exc:
            raise AdapterTransactionError(f"Failed to roll back transaction: {exc}") from exc

    # ------------------------------------------------------------------ #
    def last_insert_id(self, cursor: sqlite3.Cursor, table: str, pk_column: str) -> Any:
        return cursor.lastrowid

    @staticmethod
    def _normalize_path(config: ConnectionConfig) -> str:
        if "://" not in config.url:
            return config.url
        dsn = config.parsed_dsn()
        if not dsn.is_sqlite:
            raise AdapterConnectionError(f"Not a SQLite DSN: {config.redacted_dsn()}")
        return dsn.sqlite_path()

    @staticmethod
    def _is_lock_failure(exc: sqlite3.Error) -> bool:
        message = str(exc).lower()
        return any(marker in message for marker in _LOCK_MARKERS)
