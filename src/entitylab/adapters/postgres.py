"""
PostgreSQL database adapter implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from ..dialects.postgres import PostgresDialect
from ..security.redaction import redact_params
from ..utils import get_logger, resolve_slow_query_ms, time_call
from .base import (
    AdapterConfigurationError,
    AdapterConnectionError,
    AdapterExecutionError,
    AdapterIntegrityError,
    AdapterLockError,
    AdapterTransactionError,
    ConnectionConfig,
    DatabaseAdapter,
)

# lock_not_available, deadlock_detected
_LOCK_SQLSTATES = {"55P03", "40P01"}
_ISOLATION_LEVELS = {"READ UNCOMMITTED", "READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE"}


def _load_driver():
    try:
        import psycopg

        return psycopg
    except ImportError:
        return None


@dataclass
class PostgresConnectionState:
    connection: Any
    config: ConnectionConfig
    driver: Any
    begin_sql: str = "BEGIN"


class PostgresAdapter(DatabaseAdapter):
    """
    Adapter wrapping the psycopg PostgreSQL driver.

    The connection runs in autocommit mode and transaction boundaries are
    explicit ``BEGIN``/``COMMIT``/``ROLLBACK`` statements, so reads outside a
    unit of work never open an implicit transaction.
    """

    def __init__(self, slow_query_ms: int | None = None) -> None:
        self.dialect = PostgresDialect()
        self._state: PostgresConnectionState | None = None
        self.logger = get_logger("adapters.postgres")
        self.slow_query_ms = resolve_slow_query_ms(default=100, override=slow_query_ms)

    def connect(self, config: ConnectionConfig) -> Any:
        driver = _load_driver()
        if driver is None:
            raise AdapterConfigurationError("psycopg is required to use PostgresAdapter.")

        options = dict(config.options or {})
        if config.ssl:
            for key, value in config.ssl.postgres_options().items():
                options.setdefault(key, value)

        self.logger.info("Connecting to PostgreSQL %s", config.descriptive_label())
        begin_sql = "BEGIN"
        if config.isolation_level:
            level = config.isolation_level.replace("_", " ").upper()
            if level not in _ISOLATION_LEVELS:
                raise AdapterConfigurationError(
                    f"Unsupported PostgreSQL isolation level {config.isolation_level!r}"
                )
            begin_sql = f"BEGIN ISOLATION LEVEL {level}"

        try:
            connection = driver.connect(config.url.split("?", 1)[0], **options)
        except Exception as exc:
            raise AdapterConnectionError("Failed to connect to PostgreSQL.") from exc
        connection.autocommit = True

        self._state = PostgresConnectionState(connection, config, driver, begin_sql)
        return connection

    def close(self) -> None:
        if self._state:
            try:
                self._state.connection.close()
            finally:
                self._state = None

    @property
    def is_connected(self) -> bool:
        return self._state is not None

    def _ensure_connection(self):
        if not self._state:
            raise AdapterConnectionError("PostgresAdapter is not connected.")
        conn = self._state.connection
        if getattr(conn, "closed", False):
            self.logger.warning("PostgreSQL connection closed; reconnecting.")
            conn = self.connect(self._state.config)
        return conn

    def execute(self, sql: str, params: Sequence[Any] | None = None):
        connection = self._ensure_connection()
        cursor = connection.cursor()
        params = params or ()
        self._validate_params(sql, params)
        try:
            with time_call(
                "postgres.execute",
                self.logger,
                sql=sql,
                params=redact_params(params),
                threshold_ms=self.slow_query_ms,
            ):
                cursor.execute(sql, params)
        except self._driver_error() as exc:
            raise self._translate(exc) from exc
        return cursor

    def begin(self) -> None:
        connection = self._ensure_connection()
        cursor = connection.cursor()
        try:
            cursor.execute(self._state.begin_sql)  # type: ignore[union-attr]
            timeout = self._state.config.timeout if self._state else None
            if timeout:
                cursor.execute(f"SET LOCAL lock_timeout = '{int(timeout * 1000)}ms'")
        except self._driver_error() as exc:
            raise AdapterTransactionError(f"Failed to begin transaction: {exc}") from exc

    def commit(self) -> None:
        connection = self._ensure_connection()
        try:
            connection.cursor().execute("COMMIT")
        except self._driver_error() as exc:
            raise self._translate(exc) from exc

    def rollback(self) -> None:
        connection = self._ensure_connection()
        try:
            connection.cursor().execute("ROLLBACK")
        except self._driver_error() as exc:
            raise AdapterTransactionError(f"Failed to roll back transaction: {exc}") from exc

    def last_insert_id(self, cursor: Any, table: str, pk_column: str) -> Any:
        row = cursor.fetchone()
        if not row:
            raise AdapterExecutionError("No RETURNING data available for last insert id.")
        return row[0]

    # ------------------------------------------------------------------ #
    def _driver_error(self) -> type[BaseException]:
        driver = self._state.driver if self._state else None
        return getattr(driver, "Error", Exception)

    def _translate(self, exc: BaseException) -> AdapterExecutionError:
        driver = self._state.driver if self._state else None
        integrity_error = getattr(driver, "IntegrityError", None)
        if integrity_error is not None and isinstance(exc, integrity_error):
            return AdapterIntegrityError(str(exc))
        if getattr(exc, "sqlstate", None) in _LOCK_SQLSTATES:
            return AdapterLockError(str(exc))
        return AdapterExecutionError(str(exc))

    @staticmethod
    def _count_placeholders(sql: str) -> int:
        count = 0
        idx = 0
        while idx < len(sql) - 1:
            if sql[idx] == "%" and sql[idx + 1] == "s":
                count += 1
                idx += 2
                continue
            if sql[idx] == "%" and sql[idx + 1] == "%":
                idx += 2
                continue
            idx += 1
        return count

    def _validate_params(self, sql: str, params: Sequence[Any]) -> None:
        placeholder_count = self._count_placeholders(sql)
        if placeholder_count != len(params):
            raise AdapterExecutionError(
                f"Parameter count mismatch: expected {placeholder_count}, received {len(params)}."
            )
