"""
Adapter protocol definitions and connection configuration for EntityLab.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from ..dialects.base import Dialect
from ..security.dsns import DSNConfig, parse_dsn

DSN_ENV = "ENTITYLAB_DSN"


class AdapterError(RuntimeError):
    """Base error for adapter-related failures."""


class AdapterConfigurationError(AdapterError):
    """Raised when configuration or required dependencies are invalid."""


class AdapterConnectionError(AdapterError):
    """Raised when establishing or using a connection fails."""


class AdapterExecutionError(AdapterError):
    """Raised when SQL execution or parameter validation fails."""


class AdapterIntegrityError(AdapterExecutionError):
    """Raised when a statement violates a store constraint."""


class AdapterLockError(AdapterExecutionError):
    """Raised when the store refuses or times out a lock request."""


class AdapterTransactionError(AdapterError):
    """Raised when transaction operations fail."""


@dataclass
class SSLConfig:
    mode: str | None = None
    rootcert: str | None = None
    cert: str | None = None
    key: str | None = None

    def postgres_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {}
        if self.mode:
            options["sslmode"] = self.mode
        if self.rootcert:
            options["sslrootcert"] = self.rootcert
        if self.cert:
            options["sslcert"] = self.cert
        if self.key:
            options["sslkey"] = self.key
        return options


def _parse_float(value: str, *, key: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise AdapterConfigurationError(f"Invalid float value for '{key}': {value!r}") from exc


def _parse_ssl(query: dict[str, str]) -> SSLConfig | None:
    ssl = SSLConfig(
        mode=query.pop("sslmode", None),
        rootcert=query.pop("sslrootcert", None),
        cert=query.pop("sslcert", None),
        key=query.pop("sslkey", None),
    )
    if any([ssl.mode, ssl.rootcert, ssl.cert, ssl.key]):
        return ssl
    return None


@dataclass
class ConnectionConfig:
    """
    Normalized connection configuration for adapters.

    ``timeout`` doubles as the lock-wait budget: SQLite uses it as the busy
    timeout, PostgreSQL as ``lock_timeout`` for pessimistic locks.
    """

    url: str
    isolation_level: str | None = None
    timeout: float | None = None
    options: dict[str, Any] | None = None
    ssl: SSLConfig | None = None
    dsn: DSNConfig | None = None
    source: str | None = None

    @classmethod
    def from_dsn(cls, dsn: str, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a connection config by parsing the DSN string.

        ``timeout``, ``isolation_level`` and ``ssl*`` query options are lifted
        into fields; anything else is passed to the driver. ``autocommit`` is
        rejected: sessions always open transactions explicitly.
        """

        parsed = parse_dsn(dsn)
        query = dict(parsed.query)

        if "autocommit" in query or "autocommit" in kwargs:
            raise AdapterConfigurationError(
                "autocommit is not configurable; transactions are always explicit"
            )
        timeout = None
        if "timeout" in query:
            timeout = _parse_float(query.pop("timeout"), key="timeout")
        isolation_level = query.pop("isolation_level", None)
        ssl = _parse_ssl(query)

        options = dict(query)
        options.update(kwargs.pop("options", None) or {})

        return cls(
            url=dsn,
            dsn=parsed,
            isolation_level=kwargs.pop("isolation_level", isolation_level),
            timeout=kwargs.pop("timeout", timeout),
            options=options or None,
            ssl=kwargs.pop("ssl", ssl),
            **kwargs,
        )

    @classmethod
    def from_env(cls, env_var: str = DSN_ENV, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a config from an environment variable containing a DSN.
        """

        value = os.getenv(env_var)
        if not value:
            raise AdapterConfigurationError(f"Environment variable {env_var} is not set")
        return cls.from_dsn(value, source=env_var, **kwargs)

    def parsed_dsn(self) -> DSNConfig:
        if self.dsn is None:
            self.dsn = parse_dsn(self.url)
        return self.dsn

    def redacted_dsn(self) -> str:
        """
        Return a DSN safe for logging (credentials removed).
        """

        if "://" not in self.url:
            return self.url
        return self.parsed_dsn().redacted()

    def descriptive_label(self) -> str:
        redacted = self.redacted_dsn()
        if self.source:
            return f"{self.source} ({redacted})"
        return redacted


class DatabaseAdapter(Protocol):
    """
    Adapter interface exposing database operations used by higher layers.

    Driver exceptions are translated into the ``Adapter*Error`` hierarchy so
    the session can classify constraint, lock, and generic failures without
    knowing the driver.
    """

    dialect: Dialect
    slow_query_ms: int

    def connect(self, config: ConnectionConfig) -> Any:
        """
        Establish a connection handle using the supplied configuration.
        """

    def close(self) -> None:
        """
        Close underlying resources. Implementations should be idempotent.
        """

    @property
    def is_connected(self) -> bool:
        """
        Whether a connection handle is currently open.
        """

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        """
        Execute a single SQL statement returning a cursor-like object.
        """

    def begin(self) -> None:
        """
        Start a transaction.
        """

    def commit(self) -> None:
        """
        Commit the current transaction.
        """

    def rollback(self) -> None:
        """
        Roll back the current transaction.
        """

    def last_insert_id(self, cursor: Any, table: str, pk_column: str) -> Any:
        """
        Retrieve the primary key value generated by the previous insert.
        """
