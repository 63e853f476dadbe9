"""DSN parsing and redaction utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse

from .redaction import redact_query_params

SQLITE_MEMORY = ":memory:"


@dataclass
class DSNConfig:
    driver: str
    username: Optional[str]
    password: Optional[str]
    host: Optional[str]
    port: Optional[int]
    database: Optional[str]
    path: str
    query: dict[str, str]

    @property
    def is_sqlite(self) -> bool:
        return self.driver.startswith("sqlite")

    def sqlite_path(self) -> str:
        """
        Filesystem path (or ``:memory:``) addressed by a ``sqlite:///`` DSN.
        """
        if not self.path or self.path == f"/{SQLITE_MEMORY}":
            return SQLITE_MEMORY
        return self.path[1:] if self.path.startswith("/") else self.path

    def redacted(self) -> str:
        """
        Return the DSN with credentials and sensitive options masked.
        """

        netloc = ""
        if self.username:
            netloc += self.username
            if self.password:
                netloc += ":***"
            netloc += "@"
        if self.host:
            netloc += self.host
        if self.port:
            netloc += f":{self.port}"

        result = f"{self.driver}://{netloc}{self.path}"
        if self.query:
            result += f"?{urlencode(redact_query_params(self.query))}"
        return result


def parse_dsn(dsn: str) -> DSNConfig:
    parsed = urlparse(dsn)
    query = {k: v[0] for k, v in parse_qs(parsed.query).items()}
    return DSNConfig(
        driver=parsed.scheme,
        username=parsed.username,
        password=parsed.password,
        host=parsed.hostname,
        port=parsed.port,
        database=parsed.path.lstrip("/") or None,
        path=parsed.path or "",
        query=query,
    )
