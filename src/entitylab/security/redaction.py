"""Redaction helpers for DSNs and logged statement parameters."""

from __future__ import annotations

import re
from typing import Any, Iterable

REDACTED_VALUE = "***"

_EMAIL_RE = re.compile(r"^([^@\s])[^@\s]*(@[^@\s]+)$")

_SENSITIVE_KEY_TOKENS = (
    "password",
    "passwd",
    "pwd",
    "secret",
    "token",
    "api_key",
    "sslkey",
    "sslcert",
    "sslrootcert",
)

_SENSITIVE_VALUE_TOKENS = ("password", "passwd", "secret", "token", "bearer")


def is_sensitive_key(key: str) -> bool:
    normalized = key.lower().replace("-", "_")
    return any(token in normalized for token in _SENSITIVE_KEY_TOKENS)


def is_sensitive_value(value: str) -> bool:
    normalized = value.lower()
    return any(token in normalized for token in _SENSITIVE_VALUE_TOKENS)


def mask_email(value: str) -> str:
    """
    Keep the first character and the domain of an address: ``j***@gmail.com``.
    """
    match = _EMAIL_RE.match(value)
    if not match:
        return value
    return f"{match.group(1)}{REDACTED_VALUE}{match.group(2)}"


def redact_query_params(query: dict[str, str]) -> dict[str, str]:
    return {key: REDACTED_VALUE if is_sensitive_key(key) else val for key, val in query.items()}


def redact_value(value: Any, *, key: str | None = None) -> Any:
    if key is not None and is_sensitive_key(str(key)):
        return REDACTED_VALUE
    if isinstance(value, dict):
        return {k: redact_value(v, key=str(k)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(redact_value(item) for item in value)
    if isinstance(value, str):
        if is_sensitive_value(value):
            return REDACTED_VALUE
        return mask_email(value)
    return value


def redact_params(params: Iterable[Any] | None) -> list[Any]:
    return [redact_value(value) for value in params or ()]
