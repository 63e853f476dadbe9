"""Security helpers for EntityLab."""

from .dsns import DSNConfig, parse_dsn
from .redaction import mask_email, redact_params, redact_value

__all__ = ["DSNConfig", "parse_dsn", "mask_email", "redact_params", "redact_value"]
