"""Shared domain primitives."""

from keygate.domain.shared.exceptions import (
    ErrorCategory,
    ErrorCode,
    KeygateError,
    ServiceUnavailableError,
)
from keygate.domain.shared.time import ensure_tz_aware, utc_now

__all__ = [
    "ErrorCategory",
    "ErrorCode",
    "KeygateError",
    "ServiceUnavailableError",
    "ensure_tz_aware",
    "utc_now",
]
