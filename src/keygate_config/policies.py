"""Immutable policy objects handed to components at construction time.

``Settings`` builds these once at startup. Components receive them through
their constructors and never read configuration from global state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum


@dataclass(frozen=True)
class TokenSettings:
    """Signing and validity parameters for identity tokens."""

    secret_key: str
    issuer: str = "keygate"
    audience: str = "keygate-users"
    access_token_ttl: timedelta = timedelta(hours=24)
    algorithm: str = "HS256"
    leeway_seconds: int = 0


@dataclass(frozen=True)
class PasswordPolicy:
    """Password strength rules. Every rule is evaluated independently."""

    min_length: int = 8
    max_length: int = 128
    require_uppercase: bool = True
    require_lowercase: bool = True
    require_numbers: bool = True
    require_special_chars: bool = False
    special_chars: str = "!@#$%^&*(),.?\":{}|<>"


@dataclass(frozen=True)
class LockoutPolicy:
    """Failed-attempt lockout rules for one tracker (account or IP)."""

    max_attempts: int = 5
    lockout_duration: timedelta = timedelta(minutes=30)
    incremental_delay: bool = True
    max_lockout_duration: timedelta = timedelta(hours=24)
    reset_on_success: bool = True
    # Failures older than this no longer count towards max_attempts
    attempt_window: timedelta = timedelta(hours=1)

    def duration_for(self, lockout_count: int) -> timedelta:
        """Return how long the ``lockout_count``-th consecutive lock lasts."""
        if not self.incremental_delay or lockout_count <= 1:
            return min(self.lockout_duration, self.max_lockout_duration)
        escalated = self.lockout_duration * (2 ** (lockout_count - 1))
        return min(escalated, self.max_lockout_duration)


@dataclass(frozen=True)
class HwidPolicy:
    """Hardware-ID format and binding rules."""

    min_length: int = 10
    max_length: int = 255
    pattern: str = r"^[A-Za-z0-9_-]+$"
    allow_update: bool = True
    lock_after_redemption: bool = True
    bind_on_first_use: bool = False
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", re.compile(self.pattern))

    def matches_charset(self, value: str) -> bool:
        return self._compiled.fullmatch(value) is not None


class RouteClass(str, Enum):
    """Request budget classes."""

    GENERAL = "general"
    AUTH = "auth"
    PASSWORD_RESET = "password_reset"
    KEY_REDEMPTION = "key_redemption"
    API_KEY = "api_key"


@dataclass(frozen=True)
class RateLimitRule:
    """Fixed-window budget for one route class."""

    window_seconds: int
    max_requests: int
    skip_successful: bool = False


DEFAULT_RATE_LIMIT_RULES: dict[RouteClass, RateLimitRule] = {
    RouteClass.GENERAL: RateLimitRule(window_seconds=15 * 60, max_requests=100),
    RouteClass.AUTH: RateLimitRule(
        window_seconds=15 * 60,
        max_requests=5,
        skip_successful=True,
    ),
    RouteClass.PASSWORD_RESET: RateLimitRule(window_seconds=60 * 60, max_requests=3),
    RouteClass.KEY_REDEMPTION: RateLimitRule(window_seconds=60 * 60, max_requests=10),
    RouteClass.API_KEY: RateLimitRule(window_seconds=60, max_requests=60),
}


@dataclass(frozen=True)
class PasswordResetPolicy:
    """Reset token issuance rules."""

    token_ttl: timedelta = timedelta(hours=1)
    max_requests_per_window: int = 3
    window: timedelta = timedelta(hours=24)


@dataclass(frozen=True)
class EmailVerificationPolicy:
    """Email verification rules."""

    required: bool = False
    token_ttl: timedelta = timedelta(hours=24)
