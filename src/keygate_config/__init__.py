"""Shared application configuration package."""

from .exceptions import ConfigError
from .policies import (
    EmailVerificationPolicy,
    HwidPolicy,
    LockoutPolicy,
    PasswordPolicy,
    PasswordResetPolicy,
    RateLimitRule,
    RouteClass,
    TokenSettings,
)
from .settings import (
    DEVELOPMENT_JWT_SECRET,
    Settings,
    clear_settings_cache,
    get_config_dir,
    get_settings,
)

__all__ = [
    "DEVELOPMENT_JWT_SECRET",
    "ConfigError",
    "EmailVerificationPolicy",
    "HwidPolicy",
    "LockoutPolicy",
    "PasswordPolicy",
    "PasswordResetPolicy",
    "RateLimitRule",
    "RouteClass",
    "Settings",
    "TokenSettings",
    "clear_settings_cache",
    "get_config_dir",
    "get_settings",
]
