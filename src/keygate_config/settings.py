"""Application settings loaded from environment variables.

Configuration file discovery (in priority order):
1. OS environment variables (always highest priority)
2. KEYGATE_ENV_FILE environment variable (absolute path to .env file)
3. config/.env.dev - local development
4. config/.env - production/Docker

Uses pydantic-settings for automatic type coercion and validation.
"""

from __future__ import annotations

import os
import re
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

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

# Placeholder shipped for local development only. Refused in production.
DEVELOPMENT_JWT_SECRET = "dev-only-insecure-jwt-secret-change-me"  # NOQA: S105
MIN_PRODUCTION_SECRET_LENGTH = 32


def _find_project_root() -> Path:
    """Find the project root directory."""
    current = Path(__file__).resolve().parent

    for parent in [current, *current.parents]:
        if (parent / "config").is_dir():
            return parent
        if (parent / ".git").is_dir():
            return parent
        if parent == Path("/app"):
            return parent

    return Path(__file__).resolve().parents[2]


def get_config_dir() -> Path:
    """Get the config directory path."""
    return _find_project_root() / "config"


def _resolve_env_file_path() -> Path | None:
    """Resolve the .env file path.

    Priority:
    1. KEYGATE_ENV_FILE env var (full path)
    2. config/.env.dev (local development)
    3. config/.env (production)
    """
    env_file_path = os.environ.get("KEYGATE_ENV_FILE")
    if env_file_path:
        path = Path(env_file_path)
        if not path.is_absolute():
            path = _find_project_root() / path
        if path.exists():
            return path

    config_dir = get_config_dir()

    dev_env = config_dir / ".env.dev"
    if dev_env.exists():
        return dev_env

    prod_env = config_dir / ".env"
    if prod_env.exists():
        return prod_env

    return None


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Values are loaded from:
    1. OS environment variables (highest priority)
    2. .env file (config/.env.dev or config/.env)
    3. Default values

    Settings are immutable once constructed. Components receive the policy
    objects built by the ``*_policy()`` methods, never the settings object.
    """

    model_config = SettingsConfigDict(
        env_file=_resolve_env_file_path(),
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "Keygate"
    environment: Literal["development", "test", "production"] = "development"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/keygate.db"
    store_timeout_seconds: float = Field(default=5.0, gt=0)

    # API
    api_host: str = "0.0.0.0"  # NOQA: S104
    api_port: int = 8000
    api_trust_proxy_headers: bool = False
    api_cors_origins: list[str] = ["http://localhost:8080"]

    # Addresses registered as admin; every other registration is a plain user
    bootstrap_admin_emails: list[str] = []

    # Tokens (JWT_ prefix)
    jwt_secret_key: SecretStr = SecretStr(DEVELOPMENT_JWT_SECRET)
    jwt_access_token_expire_hours: int = Field(default=24, gt=0)
    jwt_issuer: str = "keygate"
    jwt_audience: str = "keygate-users"

    # Passwords
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    password_min_length: int = Field(default=8, ge=1)
    password_max_length: int = Field(default=128, ge=8)
    password_require_uppercase: bool = True
    password_require_lowercase: bool = True
    password_require_numbers: bool = True
    password_require_special_chars: bool = False

    # Account lockout (LOCKOUT_ prefix)
    lockout_max_attempts: int = Field(default=5, ge=1)
    lockout_duration_minutes: int = Field(default=30, ge=1)
    lockout_incremental_delay: bool = True
    lockout_max_duration_minutes: int = Field(default=24 * 60, ge=1)
    lockout_reset_on_success: bool = True
    lockout_attempt_window_minutes: int = Field(default=60, ge=1)

    # Per-IP lockout, evaluated alongside the account tracker
    ip_lockout_max_attempts: int = Field(default=20, ge=1)
    ip_lockout_duration_minutes: int = Field(default=30, ge=1)

    # Hardware ID (HWID_ prefix)
    hwid_min_length: int = Field(default=10, ge=1)
    hwid_max_length: int = Field(default=255, ge=1)
    hwid_pattern: str = r"^[A-Za-z0-9_-]+$"
    hwid_allow_update: bool = True
    hwid_lock_after_redemption: bool = True
    hwid_bind_on_first_use: bool = False

    # Rate limits (RATE_LIMIT_ prefix)
    rate_limit_general_window_seconds: int = Field(default=15 * 60, gt=0)
    rate_limit_general_max: int = Field(default=100, gt=0)
    rate_limit_auth_window_seconds: int = Field(default=15 * 60, gt=0)
    rate_limit_auth_max: int = Field(default=5, gt=0)
    rate_limit_auth_skip_successful: bool = True
    rate_limit_password_reset_window_seconds: int = Field(default=60 * 60, gt=0)
    rate_limit_password_reset_max: int = Field(default=3, gt=0)
    rate_limit_key_redemption_window_seconds: int = Field(default=60 * 60, gt=0)
    rate_limit_key_redemption_max: int = Field(default=10, gt=0)
    rate_limit_api_key_window_seconds: int = Field(default=60, gt=0)
    rate_limit_api_key_max: int = Field(default=60, gt=0)

    # Password reset
    password_reset_token_expiry_hours: int = Field(default=1, gt=0)
    password_reset_max_per_window: int = Field(default=3, gt=0)
    password_reset_window_hours: int = Field(default=24, gt=0)

    # Email verification
    email_verification_required: bool = False
    email_verification_token_expiry_hours: int = Field(default=24, gt=0)

    # Frontend URL (for password reset and verification links)
    frontend_base_url: str = "http://localhost:8080"

    # Logging (LOG_ prefix)
    log_level: str = "INFO"

    @field_validator("hwid_pattern")
    @classmethod
    def _validate_hwid_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            msg = f"hwid_pattern is not a valid regular expression: {e}"
            raise ValueError(msg) from e
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    # -------------------------------------------------------------------------
    # Startup validation
    # -------------------------------------------------------------------------

    def validate_for_startup(self) -> list[str]:
        """Check the configuration before serving traffic.

        Returns
        -------
        Warnings that are acceptable outside production

        Raises
        ------
        ConfigError
            In production, when a secret is missing or left at its placeholder
        """
        problems: list[str] = []
        secret = self.jwt_secret_key.get_secret_value()

        if not secret:
            problems.append("JWT_SECRET_KEY is empty")
        elif secret == DEVELOPMENT_JWT_SECRET:
            problems.append("JWT_SECRET_KEY is the development placeholder")
        elif len(secret) < MIN_PRODUCTION_SECRET_LENGTH:
            problems.append(
                f"JWT_SECRET_KEY is shorter than {MIN_PRODUCTION_SECRET_LENGTH} "
                "characters",
            )

        if self.hwid_min_length > self.hwid_max_length:
            msg = "Invalid hardware ID bounds"
            raise ConfigError(msg, ["HWID_MIN_LENGTH exceeds HWID_MAX_LENGTH"])

        if self.is_production and problems:
            msg = "Refusing to start with insecure configuration"
            raise ConfigError(msg, problems)

        return problems

    # -------------------------------------------------------------------------
    # Policy factories
    # -------------------------------------------------------------------------

    def token_settings(self) -> TokenSettings:
        secret = self.jwt_secret_key.get_secret_value()
        if not secret:
            msg = "Token signing secret is not configured"
            raise ConfigError(msg, ["JWT_SECRET_KEY is empty"])
        return TokenSettings(
            secret_key=secret,
            issuer=self.jwt_issuer,
            audience=self.jwt_audience,
            access_token_ttl=timedelta(hours=self.jwt_access_token_expire_hours),
        )

    def password_policy(self) -> PasswordPolicy:
        return PasswordPolicy(
            min_length=self.password_min_length,
            max_length=self.password_max_length,
            require_uppercase=self.password_require_uppercase,
            require_lowercase=self.password_require_lowercase,
            require_numbers=self.password_require_numbers,
            require_special_chars=self.password_require_special_chars,
        )

    def lockout_policy(self) -> LockoutPolicy:
        return LockoutPolicy(
            max_attempts=self.lockout_max_attempts,
            lockout_duration=timedelta(minutes=self.lockout_duration_minutes),
            incremental_delay=self.lockout_incremental_delay,
            max_lockout_duration=timedelta(minutes=self.lockout_max_duration_minutes),
            reset_on_success=self.lockout_reset_on_success,
            attempt_window=timedelta(minutes=self.lockout_attempt_window_minutes),
        )

    def ip_lockout_policy(self) -> LockoutPolicy:
        return LockoutPolicy(
            max_attempts=self.ip_lockout_max_attempts,
            lockout_duration=timedelta(minutes=self.ip_lockout_duration_minutes),
            incremental_delay=self.lockout_incremental_delay,
            max_lockout_duration=timedelta(minutes=self.lockout_max_duration_minutes),
            # A success on one account must not clear failures against others
            reset_on_success=False,
            attempt_window=timedelta(minutes=self.lockout_attempt_window_minutes),
        )

    def hwid_policy(self) -> HwidPolicy:
        return HwidPolicy(
            min_length=self.hwid_min_length,
            max_length=self.hwid_max_length,
            pattern=self.hwid_pattern,
            allow_update=self.hwid_allow_update,
            lock_after_redemption=self.hwid_lock_after_redemption,
            bind_on_first_use=self.hwid_bind_on_first_use,
        )

    def rate_limit_rules(self) -> dict[RouteClass, RateLimitRule]:
        return {
            RouteClass.GENERAL: RateLimitRule(
                window_seconds=self.rate_limit_general_window_seconds,
                max_requests=self.rate_limit_general_max,
            ),
            RouteClass.AUTH: RateLimitRule(
                window_seconds=self.rate_limit_auth_window_seconds,
                max_requests=self.rate_limit_auth_max,
                skip_successful=self.rate_limit_auth_skip_successful,
            ),
            RouteClass.PASSWORD_RESET: RateLimitRule(
                window_seconds=self.rate_limit_password_reset_window_seconds,
                max_requests=self.rate_limit_password_reset_max,
            ),
            RouteClass.KEY_REDEMPTION: RateLimitRule(
                window_seconds=self.rate_limit_key_redemption_window_seconds,
                max_requests=self.rate_limit_key_redemption_max,
            ),
            RouteClass.API_KEY: RateLimitRule(
                window_seconds=self.rate_limit_api_key_window_seconds,
                max_requests=self.rate_limit_api_key_max,
            ),
        }

    def password_reset_policy(self) -> PasswordResetPolicy:
        return PasswordResetPolicy(
            token_ttl=timedelta(hours=self.password_reset_token_expiry_hours),
            max_requests_per_window=self.password_reset_max_per_window,
            window=timedelta(hours=self.password_reset_window_hours),
        )

    def email_verification_policy(self) -> EmailVerificationPolicy:
        return EmailVerificationPolicy(
            required=self.email_verification_required,
            token_ttl=timedelta(hours=self.email_verification_token_expiry_hours),
        )


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()
