"""Unit tests for Settings and the policy objects it builds."""

from datetime import timedelta

import pytest
from pydantic import SecretStr, ValidationError

from keygate_config import (
    DEVELOPMENT_JWT_SECRET,
    ConfigError,
    LockoutPolicy,
    RouteClass,
    Settings,
)

STRONG_SECRET = "k" * 48


def _settings(**overrides) -> Settings:
    values = {"jwt_secret_key": SecretStr(STRONG_SECRET)}
    values.update(overrides)
    return Settings(**values)


class TestStartupValidation:
    """Tests for validate_for_startup."""

    def test_strong_secret_has_no_warnings(self):
        """A long, custom secret passes without warnings."""
        assert _settings().validate_for_startup() == []

    def test_placeholder_secret_warns_in_development(self):
        """The development placeholder is tolerated outside production."""
        settings = _settings(jwt_secret_key=SecretStr(DEVELOPMENT_JWT_SECRET))

        warnings = settings.validate_for_startup()

        assert len(warnings) == 1
        assert "placeholder" in warnings[0]

    def test_placeholder_secret_refused_in_production(self):
        """Production refuses to start with the placeholder secret."""
        settings = _settings(
            environment="production",
            jwt_secret_key=SecretStr(DEVELOPMENT_JWT_SECRET),
        )

        with pytest.raises(ConfigError) as exc_info:
            settings.validate_for_startup()

        assert exc_info.value.problems

    def test_short_secret_refused_in_production(self):
        """Production requires a reasonably long secret."""
        settings = _settings(environment="production", jwt_secret_key=SecretStr("short"))

        with pytest.raises(ConfigError, match="shorter than"):
            settings.validate_for_startup()

    def test_empty_secret_refused_in_production(self):
        settings = _settings(environment="production", jwt_secret_key=SecretStr(""))

        with pytest.raises(ConfigError, match="empty"):
            settings.validate_for_startup()

    def test_inverted_hwid_bounds_always_fatal(self):
        """Hardware-ID bounds that cannot be satisfied are fatal everywhere."""
        settings = _settings(hwid_min_length=50, hwid_max_length=20)

        with pytest.raises(ConfigError):
            settings.validate_for_startup()

    def test_invalid_hwid_pattern_rejected(self):
        """A regular expression that does not compile is rejected on load."""
        with pytest.raises(ValidationError):
            _settings(hwid_pattern="[unclosed")


class TestPolicyFactories:
    """Tests for the *_policy() methods."""

    def test_token_settings(self):
        settings = _settings(jwt_access_token_expire_hours=2, jwt_issuer="issuer")

        token_settings = settings.token_settings()

        assert token_settings.secret_key == STRONG_SECRET
        assert token_settings.issuer == "issuer"
        assert token_settings.access_token_ttl == timedelta(hours=2)
        assert token_settings.algorithm == "HS256"

    def test_token_settings_refuse_empty_secret(self):
        """No token service can be built without a secret."""
        with pytest.raises(ConfigError):
            _settings(jwt_secret_key=SecretStr("")).token_settings()

    def test_password_policy(self):
        settings = _settings(password_min_length=12, password_require_special_chars=True)

        policy = settings.password_policy()

        assert policy.min_length == 12
        assert policy.require_special_chars is True
        assert policy.require_uppercase is True

    def test_lockout_policy(self):
        settings = _settings(lockout_max_attempts=3, lockout_duration_minutes=10)

        policy = settings.lockout_policy()

        assert policy.max_attempts == 3
        assert policy.lockout_duration == timedelta(minutes=10)
        assert policy.reset_on_success is True

    def test_ip_lockout_policy_never_resets_on_success(self):
        """A success on one account must not clear the address tally."""
        policy = _settings(lockout_reset_on_success=True).ip_lockout_policy()

        assert policy.reset_on_success is False
        assert policy.max_attempts == 20

    def test_rate_limit_rules_cover_every_route_class(self):
        rules = _settings().rate_limit_rules()

        assert set(rules) == set(RouteClass)
        assert rules[RouteClass.AUTH].max_requests == 5
        assert rules[RouteClass.AUTH].skip_successful is True
        assert rules[RouteClass.GENERAL].window_seconds == 15 * 60

    def test_hwid_policy(self):
        policy = _settings(hwid_min_length=12, hwid_allow_update=False).hwid_policy()

        assert policy.min_length == 12
        assert policy.allow_update is False
        assert policy.matches_charset("ABC-def_123")
        assert not policy.matches_charset("ABC DEF")

    def test_password_reset_policy(self):
        policy = _settings(password_reset_token_expiry_hours=2).password_reset_policy()

        assert policy.token_ttl == timedelta(hours=2)
        assert policy.max_requests_per_window == 3


class TestLockoutPolicyDuration:
    """Tests for LockoutPolicy.duration_for."""

    def test_first_lock_uses_base_duration(self):
        policy = LockoutPolicy(lockout_duration=timedelta(minutes=30))

        assert policy.duration_for(1) == timedelta(minutes=30)

    def test_incremental_delay_doubles(self):
        """Each consecutive lock doubles the duration."""
        policy = LockoutPolicy(lockout_duration=timedelta(minutes=30))

        assert policy.duration_for(2) == timedelta(minutes=60)
        assert policy.duration_for(3) == timedelta(minutes=120)

    def test_incremental_delay_is_capped(self):
        policy = LockoutPolicy(
            lockout_duration=timedelta(minutes=30),
            max_lockout_duration=timedelta(hours=1),
        )

        assert policy.duration_for(10) == timedelta(hours=1)

    def test_without_incremental_delay_duration_is_constant(self):
        policy = LockoutPolicy(
            lockout_duration=timedelta(minutes=30),
            incremental_delay=False,
        )

        assert policy.duration_for(5) == timedelta(minutes=30)
