"""
Pytest configuration for keygate_identity tests.

Fixtures specific to the identity domain (users, policies, services).
"""

import pytest

from keygate_config import LockoutPolicy, PasswordPolicy, TokenSettings
from keygate_identity import (
    JWTService,
    PasswordHashingService,
    PasswordPolicyEngine,
    User,
    UserRole,
)
from tests.shared.fixtures.factories import FrozenClock

TEST_JWT_SECRET = "test-jwt-secret-for-testing-only-0123456789"


@pytest.fixture
def test_user() -> User:
    """Create a standard test user."""
    return User.create("test@example.com")


@pytest.fixture
def admin_user() -> User:
    """Create an admin test user."""
    return User.create("admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def token_settings() -> TokenSettings:
    return TokenSettings(secret_key=TEST_JWT_SECRET)


@pytest.fixture
def jwt_service(token_settings, clock) -> JWTService:
    return JWTService(token_settings, clock=clock)


@pytest.fixture
def password_service() -> PasswordHashingService:
    """Fast bcrypt (4 rounds) with the default policy."""
    return PasswordHashingService(
        rounds=4,
        policy_engine=PasswordPolicyEngine(PasswordPolicy()),
    )


@pytest.fixture
def lockout_policy() -> LockoutPolicy:
    return LockoutPolicy(max_attempts=3)
