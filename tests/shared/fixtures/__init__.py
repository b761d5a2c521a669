"""Shared pytest fixtures for all test domains."""

from tests.shared.fixtures.database import (
    async_engine,
    db_session,
    postgres_container,
    sqlite_engine,
    sqlite_session,
)
from tests.shared.fixtures.factories import (
    FIXED_NOW,
    STRONG_PASSWORD,
    FrozenClock,
    FrozenTimer,
    TestHwidFactory,
    TestUserFactory,
)

__all__ = [
    "FIXED_NOW",
    "STRONG_PASSWORD",
    "FrozenClock",
    "FrozenTimer",
    "TestHwidFactory",
    "TestUserFactory",
    "async_engine",
    "db_session",
    "postgres_container",
    "sqlite_engine",
    "sqlite_session",
]
