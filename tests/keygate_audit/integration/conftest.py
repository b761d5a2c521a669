"""
Pytest configuration for keygate_audit integration tests.

Repository tests run against in-memory SQLite by default; tests marked
``integration`` use a Testcontainers PostgreSQL instance instead.
"""

# Re-export shared database fixtures
from tests.shared.fixtures.database import (
    async_engine,
    db_session,
    postgres_container,
    sqlite_engine,
    sqlite_session,
)

__all__ = [
    "async_engine",
    "db_session",
    "postgres_container",
    "sqlite_engine",
    "sqlite_session",
]
