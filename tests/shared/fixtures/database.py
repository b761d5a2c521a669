"""
Database fixtures for repository tests.

Two flavours share the same seeding:

- ``db_session``: an ephemeral PostgreSQL instance via Testcontainers. Use it
  for row locks and unique-constraint races; tests using it must carry
  ``@pytest.mark.integration``.
- ``sqlite_session``: an in-memory SQLite database. Fast, always runs.

Usage:
    # In your conftest.py
    from tests.shared.fixtures.database import db_session, sqlite_session

    async def test_something(sqlite_session):
        repo = SomeRepository(sqlite_session)
        await repo.save(entity)
"""

from datetime import datetime, timezone
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool
from testcontainers.postgres import PostgresContainer

from keygate.infrastructure.persistence.sqlalchemy.models import Base

# Use same Postgres version as production
POSTGRES_IMAGE = "postgres:18-alpine"

# Fixed UUIDs for testing - ensures deterministic behavior
TEST_USER_ID = UUID("12345678-1234-5678-1234-567812345678")
TEST_USER_EMAIL = "test@example.com"

# Secondary test user for isolation tests
TEST_USER_ID_2 = UUID("00000000-0000-0000-0000-000000000002")
TEST_USER_EMAIL_2 = "test2@example.com"


def _register_models() -> None:
    """Import every model module so that Base.metadata knows all tables."""
    import keygate_audit.infrastructure.persistence.sqlalchemy.models  # noqa: F401
    import keygate_identity.infrastructure.persistence.sqlalchemy.models  # noqa: F401
    import keygate_licensing.infrastructure.persistence.sqlalchemy.models  # noqa: F401


def _create_test_user(user_id: UUID, email: str):
    """Create a user row so that credential and reset-token FKs resolve."""
    from keygate_identity.infrastructure.persistence.sqlalchemy.models import UserModel

    now = datetime.now(tz=timezone.utc)
    return UserModel(
        id=user_id,
        email=email,
        role="user",
        email_verified=False,
        is_active=True,
        created_at=now,
        updated_at=now,
    )


async def _seeded_session(engine):
    _register_models()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_maker() as session:
        session.add(_create_test_user(TEST_USER_ID, TEST_USER_EMAIL))
        session.add(_create_test_user(TEST_USER_ID_2, TEST_USER_EMAIL_2))
        await session.commit()

        yield session

        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="session")
def postgres_container():
    """
    Start a PostgreSQL container for the test session.

    The container is shared across all tests in the session for performance.
    Each test gets a clean database state via table drop/create.
    """
    with PostgresContainer(POSTGRES_IMAGE) as postgres:
        yield postgres


@pytest.fixture(scope="session")
def async_engine(postgres_container):
    """Async SQLAlchemy engine connected to the test container."""
    connection_url = postgres_container.get_connection_url()
    # Testcontainers may return postgresql+psycopg2:// or postgresql://
    async_url = connection_url.replace(
        "postgresql+psycopg2://",
        "postgresql+asyncpg://",
    )
    async_url = async_url.replace("postgresql://", "postgresql+asyncpg://")

    return create_async_engine(
        async_url,
        echo=False,
        poolclass=NullPool,  # Avoid connection pool issues in tests
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(async_engine):
    """
    Provide an isolated PostgreSQL session for each test.

    Drops and recreates all tables, seeds the two test users, and yields the
    session. Uncommitted changes are rolled back afterwards.
    """
    async for session in _seeded_session(async_engine):
        yield session


@pytest_asyncio.fixture(scope="function")
async def sqlite_engine():
    """In-memory SQLite engine; every session shares the one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def sqlite_session(sqlite_engine):
    """Seeded session on an in-memory SQLite database."""
    async for session in _seeded_session(sqlite_engine):
        yield session


@pytest_asyncio.fixture(scope="function")
async def sqlite_file_engine(tmp_path):
    """SQLite file database; every session gets its own connection.

    Use it when two sessions must really be two transactions.
    """
    _register_models()
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'keygate.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()
