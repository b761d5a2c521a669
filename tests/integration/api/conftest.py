"""Pytest fixtures for API integration tests.

Each test gets its own SQLite database file. Connections are not pooled,
so the TestClient's event loop never reuses a connection opened elsewhere.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from keygate.infrastructure.persistence.sqlalchemy.models import Base
from keygate.presentation.api.app import API_V1_PREFIX, create_app
from keygate.presentation.api.dependencies import get_db_session
from keygate_config import Settings

TEST_JWT_SECRET = "test-jwt-secret-for-testing-only-0123456789"
STRONG_PASSWORD = "SecurePassword123"


@pytest.fixture
def api_v1_prefix() -> str:
    """Get the API v1 prefix for building URLs."""
    return API_V1_PREFIX


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'keygate-api.db'}"


@pytest.fixture
def api_settings(database_url) -> Settings:
    """Test API settings with debug enabled and generous limits."""
    return Settings(
        database_url=database_url,
        environment="test",
        debug=True,
        jwt_secret_key=SecretStr(TEST_JWT_SECRET),
        bcrypt_rounds=4,
        lockout_max_attempts=3,
        rate_limit_auth_max=100,
        rate_limit_general_max=1000,
        rate_limit_password_reset_max=100,
        rate_limit_key_redemption_max=100,
        frontend_base_url="http://localhost:8080",
        bootstrap_admin_emails=["admin@example.com"],
    )


@pytest.fixture
def api_engine(database_url):
    engine = create_async_engine(database_url, poolclass=NullPool)
    _setup_test_database(engine)
    yield engine
    _run(engine.dispose())


def _run(coro):
    # Fresh event loop to avoid conflicts with TestClient's loop
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _setup_test_database(engine) -> None:
    """Create every table. No users are seeded."""
    import keygate_audit.infrastructure.persistence.sqlalchemy.models  # noqa: F401
    import keygate_identity.infrastructure.persistence.sqlalchemy.models  # noqa: F401
    import keygate_licensing.infrastructure.persistence.sqlalchemy.models  # noqa: F401

    async def _setup():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    _run(_setup())


@pytest.fixture
def test_app(api_settings, api_engine):
    app = create_app(settings=api_settings)

    test_session_maker = async_sessionmaker(
        api_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Same database as the app's engine, without pooled connections
    async def override_get_db_session():
        async with test_session_maker() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    return app


@pytest.fixture
def test_client(test_app):
    """Test client without lifespan; the schema is created by ``api_engine``."""
    return TestClient(test_app)


@pytest.fixture
def outbox(test_app) -> list[tuple[str, str, str]]:
    """Messages queued by the development email service."""
    return test_app.state.components.email_service.outbox


def _register(client: TestClient, prefix: str, data: dict) -> dict:
    response = client.post(f"{prefix}/auth/register", json=data)
    assert response.status_code == 201, (
        f"Registration failed: {response.status_code} - {response.text}"
    )
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_data() -> dict:
    return {"email": "admin@example.com", "password": STRONG_PASSWORD}


@pytest.fixture
def admin_account(test_client, api_v1_prefix, admin_data) -> dict:
    """Registered from a bootstrap admin address."""
    return _register(test_client, api_v1_prefix, admin_data)


@pytest.fixture
def admin_headers(admin_account) -> dict:
    return bearer(admin_account["access_token"])


@pytest.fixture
def registered_user_data() -> dict:
    return {"email": "api-test-user@example.com", "password": STRONG_PASSWORD}


@pytest.fixture
def user_account(test_client, api_v1_prefix, registered_user_data, admin_account) -> dict:
    """A regular account, registered after the admin."""
    return _register(test_client, api_v1_prefix, registered_user_data)


@pytest.fixture
def auth_headers(user_account) -> dict:
    """Get auth headers for a regular registered user."""
    return bearer(user_account["access_token"])
