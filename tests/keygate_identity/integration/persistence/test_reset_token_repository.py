"""Integration tests for PasswordResetTokenRepositorySQLAlchemy on SQLite."""

from datetime import timedelta

import pytest

from keygate.domain.shared.time import utc_now
from keygate_identity.infrastructure.persistence.sqlalchemy import (
    PasswordResetTokenRepositorySQLAlchemy,
)
from tests.shared.fixtures.database import TEST_USER_ID, TEST_USER_ID_2


@pytest.fixture
def token_repo(sqlite_session):
    return PasswordResetTokenRepositorySQLAlchemy(sqlite_session)


class TestPasswordResetTokenRepositorySQLAlchemy:
    @pytest.mark.asyncio
    async def test_create_and_find(self, token_repo):
        expires_at = utc_now() + timedelta(hours=1)

        token_id = await token_repo.create(TEST_USER_ID, "hash-a", expires_at)
        found = await token_repo.find_valid_by_hash("hash-a")

        assert found is not None
        assert found.id == token_id
        assert found.user_id == TEST_USER_ID
        assert found.is_used() is False

    @pytest.mark.asyncio
    async def test_expired_token_is_not_valid(self, token_repo):
        await token_repo.create(TEST_USER_ID, "hash-a", utc_now() - timedelta(minutes=1))

        assert await token_repo.find_valid_by_hash("hash-a") is None

    @pytest.mark.asyncio
    async def test_mark_used_only_once(self, token_repo):
        """The second consumer of a token loses."""
        token_id = await token_repo.create(
            TEST_USER_ID,
            "hash-a",
            utc_now() + timedelta(hours=1),
        )

        assert await token_repo.mark_used(token_id) is True
        assert await token_repo.mark_used(token_id) is False
        assert await token_repo.find_valid_by_hash("hash-a") is None

    @pytest.mark.asyncio
    async def test_invalidate_all_for_user(self, token_repo):
        expires_at = utc_now() + timedelta(hours=1)
        await token_repo.create(TEST_USER_ID, "hash-a", expires_at)
        await token_repo.create(TEST_USER_ID, "hash-b", expires_at)
        await token_repo.create(TEST_USER_ID_2, "hash-c", expires_at)

        await token_repo.invalidate_all_for_user(TEST_USER_ID)

        assert await token_repo.find_valid_by_hash("hash-a") is None
        assert await token_repo.find_valid_by_hash("hash-b") is None
        assert await token_repo.find_valid_by_hash("hash-c") is not None

    @pytest.mark.asyncio
    async def test_count_recent_includes_used_tokens(self, token_repo):
        """Consumed tokens still count toward the per-account window."""
        since = utc_now() - timedelta(minutes=5)
        token_id = await token_repo.create(
            TEST_USER_ID,
            "hash-a",
            utc_now() + timedelta(hours=1),
        )
        await token_repo.mark_used(token_id)
        await token_repo.create(TEST_USER_ID, "hash-b", utc_now() + timedelta(hours=1))

        assert await token_repo.count_recent_for_user(TEST_USER_ID, since) == 2
        assert await token_repo.count_recent_for_user(TEST_USER_ID_2, since) == 0

    @pytest.mark.asyncio
    async def test_cleanup_expired(self, token_repo):
        await token_repo.create(TEST_USER_ID, "old", utc_now() - timedelta(hours=2))
        await token_repo.create(TEST_USER_ID, "new", utc_now() + timedelta(hours=2))

        assert await token_repo.cleanup_expired() == 1
        assert await token_repo.find_valid_by_hash("new") is not None
