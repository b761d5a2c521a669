"""Integration tests for LockoutCounterRepositorySQLAlchemy."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from keygate.domain.shared.time import utc_now
from keygate_config import LockoutPolicy
from keygate_identity.infrastructure.persistence.sqlalchemy import (
    LockoutCounterRepositorySQLAlchemy,
)

KEY = "account:alice@example.com"


@pytest.fixture
def lockout_repo(sqlite_session):
    return LockoutCounterRepositorySQLAlchemy(sqlite_session)


class TestLockoutCounterRepositorySQLAlchemy:
    def setup_method(self):
        """Set up test fixtures."""
        self.policy = LockoutPolicy(max_attempts=3)

    @pytest.mark.asyncio
    async def test_missing_counter(self, lockout_repo):
        assert await lockout_repo.get(KEY) is None

    @pytest.mark.asyncio
    async def test_failures_accumulate(self, lockout_repo):
        now = utc_now()

        await lockout_repo.record_failure(KEY, now, self.policy)
        counter = await lockout_repo.record_failure(KEY, now, self.policy)

        assert counter.failed_attempts == 2
        stored = await lockout_repo.get(KEY)
        assert stored.failed_attempts == 2
        assert stored.is_locked(now) is False

    @pytest.mark.asyncio
    async def test_threshold_persists_the_lock(self, lockout_repo):
        now = utc_now()
        for _ in range(3):
            await lockout_repo.record_failure(KEY, now, self.policy)

        stored = await lockout_repo.get(KEY)

        assert stored.is_locked(now) is True
        assert stored.lockout_count == 1
        assert abs(stored.locked_until - (now + timedelta(minutes=30))) < timedelta(seconds=1)

    @pytest.mark.asyncio
    async def test_reset_deletes_the_counter(self, lockout_repo):
        await lockout_repo.record_failure(KEY, utc_now(), self.policy)

        await lockout_repo.reset(KEY)

        assert await lockout_repo.get(KEY) is None

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, lockout_repo):
        now = utc_now()
        await lockout_repo.record_failure(KEY, now, self.policy)
        await lockout_repo.record_failure("ip:203.0.113.7", now, self.policy)

        await lockout_repo.reset(KEY)

        assert await lockout_repo.get("ip:203.0.113.7") is not None


class InterleavingLockoutRepository(LockoutCounterRepositorySQLAlchemy):
    """Runs ``before_write`` once, between reading the row and writing it."""

    def __init__(self, session, before_write):
        super().__init__(session)
        self._before_write = before_write

    async def _swap(self, key, version, counter):
        if self._before_write is not None:
            hook, self._before_write = self._before_write, None
            await hook()
        return await super()._swap(key, version, counter)


class TestLockoutCounterLostUpdate:
    """A failure committed by another session between read and write counts."""

    @pytest.mark.asyncio
    async def test_interleaved_failure_is_not_lost(self, sqlite_session, sqlite_engine):
        policy = LockoutPolicy(max_attempts=10)
        now = utc_now()
        await LockoutCounterRepositorySQLAlchemy(sqlite_session).record_failure(
            KEY,
            now,
            policy,
        )
        await sqlite_session.commit()
        session_maker = async_sessionmaker(
            sqlite_engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async def fail_elsewhere():
            async with session_maker() as other:
                await LockoutCounterRepositorySQLAlchemy(other).record_failure(
                    KEY,
                    now,
                    policy,
                )
                await other.commit()

        repo = InterleavingLockoutRepository(sqlite_session, fail_elsewhere)
        counter = await repo.record_failure(KEY, now, policy)
        await sqlite_session.commit()

        assert counter.failed_attempts == 3
        assert (await repo.get(KEY)).failed_attempts == 3

    @pytest.mark.asyncio
    async def test_concurrent_failures_across_sessions(self, sqlite_file_engine):
        policy = LockoutPolicy(max_attempts=100)
        session_maker = async_sessionmaker(
            sqlite_file_engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        async with session_maker() as session:
            await LockoutCounterRepositorySQLAlchemy(session).record_failure(
                KEY,
                utc_now(),
                policy,
            )
            await session.commit()

        async def fail_once():
            async with session_maker() as session:
                repo = LockoutCounterRepositorySQLAlchemy(session)
                await repo.record_failure(KEY, utc_now(), policy)
                await session.commit()

        await asyncio.gather(*(fail_once() for _ in range(4)))

        async with session_maker() as session:
            counter = await LockoutCounterRepositorySQLAlchemy(session).get(KEY)
        assert counter.failed_attempts == 5


@pytest.mark.integration
class TestLockoutCounterConcurrency:
    """Concurrent failures on one key all count (PostgreSQL row locks)."""

    @pytest.mark.asyncio
    async def test_concurrent_failures_are_not_lost(self, db_session, async_engine):
        policy = LockoutPolicy(max_attempts=100)
        session_maker = async_sessionmaker(
            async_engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async def fail_once():
            async with session_maker() as session:
                repo = LockoutCounterRepositorySQLAlchemy(session)
                await repo.record_failure(KEY, utc_now(), policy)
                await session.commit()

        await asyncio.gather(*(fail_once() for _ in range(10)))

        counter = await LockoutCounterRepositorySQLAlchemy(db_session).get(KEY)
        assert counter is not None
        assert counter.failed_attempts == 10
