"""Unit tests for HwidBinder with the in-memory binding store."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from keygate.domain.shared.exceptions import ServiceUnavailableError
from keygate.infrastructure.persistence import StoreGuard
from keygate_audit import AuditAction, AuditLogger
from keygate_audit.infrastructure.memory import InMemoryAuditEntryRepository
from keygate_licensing import (
    HwidAlreadyLockedError,
    HwidBinder,
    HwidBindingNotFoundError,
    HwidBindingOwnershipError,
    HwidBindingRepository,
    InvalidFingerprintError,
    SubscriptionLocks,
)
from keygate_licensing.infrastructure import InMemoryHwidBindingRepository
from tests.shared.fixtures.factories import (
    FIXED_NOW,
    FrozenClock,
    TestHwidFactory,
    TestUserFactory,
)

SUB = TestHwidFactory.SUBSCRIPTION_ID
FP = TestHwidFactory.FINGERPRINT
OTHER_FP = TestHwidFactory.OTHER_FINGERPRINT
USER_ID = TestUserFactory.ALICE_ID
OTHER_USER_ID = TestUserFactory.BOB_ID
THIRD_FP = "0A1B2C3D4E5F6789"


class YieldingBindingRepository(InMemoryHwidBindingRepository):
    """Yields after every read so that concurrent binders interleave."""

    async def get_for_update(self, subscription_id: str):
        binding = await super().get_for_update(subscription_id)
        await asyncio.sleep(0)
        return binding


class HwidBinderTestBase:
    def setup_method(self):
        """Set up test fixtures."""
        self.clock = FrozenClock()
        self.repository = InMemoryHwidBindingRepository()
        self.audit_repo = InMemoryAuditEntryRepository()
        self.binder = self.make_binder()

    def make_binder(self, **policy_overrides) -> HwidBinder:
        return HwidBinder(
            repository=self.repository,
            policy=TestHwidFactory.policy(**policy_overrides),
            audit_logger=AuditLogger(self.audit_repo),
            clock=self.clock,
        )

    def actions(self) -> list[AuditAction]:
        return [entry.action for entry in self.audit_repo.entries]


class TestBind(HwidBinderTestBase):
    @pytest.mark.asyncio
    async def test_first_bind_locks_the_subscription(self):
        binding = await self.binder.bind(SUB, FP, user_id=USER_ID, client_ip="203.0.113.7")

        assert binding.fingerprint == FP
        assert binding.locked is True
        assert binding.user_id == USER_ID
        assert binding.bound_at == FIXED_NOW
        assert await self.binder.get_binding(SUB) == binding

        entry = self.audit_repo.entries[0]
        assert entry.action is AuditAction.HWID_BOUND
        assert entry.detail == {"subscription_id": SUB, "locked": True}
        assert entry.ip_address == "203.0.113.7"

    @pytest.mark.asyncio
    async def test_rebinding_the_same_fingerprint_is_a_noop(self):
        first = await self.binder.bind(SUB, FP)
        self.clock.advance(hours=1)

        second = await self.binder.bind(SUB, FP)

        assert second == first
        assert self.actions() == [AuditAction.HWID_BOUND]

    @pytest.mark.asyncio
    async def test_locked_subscription_rejects_another_device(self):
        await self.binder.bind(SUB, FP)

        with pytest.raises(HwidAlreadyLockedError) as exc_info:
            await self.binder.bind(SUB, OTHER_FP)

        assert exc_info.value.subscription_id == SUB
        assert (await self.binder.get_binding(SUB)).fingerprint == FP

    @pytest.mark.asyncio
    async def test_rejected_rebind_is_audited(self):
        await self.binder.bind(SUB, FP, user_id=USER_ID)

        with pytest.raises(HwidAlreadyLockedError):
            await self.binder.bind(SUB, OTHER_FP, user_id=USER_ID, client_ip="203.0.113.7")

        entry = self.audit_repo.entries[-1]
        assert entry.action is AuditAction.HWID_BIND_REJECTED
        assert entry.actor == str(USER_ID)
        assert entry.detail == {"subscription_id": SUB}
        assert entry.ip_address == "203.0.113.7"

    @pytest.mark.asyncio
    async def test_subscriptions_are_bound_independently(self):
        """One account may run different subscriptions on different machines."""
        await self.binder.bind(SUB, FP, user_id=USER_ID)

        other = await self.binder.bind(
            TestHwidFactory.OTHER_SUBSCRIPTION_ID,
            OTHER_FP,
            user_id=USER_ID,
        )

        assert other.fingerprint == OTHER_FP
        assert len(await self.repository.list_for_user(USER_ID)) == 2

    @pytest.mark.asyncio
    async def test_invalid_fingerprint_is_rejected(self):
        with pytest.raises(InvalidFingerprintError):
            await self.binder.bind(SUB, "short")

        assert await self.binder.get_binding(SUB) is None

    @pytest.mark.asyncio
    async def test_suspicious_fingerprint_is_flagged_but_bound(self):
        binding = await self.binder.bind(SUB, "VBOX-VBOX-VBOX-VBOX")

        assert binding.fingerprint == "VBOX-VBOX-VBOX-VBOX"
        assert self.actions() == [AuditAction.HWID_SUSPICIOUS, AuditAction.HWID_BOUND]
        assert self.audit_repo.entries[0].detail["reason"] == "blacklisted"

    @pytest.mark.asyncio
    async def test_unlocked_binding_without_lock_after_redemption(self):
        binder = self.make_binder(lock_after_redemption=False)
        await binder.bind(SUB, FP)

        binding = await binder.bind(SUB, OTHER_FP)

        assert binding.fingerprint == OTHER_FP
        assert binding.locked is False

    @pytest.mark.asyncio
    async def test_updates_disabled(self):
        binder = self.make_binder(lock_after_redemption=False, allow_update=False)
        await binder.bind(SUB, FP)

        with pytest.raises(HwidAlreadyLockedError):
            await binder.bind(SUB, OTHER_FP)

    @pytest.mark.asyncio
    async def test_concurrent_binds_yield_one_winner(self):
        """Two devices racing for a fresh subscription: exactly one wins."""
        results = await asyncio.gather(
            self.binder.bind(SUB, FP),
            self.binder.bind(SUB, OTHER_FP),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, HwidAlreadyLockedError)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert (await self.binder.get_binding(SUB)).fingerprint == winners[0].fingerprint

    @pytest.mark.asyncio
    async def test_concurrent_rebinds_without_shared_locks(self):
        """Binders of different processes: the conditional store decides."""
        repository = YieldingBindingRepository()
        await repository.add(TestHwidFactory.binding(locked=False))
        first = HwidBinder(repository, TestHwidFactory.policy())
        second = HwidBinder(repository, TestHwidFactory.policy())

        results = await asyncio.gather(
            first.bind(SUB, OTHER_FP),
            second.bind(SUB, THIRD_FP),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, HwidAlreadyLockedError)]
        assert len(winners) == 1
        assert len(losers) == 1
        stored = await repository.get(SUB)
        assert stored.fingerprint == winners[0].fingerprint
        assert stored.locked is True

    @pytest.mark.asyncio
    async def test_binders_sharing_locks_queue_up(self):
        locks = SubscriptionLocks()
        repository = YieldingBindingRepository()
        await repository.add(TestHwidFactory.binding(locked=False))
        binders = [
            HwidBinder(repository, TestHwidFactory.policy(), locks=locks)
            for _ in range(2)
        ]

        results = await asyncio.gather(
            binders[0].bind(SUB, OTHER_FP),
            binders[1].bind(SUB, THIRD_FP),
            return_exceptions=True,
        )

        assert results[0].fingerprint == OTHER_FP
        assert isinstance(results[1], HwidAlreadyLockedError)

    @pytest.mark.asyncio
    async def test_store_timeout_is_unavailable(self):
        async def slow(*_args, **_kwargs):
            await asyncio.sleep(1)

        repository = AsyncMock(spec=HwidBindingRepository)
        repository.get_for_update.side_effect = slow
        binder = HwidBinder(
            repository=repository,
            audit_logger=AuditLogger(self.audit_repo),
            store_guard=StoreGuard(timeout_seconds=0.01),
        )

        with pytest.raises(ServiceUnavailableError):
            await binder.bind(SUB, FP, client_ip="203.0.113.7")

        entry = self.audit_repo.entries[-1]
        assert entry.action is AuditAction.DATABASE_ERROR
        assert entry.detail == {"operation": "bind", "subscription_id": SUB}


class TestOwnership(HwidBinderTestBase):
    @pytest.mark.asyncio
    async def test_other_account_cannot_rebind(self):
        await self.binder.bind(SUB, FP, user_id=USER_ID)

        with pytest.raises(HwidBindingOwnershipError):
            await self.binder.bind(SUB, FP, user_id=OTHER_USER_ID)

        entry = self.audit_repo.entries[-1]
        assert entry.action is AuditAction.PERMISSION_DENIED
        assert entry.actor == str(OTHER_USER_ID)
        assert entry.detail == {"subscription_id": SUB}

    @pytest.mark.asyncio
    async def test_other_account_cannot_verify(self):
        await self.binder.bind(SUB, FP, user_id=USER_ID)

        with pytest.raises(HwidBindingOwnershipError):
            await self.binder.verify(SUB, FP, user_id=OTHER_USER_ID)

    @pytest.mark.asyncio
    async def test_managers_act_on_any_binding(self):
        await self.binder.bind(SUB, FP, user_id=USER_ID)

        matched = await self.binder.verify(
            SUB,
            FP,
            user_id=TestUserFactory.ADMIN_ID,
            manage_any=True,
        )

        assert matched is True
        assert AuditAction.PERMISSION_DENIED not in self.actions()

    @pytest.mark.asyncio
    async def test_list_for_user(self):
        await self.binder.bind(SUB, FP, user_id=USER_ID)
        await self.binder.bind(TestHwidFactory.OTHER_SUBSCRIPTION_ID, OTHER_FP)

        bindings = await self.binder.list_for_user(USER_ID)

        assert [b.subscription_id for b in bindings] == [SUB]
        assert await self.binder.list_for_user(OTHER_USER_ID) == []


class TestVerify(HwidBinderTestBase):
    @pytest.mark.asyncio
    async def test_matching_fingerprint(self):
        await self.binder.bind(SUB, FP)

        assert await self.binder.verify(SUB, FP) is True

    @pytest.mark.asyncio
    async def test_mismatch_is_audited(self):
        await self.binder.bind(SUB, FP, user_id=USER_ID)

        assert await self.binder.verify(SUB, OTHER_FP, client_ip="198.51.100.1") is False

        entry = self.audit_repo.entries[-1]
        assert entry.action is AuditAction.HWID_MISMATCH
        assert entry.actor == str(USER_ID)
        assert entry.ip_address == "198.51.100.1"

    @pytest.mark.asyncio
    async def test_malformed_fingerprint_never_matches(self):
        await self.binder.bind(SUB, FP)

        assert await self.binder.verify(SUB, "bad value!") is False
        assert self.actions() == [AuditAction.HWID_BOUND]

    @pytest.mark.asyncio
    async def test_unbound_subscription(self):
        assert await self.binder.verify(SUB, FP) is False
        assert await self.binder.get_binding(SUB) is None

    @pytest.mark.asyncio
    async def test_bind_on_first_use(self):
        binder = self.make_binder(bind_on_first_use=True)

        assert await binder.verify(SUB, FP) is True
        assert (await binder.get_binding(SUB)).fingerprint == FP
        assert await binder.verify(SUB, OTHER_FP) is False


class TestUnlockAndRelease(HwidBinderTestBase):
    @pytest.mark.asyncio
    async def test_unlock_allows_one_rebind(self):
        """After an admin reset the next device binds and locks again."""
        await self.binder.bind(SUB, FP)

        unlocked = await self.binder.unlock(SUB, actor=TestUserFactory.ADMIN_ID)
        assert unlocked.locked is False

        rebound = await self.binder.bind(SUB, OTHER_FP)
        assert rebound.fingerprint == OTHER_FP
        assert rebound.locked is True

        with pytest.raises(HwidAlreadyLockedError):
            await self.binder.bind(SUB, FP)

        assert AuditAction.HWID_UNLOCKED in self.actions()

    @pytest.mark.asyncio
    async def test_unlock_unknown_subscription(self):
        with pytest.raises(HwidBindingNotFoundError):
            await self.binder.unlock(SUB, actor="admin")

    @pytest.mark.asyncio
    async def test_release_removes_the_binding(self):
        await self.binder.bind(SUB, FP)

        await self.binder.release(SUB, actor="system")

        assert await self.binder.get_binding(SUB) is None
        assert self.actions()[-1] is AuditAction.HWID_RELEASED

    @pytest.mark.asyncio
    async def test_release_unknown_subscription(self):
        with pytest.raises(HwidBindingNotFoundError):
            await self.binder.release(SUB, actor="system")
