"""Hardware-ID binder.

Binds one fingerprint to one subscription. Binding happens at key
redemption, not at login, so a single account may hold several
subscriptions, each bound to a different machine.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
import weakref
from typing import TYPE_CHECKING, Callable
from uuid import UUID

from keygate.domain.shared.exceptions import ServiceUnavailableError
from keygate.domain.shared.time import utc_now
from keygate.infrastructure.persistence import StoreGuard
from keygate_audit import SYSTEM_ACTOR, AuditAction
from keygate_config import HwidPolicy
from keygate_licensing.domain import (
    HwidBinding,
    assess_fingerprint,
    check_fingerprint,
    validate_fingerprint,
)
from keygate_licensing.exceptions import (
    HwidAlreadyLockedError,
    HwidBindingNotFoundError,
    HwidBindingOwnershipError,
)

if TYPE_CHECKING:
    from datetime import datetime

    from keygate_audit import AuditLogger
    from keygate_licensing.repositories import HwidBindingRepository

logger = logging.getLogger(__name__)


class SubscriptionLocks:
    """Process-wide ``asyncio.Lock`` per subscription.

    One registry is shared by every binder of an application, so requests on
    the same subscription queue up within the process. Locks nobody holds
    are dropped.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def __call__(self, subscription_id: str) -> asyncio.Lock:
        lock = self._locks.get(subscription_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[subscription_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


class HwidBinder:
    """Enforces at most one locked fingerprint per subscription.

    Within the process, binds on one subscription serialise on the shared
    ``SubscriptionLocks``. Across processes the repository decides: inserts
    race on the unique subscription key and rebinds are conditional updates
    that only apply to the binding that was read.

    A binding belongs to the account that made it. Other accounts can
    neither rebind nor verify it unless they manage subscriptions.
    """

    def __init__(
        self,
        repository: HwidBindingRepository,
        policy: HwidPolicy | None = None,
        audit_logger: AuditLogger | None = None,
        store_guard: StoreGuard | None = None,
        locks: SubscriptionLocks | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._repository = repository
        self._policy = policy or HwidPolicy()
        self._audit = audit_logger
        self._guard = store_guard or StoreGuard(timeout_seconds=None)
        self._locks = locks or SubscriptionLocks()
        self._clock = clock

    @property
    def policy(self) -> HwidPolicy:
        return self._policy

    async def bind(
        self,
        subscription_id: str,
        fingerprint: str,
        user_id: UUID | None = None,
        client_ip: str | None = None,
        manage_any: bool = False,
    ) -> HwidBinding:
        """Bind ``fingerprint`` to the subscription.

        Binding the fingerprint that is already bound is a no-op.

        Parameters
        ----------
        manage_any
            The caller may act on bindings of other accounts

        Raises
        ------
        InvalidFingerprintError
            If the fingerprint fails the length or charset rules
        HwidBindingOwnershipError
            If the subscription is bound for another account
        HwidAlreadyLockedError
            If another fingerprint is locked to the subscription, or the
            binding is unlocked but updates are disabled
        ServiceUnavailableError
            If the binding store could not be reached in time
        """
        validate_fingerprint(fingerprint, self._policy)
        await self._flag_if_suspicious(subscription_id, fingerprint, user_id, client_ip)

        try:
            async with self._locks(subscription_id):
                binding, changed = await self._bind_locked(
                    subscription_id,
                    fingerprint,
                    user_id,
                    client_ip,
                    manage_any,
                )
        except HwidAlreadyLockedError:
            logger.warning("Rejected rebind of locked subscription %s", subscription_id)
            await self._record(
                user_id or SYSTEM_ACTOR,
                AuditAction.HWID_BIND_REJECTED,
                {"subscription_id": subscription_id},
                client_ip,
            )
            raise
        except ServiceUnavailableError:
            await self._record_unavailable("bind", subscription_id, client_ip)
            raise

        if changed:
            await self._record(
                user_id or SYSTEM_ACTOR,
                AuditAction.HWID_BOUND,
                {"subscription_id": subscription_id, "locked": binding.locked},
                client_ip,
            )
            logger.info("Subscription %s bound to a device", subscription_id)
        return binding

    async def _bind_locked(
        self,
        subscription_id: str,
        fingerprint: str,
        user_id: UUID | None,
        client_ip: str | None,
        manage_any: bool,
    ) -> tuple[HwidBinding, bool]:
        now = self._clock()
        lock_now = self._policy.lock_after_redemption
        current = await self._guard(
            "binding lookup",
            self._repository.get_for_update(subscription_id),
        )

        if current is None:
            binding = HwidBinding.create(
                subscription_id,
                fingerprint,
                locked=lock_now,
                user_id=user_id,
                now=now,
            )
            await self._guard("binding insert", self._repository.add(binding))
            return binding, True

        await self._ensure_owner(current, user_id, client_ip, manage_any)

        if _same(current.fingerprint, fingerprint):
            return current, False

        if current.locked or not self._policy.allow_update:
            raise HwidAlreadyLockedError(subscription_id)

        binding = current.rebind(fingerprint, locked=lock_now, now=now)
        replaced = await self._guard(
            "binding update",
            self._repository.replace(binding, expected_fingerprint=current.fingerprint),
        )
        if replaced:
            return binding, True

        # Another process rebound or locked it since it was read
        latest = await self._guard(
            "binding lookup",
            self._repository.get_for_update(subscription_id),
        )
        if latest is not None and _same(latest.fingerprint, fingerprint):
            return latest, False
        raise HwidAlreadyLockedError(subscription_id)

    async def verify(
        self,
        subscription_id: str,
        fingerprint: str,
        user_id: UUID | None = None,
        client_ip: str | None = None,
        manage_any: bool = False,
    ) -> bool:
        """True iff ``fingerprint`` matches the bound one.

        With ``bind_on_first_use`` an unbound subscription is bound to the
        presented fingerprint and verifies.

        Raises
        ------
        HwidBindingOwnershipError
            If the subscription is bound for another account
        """
        if check_fingerprint(fingerprint, self._policy) is not None:
            return False

        try:
            binding = await self._guard(
                "binding lookup",
                self._repository.get(subscription_id),
            )
        except ServiceUnavailableError:
            await self._record_unavailable("verify", subscription_id, client_ip)
            raise

        if binding is None:
            if not self._policy.bind_on_first_use:
                return False
            try:
                await self.bind(subscription_id, fingerprint, user_id, client_ip, manage_any)
            except HwidAlreadyLockedError:
                # Another request bound first; check against that one
                return await self.verify(
                    subscription_id,
                    fingerprint,
                    user_id,
                    client_ip,
                    manage_any,
                )
            return True

        await self._ensure_owner(binding, user_id, client_ip, manage_any)

        if _same(binding.fingerprint, fingerprint):
            return True

        logger.warning("Hardware ID mismatch on subscription %s", subscription_id)
        await self._record(
            user_id or binding.user_id or SYSTEM_ACTOR,
            AuditAction.HWID_MISMATCH,
            {"subscription_id": subscription_id},
            client_ip,
        )
        return False

    async def unlock(self, subscription_id: str, actor: UUID | str) -> HwidBinding:
        """Allow the next bind to replace the fingerprint (admin path)."""
        async with self._locks(subscription_id):
            current = await self._guard(
                "binding lookup",
                self._repository.get_for_update(subscription_id),
            )
            if current is None:
                raise HwidBindingNotFoundError(subscription_id)
            binding = current.unlocked(self._clock())
            await self._guard("binding update", self._repository.update(binding))

        await self._record(
            actor,
            AuditAction.HWID_UNLOCKED,
            {"subscription_id": subscription_id},
        )
        logger.info("Hardware binding of %s unlocked by %s", subscription_id, actor)
        return binding

    async def release(self, subscription_id: str, actor: UUID | str) -> None:
        """Drop the binding, e.g. when the subscription is revoked or expires."""
        async with self._locks(subscription_id):
            removed = await self._guard(
                "binding delete",
                self._repository.delete(subscription_id),
            )
        if not removed:
            raise HwidBindingNotFoundError(subscription_id)

        await self._record(
            actor,
            AuditAction.HWID_RELEASED,
            {"subscription_id": subscription_id},
        )

    async def get_binding(self, subscription_id: str) -> HwidBinding | None:
        return await self._guard("binding lookup", self._repository.get(subscription_id))

    async def list_for_user(self, user_id: UUID) -> list[HwidBinding]:
        """The bindings an account holds, oldest first."""
        return await self._guard("binding list", self._repository.list_for_user(user_id))

    async def _ensure_owner(
        self,
        binding: HwidBinding,
        user_id: UUID | None,
        client_ip: str | None,
        manage_any: bool,
    ) -> None:
        if manage_any or user_id is None or binding.user_id is None:
            return
        if binding.user_id == user_id:
            return

        logger.warning(
            "User %s denied access to the binding of subscription %s",
            user_id,
            binding.subscription_id,
        )
        await self._record(
            user_id,
            AuditAction.PERMISSION_DENIED,
            {"subscription_id": binding.subscription_id},
            client_ip,
        )
        raise HwidBindingOwnershipError(binding.subscription_id)

    async def _flag_if_suspicious(
        self,
        subscription_id: str,
        fingerprint: str,
        user_id: UUID | None,
        client_ip: str | None,
    ) -> None:
        assessment = assess_fingerprint(fingerprint)
        if not assessment.suspicious:
            return
        logger.warning(
            "Suspicious hardware ID on subscription %s: %s",
            subscription_id,
            assessment.reason,
        )
        await self._record(
            user_id or SYSTEM_ACTOR,
            AuditAction.HWID_SUSPICIOUS,
            {"subscription_id": subscription_id, "reason": assessment.reason},
            client_ip,
        )

    async def _record_unavailable(
        self,
        operation: str,
        subscription_id: str,
        client_ip: str | None,
    ) -> None:
        await self._record(
            SYSTEM_ACTOR,
            AuditAction.DATABASE_ERROR,
            {"operation": operation, "subscription_id": subscription_id},
            client_ip,
        )

    async def _record(
        self,
        actor: UUID | str,
        action: AuditAction,
        detail: dict,
        client_ip: str | None = None,
    ) -> None:
        if self._audit is not None:
            await self._audit.record(
                actor=actor,
                action=action,
                detail=detail,
                ip_address=client_ip,
            )


def _same(stored: str, presented: str) -> bool:
    return hmac.compare_digest(stored.encode("utf-8"), presented.encode("utf-8"))
