"""Account and client-address lockout.

Two independent trackers are evaluated with AND semantics: a lock on either
the account or the client address blocks the attempt. Both are consulted
before any password hashing happens.
"""

import logging
from datetime import datetime
from typing import Callable

from keygate.domain.shared.time import utc_now
from keygate_config import LockoutPolicy
from keygate_identity.domain.lockout import LockoutCounter, LockoutDecision
from keygate_identity.exceptions import AccountLockedError
from keygate_identity.repositories import LockoutCounterRepository

logger = logging.getLogger(__name__)


def account_key(email: str) -> str:
    return f"account:{email.strip().lower()}"


def ip_key(client_ip: str) -> str:
    return f"ip:{client_ip}"


class LockoutService:
    def __init__(
        self,
        repository: LockoutCounterRepository,
        account_policy: LockoutPolicy,
        ip_policy: LockoutPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._repository = repository
        self._account_policy = account_policy
        self._ip_policy = ip_policy
        self._clock = clock

    @property
    def account_policy(self) -> LockoutPolicy:
        return self._account_policy

    async def ensure_not_locked(self, email: str, client_ip: str | None = None) -> None:
        """Raise ``AccountLockedError`` if the account or the address is locked."""
        now = self._clock()
        locks: list[datetime] = []

        account = await self._repository.get(account_key(email))
        if account is not None and account.is_locked(now):
            locks.append(account.locked_until)  # type: ignore[arg-type]

        if client_ip and self._ip_policy is not None:
            address = await self._repository.get(ip_key(client_ip))
            if address is not None and address.is_locked(now):
                locks.append(address.locked_until)  # type: ignore[arg-type]

        if locks:
            raise AccountLockedError(locked_until=max(locks))

    async def record_failure(
        self,
        email: str,
        client_ip: str | None = None,
    ) -> LockoutDecision:
        now = self._clock()
        account = await self._repository.record_failure(
            account_key(email),
            now,
            self._account_policy,
        )
        just_locked = _locked_by_this_failure(account, now, self._account_policy)
        if just_locked:
            logger.warning(
                "Account %s locked until %s (lock #%d)",
                email,
                account.locked_until,
                account.lockout_count,
            )

        locked_until = account.locked_until if account.is_locked(now) else None
        remaining = account.remaining_attempts(now, self._account_policy)

        if client_ip and self._ip_policy is not None:
            address = await self._repository.record_failure(
                ip_key(client_ip),
                now,
                self._ip_policy,
            )
            if _locked_by_this_failure(address, now, self._ip_policy):
                logger.warning(
                    "Client address %s locked until %s",
                    client_ip,
                    address.locked_until,
                )
            if address.is_locked(now):
                locked_until = max(filter(None, [locked_until, address.locked_until]))
            remaining = min(
                remaining,
                address.remaining_attempts(now, self._ip_policy),
            )

        return LockoutDecision(
            locked=locked_until is not None,
            locked_until=locked_until,
            remaining_attempts=remaining,
            just_locked=just_locked,
        )

    async def record_success(self, email: str) -> None:
        """Reset the account tally. The address tally is left alone."""
        if self._account_policy.reset_on_success:
            await self._repository.reset(account_key(email))

    async def unlock(self, email: str) -> None:
        await self._repository.reset(account_key(email))
        logger.info("Account %s unlocked", email)

    async def get_counter(self, email: str) -> LockoutCounter | None:
        return await self._repository.get(account_key(email))


def _locked_by_this_failure(
    counter: LockoutCounter,
    now: datetime,
    policy: LockoutPolicy,
) -> bool:
    if counter.locked_until is None or counter.lockout_count == 0:
        return False
    return counter.locked_until == now + policy.duration_for(counter.lockout_count)
