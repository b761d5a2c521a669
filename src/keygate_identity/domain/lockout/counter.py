"""Failed-attempt counter and its state machine.

    CLEAR -> ACCUMULATING -> LOCKED -> CLEAR

Transitions are pure: every method returns a new counter, so a repository
can apply them inside whatever atomic read-modify-write it offers.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from keygate_config import LockoutPolicy


class LockoutState(str, Enum):
    CLEAR = "clear"
    ACCUMULATING = "accumulating"
    LOCKED = "locked"


@dataclass(frozen=True)
class LockoutCounter:
    """Failure tally for one account or client address.

    ``lockout_count`` is the number of consecutive locks; it survives a lock
    expiring and only drops back to zero on a successful authentication, so
    repeat offenders get escalating lock durations.
    """

    key: str
    failed_attempts: int = 0
    first_failure_at: datetime | None = None
    locked_until: datetime | None = None
    lockout_count: int = 0

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and now < self.locked_until

    def state(self, now: datetime) -> LockoutState:
        if self.is_locked(now):
            return LockoutState.LOCKED
        if self.failed_attempts > 0 and self.locked_until is None:
            return LockoutState.ACCUMULATING
        return LockoutState.CLEAR

    def register_failure(self, now: datetime, policy: LockoutPolicy) -> "LockoutCounter":
        """Count one failed attempt, locking when ``max_attempts`` is reached."""
        if self.is_locked(now):
            return self

        current = self
        if current.locked_until is not None:
            # Lock ran out: start a fresh tally but remember the escalation level
            current = replace(
                current,
                failed_attempts=0,
                first_failure_at=None,
                locked_until=None,
            )
        elif (
            current.first_failure_at is not None
            and now - current.first_failure_at > policy.attempt_window
        ):
            current = replace(current, failed_attempts=0, first_failure_at=None)

        attempts = current.failed_attempts + 1
        first_failure_at = current.first_failure_at or now

        if attempts < policy.max_attempts:
            return replace(
                current,
                failed_attempts=attempts,
                first_failure_at=first_failure_at,
            )

        lockout_count = current.lockout_count + 1
        return replace(
            current,
            failed_attempts=attempts,
            first_failure_at=first_failure_at,
            locked_until=now + policy.duration_for(lockout_count),
            lockout_count=lockout_count,
        )

    def remaining_attempts(self, now: datetime, policy: LockoutPolicy) -> int:
        if self.is_locked(now):
            return 0
        if self.locked_until is not None:
            return policy.max_attempts
        return max(policy.max_attempts - self.failed_attempts, 0)

    def cleared(self) -> "LockoutCounter":
        return LockoutCounter(key=self.key)


@dataclass(frozen=True)
class LockoutDecision:
    """Outcome of recording a failure against the account and IP trackers."""

    locked: bool
    locked_until: datetime | None
    remaining_attempts: int
    # True only for the failure that engaged the lock
    just_locked: bool = False
