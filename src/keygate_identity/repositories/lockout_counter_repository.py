"""Abstract repository interface for lockout counters."""

from abc import ABC, abstractmethod
from datetime import datetime

from keygate_config import LockoutPolicy
from keygate_identity.domain.lockout import LockoutCounter


class LockoutCounterRepository(ABC):
    """Store for failed-attempt counters.

    ``record_failure`` must be an atomic read-modify-write per key: two
    concurrent failures against the same key both count.
    """

    @abstractmethod
    async def get(self, key: str) -> LockoutCounter | None:
        """Return the counter for ``key`` or None if none exists."""

    @abstractmethod
    async def record_failure(
        self,
        key: str,
        now: datetime,
        policy: LockoutPolicy,
    ) -> LockoutCounter:
        """Apply one failure to ``key`` and return the updated counter."""

    @abstractmethod
    async def reset(self, key: str) -> None:
        """Clear the counter for ``key`` (success or admin unlock)."""
