"""In-process lockout counter store.

Suitable for a single process and for tests. Each key has its own
``threading.Lock`` so the read-modify-write in ``record_failure`` is atomic
even when called from several threads or event loops.
"""

import threading
from datetime import datetime

from keygate_config import LockoutPolicy
from keygate_identity.domain.lockout import LockoutCounter
from keygate_identity.repositories import LockoutCounterRepository


class InMemoryLockoutCounterRepository(LockoutCounterRepository):
    def __init__(self) -> None:
        self._counters: dict[str, LockoutCounter] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    async def get(self, key: str) -> LockoutCounter | None:
        return self._counters.get(key)

    async def record_failure(
        self,
        key: str,
        now: datetime,
        policy: LockoutPolicy,
    ) -> LockoutCounter:
        with self._lock_for(key):
            current = self._counters.get(key) or LockoutCounter(key=key)
            updated = current.register_failure(now, policy)
            self._counters[key] = updated
            return updated

    async def reset(self, key: str) -> None:
        with self._lock_for(key):
            self._counters.pop(key, None)

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock
