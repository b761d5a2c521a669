"""Token revocation store.

Tokens are stateless; revoking one early means remembering its ``jti``
until the token would have expired anyway.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable

from keygate.domain.shared.time import utc_now


class TokenRevocationStore(ABC):
    @abstractmethod
    def revoke(self, jti: str, expires_at: datetime) -> None:
        """Remember ``jti`` as revoked until ``expires_at``."""

    @abstractmethod
    def is_revoked(self, jti: str) -> bool:
        """Check whether ``jti`` has been revoked."""


class InMemoryTokenRevocationStore(TokenRevocationStore):
    """Per-process revocation list with expiry-based eviction.

    Expired entries are dropped on lookup and in a sweep every
    ``purge_every`` revocations. Thread-safe; in multi-process deployments
    use a shared store.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        purge_every: int = 100,
    ) -> None:
        self._clock = clock
        self._purge_every = purge_every
        self._since_purge = 0
        self._lock = threading.Lock()
        self._revoked: dict[str, datetime] = {}

    def revoke(self, jti: str, expires_at: datetime) -> None:
        with self._lock:
            self._revoked[jti] = expires_at
            self._since_purge += 1
            if self._since_purge >= self._purge_every:
                self._since_purge = 0
                self._purge_locked(self._clock())

    def is_revoked(self, jti: str) -> bool:
        now = self._clock()
        with self._lock:
            expires_at = self._revoked.get(jti)
            if expires_at is None:
                return False
            if now >= expires_at:
                # The token is expired anyway; forget it
                del self._revoked[jti]
                return False
            return True

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked(self._clock())

    def _purge_locked(self, now: datetime) -> int:
        expired = [jti for jti, exp in self._revoked.items() if now >= exp]
        for jti in expired:
            del self._revoked[jti]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._revoked)
