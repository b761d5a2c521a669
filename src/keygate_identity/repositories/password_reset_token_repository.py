"""Persistence port for single-use password reset tokens.

Only the SHA-256 hash of a token is ever stored; the raw value lives in the
reset link and nowhere else.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class PasswordResetTokenData:
    id: UUID
    user_id: UUID
    token_hash: str
    expires_at: datetime
    used_at: datetime | None
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_used(self) -> bool:
        return self.used_at is not None


class PasswordResetTokenRepository(ABC):
    @abstractmethod
    async def create(
        self,
        user_id: UUID,
        token_hash: str,
        expires_at: datetime,
    ) -> UUID:
        """Store a new token hash for ``user_id`` and return the token id."""

    @abstractmethod
    async def find_valid_by_hash(self, token_hash: str) -> PasswordResetTokenData | None:
        """Return the token if it is neither used nor expired."""

    @abstractmethod
    async def mark_used(self, token_id: UUID) -> bool:
        """Consume a token atomically.

        Returns
        -------
        False when another request consumed it first
        """

    @abstractmethod
    async def invalidate_all_for_user(self, user_id: UUID) -> None:
        """Consume every outstanding token of ``user_id``."""

    @abstractmethod
    async def count_recent_for_user(self, user_id: UUID, since: datetime) -> int:
        """Tokens issued to ``user_id`` since ``since``, used ones included."""

    @abstractmethod
    async def cleanup_expired(self) -> int:
        """Delete expired tokens and return how many were removed."""
