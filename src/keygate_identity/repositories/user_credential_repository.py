"""Abstract repository interface for user credentials.

This interface defines the contract for credential persistence.
Implementations can use SQLAlchemy or any other storage.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class UserCredentialData:
    """Immutable credential data returned by repository.

    This is a pure data transfer object that decouples the domain
    from persistence implementation details.
    """

    user_id: UUID
    password_hash: str
    last_login_at: datetime | None = None
    email_verification_token_hash: str | None = None
    email_verification_expires_at: datetime | None = None

    def verification_expired(self, now: datetime) -> bool:
        if self.email_verification_expires_at is None:
            return True
        return now > self.email_verification_expires_at


class UserCredentialRepository(ABC):
    """Abstract repository interface for user authentication credentials."""

    @abstractmethod
    async def save(self, user_id: UUID, password_hash: str) -> UserCredentialData:
        """
        Create or update credentials for a user.

        Parameters
        ----------
        user_id
            The user's unique identifier
        password_hash
            The bcrypt password hash

        Returns
        -------
        The saved credential data
        """

    @abstractmethod
    async def find_by_user_id(self, user_id: UUID) -> UserCredentialData | None:
        """
        Find credentials by user ID.

        Parameters
        ----------
        user_id
            The user's unique identifier

        Returns
        -------
        Credential data if found, None otherwise
        """

    @abstractmethod
    async def update_last_login(self, user_id: UUID, at: datetime) -> None:
        """Record a successful login."""

    @abstractmethod
    async def set_verification_token(
        self,
        user_id: UUID,
        token_hash: str,
        expires_at: datetime,
    ) -> None:
        """Store the hash of a pending email verification token."""

    @abstractmethod
    async def find_by_verification_hash(
        self,
        token_hash: str,
    ) -> UserCredentialData | None:
        """Find the credentials holding a pending verification token."""

    @abstractmethod
    async def clear_verification_token(self, user_id: UUID) -> None:
        """Remove any pending verification token for the user."""
