"""Persistence port for the User aggregate."""

from abc import ABC, abstractmethod
from uuid import UUID

from keygate_identity.domain.user.aggregates.user import User
from keygate_identity.domain.user.value_objects.email import Email


class UserRepository(ABC):
    """Users are never hard-deleted; deactivation is a ``save``."""

    @abstractmethod
    async def find_by_id(self, user_id: UUID) -> User | None: ...

    @abstractmethod
    async def find_by_email(self, email: str | Email) -> User | None:
        """Look up an account; the address is matched case-insensitively."""

    @abstractmethod
    async def exists_by_email(self, email: str | Email) -> bool: ...

    @abstractmethod
    async def save(self, user: User) -> None:
        """Insert or update ``user``.

        Raises
        ------
        EmailAlreadyExistsError
            If another account already holds the address
        """

    @abstractmethod
    async def list_all(self) -> list[User]: ...
