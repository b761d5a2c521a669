"""Abstract repository interface for hardware bindings."""

from abc import ABC, abstractmethod
from uuid import UUID

from keygate_licensing.domain import HwidBinding


class HwidBindingRepository(ABC):
    """Store for subscription -> fingerprint bindings.

    Implementations enforce one binding per subscription. ``get_for_update``
    locks the row where the store supports it; ``add`` and ``replace`` stay
    correct without that lock.
    """

    @abstractmethod
    async def get(self, subscription_id: str) -> HwidBinding | None:
        """Return the binding or None."""

    @abstractmethod
    async def get_for_update(self, subscription_id: str) -> HwidBinding | None:
        """Return the binding, locking it for the current transaction."""

    @abstractmethod
    async def add(self, binding: HwidBinding) -> None:
        """Insert a new binding.

        Raises
        ------
        HwidAlreadyLockedError
            If a binding for the subscription appeared concurrently
        """

    @abstractmethod
    async def update(self, binding: HwidBinding) -> None:
        """Replace the stored binding for ``binding.subscription_id``."""

    @abstractmethod
    async def replace(self, binding: HwidBinding, expected_fingerprint: str) -> bool:
        """Store ``binding`` only if the current one is unlocked and still holds
        ``expected_fingerprint``, as one atomic step.

        Returns False, leaving the store untouched, when another writer got
        there first.
        """

    @abstractmethod
    async def delete(self, subscription_id: str) -> bool:
        """Remove the binding. Returns False if there was none."""

    @abstractmethod
    async def list_for_user(self, user_id: UUID) -> list[HwidBinding]:
        """All bindings owned by a user."""
