"""In-process hardware binding store for single-process use and tests."""

import asyncio
from uuid import UUID

from keygate_licensing.domain import HwidBinding
from keygate_licensing.exceptions import HwidAlreadyLockedError
from keygate_licensing.repositories import HwidBindingRepository


class InMemoryHwidBindingRepository(HwidBindingRepository):
    def __init__(self) -> None:
        self._bindings: dict[str, HwidBinding] = {}
        self._lock = asyncio.Lock()

    async def get(self, subscription_id: str) -> HwidBinding | None:
        return self._bindings.get(subscription_id)

    async def get_for_update(self, subscription_id: str) -> HwidBinding | None:
        # Callers serialise per subscription; there is no row to lock
        return self._bindings.get(subscription_id)

    async def add(self, binding: HwidBinding) -> None:
        async with self._lock:
            if binding.subscription_id in self._bindings:
                raise HwidAlreadyLockedError(binding.subscription_id)
            self._bindings[binding.subscription_id] = binding

    async def update(self, binding: HwidBinding) -> None:
        async with self._lock:
            self._bindings[binding.subscription_id] = binding

    async def replace(self, binding: HwidBinding, expected_fingerprint: str) -> bool:
        async with self._lock:
            current = self._bindings.get(binding.subscription_id)
            if current is None or current.locked:
                return False
            if current.fingerprint != expected_fingerprint:
                return False
            self._bindings[binding.subscription_id] = binding
            return True

    async def delete(self, subscription_id: str) -> bool:
        async with self._lock:
            return self._bindings.pop(subscription_id, None) is not None

    async def list_for_user(self, user_id: UUID) -> list[HwidBinding]:
        return [b for b in self._bindings.values() if b.user_id == user_id]
