"""SQLAlchemy implementation of HwidBindingRepository."""

import logging
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from keygate.domain.shared.time import ensure_tz_aware
from keygate_licensing.domain import HwidBinding
from keygate_licensing.exceptions import HwidAlreadyLockedError
from keygate_licensing.infrastructure.persistence.sqlalchemy.models import (
    HwidBindingModel,
)
from keygate_licensing.repositories import HwidBindingRepository

logger = logging.getLogger(__name__)


class HwidBindingRepositorySQLAlchemy(HwidBindingRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, subscription_id: str) -> HwidBinding | None:
        model = await self._find_model(subscription_id)
        return self._map_to_domain(model) if model else None

    async def get_for_update(self, subscription_id: str) -> HwidBinding | None:
        model = await self._find_model(subscription_id, for_update=True)
        return self._map_to_domain(model) if model else None

    async def add(self, binding: HwidBinding) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(self._map_to_model(binding))
        except IntegrityError as e:
            logger.warning(
                "Concurrent bind on subscription %s lost the race",
                binding.subscription_id,
            )
            raise HwidAlreadyLockedError(binding.subscription_id) from e

    async def update(self, binding: HwidBinding) -> None:
        model = await self._find_model(binding.subscription_id, for_update=True)
        if model is None:
            await self.add(binding)
            return
        model.fingerprint = binding.fingerprint
        model.locked = binding.locked
        model.user_id = binding.user_id
        if binding.bound_at is not None:
            model.bound_at = binding.bound_at
        await self._session.flush()

    async def replace(self, binding: HwidBinding, expected_fingerprint: str) -> bool:
        stmt = (
            update(HwidBindingModel)
            .where(
                HwidBindingModel.subscription_id == binding.subscription_id,
                HwidBindingModel.fingerprint == expected_fingerprint,
                HwidBindingModel.locked.is_(False),
            )
            .values(
                fingerprint=binding.fingerprint,
                locked=binding.locked,
                bound_at=binding.bound_at,
                updated_at=binding.updated_at,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def delete(self, subscription_id: str) -> bool:
        stmt = delete(HwidBindingModel).where(
            HwidBindingModel.subscription_id == subscription_id,
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def list_for_user(self, user_id: UUID) -> list[HwidBinding]:
        stmt = (
            select(HwidBindingModel)
            .where(HwidBindingModel.user_id == user_id)
            .order_by(HwidBindingModel.bound_at)
        )
        result = await self._session.execute(stmt)
        return [self._map_to_domain(m) for m in result.scalars().all()]

    async def _find_model(
        self,
        subscription_id: str,
        for_update: bool = False,
    ) -> HwidBindingModel | None:
        stmt = select(HwidBindingModel).where(
            HwidBindingModel.subscription_id == subscription_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    def _map_to_domain(self, model: HwidBindingModel) -> HwidBinding:
        return HwidBinding(
            subscription_id=model.subscription_id,
            fingerprint=model.fingerprint,
            locked=model.locked,
            user_id=model.user_id,
            bound_at=ensure_tz_aware(model.bound_at),
            updated_at=ensure_tz_aware(model.updated_at),
        )

    def _map_to_model(self, binding: HwidBinding) -> HwidBindingModel:
        model = HwidBindingModel(
            subscription_id=binding.subscription_id,
            fingerprint=binding.fingerprint,
            locked=binding.locked,
            user_id=binding.user_id,
        )
        if binding.bound_at is not None:
            model.bound_at = binding.bound_at
        return model
