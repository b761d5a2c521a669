"""SQLAlchemy implementation of LockoutCounterRepository.

``record_failure`` reads the row (``FOR UPDATE`` where supported) and writes
the next state with an UPDATE conditioned on the row version it read. A writer that
lost a race re-reads and applies its failure on top, so no failure is lost
even where the store has no row locks.
"""

import logging
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from keygate.domain.shared.exceptions import ServiceUnavailableError
from keygate.domain.shared.time import ensure_tz_aware
from keygate_config import LockoutPolicy
from keygate_identity.domain.lockout import LockoutCounter
from keygate_identity.infrastructure.persistence.sqlalchemy.models import (
    LockoutCounterModel,
)
from keygate_identity.repositories import LockoutCounterRepository

logger = logging.getLogger(__name__)

_MAX_ATTEMPTS = 10


class LockoutCounterRepositorySQLAlchemy(LockoutCounterRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, key: str) -> LockoutCounter | None:
        stmt = select(LockoutCounterModel).where(LockoutCounterModel.key == key)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return self._map_to_domain(model)

    async def record_failure(
        self,
        key: str,
        now: datetime,
        policy: LockoutPolicy,
    ) -> LockoutCounter:
        for _ in range(_MAX_ATTEMPTS):
            model = await self._find_for_update(key)
            if model is None:
                counter = LockoutCounter(key=key).register_failure(now, policy)
                try:
                    async with self._session.begin_nested():
                        self._session.add(self._map_to_model(counter))
                except IntegrityError:
                    logger.debug("Concurrent creation of lockout counter %s", key)
                    continue
                return counter

            current = self._map_to_domain(model)
            counter = current.register_failure(now, policy)
            if counter == current:
                # Already locked; nothing to count
                return counter
            if await self._swap(model.key, model.version, counter):
                return counter
            logger.debug("Concurrent failure on lockout counter %s, retrying", key)

        msg = f"Lockout counter {key} kept changing under concurrent failures"
        raise ServiceUnavailableError(msg)

    async def _swap(self, key: str, version: int, counter: LockoutCounter) -> bool:
        """Write ``counter`` only if the row is still at ``version``."""
        stmt = (
            update(LockoutCounterModel)
            .where(
                LockoutCounterModel.key == key,
                LockoutCounterModel.version == version,
            )
            .values(
                failed_attempts=counter.failed_attempts,
                first_failure_at=counter.first_failure_at,
                locked_until=counter.locked_until,
                lockout_count=counter.lockout_count,
                version=version + 1,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def reset(self, key: str) -> None:
        stmt = delete(LockoutCounterModel).where(LockoutCounterModel.key == key)
        await self._session.execute(stmt)
        await self._session.flush()

    async def _find_for_update(self, key: str) -> LockoutCounterModel | None:
        stmt = (
            select(LockoutCounterModel)
            .where(LockoutCounterModel.key == key)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    def _map_to_domain(self, model: LockoutCounterModel) -> LockoutCounter:
        return LockoutCounter(
            key=model.key,
            failed_attempts=model.failed_attempts,
            first_failure_at=_aware(model.first_failure_at),
            locked_until=_aware(model.locked_until),
            lockout_count=model.lockout_count,
        )

    def _map_to_model(self, counter: LockoutCounter) -> LockoutCounterModel:
        model = LockoutCounterModel(key=counter.key)
        self._apply(model, counter)
        return model

    @staticmethod
    def _apply(model: LockoutCounterModel, counter: LockoutCounter) -> None:
        model.failed_attempts = counter.failed_attempts
        model.first_failure_at = counter.first_failure_at
        model.locked_until = counter.locked_until
        model.lockout_count = counter.lockout_count


def _aware(value: datetime | None) -> datetime | None:
    return ensure_tz_aware(value) if value is not None else None
