"""SQLAlchemy implementation of UserCredentialRepository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from keygate.domain.shared.time import ensure_tz_aware
from keygate_identity.infrastructure.persistence.sqlalchemy.models import (
    UserCredentialModel,
)
from keygate_identity.repositories import UserCredentialData, UserCredentialRepository


class UserCredentialRepositorySQLAlchemy(UserCredentialRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, user_id: UUID, password_hash: str) -> UserCredentialData:
        model = await self._find_model(user_id)
        if model is None:
            model = UserCredentialModel(user_id=user_id, password_hash=password_hash)
            self._session.add(model)
        else:
            model.password_hash = password_hash
        await self._session.flush()
        return self._map_to_data(model)

    async def find_by_user_id(self, user_id: UUID) -> UserCredentialData | None:
        model = await self._find_model(user_id)
        if model is None:
            return None
        return self._map_to_data(model)

    async def update_last_login(self, user_id: UUID, at: datetime) -> None:
        stmt = (
            update(UserCredentialModel)
            .where(UserCredentialModel.user_id == user_id)
            .values(last_login_at=at)
        )
        await self._session.execute(stmt)
        await self._session.flush()

    async def set_verification_token(
        self,
        user_id: UUID,
        token_hash: str,
        expires_at: datetime,
    ) -> None:
        stmt = (
            update(UserCredentialModel)
            .where(UserCredentialModel.user_id == user_id)
            .values(
                email_verification_token_hash=token_hash,
                email_verification_expires_at=expires_at,
            )
        )
        await self._session.execute(stmt)
        await self._session.flush()

    async def find_by_verification_hash(
        self,
        token_hash: str,
    ) -> UserCredentialData | None:
        stmt = select(UserCredentialModel).where(
            UserCredentialModel.email_verification_token_hash == token_hash,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return self._map_to_data(model)

    async def clear_verification_token(self, user_id: UUID) -> None:
        stmt = (
            update(UserCredentialModel)
            .where(UserCredentialModel.user_id == user_id)
            .values(
                email_verification_token_hash=None,
                email_verification_expires_at=None,
            )
        )
        await self._session.execute(stmt)
        await self._session.flush()

    async def _find_model(self, user_id: UUID) -> UserCredentialModel | None:
        stmt = select(UserCredentialModel).where(UserCredentialModel.user_id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    def _map_to_data(self, model: UserCredentialModel) -> UserCredentialData:
        return UserCredentialData(
            user_id=model.user_id,
            password_hash=model.password_hash,
            last_login_at=_aware(model.last_login_at),
            email_verification_token_hash=model.email_verification_token_hash,
            email_verification_expires_at=_aware(model.email_verification_expires_at),
        )


def _aware(value: datetime | None) -> datetime | None:
    return ensure_tz_aware(value) if value is not None else None
