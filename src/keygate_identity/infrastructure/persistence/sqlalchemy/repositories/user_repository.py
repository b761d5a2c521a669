"""Users table access."""

import logging
from typing import Union
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from keygate.domain.shared.time import ensure_tz_aware
from keygate_identity.domain.user import Email, User, UserRepository
from keygate_identity.exceptions import EmailAlreadyExistsError
from keygate_identity.infrastructure.persistence.sqlalchemy.models import UserModel

logger = logging.getLogger(__name__)


def _normalized(email: Union[str, Email]) -> str:
    return email.value if isinstance(email, Email) else Email(email).value


class UserRepositorySQLAlchemy(UserRepository):
    """Emails are stored lower-cased, so lookups compare plain strings."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_id(self, user_id: UUID) -> User | None:
        model = await self._session.get(UserModel, user_id)
        return _to_user(model) if model is not None else None

    async def find_by_email(self, email: Union[str, Email]) -> User | None:
        result = await self._session.execute(
            select(UserModel).where(UserModel.email == _normalized(email)),
        )
        model = result.scalar_one_or_none()
        return _to_user(model) if model is not None else None

    async def exists_by_email(self, email: Union[str, Email]) -> bool:
        stmt = select(exists().where(UserModel.email == _normalized(email)))
        return bool((await self._session.execute(stmt)).scalar())

    async def save(self, user: User) -> None:
        model = await self._session.get(UserModel, user.id)
        if model is None:
            model = UserModel(id=user.id, created_at=user.created_at)
            self._session.add(model)
            logger.info("Created user row %s", user.id)
        _copy_state(user, model)

        try:
            await self._session.flush()
        except IntegrityError as e:
            # The unique email index decides concurrent registrations
            raise EmailAlreadyExistsError(user.email) from e

    async def list_all(self) -> list[User]:
        result = await self._session.execute(
            select(UserModel).order_by(UserModel.created_at, UserModel.email),
        )
        return [_to_user(model) for model in result.scalars()]


def _copy_state(user: User, model: UserModel) -> None:
    model.email = user.email
    model.role = user.role.value
    model.email_verified = user.email_verified
    model.is_active = user.is_active
    model.last_login_at = user.last_login_at
    model.updated_at = user.updated_at


def _to_user(model: UserModel) -> User:
    return User.reconstitute(
        id=model.id,
        email=model.email,
        role=model.role,
        email_verified=model.email_verified,
        is_active=model.is_active,
        created_at=ensure_tz_aware(model.created_at),
        updated_at=ensure_tz_aware(model.updated_at),
        last_login_at=(
            ensure_tz_aware(model.last_login_at) if model.last_login_at else None
        ),
    )
