"""User aggregate for identity concerns only."""

from datetime import datetime
from typing import Union
from uuid import UUID, uuid4

from keygate.domain.shared.time import utc_now
from keygate_identity.domain.user.value_objects import Email, UserRole
from keygate_identity.exceptions import InvalidRoleError


class User:
    """
    User aggregate root.

    Users are never hard-deleted; ``deactivate`` keeps the row so audit
    entries keep pointing at a real account. Password material lives in the
    credential store, not here.
    """

    def __init__(  # NOQA: PLR0913
        self,
        email: Union[str, Email],
        role: Union[str, UserRole] = UserRole.USER,
        id: UUID | None = None,
        email_verified: bool = False,
        is_active: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        last_login_at: datetime | None = None,
    ):
        self._email = email if isinstance(email, Email) else Email(email)
        self._id = id or uuid4()
        self._role = _coerce_role(role)
        self._email_verified = email_verified
        self._is_active = is_active
        self._created_at = created_at or utc_now()
        self._updated_at = updated_at or utc_now()
        self._last_login_at = last_login_at

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def email(self) -> str:
        return self._email.value

    @property
    def email_obj(self) -> Email:
        return self._email

    @property
    def role(self) -> UserRole:
        return self._role

    @property
    def is_admin(self) -> bool:
        return self._role == UserRole.ADMIN

    @property
    def email_verified(self) -> bool:
        return self._email_verified

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def last_login_at(self) -> datetime | None:
        return self._last_login_at

    def change_role(self, role: Union[str, UserRole]) -> None:
        self._role = _coerce_role(role)
        self._updated_at = utc_now()

    def mark_email_verified(self) -> None:
        self._email_verified = True
        self._updated_at = utc_now()

    def deactivate(self) -> None:
        self._is_active = False
        self._updated_at = utc_now()

    def reactivate(self) -> None:
        self._is_active = True
        self._updated_at = utc_now()

    def record_login(self, at: datetime | None = None) -> None:
        self._last_login_at = at or utc_now()

    @classmethod
    def create(
        cls,
        email: Union[str, Email],
        role: UserRole = UserRole.USER,
        email_verified: bool = False,
    ) -> "User":
        return cls(email=email, role=role, email_verified=email_verified)

    @classmethod
    def reconstitute(  # NOQA: PLR0913
        cls,
        id: UUID,
        email: Union[str, Email],
        role: Union[str, UserRole],
        email_verified: bool,
        is_active: bool,
        created_at: datetime,
        updated_at: datetime,
        last_login_at: datetime | None = None,
    ) -> "User":
        return cls(
            id=id,
            email=email,
            role=role,
            email_verified=email_verified,
            is_active=is_active,
            created_at=created_at,
            updated_at=updated_at,
            last_login_at=last_login_at,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return f"User(id={self._id}, email={self._email.value}, role={self._role.value})"


def _coerce_role(role: Union[str, UserRole]) -> UserRole:
    parsed = UserRole.parse(role)
    if parsed is None:
        raise InvalidRoleError(str(role))
    return parsed
