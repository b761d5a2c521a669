"""User context for request-scoped user identity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from keygate_identity.domain.user import User, UserRole


@dataclass(frozen=True)
class UserContext:
    """Immutable context for the current authenticated user.

    ``role`` is the persisted role loaded for this request, not the snapshot
    carried by the token.
    """

    user_id: UUID
    email: str
    role: UserRole
    token_jti: str | None = None
    client_ip: str | None = None

    @classmethod
    def create(
        cls,
        user: User,
        token_jti: str | None = None,
        client_ip: str | None = None,
    ) -> UserContext:
        return cls(
            user_id=user.id,
            email=user.email,
            role=user.role,
            token_jti=token_jti,
            client_ip=client_ip,
        )

    @property
    def is_admin(self) -> bool:
        return self.role.value == "admin"

    def __str__(self) -> str:
        return f"UserContext({self.email})"
