"""Identity schemas and data structures.

These are simple data classes used for transferring identity
data between components.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from keygate.domain.shared.exceptions import ErrorCode

if TYPE_CHECKING:
    from keygate_identity.domain.user import User, UserRole


@dataclass(frozen=True)
class TokenClaims:
    """Verified token claims.

    Attributes
    ----------
    user_id
        The subject
    role
        Role snapshot taken when the token was issued. Never trust it for
        permission-gated actions; re-read the current role instead.
    jti
        Unique token id, used for revocation
    """

    user_id: UUID
    role: str
    issuer: str
    audience: str
    issued_at: datetime
    expires_at: datetime
    jti: str
    extra: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class TokenValidation:
    """Fail-closed validation outcome. ``claims`` is set only when valid."""

    valid: bool
    claims: TokenClaims | None = None
    error_code: ErrorCode | None = None

    @classmethod
    def ok(cls, claims: TokenClaims) -> TokenValidation:
        return cls(valid=True, claims=claims)

    @classmethod
    def invalid(cls, code: ErrorCode = ErrorCode.TOKEN_INVALID) -> TokenValidation:
        return cls(valid=False, error_code=code)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    jti: str
    issued_at: datetime
    expires_at: datetime

    @property
    def expires_in_seconds(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())


@dataclass(frozen=True)
class LoginResult:
    user: User
    token: IssuedToken


@dataclass(frozen=True)
class RegistrationResult:
    user: User
    requires_verification: bool
    # Only set when the account may log in straight away
    token: IssuedToken | None = None


@dataclass(frozen=True)
class RoleChange:
    user_id: UUID
    previous_role: UserRole
    new_role: UserRole
