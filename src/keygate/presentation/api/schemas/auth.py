"""Authentication schemas for request/response models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

if TYPE_CHECKING:
    from keygate_identity import IssuedToken, User


class RegisterRequest(BaseModel):
    """Request schema for user registration.

    Only the outer length bounds are checked here; the full password policy
    runs in the service so that every violation is reported at once.
    """

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(
        ...,
        min_length=1,
        max_length=1024,
        description="Password (checked against the configured policy)",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "user@example.com",
                "password": "SecurePassword123",
            },
        },
    )


class LoginRequest(BaseModel):
    """Request schema for user login."""

    # Plain str: a malformed address must fail like an unknown account
    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=1024)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "user@example.com",
                "password": "SecurePassword123",
            },
        },
    )


class TokenRequest(BaseModel):
    token: str = Field(..., max_length=4096)


class ChangePasswordRequest(BaseModel):
    """Request schema for changing a user's password."""

    current_password: str
    new_password: str = Field(..., min_length=1, max_length=1024)


class PasswordResetRequest(BaseModel):
    """Request schema for requesting a password reset email."""

    email: str = Field(..., max_length=320)


class PasswordResetCompleteRequest(BaseModel):
    """Request schema for resetting a password with a token."""

    token: str = Field(..., max_length=256)
    new_password: str = Field(..., min_length=1, max_length=1024)


class UserResponse(BaseModel):
    """Response schema for user data."""

    id: UUID
    email: str
    role: str
    email_verified: bool
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            email=user.email,
            role=user.role.value,
            email_verified=user.email_verified,
            is_active=user.is_active,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
        )


class AuthResponse(BaseModel):
    """Response schema for authentication (login/register)."""

    user: UserResponse
    access_token: str
    token_type: str = Field(default="bearer")
    expires_in: int
    expires_at: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user": {
                    "id": "550e8400-e29b-41d4-a716-446655440000",
                    "email": "user@example.com",
                    "role": "user",
                    "email_verified": False,
                    "is_active": True,
                    "created_at": "2024-12-05T10:30:00Z",
                    "last_login_at": None,
                },
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
                "expires_in": 86400,
                "expires_at": "2024-12-06T10:30:00Z",
            },
        },
    )

    @classmethod
    def create(cls, user: User, token: IssuedToken) -> AuthResponse:
        return cls(
            user=UserResponse.from_user(user),
            access_token=token.token,
            expires_in=token.expires_in_seconds,
            expires_at=token.expires_at,
        )


class RegisterResponse(BaseModel):
    """Response schema for registration.

    The token fields are empty while the account still has to verify its
    email address.
    """

    user: UserResponse
    requires_verification: bool
    access_token: str | None = None
    token_type: str = Field(default="bearer")
    expires_in: int | None = None
    expires_at: datetime | None = None


class TokenValidationResponse(BaseModel):
    """Outcome of a token check. Claims are only set when ``valid``."""

    valid: bool
    user_id: UUID | None = None
    role: str | None = None
    expires_at: datetime | None = None
    error_code: str | None = None


class PermissionsResponse(BaseModel):
    role: str
    level: int
    permissions: list[str]
