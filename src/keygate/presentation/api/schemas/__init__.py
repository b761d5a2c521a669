"""API request and response schemas."""

from keygate.presentation.api.schemas.admin import (
    AuditEntryResponse,
    AuditPageResponse,
    RoleChangeResponse,
    UpdateRoleRequest,
)
from keygate.presentation.api.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    PasswordResetCompleteRequest,
    PasswordResetRequest,
    PermissionsResponse,
    RegisterRequest,
    RegisterResponse,
    TokenRequest,
    TokenValidationResponse,
    UserResponse,
)
from keygate.presentation.api.schemas.common import (
    ErrorResponse,
    HealthResponse,
    MessageResponse,
)
from keygate.presentation.api.schemas.hwid import (
    BindRequest,
    FingerprintResponse,
    HardwareSignalsRequest,
    HwidBindingResponse,
    VerifyRequest,
    VerifyResponse,
)

__all__ = [
    "AuditEntryResponse",
    "AuditPageResponse",
    "AuthResponse",
    "BindRequest",
    "ChangePasswordRequest",
    "ErrorResponse",
    "FingerprintResponse",
    "HardwareSignalsRequest",
    "HealthResponse",
    "HwidBindingResponse",
    "LoginRequest",
    "MessageResponse",
    "PasswordResetCompleteRequest",
    "PasswordResetRequest",
    "PermissionsResponse",
    "RegisterRequest",
    "RegisterResponse",
    "RoleChangeResponse",
    "TokenRequest",
    "TokenValidationResponse",
    "UpdateRoleRequest",
    "UserResponse",
    "VerifyRequest",
    "VerifyResponse",
]
