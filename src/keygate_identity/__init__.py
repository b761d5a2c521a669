"""Keygate Identity - credentials, tokens, lockout, rate limits and roles.

This package handles all identity-related concerns:
- User management (registration, roles, soft deactivation)
- Authentication (login, token issuance and validation, logout)
- Authorization (role table, permission and minimum-role checks)
- Abuse defences (account/address lockout, fixed-window rate limits)
- Password management (policy, hashing, reset, email verification)
"""

from keygate_identity.application.context import UserContext
from keygate_identity.application.services import (
    AuthenticationService,
    PasswordResetService,
)
from keygate_identity.domain.user import (
    ROLE_DEFINITIONS,
    Email,
    Permission,
    User,
    UserRepository,
    UserRole,
)
from keygate_identity.exceptions import (
    AccountInactiveError,
    AccountLockedError,
    AuthError,
    EmailAlreadyExistsError,
    EmailNotVerifiedError,
    InsufficientRoleError,
    InvalidCredentialsError,
    InvalidEmailError,
    InvalidResetTokenError,
    InvalidRoleError,
    InvalidTokenError,
    InvalidVerificationTokenError,
    PermissionDeniedError,
    RateLimitedError,
    ServiceUnavailableError,
    TokenExpiredError,
    TokenRevokedError,
    UserNotFoundError,
    WeakPasswordError,
)
from keygate_identity.schemas import (
    IssuedToken,
    LoginResult,
    RegistrationResult,
    RoleChange,
    TokenClaims,
    TokenValidation,
)
from keygate_identity.services import (
    AuthorizationService,
    FixedWindowRateLimiter,
    JWTService,
    LockoutService,
    PasswordHashingService,
    PasswordPolicyEngine,
)

__all__ = [
    # Domain - User
    "ROLE_DEFINITIONS",
    "Email",
    "Permission",
    "User",
    "UserRepository",
    "UserRole",
    # Exceptions
    "AccountInactiveError",
    "AccountLockedError",
    "AuthError",
    "EmailAlreadyExistsError",
    "EmailNotVerifiedError",
    "InsufficientRoleError",
    "InvalidCredentialsError",
    "InvalidEmailError",
    "InvalidResetTokenError",
    "InvalidRoleError",
    "InvalidTokenError",
    "InvalidVerificationTokenError",
    "PermissionDeniedError",
    "RateLimitedError",
    "ServiceUnavailableError",
    "TokenExpiredError",
    "TokenRevokedError",
    "UserNotFoundError",
    "WeakPasswordError",
    # Schemas
    "IssuedToken",
    "LoginResult",
    "RegistrationResult",
    "RoleChange",
    "TokenClaims",
    "TokenValidation",
    # Services
    "AuthorizationService",
    "FixedWindowRateLimiter",
    "JWTService",
    "LockoutService",
    "PasswordHashingService",
    "PasswordPolicyEngine",
    # Application
    "AuthenticationService",
    "PasswordResetService",
    "UserContext",
]
