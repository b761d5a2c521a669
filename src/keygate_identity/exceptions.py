"""Identity and authentication exceptions.

These exceptions are raised by the keygate_identity package and should be
caught and handled by the application layer. Each one carries a stable
``code`` and a ``category`` that decides how callers treat it.
"""

from datetime import datetime
from typing import Sequence

from keygate.domain.shared.exceptions import (
    ErrorCategory,
    ErrorCode,
    KeygateError,
    ServiceUnavailableError,  # noqa: F401 - re-exported for callers of this package
)


class AuthError(KeygateError):
    """Base exception for all authentication errors."""

    code = ErrorCode.INVALID_CREDENTIALS
    category = ErrorCategory.AUTHENTICATION

    def __init__(self, message: str = "Authentication error"):
        super().__init__(message)


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------


class WeakPasswordError(AuthError):
    """Raised when a password doesn't meet strength requirements.

    ``violations`` holds every rule the password broke, not only the first.
    """

    code = ErrorCode.WEAK_PASSWORD
    category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str = "Password does not meet requirements",
        violations: Sequence[object] = (),
    ):
        self.violations = list(violations)
        super().__init__(message)


class InvalidEmailError(AuthError, ValueError):
    """Raised when email format is invalid."""

    code = ErrorCode.INVALID_EMAIL
    category = ErrorCategory.VALIDATION

    def __init__(self, message: str = "Invalid email address"):
        super().__init__(message)


class InvalidRoleError(AuthError, ValueError):
    code = ErrorCode.INVALID_ROLE
    category = ErrorCategory.VALIDATION

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"Unknown role: {role}")


# -----------------------------------------------------------------------------
# Authentication
# -----------------------------------------------------------------------------


class InvalidCredentialsError(AuthError):
    """Raised when email or password is incorrect during login.

    The message is identical for unknown accounts and wrong passwords.
    """

    code = ErrorCode.INVALID_CREDENTIALS

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class AccountLockedError(AuthError):
    """Raised when an account is locked due to too many failed login attempts."""

    code = ErrorCode.ACCOUNT_LOCKED

    def __init__(
        self,
        message: str = "Account is locked due to too many failed login attempts",
        locked_until: datetime | None = None,
    ):
        self.locked_until = locked_until
        if locked_until:
            message = f"{message}. Try again after {locked_until.isoformat()}"
        super().__init__(message)


class AccountInactiveError(AuthError):
    code = ErrorCode.ACCOUNT_INACTIVE

    def __init__(self, message: str = "Account is deactivated"):
        super().__init__(message)


class EmailNotVerifiedError(AuthError):
    code = ErrorCode.EMAIL_NOT_VERIFIED

    def __init__(self, message: str = "Email address has not been verified"):
        super().__init__(message)


class InvalidTokenError(AuthError):
    """Raised when a JWT token is invalid or malformed."""

    code = ErrorCode.TOKEN_INVALID

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class TokenExpiredError(InvalidTokenError):
    code = ErrorCode.TOKEN_EXPIRED

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message)


class TokenRevokedError(InvalidTokenError):
    code = ErrorCode.TOKEN_REVOKED

    def __init__(self, message: str = "Token has been revoked"):
        super().__init__(message)


class InvalidResetTokenError(AuthError):
    """Raised when a password reset token is invalid or expired."""

    code = ErrorCode.INVALID_RESET_TOKEN
    category = ErrorCategory.VALIDATION

    def __init__(self, message: str = "Invalid or expired password reset token"):
        super().__init__(message)


class InvalidVerificationTokenError(AuthError):
    code = ErrorCode.INVALID_VERIFICATION_TOKEN
    category = ErrorCategory.VALIDATION

    def __init__(self, message: str = "Invalid or expired verification token"):
        super().__init__(message)


# -----------------------------------------------------------------------------
# Authorization
# -----------------------------------------------------------------------------


class PermissionDeniedError(AuthError):
    """Raised when the caller lacks a permission.

    The message is deliberately generic; the missing permission is only kept
    on the exception for logging.
    """

    code = ErrorCode.PERMISSION_DENIED
    category = ErrorCategory.AUTHORIZATION

    def __init__(self, permission: str | None = None):
        self.permission = permission
        super().__init__("Permission denied")


class InsufficientRoleError(AuthError):
    code = ErrorCode.INSUFFICIENT_ROLE
    category = ErrorCategory.AUTHORIZATION

    def __init__(self, required_role: str | None = None):
        self.required_role = required_role
        super().__init__("Permission denied")


# -----------------------------------------------------------------------------
# Conflict / not found
# -----------------------------------------------------------------------------


class EmailAlreadyExistsError(AuthError):
    """Email already registered."""

    code = ErrorCode.EMAIL_TAKEN
    category = ErrorCategory.CONFLICT

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email address is already registered")


class UserNotFoundError(AuthError):
    code = ErrorCode.USER_NOT_FOUND
    category = ErrorCategory.NOT_FOUND

    def __init__(self, user_id: object):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


# -----------------------------------------------------------------------------
# Rate limiting / availability
# -----------------------------------------------------------------------------


class RateLimitedError(AuthError):
    code = ErrorCode.RATE_LIMITED
    category = ErrorCategory.RATE_LIMIT

    def __init__(
        self,
        retry_after_seconds: int,
        message: str = "Too many requests. Try again later.",
    ):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message)
