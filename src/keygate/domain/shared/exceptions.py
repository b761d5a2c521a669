"""Shared error codes.

Every failure that crosses a component boundary carries one of these codes
so that calling layers can map it to a user-facing message or an HTTP status
without inspecting free text.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """Coarse error taxonomy used for handling policy (status, audit level)."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    AVAILABILITY = "availability"
    CONFIGURATION = "configuration"


class ErrorCode(str, Enum):
    """Stable error codes for API clients.

    These codes are part of the public API contract. Should not be changed.
    """

    # Validation
    WEAK_PASSWORD = "WEAK_PASSWORD"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_FINGERPRINT = "INVALID_FINGERPRINT"
    INVALID_ROLE = "INVALID_ROLE"

    # Authentication
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
    TOKEN_INVALID = "TOKEN_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_REVOKED = "TOKEN_REVOKED"
    INVALID_RESET_TOKEN = "INVALID_RESET_TOKEN"
    INVALID_VERIFICATION_TOKEN = "INVALID_VERIFICATION_TOKEN"

    # Authorization
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"

    # Conflict
    EMAIL_TAKEN = "EMAIL_TAKEN"
    HWID_ALREADY_LOCKED = "HWID_ALREADY_LOCKED"

    # Not found
    USER_NOT_FOUND = "USER_NOT_FOUND"
    HWID_BINDING_NOT_FOUND = "HWID_BINDING_NOT_FOUND"

    # Rate limiting
    RATE_LIMITED = "RATE_LIMITED"

    # Availability
    UNAVAILABLE = "UNAVAILABLE"

    # Configuration
    CONFIG_ERROR = "CONFIG_ERROR"


class KeygateError(Exception):
    """Base exception for every typed failure crossing a component boundary.

    Subclasses fix ``code`` and ``category`` as class attributes; the message
    is free text for logs and user display only.
    """

    code: ErrorCode = ErrorCode.UNAVAILABLE
    category: ErrorCategory = ErrorCategory.AVAILABILITY

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ServiceUnavailableError(KeygateError):
    """A backing store failed or timed out.

    Distinct from authentication failures so callers can tell "denied" from
    "could not check".
    """

    code = ErrorCode.UNAVAILABLE
    category = ErrorCategory.AVAILABILITY

    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__(message)
