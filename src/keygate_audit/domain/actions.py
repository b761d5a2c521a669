"""Audit action catalog.

Every audited event is one of a closed set of actions. Each action maps to a
severity level and a retention period; retention only drives the out-of-band
purge and never influences what the read path returns.
"""

from dataclasses import dataclass
from enum import Enum

SYSTEM_ACTOR = "system"


class AuditLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


# Retention applied when a caller overrides the catalog level
LEVEL_RETENTION_DAYS: dict[AuditLevel, int] = {
    AuditLevel.DEBUG: 7,
    AuditLevel.INFO: 90,
    AuditLevel.WARN: 180,
    AuditLevel.ERROR: 365,
}


class AuditAction(str, Enum):
    """Audited events.

    ``UNKNOWN`` is the bucket for free-text actions that are not (yet) part
    of the catalog, so retention lookups stay exhaustive.
    """

    # Authentication
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    USER_REGISTER = "USER_REGISTER"
    LOGIN_FAILED = "LOGIN_FAILED"
    USER_LOGIN_BLOCKED = "USER_LOGIN_BLOCKED"
    PASSWORD_RESET_REQUESTED = "PASSWORD_RESET_REQUESTED"
    PASSWORD_RESET_COMPLETED = "PASSWORD_RESET_COMPLETED"
    EMAIL_VERIFIED = "EMAIL_VERIFIED"
    EMAIL_VERIFICATION_FAILED = "EMAIL_VERIFICATION_FAILED"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    ACCOUNT_UNLOCKED = "ACCOUNT_UNLOCKED"
    TOKEN_REVOKED = "TOKEN_REVOKED"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"

    # Keys and subscriptions
    KEY_GENERATED = "KEY_GENERATED"
    KEY_REDEEMED = "KEY_REDEEMED"
    KEY_DEACTIVATED = "KEY_DEACTIVATED"
    BULK_KEY_GENERATION = "BULK_KEY_GENERATION"
    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    SUBSCRIPTION_EXPIRED = "SUBSCRIPTION_EXPIRED"
    SUBSCRIPTION_RENEWED = "SUBSCRIPTION_RENEWED"

    # Administration
    ADMIN_LOGIN = "ADMIN_LOGIN"
    ADMIN_USER_CREATED = "ADMIN_USER_CREATED"
    ADMIN_BULK_KEY_GENERATION = "ADMIN_BULK_KEY_GENERATION"
    ADMIN_SYSTEM_CLEANUP = "ADMIN_SYSTEM_CLEANUP"
    ADMIN_USER_DATA_EXPORT = "ADMIN_USER_DATA_EXPORT"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    USER_REACTIVATED = "USER_REACTIVATED"
    USER_ROLE_CHANGED = "USER_ROLE_CHANGED"

    # System
    SYSTEM_STARTUP = "SYSTEM_STARTUP"
    SYSTEM_SHUTDOWN = "SYSTEM_SHUTDOWN"
    DATABASE_ERROR = "DATABASE_ERROR"
    AUTH_UNAVAILABLE = "AUTH_UNAVAILABLE"

    # Security
    SUSPICIOUS_LOGIN = "SUSPICIOUS_LOGIN"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INVALID_TOKEN = "INVALID_TOKEN"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Hardware binding
    HWID_MISMATCH = "HWID_MISMATCH"
    HWID_BOUND = "HWID_BOUND"
    HWID_UNLOCKED = "HWID_UNLOCKED"
    HWID_RELEASED = "HWID_RELEASED"
    HWID_SUSPICIOUS = "HWID_SUSPICIOUS"
    HWID_BIND_REJECTED = "HWID_BIND_REJECTED"

    # Desktop client
    DESKTOP_AUTH_CHECK = "DESKTOP_AUTH_CHECK"
    DESKTOP_SUBSCRIPTION_ACCESS = "DESKTOP_SUBSCRIPTION_ACCESS"

    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class AuditPolicy:
    level: AuditLevel
    retention_days: int


_INFO = AuditLevel.INFO
_WARN = AuditLevel.WARN

AUDIT_CATALOG: dict[AuditAction, AuditPolicy] = {
    AuditAction.USER_LOGIN: AuditPolicy(_INFO, 90),
    AuditAction.USER_LOGOUT: AuditPolicy(_INFO, 30),
    AuditAction.USER_REGISTER: AuditPolicy(_INFO, 365),
    AuditAction.LOGIN_FAILED: AuditPolicy(_WARN, 30),
    AuditAction.USER_LOGIN_BLOCKED: AuditPolicy(_WARN, 30),
    AuditAction.PASSWORD_RESET_REQUESTED: AuditPolicy(_INFO, 90),
    AuditAction.PASSWORD_RESET_COMPLETED: AuditPolicy(_INFO, 90),
    AuditAction.EMAIL_VERIFIED: AuditPolicy(_INFO, 365),
    AuditAction.EMAIL_VERIFICATION_FAILED: AuditPolicy(_WARN, 30),
    AuditAction.ACCOUNT_LOCKED: AuditPolicy(_WARN, 365),
    AuditAction.ACCOUNT_UNLOCKED: AuditPolicy(_WARN, 365),
    AuditAction.TOKEN_REVOKED: AuditPolicy(_INFO, 30),
    AuditAction.PASSWORD_CHANGED: AuditPolicy(_INFO, 365),
    AuditAction.KEY_GENERATED: AuditPolicy(_INFO, 365),
    AuditAction.KEY_REDEEMED: AuditPolicy(_INFO, 365),
    AuditAction.KEY_DEACTIVATED: AuditPolicy(_WARN, 365),
    AuditAction.BULK_KEY_GENERATION: AuditPolicy(_INFO, 365),
    AuditAction.SUBSCRIPTION_CREATED: AuditPolicy(_INFO, 365),
    AuditAction.SUBSCRIPTION_EXPIRED: AuditPolicy(_INFO, 180),
    AuditAction.SUBSCRIPTION_RENEWED: AuditPolicy(_INFO, 365),
    AuditAction.ADMIN_LOGIN: AuditPolicy(_INFO, 365),
    AuditAction.ADMIN_USER_CREATED: AuditPolicy(_WARN, 365),
    AuditAction.ADMIN_BULK_KEY_GENERATION: AuditPolicy(_WARN, 365),
    AuditAction.ADMIN_SYSTEM_CLEANUP: AuditPolicy(_WARN, 365),
    AuditAction.ADMIN_USER_DATA_EXPORT: AuditPolicy(_WARN, 365),
    AuditAction.USER_DEACTIVATED: AuditPolicy(_WARN, 365),
    AuditAction.USER_REACTIVATED: AuditPolicy(_WARN, 365),
    AuditAction.USER_ROLE_CHANGED: AuditPolicy(_WARN, 365),
    AuditAction.SYSTEM_STARTUP: AuditPolicy(_INFO, 90),
    AuditAction.SYSTEM_SHUTDOWN: AuditPolicy(_INFO, 90),
    AuditAction.DATABASE_ERROR: AuditPolicy(AuditLevel.ERROR, 365),
    AuditAction.AUTH_UNAVAILABLE: AuditPolicy(AuditLevel.ERROR, 365),
    AuditAction.SUSPICIOUS_LOGIN: AuditPolicy(_WARN, 365),
    AuditAction.RATE_LIMIT_EXCEEDED: AuditPolicy(_WARN, 30),
    AuditAction.INVALID_TOKEN: AuditPolicy(_WARN, 30),
    AuditAction.PERMISSION_DENIED: AuditPolicy(_WARN, 90),
    AuditAction.HWID_MISMATCH: AuditPolicy(_WARN, 90),
    AuditAction.HWID_BOUND: AuditPolicy(_INFO, 365),
    AuditAction.HWID_UNLOCKED: AuditPolicy(_WARN, 365),
    AuditAction.HWID_RELEASED: AuditPolicy(_INFO, 365),
    AuditAction.HWID_SUSPICIOUS: AuditPolicy(_WARN, 90),
    AuditAction.HWID_BIND_REJECTED: AuditPolicy(_INFO, 90),
    AuditAction.DESKTOP_AUTH_CHECK: AuditPolicy(AuditLevel.DEBUG, 7),
    AuditAction.DESKTOP_SUBSCRIPTION_ACCESS: AuditPolicy(_INFO, 30),
    AuditAction.UNKNOWN: AuditPolicy(_INFO, 90),
}

_missing = set(AuditAction) - set(AUDIT_CATALOG)
if _missing:
    msg = f"Audit actions without a catalog entry: {sorted(a.value for a in _missing)}"
    raise RuntimeError(msg)


def resolve_action(value: "str | AuditAction") -> AuditAction:
    """Map free text to a catalog action, falling back to ``UNKNOWN``."""
    if isinstance(value, AuditAction):
        return value
    try:
        return AuditAction(value.strip().upper())
    except ValueError:
        return AuditAction.UNKNOWN


def policy_for(action: AuditAction, level: AuditLevel | None = None) -> AuditPolicy:
    """Return level and retention for ``action``.

    An explicit ``level`` that differs from the catalog entry takes the
    retention of that level instead.
    """
    policy = AUDIT_CATALOG[action]
    if level is None or level == policy.level:
        return policy
    return AuditPolicy(level, LEVEL_RETENTION_DAYS[level])
