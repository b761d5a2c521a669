"""Identity services: hashing, tokens, lockout, rate limiting, authorization."""

from keygate_identity.services.authorization_service import AuthorizationService
from keygate_identity.services.jwt_service import JWTService
from keygate_identity.services.lockout_service import (
    LockoutService,
    account_key,
    ip_key,
)
from keygate_identity.services.password_policy import (
    PasswordPolicyEngine,
    PasswordValidationResult,
    PasswordViolation,
)
from keygate_identity.services.password_service import PasswordHashingService
from keygate_identity.services.rate_limiter import (
    FixedWindowRateLimiter,
    RateLimitDecision,
)
from keygate_identity.services.token_revocation import (
    InMemoryTokenRevocationStore,
    TokenRevocationStore,
)

__all__ = [
    "AuthorizationService",
    "FixedWindowRateLimiter",
    "InMemoryTokenRevocationStore",
    "JWTService",
    "LockoutService",
    "PasswordHashingService",
    "PasswordPolicyEngine",
    "PasswordValidationResult",
    "PasswordViolation",
    "RateLimitDecision",
    "TokenRevocationStore",
    "account_key",
    "ip_key",
]
