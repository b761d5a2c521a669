"""Abstract repository interfaces for identity management."""

from keygate_identity.repositories.lockout_counter_repository import (
    LockoutCounterRepository,
)
from keygate_identity.repositories.password_reset_token_repository import (
    PasswordResetTokenData,
    PasswordResetTokenRepository,
)
from keygate_identity.repositories.user_credential_repository import (
    UserCredentialData,
    UserCredentialRepository,
)

__all__ = [
    "LockoutCounterRepository",
    "PasswordResetTokenData",
    "PasswordResetTokenRepository",
    "UserCredentialData",
    "UserCredentialRepository",
]
