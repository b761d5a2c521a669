# ruff: noqa: E501 - Long import paths in __init__.py re-exports
"""SQLAlchemy models for identity management."""

from keygate_identity.infrastructure.persistence.sqlalchemy.models.lockout_counter_model import (
    LockoutCounterModel,
)
from keygate_identity.infrastructure.persistence.sqlalchemy.models.password_reset_token_model import (
    PasswordResetTokenModel,
)
from keygate_identity.infrastructure.persistence.sqlalchemy.models.user_credential_model import (
    UserCredentialModel,
)
from keygate_identity.infrastructure.persistence.sqlalchemy.models.user_model import (
    UserModel,
)

__all__ = [
    "LockoutCounterModel",
    "PasswordResetTokenModel",
    "UserCredentialModel",
    "UserModel",
]
