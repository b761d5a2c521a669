"""SQLAlchemy persistence for identity management."""

from keygate_identity.infrastructure.persistence.sqlalchemy.models import (
    LockoutCounterModel,
    PasswordResetTokenModel,
    UserCredentialModel,
    UserModel,
)
from keygate_identity.infrastructure.persistence.sqlalchemy.repositories import (
    LockoutCounterRepositorySQLAlchemy,
    PasswordResetTokenRepositorySQLAlchemy,
    UserCredentialRepositorySQLAlchemy,
    UserRepositorySQLAlchemy,
)

__all__ = [
    "LockoutCounterModel",
    "LockoutCounterRepositorySQLAlchemy",
    "PasswordResetTokenModel",
    "PasswordResetTokenRepositorySQLAlchemy",
    "UserCredentialModel",
    "UserCredentialRepositorySQLAlchemy",
    "UserModel",
    "UserRepositorySQLAlchemy",
]
