# ruff: noqa: E501 - Long import paths in __init__.py re-exports
"""SQLAlchemy repositories for identity management."""

from keygate_identity.infrastructure.persistence.sqlalchemy.repositories.lockout_counter_repository import (
    LockoutCounterRepositorySQLAlchemy,
)
from keygate_identity.infrastructure.persistence.sqlalchemy.repositories.password_reset_token_repository import (
    PasswordResetTokenRepositorySQLAlchemy,
)
from keygate_identity.infrastructure.persistence.sqlalchemy.repositories.user_credential_repository import (
    UserCredentialRepositorySQLAlchemy,
)
from keygate_identity.infrastructure.persistence.sqlalchemy.repositories.user_repository import (
    UserRepositorySQLAlchemy,
)

__all__ = [
    "LockoutCounterRepositorySQLAlchemy",
    "PasswordResetTokenRepositorySQLAlchemy",
    "UserCredentialRepositorySQLAlchemy",
    "UserRepositorySQLAlchemy",
]
