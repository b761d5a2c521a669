"""User domain manages user identity only.

This domain handles:
- User aggregate (identity: id, email, role, verification and active flags)
- Roles and the permissions each role grants
"""

from keygate_identity.domain.user.aggregates import User
from keygate_identity.domain.user.repositories import UserRepository
from keygate_identity.domain.user.value_objects import (
    ROLE_DEFINITIONS,
    Email,
    Permission,
    RoleDefinition,
    UserRole,
)

__all__ = [
    "ROLE_DEFINITIONS",
    "Email",
    "Permission",
    "RoleDefinition",
    "User",
    "UserRepository",
    "UserRole",
]
