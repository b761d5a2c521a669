"""Value objects for the user domain."""

from keygate_identity.domain.user.value_objects.email import Email
from keygate_identity.domain.user.value_objects.permission import Permission
from keygate_identity.domain.user.value_objects.role_definitions import (
    ROLE_DEFINITIONS,
    UNKNOWN_REQUIRED_LEVEL,
    UNKNOWN_ROLE_LEVEL,
    RoleDefinition,
)
from keygate_identity.domain.user.value_objects.user_role import UserRole

__all__ = [
    "ROLE_DEFINITIONS",
    "UNKNOWN_REQUIRED_LEVEL",
    "UNKNOWN_ROLE_LEVEL",
    "Email",
    "Permission",
    "RoleDefinition",
    "UserRole",
]
