"""Static role table.

Every role maps to an explicit permission set; nothing is inherited beyond
what is listed. Adding a role without an entry here fails at import time.
"""

from dataclasses import dataclass

from keygate_identity.domain.user.value_objects.permission import Permission
from keygate_identity.domain.user.value_objects.user_role import UserRole

# Level used for a caller whose role is not recognised
UNKNOWN_ROLE_LEVEL = 0
# Level used for a requirement that is not recognised; nobody reaches it
UNKNOWN_REQUIRED_LEVEL = 999


@dataclass(frozen=True)
class RoleDefinition:
    level: int
    permissions: frozenset[Permission]


_OWN_ACCOUNT = frozenset(
    {
        Permission.READ_OWN_PROFILE,
        Permission.UPDATE_OWN_PROFILE,
        Permission.REDEEM_KEYS,
        Permission.VIEW_OWN_SUBSCRIPTIONS,
    },
)

ROLE_DEFINITIONS: dict[UserRole, RoleDefinition] = {
    UserRole.USER: RoleDefinition(level=1, permissions=_OWN_ACCOUNT),
    UserRole.STAFF: RoleDefinition(
        level=2,
        permissions=_OWN_ACCOUNT
        | {
            Permission.VIEW_USERS,
            Permission.VIEW_KEYS,
            Permission.VIEW_SUBSCRIPTIONS,
            Permission.GENERATE_KEYS,
            Permission.VIEW_ANALYTICS,
        },
    ),
    UserRole.ADMIN: RoleDefinition(
        level=3,
        permissions=_OWN_ACCOUNT
        | {
            Permission.VIEW_USERS,
            Permission.CREATE_USERS,
            Permission.UPDATE_USERS,
            Permission.DELETE_USERS,
            Permission.VIEW_KEYS,
            Permission.GENERATE_KEYS,
            Permission.DEACTIVATE_KEYS,
            Permission.VIEW_SUBSCRIPTIONS,
            Permission.MANAGE_SUBSCRIPTIONS,
            Permission.VIEW_ANALYTICS,
            Permission.SYSTEM_MAINTENANCE,
            Permission.AUDIT_LOGS,
            Permission.MANAGE_PRODUCTS,
        },
    ),
}

_undefined = set(UserRole) - set(ROLE_DEFINITIONS)
if _undefined:
    msg = f"Roles without a definition: {sorted(r.value for r in _undefined)}"
    raise RuntimeError(msg)
