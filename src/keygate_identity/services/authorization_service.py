"""Role and permission checks.

Lookups against the static role table are pure. ``authorize`` additionally
re-reads the caller's current role from the store, because the role in a
token is only a snapshot and may be stale after a demotion.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from keygate.domain.shared.exceptions import ServiceUnavailableError
from keygate.infrastructure.persistence import StoreGuard
from keygate_audit import SYSTEM_ACTOR, AuditAction
from keygate_identity.domain.user import ROLE_DEFINITIONS, Permission, User, UserRole
from keygate_identity.domain.user.value_objects import (
    UNKNOWN_REQUIRED_LEVEL,
    UNKNOWN_ROLE_LEVEL,
)
from keygate_identity.exceptions import InsufficientRoleError, PermissionDeniedError

if TYPE_CHECKING:
    from keygate_audit import AuditLogger
    from keygate_identity.domain.user import UserRepository

logger = logging.getLogger(__name__)


class AuthorizationService:
    def __init__(
        self,
        user_repository: UserRepository | None = None,
        audit_logger: AuditLogger | None = None,
        store_guard: StoreGuard | None = None,
    ):
        self._user_repo = user_repository
        self._audit = audit_logger
        self._guard = store_guard or StoreGuard(timeout_seconds=None)

    # -------------------------------------------------------------------------
    # Pure lookups
    # -------------------------------------------------------------------------

    def has_permission(self, role: str | UserRole, permission: str | Permission) -> bool:
        parsed_role = UserRole.parse(role)
        parsed_permission = Permission.parse(permission)
        if parsed_role is None or parsed_permission is None:
            return False
        return parsed_permission in ROLE_DEFINITIONS[parsed_role].permissions

    def role_level(self, role: str | UserRole) -> int:
        parsed = UserRole.parse(role)
        if parsed is None:
            return UNKNOWN_ROLE_LEVEL
        return ROLE_DEFINITIONS[parsed].level

    def has_minimum_role(
        self,
        role: str | UserRole,
        required_role: str | UserRole,
    ) -> bool:
        required = UserRole.parse(required_role)
        required_level = (
            ROLE_DEFINITIONS[required].level
            if required is not None
            else UNKNOWN_REQUIRED_LEVEL
        )
        return self.role_level(role) >= required_level

    def permissions_for(self, role: str | UserRole) -> frozenset[Permission]:
        parsed = UserRole.parse(role)
        if parsed is None:
            return frozenset()
        return ROLE_DEFINITIONS[parsed].permissions

    def require_permission(
        self,
        role: str | UserRole,
        permission: str | Permission,
    ) -> None:
        if not self.has_permission(role, permission):
            raise PermissionDeniedError(str(getattr(permission, "value", permission)))

    def require_minimum_role(
        self,
        role: str | UserRole,
        required_role: str | UserRole,
    ) -> None:
        if not self.has_minimum_role(role, required_role):
            raise InsufficientRoleError(
                str(getattr(required_role, "value", required_role)),
            )

    # -------------------------------------------------------------------------
    # Checks against the current persisted role
    # -------------------------------------------------------------------------

    async def authorize(
        self,
        user_id: UUID,
        permission: str | Permission,
        client_ip: str | None = None,
    ) -> User:
        """Load the user and require ``permission`` for their current role.

        Raises
        ------
        PermissionDeniedError
            If the user is unknown, deactivated, or lacks the permission
        ServiceUnavailableError
            If the user store could not be reached in time
        """
        user = await self._load_active_user(user_id, client_ip)
        if user is None or not self.has_permission(user.role, permission):
            await self._deny(user_id, "permission", permission, client_ip)
            raise PermissionDeniedError(str(getattr(permission, "value", permission)))
        return user

    async def authorize_minimum_role(
        self,
        user_id: UUID,
        required_role: str | UserRole,
        client_ip: str | None = None,
    ) -> User:
        user = await self._load_active_user(user_id, client_ip)
        if user is None or not self.has_minimum_role(user.role, required_role):
            await self._deny(user_id, "role", required_role, client_ip)
            raise InsufficientRoleError(
                str(getattr(required_role, "value", required_role)),
            )
        return user

    async def _load_active_user(
        self,
        user_id: UUID,
        client_ip: str | None,
    ) -> User | None:
        if self._user_repo is None:
            msg = "AuthorizationService needs a user repository to authorize"
            raise RuntimeError(msg)
        try:
            user = await self._guard("user lookup", self._user_repo.find_by_id(user_id))
        except ServiceUnavailableError:
            if self._audit is not None:
                await self._audit.record(
                    actor=SYSTEM_ACTOR,
                    action=AuditAction.AUTH_UNAVAILABLE,
                    detail={"operation": "authorize"},
                    ip_address=client_ip,
                )
            raise
        if user is None or not user.is_active:
            return None
        return user

    async def _deny(
        self,
        user_id: UUID,
        kind: str,
        required: object,
        client_ip: str | None,
    ) -> None:
        required_value = str(getattr(required, "value", required))
        logger.warning("Denied %s %s for user %s", kind, required_value, user_id)
        if self._audit is not None:
            await self._audit.record(
                actor=user_id,
                action=AuditAction.PERMISSION_DENIED,
                detail={"required_" + kind: required_value},
                ip_address=client_ip,
            )
