"""Unit tests for AuthorizationService."""

import asyncio
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from keygate.domain.shared.exceptions import ServiceUnavailableError
from keygate.infrastructure.persistence import StoreGuard
from keygate_audit import AuditAction, AuditLogger
from keygate_identity import (
    AuthorizationService,
    InsufficientRoleError,
    Permission,
    PermissionDeniedError,
    User,
    UserRepository,
    UserRole,
)


class TestAuthorizationLookups:
    """Pure checks against the role table."""

    def setup_method(self):
        """Set up test fixtures."""
        self.service = AuthorizationService()

    @pytest.mark.parametrize(
        ("role", "permission", "expected"),
        [
            (UserRole.USER, Permission.REDEEM_KEYS, True),
            (UserRole.USER, Permission.VIEW_USERS, False),
            (UserRole.STAFF, Permission.VIEW_USERS, True),
            (UserRole.STAFF, Permission.AUDIT_LOGS, False),
            (UserRole.ADMIN, Permission.AUDIT_LOGS, True),
            ("admin", "manage_subscriptions", True),
        ],
    )
    def test_has_permission(self, role, permission, expected):
        assert self.service.has_permission(role, permission) is expected

    def test_unknown_role_or_permission_is_denied(self):
        """Anything outside the table fails closed."""
        assert self.service.has_permission("root", Permission.REDEEM_KEYS) is False
        assert self.service.has_permission(UserRole.ADMIN, "fly") is False

    def test_role_levels(self):
        assert self.service.role_level(UserRole.USER) == 1
        assert self.service.role_level("staff") == 2
        assert self.service.role_level(UserRole.ADMIN) == 3
        assert self.service.role_level("nobody") == 0

    def test_has_minimum_role(self):
        assert self.service.has_minimum_role(UserRole.ADMIN, UserRole.STAFF) is True
        assert self.service.has_minimum_role(UserRole.STAFF, UserRole.STAFF) is True
        assert self.service.has_minimum_role(UserRole.USER, UserRole.STAFF) is False

    def test_unknown_requirement_is_unreachable(self):
        assert self.service.has_minimum_role(UserRole.ADMIN, "overlord") is False

    def test_permissions_for(self):
        assert Permission.AUDIT_LOGS in self.service.permissions_for(UserRole.ADMIN)
        assert self.service.permissions_for("nobody") == frozenset()

    def test_require_permission_raises_generic_error(self):
        with pytest.raises(PermissionDeniedError) as exc_info:
            self.service.require_permission(UserRole.USER, Permission.AUDIT_LOGS)

        assert exc_info.value.message == "Permission denied"
        assert exc_info.value.permission == "audit_logs"

    def test_require_minimum_role(self):
        with pytest.raises(InsufficientRoleError):
            self.service.require_minimum_role(UserRole.USER, UserRole.ADMIN)

        self.service.require_minimum_role(UserRole.ADMIN, UserRole.ADMIN)


class TestAuthorize:
    """Checks against the persisted role."""

    def setup_method(self):
        """Set up test fixtures."""
        self.user_repo = AsyncMock(spec=UserRepository)
        self.audit = Mock(spec=AuditLogger)
        self.audit.record = AsyncMock()
        self.service = AuthorizationService(
            user_repository=self.user_repo,
            audit_logger=self.audit,
        )

    @pytest.mark.asyncio
    async def test_authorize_returns_the_user(self):
        user = User.create("admin@example.com", role=UserRole.ADMIN)
        self.user_repo.find_by_id.return_value = user

        result = await self.service.authorize(user.id, Permission.AUDIT_LOGS)

        assert result is user
        self.audit.record.assert_not_called()

    @pytest.mark.asyncio
    async def test_demoted_user_is_denied(self):
        """The current role counts, not the one in an older token."""
        user = User.create("former-admin@example.com", role=UserRole.USER)
        self.user_repo.find_by_id.return_value = user

        with pytest.raises(PermissionDeniedError):
            await self.service.authorize(user.id, Permission.AUDIT_LOGS, "203.0.113.7")

        kwargs = self.audit.record.call_args.kwargs
        assert kwargs["action"] is AuditAction.PERMISSION_DENIED
        assert kwargs["detail"] == {"required_permission": "audit_logs"}
        assert kwargs["ip_address"] == "203.0.113.7"

    @pytest.mark.asyncio
    async def test_inactive_user_is_denied(self):
        user = User.create("admin@example.com", role=UserRole.ADMIN)
        user.deactivate()
        self.user_repo.find_by_id.return_value = user

        with pytest.raises(PermissionDeniedError):
            await self.service.authorize(user.id, Permission.AUDIT_LOGS)

    @pytest.mark.asyncio
    async def test_unknown_user_is_denied(self):
        self.user_repo.find_by_id.return_value = None

        with pytest.raises(PermissionDeniedError):
            await self.service.authorize(uuid4(), Permission.REDEEM_KEYS)

    @pytest.mark.asyncio
    async def test_authorize_minimum_role(self):
        user = User.create("staff@example.com", role=UserRole.STAFF)
        self.user_repo.find_by_id.return_value = user

        assert await self.service.authorize_minimum_role(user.id, UserRole.STAFF) is user

        with pytest.raises(InsufficientRoleError):
            await self.service.authorize_minimum_role(user.id, UserRole.ADMIN)

        kwargs = self.audit.record.call_args.kwargs
        assert kwargs["detail"] == {"required_role": "admin"}

    @pytest.mark.asyncio
    async def test_authorize_needs_a_repository(self):
        with pytest.raises(RuntimeError):
            await AuthorizationService().authorize(uuid4(), Permission.REDEEM_KEYS)

    @pytest.mark.asyncio
    async def test_store_timeout_is_unavailable(self):
        """An unreachable user store is "could not check", never a denial."""

        async def slow(*_args, **_kwargs):
            await asyncio.sleep(1)

        self.user_repo.find_by_id.side_effect = slow
        service = AuthorizationService(
            user_repository=self.user_repo,
            audit_logger=self.audit,
            store_guard=StoreGuard(timeout_seconds=0.01),
        )

        with pytest.raises(ServiceUnavailableError):
            await service.authorize(uuid4(), Permission.AUDIT_LOGS, "203.0.113.7")

        kwargs = self.audit.record.call_args.kwargs
        assert kwargs["action"] is AuditAction.AUTH_UNAVAILABLE
        assert kwargs["detail"] == {"operation": "authorize"}
        assert kwargs["ip_address"] == "203.0.113.7"
