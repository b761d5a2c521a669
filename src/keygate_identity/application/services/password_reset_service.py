"""Password reset: request a link, then consume it to set a new password."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable

from keygate.domain.shared.time import utc_now
from keygate.infrastructure.persistence import StoreGuard
from keygate_audit import SYSTEM_ACTOR, AuditAction, AuditLevel
from keygate_config import PasswordResetPolicy, RouteClass
from keygate_identity.exceptions import (
    InvalidEmailError,
    InvalidResetTokenError,
    RateLimitedError,
)
from keygate_identity.services.secure_tokens import generate_token, hash_token

if TYPE_CHECKING:
    from datetime import datetime

    from keygate_audit import AuditLogger
    from keygate_identity.domain.user import UserRepository
    from keygate_identity.infrastructure.email import EmailService
    from keygate_identity.repositories import (
        PasswordResetTokenRepository,
        UserCredentialRepository,
    )
    from keygate_identity.services import (
        FixedWindowRateLimiter,
        LockoutService,
        PasswordHashingService,
    )

logger = logging.getLogger(__name__)


class PasswordResetService:
    """Service for handling password reset requests and token validation.

    ``request_reset`` answers the same way whether or not the address is
    registered, so it cannot be used to enumerate accounts.
    """

    def __init__(  # noqa: PLR0913
        self,
        user_repository: UserRepository,
        token_repository: PasswordResetTokenRepository,
        credential_repository: UserCredentialRepository,
        password_service: PasswordHashingService,
        email_service: EmailService,
        audit_logger: AuditLogger,
        frontend_base_url: str,
        policy: PasswordResetPolicy | None = None,
        lockout_service: LockoutService | None = None,
        rate_limiter: FixedWindowRateLimiter | None = None,
        store_guard: StoreGuard | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._user_repo = user_repository
        self._token_repo = token_repository
        self._credential_repo = credential_repository
        self._password_service = password_service
        self._email_service = email_service
        self._audit = audit_logger
        self._frontend_base_url = frontend_base_url.rstrip("/")
        self._policy = policy or PasswordResetPolicy()
        self._lockout = lockout_service
        self._rate_limiter = rate_limiter
        self._guard = store_guard or StoreGuard(timeout_seconds=None)
        self._clock = clock

    async def request_reset(self, email: str, client_ip: str | None = None) -> None:
        """Send a reset link if the address belongs to an account.

        Raises
        ------
        RateLimitedError
            If the client address exhausted its password-reset budget
        """
        if self._rate_limiter is not None and client_ip:
            decision = self._rate_limiter.check(client_ip, RouteClass.PASSWORD_RESET)
            if not decision.allowed:
                logger.warning("Password reset rate limit exceeded by %s", client_ip)
                await self._audit.record(
                    actor=SYSTEM_ACTOR,
                    action=AuditAction.RATE_LIMIT_EXCEEDED,
                    detail={"route_class": RouteClass.PASSWORD_RESET.value},
                    ip_address=client_ip,
                )
                raise RateLimitedError(decision.retry_after_seconds)

        try:
            user = await self._guard("user lookup", self._user_repo.find_by_email(email))
        except InvalidEmailError:
            user = None
        if user is None or not user.is_active:
            # Silent fail to prevent email enumeration
            logger.debug("Password reset requested for unknown email")
            return

        now = self._clock()
        since = now - self._policy.window
        count = await self._guard(
            "reset token count",
            self._token_repo.count_recent_for_user(user.id, since),
        )
        if count >= self._policy.max_requests_per_window:
            logger.warning("Per-account password reset limit reached for %s", user.id)
            # Still silent fail for security
            return

        raw_token = generate_token()
        expires_at = now + self._policy.token_ttl

        # Invalidate old tokens and create new one
        await self._guard(
            "reset token invalidation",
            self._token_repo.invalidate_all_for_user(user.id),
        )
        await self._guard(
            "reset token create",
            self._token_repo.create(user.id, hash_token(raw_token), expires_at),
        )
        await self._audit.record(
            actor=user.id,
            action=AuditAction.PASSWORD_RESET_REQUESTED,
            ip_address=client_ip,
        )

        reset_link = f"{self._frontend_base_url}/reset-password?token={raw_token}"
        ttl_hours = max(1, int(self._policy.token_ttl.total_seconds() // 3600))
        try:
            self._email_service.send_password_reset_email(
                to_email=user.email,
                reset_link=reset_link,
                ttl_hours=ttl_hours,
            )
            logger.info("Password reset email sent to %s", user.email)
        except Exception as e:
            logger.error("Failed to send password reset email: %s", e)
            # Don't raise - we already created the token

    async def reset_password(
        self,
        token: str,
        new_password: str,
        client_ip: str | None = None,
    ) -> None:
        """Set a new password using a reset token.

        The password is checked against the policy before the token is
        consumed, so a weak password does not burn the link.

        Raises
        ------
        WeakPasswordError
            If the new password violates the policy
        InvalidResetTokenError
            If the token is unknown, expired or already used
        """
        self._password_service.validate_strength(new_password)

        reset_token = await self._guard(
            "reset token lookup",
            self._token_repo.find_valid_by_hash(hash_token(token)),
        )
        now = self._clock()
        if reset_token is None or reset_token.is_expired(now) or reset_token.is_used():
            await self._audit.record(
                actor=SYSTEM_ACTOR,
                action=AuditAction.PASSWORD_RESET_COMPLETED,
                level=AuditLevel.WARN,
                detail={"success": False},
                ip_address=client_ip,
            )
            raise InvalidResetTokenError

        # Single use: a concurrent reset that marked it first wins
        claimed = await self._guard(
            "reset token consume",
            self._token_repo.mark_used(reset_token.id),
        )
        if not claimed:
            raise InvalidResetTokenError

        new_hash = await asyncio.to_thread(self._password_service.hash, new_password)
        await self._guard(
            "credential save",
            self._credential_repo.save(
                user_id=reset_token.user_id,
                password_hash=new_hash,
            ),
        )

        user = await self._guard(
            "user lookup",
            self._user_repo.find_by_id(reset_token.user_id),
        )
        if user is not None and self._lockout is not None:
            await self._guard("lockout reset", self._lockout.unlock(user.email))

        await self._audit.record(
            actor=reset_token.user_id,
            action=AuditAction.PASSWORD_RESET_COMPLETED,
            detail={"success": True},
            ip_address=client_ip,
        )
        logger.info("Password reset completed for user: %s", reset_token.user_id)
