"""Authentication service for registration, login and session handling."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Iterable
from uuid import UUID

from keygate.domain.shared.exceptions import ErrorCode
from keygate.domain.shared.time import utc_now
from keygate.infrastructure.persistence import StoreGuard
from keygate_audit import SYSTEM_ACTOR, AuditAction, AuditLevel
from keygate_config import EmailVerificationPolicy, RouteClass
from keygate_identity.domain.user import Email, User, UserRole
from keygate_identity.exceptions import (
    AccountInactiveError,
    AccountLockedError,
    EmailAlreadyExistsError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidEmailError,
    InvalidRoleError,
    InvalidTokenError,
    InvalidVerificationTokenError,
    RateLimitedError,
    ServiceUnavailableError,
    UserNotFoundError,
)
from keygate_identity.schemas import (
    IssuedToken,
    LoginResult,
    RegistrationResult,
    RoleChange,
    TokenClaims,
    TokenValidation,
)
from keygate_identity.services.secure_tokens import generate_token, hash_token

if TYPE_CHECKING:
    from datetime import datetime

    from keygate_audit import AuditLogger
    from keygate_identity.domain.user import UserRepository
    from keygate_identity.infrastructure.email import EmailService
    from keygate_identity.repositories import UserCredentialRepository
    from keygate_identity.services import (
        FixedWindowRateLimiter,
        JWTService,
        LockoutService,
        PasswordHashingService,
        TokenRevocationStore,
    )

logger = logging.getLogger(__name__)


class AuthenticationService:
    """
    Application service for user authentication.

    Orchestrates the identity building blocks into the public use cases:
    - Registration and email verification
    - Login (rate limit, lockout, password check, token issuance)
    - Token validation and logout
    - Password change, deactivation and role changes

    Every store call runs through a ``StoreGuard`` so that a slow or broken
    store surfaces as ``ServiceUnavailableError`` rather than a denial.
    """

    def __init__(  # noqa: PLR0913
        self,
        user_repository: UserRepository,
        credential_repository: UserCredentialRepository,
        password_service: PasswordHashingService,
        jwt_service: JWTService,
        lockout_service: LockoutService,
        audit_logger: AuditLogger,
        rate_limiter: FixedWindowRateLimiter | None = None,
        revocation_store: TokenRevocationStore | None = None,
        verification_policy: EmailVerificationPolicy | None = None,
        email_service: EmailService | None = None,
        store_guard: StoreGuard | None = None,
        frontend_base_url: str = "",
        admin_emails: Iterable[str] = (),
        clock: Callable[[], datetime] = utc_now,
    ):
        self._user_repo = user_repository
        self._credential_repo = credential_repository
        self._password_service = password_service
        self._jwt_service = jwt_service
        self._lockout = lockout_service
        self._audit = audit_logger
        self._rate_limiter = rate_limiter
        self._revocations = revocation_store
        self._verification = verification_policy or EmailVerificationPolicy()
        self._email_service = email_service
        self._guard = store_guard or StoreGuard(timeout_seconds=None)
        self._frontend_base_url = frontend_base_url.rstrip("/")
        self._admin_emails = frozenset(e.strip().lower() for e in admin_emails)
        self._clock = clock

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    async def register(
        self,
        email: str,
        password: str,
        client_ip: str | None = None,
    ) -> RegistrationResult:
        """Create an unverified, active account.

        Accounts are plain users, except addresses listed in ``admin_emails``
        (the operator bootstrap), which are created as administrators.

        Raises
        ------
        InvalidEmailError
            If the address is malformed
        WeakPasswordError
            If the password violates the policy (all violations attached)
        EmailAlreadyExistsError
            If the address is already registered
        """
        await self._consume_rate_limit(client_ip, RouteClass.AUTH)

        address = Email(email)
        self._password_service.validate_strength(password)

        try:
            if await self._guard("email lookup", self._user_repo.exists_by_email(address)):
                await self._audit.record(
                    actor=SYSTEM_ACTOR,
                    action=AuditAction.USER_REGISTER,
                    level=AuditLevel.INFO,
                    detail={"email": address.value, "outcome": ErrorCode.EMAIL_TAKEN.value},
                    ip_address=client_ip,
                )
                raise EmailAlreadyExistsError(address.value)

            role = UserRole.ADMIN if address.value in self._admin_emails else UserRole.USER

            password_hash = await asyncio.to_thread(
                self._password_service.hash,
                password,
            )
            user = User.create(address, role=role)
            await self._guard("user save", self._user_repo.save(user))
            await self._guard(
                "credential save",
                self._credential_repo.save(user_id=user.id, password_hash=password_hash),
            )
            await self._issue_verification(user)
        except ServiceUnavailableError:
            await self._audit_unavailable("register", client_ip)
            raise

        self._refund_rate_limit(client_ip, RouteClass.AUTH)
        await self._audit.record(
            actor=user.id,
            action=AuditAction.USER_REGISTER,
            detail={"email": user.email, "role": role.value},
            ip_address=client_ip,
        )
        logger.info("User registered: %s (role: %s)", user.email, role.value)

        requires_verification = self._verification.required and not user.email_verified
        token = None if requires_verification else self._issue_token(user)
        return RegistrationResult(
            user=user,
            requires_verification=requires_verification,
            token=token,
        )

    async def verify_email(self, token: str) -> User:
        """Consume an email verification token.

        Raises
        ------
        InvalidVerificationTokenError
            If the token is unknown or expired
        """
        token_hash = hash_token(token)
        credential = await self._guard(
            "verification lookup",
            self._credential_repo.find_by_verification_hash(token_hash),
        )
        if credential is None or credential.verification_expired(self._clock()):
            await self._audit.record(
                actor=credential.user_id if credential else SYSTEM_ACTOR,
                action=AuditAction.EMAIL_VERIFICATION_FAILED,
                detail={"reason": "unknown" if credential is None else "expired"},
            )
            raise InvalidVerificationTokenError

        user = await self._guard(
            "user lookup",
            self._user_repo.find_by_id(credential.user_id),
        )
        if user is None:
            raise InvalidVerificationTokenError

        user.mark_email_verified()
        await self._guard("user save", self._user_repo.save(user))
        await self._guard(
            "verification clear",
            self._credential_repo.clear_verification_token(user.id),
        )
        await self._audit.record(actor=user.id, action=AuditAction.EMAIL_VERIFIED)
        logger.info("Email verified for user: %s", user.id)
        return user

    async def resend_verification(self, user_id: UUID) -> None:
        user = await self._require_user(user_id)
        if user.email_verified:
            return
        await self._issue_verification(user)

    # -------------------------------------------------------------------------
    # Login
    # -------------------------------------------------------------------------

    async def login(
        self,
        email: str,
        password: str,
        client_ip: str | None = None,
    ) -> LoginResult:
        """Authenticate with email and password.

        Rate limit and lockout are checked before any password hashing.
        Unknown accounts are verified against a dummy hash and fail exactly
        like a wrong password.

        Raises
        ------
        RateLimitedError
            If the client address exhausted its auth budget
        AccountLockedError
            If the account or the client address is locked
        InvalidCredentialsError
            If the email is unknown or the password is wrong
        AccountInactiveError
            If the account was deactivated (only after a correct password)
        EmailNotVerifiedError
            If verification is required and still pending
        ServiceUnavailableError
            If a store could not be reached in time
        """
        await self._consume_rate_limit(client_ip, RouteClass.AUTH)
        normalized = email.strip().lower()

        try:
            return await self._login(normalized, password, client_ip)
        except ServiceUnavailableError:
            await self._audit_unavailable("login", client_ip)
            raise

    async def _login(
        self,
        email: str,
        password: str,
        client_ip: str | None,
    ) -> LoginResult:
        try:
            await self._guard(
                "lockout check",
                self._lockout.ensure_not_locked(email, client_ip),
            )
        except AccountLockedError as e:
            await self._audit.record(
                actor=SYSTEM_ACTOR,
                action=AuditAction.USER_LOGIN_BLOCKED,
                detail={"email": email, "reason": "locked", "locked_until": _iso(e.locked_until)},
                ip_address=client_ip,
            )
            raise

        user = await self._find_user(email)
        credential = None
        if user is not None:
            credential = await self._guard(
                "credential lookup",
                self._credential_repo.find_by_user_id(user.id),
            )

        password_hash = (
            credential.password_hash
            if credential is not None
            else self._password_service.dummy_hash()
        )
        password_ok = await asyncio.to_thread(
            self._password_service.verify,
            password,
            password_hash,
        )

        if user is None or credential is None or not password_ok:
            await self._handle_failed_login(email, user, client_ip)
            raise InvalidCredentialsError

        if not user.is_active:
            await self._audit.record(
                actor=user.id,
                action=AuditAction.USER_LOGIN_BLOCKED,
                detail={"reason": "inactive"},
                ip_address=client_ip,
            )
            raise AccountInactiveError

        if self._verification.required and not user.email_verified:
            await self._audit.record(
                actor=user.id,
                action=AuditAction.USER_LOGIN_BLOCKED,
                detail={"reason": "email_not_verified"},
                ip_address=client_ip,
            )
            raise EmailNotVerifiedError

        now = self._clock()
        await self._guard("lockout reset", self._lockout.record_success(email))
        await self._guard(
            "last login update",
            self._credential_repo.update_last_login(user.id, now),
        )
        user.record_login(now)

        if self._password_service.needs_rehash(credential.password_hash):
            new_hash = await asyncio.to_thread(self._password_service.rehash, password)
            await self._guard(
                "credential rehash",
                self._credential_repo.save(user_id=user.id, password_hash=new_hash),
            )
            logger.info("Password hash upgraded for user: %s", user.id)

        self._refund_rate_limit(client_ip, RouteClass.AUTH)
        token = self._issue_token(user)
        await self._audit.record(
            actor=user.id,
            action=AuditAction.ADMIN_LOGIN if user.is_admin else AuditAction.USER_LOGIN,
            detail={"jti": token.jti},
            ip_address=client_ip,
        )
        logger.info("User logged in: %s", user.email)
        return LoginResult(user=user, token=token)

    async def _find_user(self, email: str) -> User | None:
        try:
            return await self._guard("user lookup", self._user_repo.find_by_email(email))
        except InvalidEmailError:
            # Malformed input fails like an unknown account
            return None

    async def _handle_failed_login(
        self,
        email: str,
        user: User | None,
        client_ip: str | None,
    ) -> None:
        decision = await self._guard(
            "lockout update",
            self._lockout.record_failure(email, client_ip),
        )
        actor = user.id if user is not None else SYSTEM_ACTOR
        await self._audit.record(
            actor=actor,
            action=AuditAction.LOGIN_FAILED,
            detail={"email": email, "remaining_attempts": decision.remaining_attempts},
            ip_address=client_ip,
        )
        if decision.just_locked:
            await self._audit.record(
                actor=actor,
                action=AuditAction.ACCOUNT_LOCKED,
                detail={"email": email, "locked_until": _iso(decision.locked_until)},
                ip_address=client_ip,
            )

    # -------------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------------

    async def validate_token(
        self,
        token: str,
        client_ip: str | None = None,
    ) -> TokenValidation:
        """Validate a bearer token. Never raises for a bad token."""
        validation = self._jwt_service.validate(token)
        if (
            validation.valid
            and self._revocations is not None
            and self._revocations.is_revoked(validation.claims.jti)  # type: ignore[union-attr]
        ):
            validation = TokenValidation.invalid(ErrorCode.TOKEN_REVOKED)

        if not validation.valid:
            await self._audit.record(
                actor=SYSTEM_ACTOR,
                action=AuditAction.INVALID_TOKEN,
                detail={"error_code": validation.error_code.value if validation.error_code else None},
                ip_address=client_ip,
            )
        return validation

    async def authenticate(
        self,
        token: str,
        client_ip: str | None = None,
    ) -> tuple[User, TokenClaims]:
        """Resolve a bearer token to the current, active user.

        Raises
        ------
        InvalidTokenError
            If the token is invalid, revoked, or its user is gone or inactive
        """
        validation = await self.validate_token(token, client_ip)
        if not validation.valid or validation.claims is None:
            raise InvalidTokenError

        user = await self._guard(
            "user lookup",
            self._user_repo.find_by_id(validation.claims.user_id),
        )
        if user is None or not user.is_active:
            raise InvalidTokenError
        return user, validation.claims

    async def logout(self, token: str, client_ip: str | None = None) -> bool:
        """Revoke the token until it would have expired anyway.

        Returns
        -------
        True if the token was revoked; False if it was already invalid or no
        revocation store is configured (the token then rides out its TTL)
        """
        validation = self._jwt_service.validate(token)
        if not validation.valid or validation.claims is None:
            return False

        claims = validation.claims
        revoked = False
        if self._revocations is not None:
            self._revocations.revoke(claims.jti, claims.expires_at)
            revoked = True

        await self._audit.record(
            actor=claims.user_id,
            action=AuditAction.USER_LOGOUT,
            detail={"jti": claims.jti, "revoked": revoked},
            ip_address=client_ip,
        )
        return revoked

    # -------------------------------------------------------------------------
    # Account management
    # -------------------------------------------------------------------------

    async def change_password(
        self,
        user_id: UUID,
        current_password: str,
        new_password: str,
    ) -> None:
        credential = await self._guard(
            "credential lookup",
            self._credential_repo.find_by_user_id(user_id),
        )
        if credential is None:
            msg = "User credentials not found"
            raise InvalidCredentialsError(msg)

        current_ok = await asyncio.to_thread(
            self._password_service.verify,
            current_password,
            credential.password_hash,
        )
        if not current_ok:
            msg = "Current password is incorrect"
            raise InvalidCredentialsError(msg)

        new_hash = await asyncio.to_thread(self._password_service.hash, new_password)
        await self._guard(
            "credential save",
            self._credential_repo.save(user_id=user_id, password_hash=new_hash),
        )
        await self._audit.record(actor=user_id, action=AuditAction.PASSWORD_CHANGED)
        logger.info("Password changed for user: %s", user_id)

    async def deactivate_user(self, user_id: UUID, actor: UUID | str) -> User:
        user = await self._require_user(user_id)
        user.deactivate()
        await self._guard("user save", self._user_repo.save(user))
        await self._audit.record(
            actor=actor,
            action=AuditAction.USER_DEACTIVATED,
            detail={"user_id": str(user_id)},
        )
        logger.info("User %s deactivated by %s", user_id, actor)
        return user

    async def reactivate_user(self, user_id: UUID, actor: UUID | str) -> User:
        user = await self._require_user(user_id)
        user.reactivate()
        await self._guard("user save", self._user_repo.save(user))
        await self._audit.record(
            actor=actor,
            action=AuditAction.USER_REACTIVATED,
            detail={"user_id": str(user_id)},
        )
        return user

    async def change_role(
        self,
        user_id: UUID,
        role: str | UserRole,
        actor: UUID | str,
    ) -> RoleChange:
        """Change a user's role.

        Tokens issued before the change keep their old role snapshot until
        they expire; permission checks re-read the role, so a demotion takes
        effect on the next permission-gated request.
        """
        new_role = UserRole.parse(role)
        if new_role is None:
            raise InvalidRoleError(str(role))

        user = await self._require_user(user_id)
        previous = user.role
        user.change_role(new_role)
        await self._guard("user save", self._user_repo.save(user))
        await self._audit.record(
            actor=actor,
            action=AuditAction.USER_ROLE_CHANGED,
            detail={
                "user_id": str(user_id),
                "previous_role": previous.value,
                "new_role": new_role.value,
            },
        )
        logger.info(
            "Role of %s changed from %s to %s by %s",
            user_id,
            previous.value,
            new_role.value,
            actor,
        )
        return RoleChange(user_id=user_id, previous_role=previous, new_role=new_role)

    async def unlock_account(self, email: str, actor: UUID | str) -> None:
        normalized = email.strip().lower()
        await self._guard("lockout reset", self._lockout.unlock(normalized))
        await self._audit.record(
            actor=actor,
            action=AuditAction.ACCOUNT_UNLOCKED,
            detail={"email": normalized},
        )

    async def get_user(self, user_id: UUID) -> User:
        return await self._require_user(user_id)

    async def list_users(self) -> list[User]:
        return await self._guard("user list", self._user_repo.list_all())

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _issue_token(self, user: User) -> IssuedToken:
        return self._jwt_service.issue(subject=user.id, role=user.role.value)

    async def _require_user(self, user_id: UUID) -> User:
        user = await self._guard("user lookup", self._user_repo.find_by_id(user_id))
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def _issue_verification(self, user: User) -> None:
        raw_token = generate_token()
        expires_at = self._clock() + self._verification.token_ttl
        await self._guard(
            "verification token save",
            self._credential_repo.set_verification_token(
                user.id,
                hash_token(raw_token),
                expires_at,
            ),
        )
        if self._email_service is None:
            return

        link = f"{self._frontend_base_url}/verify-email?token={raw_token}"
        try:
            self._email_service.send_verification_email(
                to_email=user.email,
                verification_link=link,
            )
        except Exception as e:
            # The token exists; the user can ask for another email
            logger.error("Failed to send verification email to %s: %s", user.email, e)

    async def _consume_rate_limit(
        self,
        client_ip: str | None,
        route_class: RouteClass,
    ) -> None:
        if self._rate_limiter is None or not client_ip:
            return
        decision = self._rate_limiter.check(client_ip, route_class)
        if not decision.allowed:
            logger.warning(
                "Rate limit %s exceeded by %s (retry in %ss)",
                route_class.value,
                client_ip,
                decision.retry_after_seconds,
            )
            await self._audit.record(
                actor=SYSTEM_ACTOR,
                action=AuditAction.RATE_LIMIT_EXCEEDED,
                detail={"route_class": route_class.value},
                ip_address=client_ip,
            )
            raise RateLimitedError(decision.retry_after_seconds)

    def _refund_rate_limit(self, client_ip: str | None, route_class: RouteClass) -> None:
        if self._rate_limiter is not None and client_ip:
            self._rate_limiter.refund(client_ip, route_class)

    async def _audit_unavailable(self, operation: str, client_ip: str | None) -> None:
        await self._audit.record(
            actor=SYSTEM_ACTOR,
            action=AuditAction.AUTH_UNAVAILABLE,
            detail={"operation": operation},
            ip_address=client_ip,
        )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
