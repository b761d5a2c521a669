"""FastAPI dependency injection for the Keygate API.

Provides dependencies for:
- Database sessions and the commit policy of a request
- Process-wide components (rate limiter, revocation store, token service)
- Authentication (current user from the bearer token)
- Permission and minimum-role gates
- Service instances
"""

import logging
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from keygate.domain.shared.exceptions import KeygateError, ServiceUnavailableError
from keygate.infrastructure.persistence import StoreGuard
from keygate_audit import SYSTEM_ACTOR, AuditAction, AuditLogger, AuditQueryService
from keygate_audit.infrastructure.persistence.sqlalchemy import (
    AuditEntryRepositorySQLAlchemy,
    restore_after_rollback,
)
from keygate_config import RouteClass, Settings
from keygate_identity import (
    AuthenticationService,
    AuthorizationService,
    FixedWindowRateLimiter,
    InvalidTokenError,
    JWTService,
    LockoutService,
    PasswordHashingService,
    PasswordPolicyEngine,
    PasswordResetService,
    Permission,
    RateLimitedError,
    TokenClaims,
    User,
    UserContext,
    UserRole,
)
from keygate_identity.infrastructure.email import EmailService, LoggingEmailService
from keygate_identity.infrastructure.persistence.sqlalchemy import (
    LockoutCounterRepositorySQLAlchemy,
    PasswordResetTokenRepositorySQLAlchemy,
    UserCredentialRepositorySQLAlchemy,
    UserRepositorySQLAlchemy,
)
from keygate_identity.services import InMemoryTokenRevocationStore, TokenRevocationStore
from keygate_licensing import HwidBinder, SubscriptionLocks
from keygate_licensing.infrastructure.persistence.sqlalchemy import (
    HwidBindingRepositorySQLAlchemy,
)

logger = logging.getLogger(__name__)

# Security scheme for JWT Bearer tokens
security = HTTPBearer(auto_error=False)


# -----------------------------------------------------------------------------
# Process-wide components
# -----------------------------------------------------------------------------


@dataclass
class ApiComponents:
    """Stateful components shared by every request of one application.

    Counters, revocations and the cached dummy hash live here, so each
    application instance (and each test client) starts from a clean slate.
    """

    settings: Settings
    password_service: PasswordHashingService
    jwt_service: JWTService
    rate_limiter: FixedWindowRateLimiter
    revocation_store: TokenRevocationStore
    email_service: EmailService
    subscription_locks: SubscriptionLocks

    @classmethod
    def from_settings(cls, settings: Settings) -> "ApiComponents":
        return cls(
            settings=settings,
            password_service=PasswordHashingService(
                rounds=settings.bcrypt_rounds,
                policy_engine=PasswordPolicyEngine(settings.password_policy()),
            ),
            jwt_service=JWTService(settings.token_settings()),
            rate_limiter=FixedWindowRateLimiter(settings.rate_limit_rules()),
            revocation_store=InMemoryTokenRevocationStore(),
            email_service=LoggingEmailService(),
            subscription_locks=SubscriptionLocks(),
        )


def get_components(request: Request) -> ApiComponents:
    return request.app.state.components


Components = Annotated[ApiComponents, Depends(get_components)]


def get_api_settings(components: Components) -> Settings:
    return components.settings


SettingsDep = Annotated[Settings, Depends(get_api_settings)]


# -----------------------------------------------------------------------------
# Database Engine & Session (one per application)
# -----------------------------------------------------------------------------


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async database engine for ``settings.database_url``.

    Nothing connects until the engine is first used.

    Returns
    -------
    AsyncEngine instance
    """
    return create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def get_session_maker(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.session_maker


async def get_db_session(
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency.

    Yields
    ------
    AsyncSession for database operations
    """
    async with session_maker() as session:
        yield session


# Type alias for injected session
DBSession = Annotated[AsyncSession, Depends(get_db_session)]


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[None]:
    """Commit the request's writes, including those of a rejected attempt.

    A typed rejection (wrong password, locked account, denied permission)
    still commits: its failure counters and audit entries must outlive the
    request. Store outages and unexpected errors roll back; the outage
    entries they recorded are written again afterwards.
    """
    try:
        yield
    except ServiceUnavailableError:
        await session.rollback()
        await restore_after_rollback(session)
        raise
    except KeygateError:
        await session.commit()
        raise
    except Exception:
        await session.rollback()
        await restore_after_rollback(session)
        raise
    await session.commit()


# -----------------------------------------------------------------------------
# Client address & rate limits
# -----------------------------------------------------------------------------


def get_client_ip(request: Request, settings: SettingsDep) -> str | None:
    """Client address used for rate limits, lockout and audit.

    ``X-Forwarded-For`` is only honoured behind a trusted proxy; otherwise
    any client could pick its own address.
    """
    if settings.api_trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


ClientIP = Annotated[str | None, Depends(get_client_ip)]


def get_audit_logger(session: DBSession) -> AuditLogger:
    return AuditLogger(AuditEntryRepositorySQLAlchemy(session))


AuditLoggerDep = Annotated[AuditLogger, Depends(get_audit_logger)]


def rate_limit(route_class: RouteClass) -> Callable:
    """Build a dependency that charges one request of ``route_class``.

    A rejection is audited and committed before the 429 goes out.

    Examples
    --------
    >>> @router.post("/bind", dependencies=[Depends(rate_limit(RouteClass.KEY_REDEMPTION))])
    ... async def bind(): ...
    """

    async def dependency(
        components: Components,
        client_ip: ClientIP,
        audit_logger: AuditLoggerDep,
        session: DBSession,
    ) -> None:
        if not client_ip:
            return
        decision = components.rate_limiter.check(client_ip, route_class)
        if decision.allowed:
            return

        await audit_logger.record(
            actor=SYSTEM_ACTOR,
            action=AuditAction.RATE_LIMIT_EXCEEDED,
            detail={"route_class": route_class.value},
            ip_address=client_ip,
        )
        await session.commit()
        raise RateLimitedError(decision.retry_after_seconds)

    return dependency


# Router-level limit applied to every request
enforce_general_rate_limit = rate_limit(RouteClass.GENERAL)


# -----------------------------------------------------------------------------
# Services
# -----------------------------------------------------------------------------


def get_store_guard(settings: SettingsDep) -> StoreGuard:
    return StoreGuard(timeout_seconds=settings.store_timeout_seconds)


StoreGuardDep = Annotated[StoreGuard, Depends(get_store_guard)]


def get_lockout_service(session: DBSession, settings: SettingsDep) -> LockoutService:
    return LockoutService(
        repository=LockoutCounterRepositorySQLAlchemy(session),
        account_policy=settings.lockout_policy(),
        ip_policy=settings.ip_lockout_policy(),
    )


LockoutServiceDep = Annotated[LockoutService, Depends(get_lockout_service)]


def get_authentication_service(
    session: DBSession,
    components: Components,
    audit_logger: AuditLoggerDep,
    lockout_service: LockoutServiceDep,
    store_guard: StoreGuardDep,
) -> AuthenticationService:
    """
    Get authentication service with all dependencies.

    This service orchestrates registration, login, and token management.
    """
    settings = components.settings
    return AuthenticationService(
        user_repository=UserRepositorySQLAlchemy(session),
        credential_repository=UserCredentialRepositorySQLAlchemy(session),
        password_service=components.password_service,
        jwt_service=components.jwt_service,
        lockout_service=lockout_service,
        audit_logger=audit_logger,
        rate_limiter=components.rate_limiter,
        revocation_store=components.revocation_store,
        verification_policy=settings.email_verification_policy(),
        email_service=components.email_service,
        store_guard=store_guard,
        frontend_base_url=settings.frontend_base_url,
        admin_emails=settings.bootstrap_admin_emails,
    )


# Type alias for injected auth service
AuthService = Annotated[AuthenticationService, Depends(get_authentication_service)]


def get_password_reset_service(
    session: DBSession,
    components: Components,
    audit_logger: AuditLoggerDep,
    lockout_service: LockoutServiceDep,
    store_guard: StoreGuardDep,
) -> PasswordResetService:
    settings = components.settings
    return PasswordResetService(
        user_repository=UserRepositorySQLAlchemy(session),
        token_repository=PasswordResetTokenRepositorySQLAlchemy(session),
        credential_repository=UserCredentialRepositorySQLAlchemy(session),
        password_service=components.password_service,
        email_service=components.email_service,
        audit_logger=audit_logger,
        frontend_base_url=settings.frontend_base_url,
        policy=settings.password_reset_policy(),
        lockout_service=lockout_service,
        rate_limiter=components.rate_limiter,
        store_guard=store_guard,
    )


ResetService = Annotated[PasswordResetService, Depends(get_password_reset_service)]


def get_authorization_service(
    session: DBSession,
    audit_logger: AuditLoggerDep,
    store_guard: StoreGuardDep,
) -> AuthorizationService:
    return AuthorizationService(
        user_repository=UserRepositorySQLAlchemy(session),
        audit_logger=audit_logger,
        store_guard=store_guard,
    )


AuthzService = Annotated[AuthorizationService, Depends(get_authorization_service)]


def get_hwid_binder(
    session: DBSession,
    components: Components,
    audit_logger: AuditLoggerDep,
    store_guard: StoreGuardDep,
) -> HwidBinder:
    return HwidBinder(
        repository=HwidBindingRepositorySQLAlchemy(session),
        policy=components.settings.hwid_policy(),
        audit_logger=audit_logger,
        store_guard=store_guard,
        locks=components.subscription_locks,
    )


HwidBinderDep = Annotated[HwidBinder, Depends(get_hwid_binder)]


def get_audit_query_service(session: DBSession) -> AuditQueryService:
    return AuditQueryService(AuditEntryRepositorySQLAlchemy(session))


AuditQueryDep = Annotated[AuditQueryService, Depends(get_audit_query_service)]


# -----------------------------------------------------------------------------
# Current User (JWT Authentication)
# -----------------------------------------------------------------------------


async def _authenticate(
    auth_service: AuthService,
    session: DBSession,
    client_ip: ClientIP,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> tuple[User, TokenClaims]:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return await auth_service.authenticate(credentials.credentials, client_ip)
    except InvalidTokenError as e:
        # Keep the INVALID_TOKEN audit entry
        await session.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


Authenticated = Annotated[tuple[User, TokenClaims], Depends(_authenticate)]


async def get_current_user(authenticated: Authenticated) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    The token is validated (signature, expiry, revocation) and the user is
    loaded from the database; deactivated users are rejected.

    Raises
    ------
    HTTPException
        401 if the token is missing or invalid, or the user is gone
    """
    user, _claims = authenticated
    return user


# Type alias for injected current user
CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_user_context(
    authenticated: Authenticated,
    client_ip: ClientIP,
) -> UserContext:
    user, claims = authenticated
    return UserContext.create(user, token_jti=claims.jti, client_ip=client_ip)


CurrentUserContext = Annotated[UserContext, Depends(get_user_context)]


def require_permission(permission: Permission) -> Callable:
    """Build a dependency that requires ``permission`` for the current role.

    The role is re-read from the store; the token's role snapshot is ignored.

    Examples
    --------
    >>> @router.get("/audit")
    ... async def audit(ctx: Annotated[UserContext, Depends(
    ...     require_permission(Permission.AUDIT_LOGS))]): ...
    """

    async def dependency(
        context: CurrentUserContext,
        authz: AuthzService,
        session: DBSession,
    ) -> UserContext:
        async with unit_of_work(session):
            await authz.authorize(context.user_id, permission, context.client_ip)
        return context

    return dependency


def require_role(required_role: UserRole) -> Callable:
    """Build a dependency that requires at least ``required_role``."""

    async def dependency(
        context: CurrentUserContext,
        authz: AuthzService,
        session: DBSession,
    ) -> UserContext:
        async with unit_of_work(session):
            await authz.authorize_minimum_role(
                context.user_id,
                required_role,
                context.client_ip,
            )
        return context

    return dependency


AuditReader = Annotated[UserContext, Depends(require_permission(Permission.AUDIT_LOGS))]
UserManager = Annotated[UserContext, Depends(require_permission(Permission.UPDATE_USERS))]
UserViewer = Annotated[UserContext, Depends(require_permission(Permission.VIEW_USERS))]
KeyRedeemer = Annotated[UserContext, Depends(require_permission(Permission.REDEEM_KEYS))]
SubscriptionManager = Annotated[
    UserContext,
    Depends(require_permission(Permission.MANAGE_SUBSCRIPTIONS)),
]
StaffUser = Annotated[UserContext, Depends(require_role(UserRole.STAFF))]
