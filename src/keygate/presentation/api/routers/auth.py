"""Authentication router for registration, login, and token management."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials

from keygate.presentation.api.dependencies import (
    AuthService,
    AuthzService,
    ClientIP,
    CurrentUser,
    CurrentUserContext,
    DBSession,
    ResetService,
    security,
    unit_of_work,
)
from keygate.presentation.api.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    PasswordResetCompleteRequest,
    PasswordResetRequest,
    PermissionsResponse,
    RegisterRequest,
    RegisterResponse,
    TokenRequest,
    TokenValidationResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    responses={
        201: {"description": "User registered successfully"},
        400: {"description": "Invalid input (weak password, invalid email)"},
        409: {"description": "Email already registered"},
        429: {"description": "Too many attempts from this address"},
    },
)
async def register(
    request: RegisterRequest,
    auth_service: AuthService,
    session: DBSession,
    client_ip: ClientIP,
) -> RegisterResponse:
    """
    Register with email and password.

    Accounts are plain users unless the address is one of the configured
    bootstrap admins. When email verification is required, no token is
    issued until the address is confirmed.
    """
    async with unit_of_work(session):
        result = await auth_service.register(
            email=request.email,
            password=request.password,
            client_ip=client_ip,
        )

    token = result.token
    return RegisterResponse(
        user=UserResponse.from_user(result.user),
        requires_verification=result.requires_verification,
        access_token=token.token if token else None,
        expires_in=token.expires_in_seconds if token else None,
        expires_at=token.expires_at if token else None,
    )


@router.post(
    "/login",
    summary="Authenticate user",
    responses={
        200: {"description": "Login successful"},
        401: {"description": "Invalid credentials, locked or inactive account"},
        429: {"description": "Too many attempts from this address"},
        503: {"description": "Authentication temporarily unavailable"},
    },
)
async def login(
    request: LoginRequest,
    auth_service: AuthService,
    session: DBSession,
    client_ip: ClientIP,
) -> AuthResponse:
    """
    Authenticate with email and password.

    Unknown accounts and wrong passwords get the same answer. The account
    and the client address are locked after repeated failures.
    """
    async with unit_of_work(session):
        result = await auth_service.login(
            email=request.email,
            password=request.password,
            client_ip=client_ip,
        )
    return AuthResponse.create(result.user, result.token)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout user",
    responses={
        204: {"description": "Token revoked"},
        401: {"description": "Not authenticated"},
    },
)
async def logout(
    auth_service: AuthService,
    session: DBSession,
    client_ip: ClientIP,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> None:
    """Revoke the presented token for the rest of its lifetime."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    async with unit_of_work(session):
        await auth_service.logout(credentials.credentials, client_ip)
    logger.debug("Logout processed")


@router.post(
    "/validate",
    summary="Validate a token",
    responses={200: {"description": "Validation outcome (never an error)"}},
)
async def validate_token(
    request: TokenRequest,
    auth_service: AuthService,
    session: DBSession,
    client_ip: ClientIP,
) -> TokenValidationResponse:
    """Check a token's signature, expiry and revocation status."""
    async with unit_of_work(session):
        validation = await auth_service.validate_token(request.token, client_ip)

    if not validation.valid or validation.claims is None:
        return TokenValidationResponse(
            valid=False,
            error_code=validation.error_code.value if validation.error_code else None,
        )
    claims = validation.claims
    return TokenValidationResponse(
        valid=True,
        user_id=claims.user_id,
        role=claims.role,
        expires_at=claims.expires_at,
    )


@router.post(
    "/verify-email",
    summary="Confirm an email address",
    responses={
        200: {"description": "Email verified"},
        400: {"description": "Invalid or expired verification token"},
    },
)
async def verify_email(
    request: TokenRequest,
    auth_service: AuthService,
    session: DBSession,
) -> UserResponse:
    async with unit_of_work(session):
        user = await auth_service.verify_email(request.token)
    return UserResponse.from_user(user)


@router.post(
    "/verify-email/resend",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Send a new verification email",
)
async def resend_verification(
    user: CurrentUser,
    auth_service: AuthService,
    session: DBSession,
) -> MessageResponse:
    async with unit_of_work(session):
        await auth_service.resend_verification(user.id)
    return MessageResponse(message="If the address is unverified, a new link was sent.")


@router.post(
    "/password-reset/request",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Request password reset",
    responses={
        202: {"description": "If the email exists, a reset link has been sent"},
        429: {"description": "Too many reset requests from this address"},
    },
)
async def request_password_reset(
    request: PasswordResetRequest,
    reset_service: ResetService,
    session: DBSession,
    client_ip: ClientIP,
) -> MessageResponse:
    """Request a password reset email."""
    async with unit_of_work(session):
        await reset_service.request_reset(request.email, client_ip)
    return MessageResponse(message="If the email exists, a reset link has been sent.")


@router.post(
    "/password-reset/complete",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Reset password with token",
    responses={
        204: {"description": "Password reset successfully"},
        400: {"description": "Invalid or expired token, or weak password"},
    },
)
async def complete_password_reset(
    request: PasswordResetCompleteRequest,
    reset_service: ResetService,
    session: DBSession,
    client_ip: ClientIP,
) -> None:
    """Reset password with a token."""
    async with unit_of_work(session):
        await reset_service.reset_password(
            token=request.token,
            new_password=request.new_password,
            client_ip=client_ip,
        )
    logger.info("Password reset completed")


@router.get(
    "/me",
    summary="Get current user",
    responses={
        200: {"description": "Current user data"},
        401: {"description": "Not authenticated"},
    },
)
async def get_me(user: CurrentUser) -> UserResponse:
    """
    Get the current authenticated user's information.

    Requires a valid access token in the Authorization header.
    """
    return UserResponse.from_user(user)


@router.get("/me/permissions", summary="Permissions of the current role")
async def get_my_permissions(
    context: CurrentUserContext,
    authz: AuthzService,
) -> PermissionsResponse:
    return PermissionsResponse(
        role=context.role.value,
        level=authz.role_level(context.role),
        permissions=sorted(p.value for p in authz.permissions_for(context.role)),
    )


@router.post(
    "/change-password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change password",
    responses={
        204: {"description": "Password changed successfully"},
        400: {"description": "New password too weak"},
        401: {"description": "Current password incorrect or not authenticated"},
    },
)
async def change_password(
    request: ChangePasswordRequest,
    user: CurrentUser,
    auth_service: AuthService,
    session: DBSession,
) -> None:
    """
    Change the current user's password.

    Requires the current password for verification and a new password
    that meets the strength requirements.
    """
    async with unit_of_work(session):
        await auth_service.change_password(
            user_id=user.id,
            current_password=request.current_password,
            new_password=request.new_password,
        )
    logger.info("Password changed for user: %s", user.id)
