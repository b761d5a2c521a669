import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from keygate.domain.shared.time import ensure_tz_aware
from keygate.presentation.api.dependencies import (
    AuditQueryDep,
    AuditReader,
    AuthService,
    DBSession,
    UserManager,
    UserViewer,
    unit_of_work,
)
from keygate.presentation.api.schemas import (
    AuditPageResponse,
    RoleChangeResponse,
    UpdateRoleRequest,
    UserResponse,
)
from keygate_audit import AuditAction, AuditQuery
from keygate_audit.repositories.audit_entry_repository import MAX_PAGE_SIZE

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/audit",
    summary="Query the audit trail",
    responses={
        200: {"description": "One page of entries, newest first"},
        400: {"description": "Invalid date range"},
        403: {"description": "Permission denied"},
    },
)
async def list_audit_entries(
    _reader: AuditReader,
    audit_query: AuditQueryDep,
    action: AuditAction | None = None,
    actor: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> AuditPageResponse:
    """List audit entries filtered by action, actor and date range."""
    try:
        query = AuditQuery(
            action=action,
            actor=actor,
            date_from=ensure_tz_aware(date_from) if date_from else None,
            date_to=ensure_tz_aware(date_to) if date_to else None,
            limit=limit,
            offset=offset,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    page = await audit_query.list_entries(query)
    return AuditPageResponse.from_page(page)


@router.get(
    "/users",
    summary="List all users",
    responses={
        200: {"description": "List of all users"},
        403: {"description": "Permission denied"},
    },
)
async def list_users(
    _viewer: UserViewer,
    auth_service: AuthService,
) -> list[UserResponse]:
    users = await auth_service.list_users()
    return [UserResponse.from_user(u) for u in users]


@router.put(
    "/users/{user_id}/role",
    summary="Change a user's role",
    responses={
        200: {"description": "Role changed"},
        400: {"description": "Unknown role, or own role"},
        404: {"description": "User not found"},
    },
)
async def change_role(
    user_id: UUID,
    request: UpdateRoleRequest,
    admin: UserManager,
    auth_service: AuthService,
    session: DBSession,
) -> RoleChangeResponse:
    """
    Change a user's role.

    Admins cannot change their own role.
    """
    if user_id == admin.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot change your own role",
        )

    async with unit_of_work(session):
        change = await auth_service.change_role(user_id, request.role, actor=admin.user_id)

    return RoleChangeResponse(
        user_id=change.user_id,
        previous_role=change.previous_role.value,
        new_role=change.new_role.value,
    )


@router.post(
    "/users/{user_id}/deactivate",
    summary="Deactivate a user",
    responses={
        200: {"description": "User deactivated"},
        400: {"description": "Cannot deactivate yourself"},
        404: {"description": "User not found"},
    },
)
async def deactivate_user(
    user_id: UUID,
    admin: UserManager,
    auth_service: AuthService,
    session: DBSession,
) -> UserResponse:
    """Soft-deactivate a user. Their tokens stop working on the next request."""
    if user_id == admin.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate yourself",
        )

    async with unit_of_work(session):
        user = await auth_service.deactivate_user(user_id, actor=admin.user_id)
    return UserResponse.from_user(user)


@router.post(
    "/users/{user_id}/reactivate",
    summary="Reactivate a user",
    responses={404: {"description": "User not found"}},
)
async def reactivate_user(
    user_id: UUID,
    admin: UserManager,
    auth_service: AuthService,
    session: DBSession,
) -> UserResponse:
    async with unit_of_work(session):
        user = await auth_service.reactivate_user(user_id, actor=admin.user_id)
    return UserResponse.from_user(user)


@router.post(
    "/lockouts/{email}/unlock",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Lift an account lockout",
)
async def unlock_account(
    email: str,
    admin: UserManager,
    auth_service: AuthService,
    session: DBSession,
) -> None:
    async with unit_of_work(session):
        await auth_service.unlock_account(email, actor=admin.user_id)
    logger.info("Lockout of %s lifted by %s", email, admin.user_id)
