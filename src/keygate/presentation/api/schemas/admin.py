from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from pydantic import BaseModel

if TYPE_CHECKING:
    from keygate_audit import AuditEntry, AuditPage


class UpdateRoleRequest(BaseModel):
    """Request schema for updating a user's role."""

    role: str


class RoleChangeResponse(BaseModel):
    user_id: UUID
    previous_role: str
    new_role: str


class AuditEntryResponse(BaseModel):
    id: UUID
    actor: str
    action: str
    level: str
    detail: dict[str, Any]
    ip_address: str | None = None
    created_at: datetime
    retention_days: int

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> AuditEntryResponse:
        return cls(
            id=entry.id,
            actor=entry.actor,
            action=entry.action.value,
            level=entry.level.value,
            detail=entry.detail,
            ip_address=entry.ip_address,
            created_at=entry.created_at,
            retention_days=entry.retention_days,
        )


class AuditPageResponse(BaseModel):
    """One page of audit entries, newest first."""

    items: list[AuditEntryResponse]
    total: int
    limit: int
    offset: int
    has_more: bool

    @classmethod
    def from_page(cls, page: AuditPage) -> AuditPageResponse:
        return cls(
            items=[AuditEntryResponse.from_entry(e) for e in page.entries],
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            has_more=page.has_more,
        )
