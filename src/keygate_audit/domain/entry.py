"""Audit entry value object."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from keygate.domain.shared.time import utc_now
from keygate_audit.domain.actions import AuditAction, AuditLevel


@dataclass(frozen=True)
class AuditEntry:
    """Immutable audit record. Entries are only ever appended."""

    actor: str
    action: AuditAction
    level: AuditLevel
    retention_days: int
    detail: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utc_now)
