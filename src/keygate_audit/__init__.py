"""Audit trail: action catalog, append-only store and query surface."""

from keygate_audit.domain import (
    AUDIT_CATALOG,
    SYSTEM_ACTOR,
    AuditAction,
    AuditEntry,
    AuditLevel,
    AuditPolicy,
    resolve_action,
)
from keygate_audit.repositories import AuditEntryRepository, AuditPage, AuditQuery
from keygate_audit.services import AuditLogger, AuditQueryService

__all__ = [
    "AUDIT_CATALOG",
    "SYSTEM_ACTOR",
    "AuditAction",
    "AuditEntry",
    "AuditEntryRepository",
    "AuditLevel",
    "AuditLogger",
    "AuditPage",
    "AuditPolicy",
    "AuditQuery",
    "AuditQueryService",
    "resolve_action",
]
