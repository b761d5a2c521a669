"""Abstract repository interfaces for the audit trail."""

from keygate_audit.repositories.audit_entry_repository import (
    MAX_PAGE_SIZE,
    AuditEntryRepository,
    AuditPage,
    AuditQuery,
)

__all__ = [
    "MAX_PAGE_SIZE",
    "AuditEntryRepository",
    "AuditPage",
    "AuditQuery",
]
