"""SQLAlchemy repositories for the audit trail."""

from keygate_audit.infrastructure.persistence.sqlalchemy.repositories.audit_entry_repository import (  # NOQA: E501
    AuditEntryRepositorySQLAlchemy,
    restore_after_rollback,
)

__all__ = ["AuditEntryRepositorySQLAlchemy", "restore_after_rollback"]
