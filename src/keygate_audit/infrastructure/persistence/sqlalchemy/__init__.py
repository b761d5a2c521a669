"""SQLAlchemy persistence for the audit trail."""

from keygate_audit.infrastructure.persistence.sqlalchemy.models import AuditEntryModel
from keygate_audit.infrastructure.persistence.sqlalchemy.repositories import (
    AuditEntryRepositorySQLAlchemy,
    restore_after_rollback,
)

__all__ = ["AuditEntryModel", "AuditEntryRepositorySQLAlchemy", "restore_after_rollback"]
