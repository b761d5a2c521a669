"""SQLAlchemy models for the audit trail."""

from keygate_audit.infrastructure.persistence.sqlalchemy.models.audit_entry_model import (  # NOQA: E501
    AuditEntryModel,
)

__all__ = ["AuditEntryModel"]
