"""Audit services."""

from keygate_audit.services.audit_logger import AuditLogger
from keygate_audit.services.audit_query_service import AuditQueryService

__all__ = ["AuditLogger", "AuditQueryService"]
