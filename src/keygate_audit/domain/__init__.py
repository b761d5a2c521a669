"""Audit domain: action catalog and entries."""

from keygate_audit.domain.actions import (
    AUDIT_CATALOG,
    SYSTEM_ACTOR,
    AuditAction,
    AuditLevel,
    AuditPolicy,
    policy_for,
    resolve_action,
)
from keygate_audit.domain.entry import AuditEntry

__all__ = [
    "AUDIT_CATALOG",
    "SYSTEM_ACTOR",
    "AuditAction",
    "AuditEntry",
    "AuditLevel",
    "AuditPolicy",
    "policy_for",
    "resolve_action",
]
