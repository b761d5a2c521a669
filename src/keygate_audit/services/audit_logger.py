"""Best-effort audit logger.

Audit is observability, not a transactional participant: a failure to
persist an entry is reported on the operational log channel and swallowed so
that it never rejects or rolls back the action being audited.
"""

import logging
from typing import Any
from uuid import UUID

from keygate_audit.domain import (
    AuditAction,
    AuditEntry,
    AuditLevel,
    policy_for,
    resolve_action,
)
from keygate_audit.repositories import AuditEntryRepository

logger = logging.getLogger(__name__)

# Detail keys that must never reach the store
_REDACTED_KEYS = frozenset(
    {"password", "new_password", "token", "reset_token", "access_token", "secret"},
)


class AuditLogger:
    def __init__(self, repository: AuditEntryRepository):
        self._repository = repository

    async def record(
        self,
        actor: str | UUID,
        action: str | AuditAction,
        detail: dict[str, Any] | None = None,
        level: AuditLevel | None = None,
        ip_address: str | None = None,
    ) -> AuditEntry | None:
        """Append an audit entry.

        Parameters
        ----------
        actor
            User id or ``"system"``
        action
            Catalog action; free text is mapped to ``UNKNOWN``
        detail
            JSON-serialisable payload; secret-looking keys are dropped
        level
            Overrides the catalog level (and therefore the retention)
        ip_address
            Client address, if known

        Returns
        -------
        The stored entry, or None when persisting failed
        """
        resolved = resolve_action(action)
        payload = _sanitise(detail)
        if resolved is AuditAction.UNKNOWN and not isinstance(action, AuditAction):
            payload.setdefault("raw_action", str(action))

        policy = policy_for(resolved, level)
        entry = AuditEntry(
            actor=str(actor),
            action=resolved,
            level=policy.level,
            retention_days=policy.retention_days,
            detail=payload,
            ip_address=ip_address,
        )

        try:
            await self._repository.append(entry)
        except Exception:
            logger.exception(
                "Failed to persist audit entry %s for actor %s",
                resolved.value,
                entry.actor,
            )
            return None

        logger.debug("Audit %s by %s", resolved.value, entry.actor)
        return entry


def _sanitise(detail: dict[str, Any] | None) -> dict[str, Any]:
    if not detail:
        return {}
    return {k: v for k, v in detail.items() if k.lower() not in _REDACTED_KEYS}
