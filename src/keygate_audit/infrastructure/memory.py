"""In-memory audit repository for tests and single-process tooling."""

import asyncio

from keygate_audit.domain import AuditEntry
from keygate_audit.repositories import AuditEntryRepository, AuditPage, AuditQuery


class InMemoryAuditEntryRepository(AuditEntryRepository):
    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []
        self._lock = asyncio.Lock()

    @property
    def entries(self) -> list[AuditEntry]:
        return list(self._entries)

    async def append(self, entry: AuditEntry) -> None:
        async with self._lock:
            self._entries.append(entry)

    async def query(self, query: AuditQuery) -> AuditPage:
        matched = [e for e in self._entries if _matches(e, query)]
        matched.sort(key=lambda e: e.created_at, reverse=True)
        page = matched[query.offset : query.offset + query.limit]
        return AuditPage(
            entries=page,
            total=len(matched),
            limit=query.limit,
            offset=query.offset,
        )


def _matches(entry: AuditEntry, query: AuditQuery) -> bool:
    if query.action is not None and entry.action != query.action:
        return False
    if query.actor is not None and entry.actor != query.actor:
        return False
    if query.date_from is not None and entry.created_at < query.date_from:
        return False
    if query.date_to is not None and entry.created_at > query.date_to:
        return False
    return True
