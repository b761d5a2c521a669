"""Read-only audit query surface for admin reporting."""

from keygate_audit.repositories import AuditEntryRepository, AuditPage, AuditQuery


class AuditQueryService:
    def __init__(self, repository: AuditEntryRepository):
        self._repository = repository

    async def list_entries(self, query: AuditQuery | None = None) -> AuditPage:
        return await self._repository.query(query or AuditQuery())
