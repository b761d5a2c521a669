"""Abstract repository interface for audit entries."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from keygate_audit.domain import AuditAction, AuditEntry

MAX_PAGE_SIZE = 500


@dataclass(frozen=True)
class AuditQuery:
    """Read-side filter. All criteria are optional and combined with AND."""

    action: AuditAction | None = None
    actor: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int = 50
    offset: int = 0

    def __post_init__(self) -> None:
        if self.limit < 1 or self.limit > MAX_PAGE_SIZE:
            msg = f"limit must be between 1 and {MAX_PAGE_SIZE}"
            raise ValueError(msg)
        if self.offset < 0:
            msg = "offset cannot be negative"
            raise ValueError(msg)
        if self.date_from and self.date_to and self.date_from > self.date_to:
            msg = "date_from must not be after date_to"
            raise ValueError(msg)


@dataclass(frozen=True)
class AuditPage:
    entries: list[AuditEntry]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.entries) < self.total


class AuditEntryRepository(ABC):
    """Append-only store for audit entries."""

    @abstractmethod
    async def append(self, entry: AuditEntry) -> None:
        """Persist a new entry. Existing entries are never modified."""

    @abstractmethod
    async def query(self, query: AuditQuery) -> AuditPage:
        """Return entries matching ``query``, newest first."""
