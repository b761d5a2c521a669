"""SQLAlchemy implementation of AuditEntryRepository.

ERROR-level entries (store outages) are remembered on the session. A
rollback would otherwise take them along with the request's writes, so
``restore_after_rollback`` writes them again in a fresh transaction.
"""

import logging

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from keygate.domain.shared.time import ensure_tz_aware
from keygate_audit.domain import AuditAction, AuditEntry, AuditLevel
from keygate_audit.infrastructure.persistence.sqlalchemy.models import (
    AuditEntryModel,
)
from keygate_audit.repositories import AuditEntryRepository, AuditPage, AuditQuery

logger = logging.getLogger(__name__)

_DURABLE_ENTRIES = "keygate_audit.durable_entries"


async def restore_after_rollback(session: AsyncSession) -> int:
    """Re-append the session's ERROR entries after ``session.rollback()``.

    Entries already in the store are skipped. Failures are logged, not
    raised: the caller is already propagating the error that caused the
    rollback.

    Returns
    -------
    Number of entries written again
    """
    entries: list[AuditEntry] = session.info.pop(_DURABLE_ENTRIES, [])
    if not entries:
        return 0

    restored = 0
    try:
        for entry in entries:
            if await session.get(AuditEntryModel, entry.id) is not None:
                continue
            session.add(_to_model(entry))
            restored += 1
        await session.commit()
    except (SQLAlchemyError, OSError):
        logger.exception("Lost %d audit entries to a rollback", len(entries))
        await session.rollback()
        return 0

    if restored:
        logger.info("Kept %d audit entries past a rollback", restored)
    return restored


class AuditEntryRepositorySQLAlchemy(AuditEntryRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def append(self, entry: AuditEntry) -> None:
        # Savepoint so a failed audit insert leaves the caller's transaction usable
        async with self._session.begin_nested():
            self._session.add(_to_model(entry))
        if entry.level is AuditLevel.ERROR:
            self._session.info.setdefault(_DURABLE_ENTRIES, []).append(entry)

    async def query(self, query: AuditQuery) -> AuditPage:
        stmt = self._apply_filters(select(AuditEntryModel), query)
        stmt = (
            stmt.order_by(AuditEntryModel.created_at.desc(), AuditEntryModel.id)
            .limit(query.limit)
            .offset(query.offset)
        )
        result = await self._session.execute(stmt)
        entries = [self._map_to_domain(m) for m in result.scalars().all()]

        count_stmt = self._apply_filters(
            select(func.count()).select_from(AuditEntryModel),
            query,
        )
        total = (await self._session.execute(count_stmt)).scalar_one()

        return AuditPage(
            entries=entries,
            total=total,
            limit=query.limit,
            offset=query.offset,
        )

    def _apply_filters(self, stmt: Select, query: AuditQuery) -> Select:
        if query.action is not None:
            stmt = stmt.where(AuditEntryModel.action == query.action.value)
        if query.actor is not None:
            stmt = stmt.where(AuditEntryModel.actor == query.actor)
        if query.date_from is not None:
            stmt = stmt.where(AuditEntryModel.created_at >= query.date_from)
        if query.date_to is not None:
            stmt = stmt.where(AuditEntryModel.created_at <= query.date_to)
        return stmt

    def _map_to_domain(self, model: AuditEntryModel) -> AuditEntry:
        try:
            action = AuditAction(model.action)
        except ValueError:
            logger.warning("Unknown audit action in store: %s", model.action)
            action = AuditAction.UNKNOWN
        return AuditEntry(
            id=model.id,
            actor=model.actor,
            action=action,
            level=AuditLevel(model.level),
            detail=dict(model.detail or {}),
            ip_address=model.ip_address,
            retention_days=model.retention_days,
            created_at=ensure_tz_aware(model.created_at),
        )


def _to_model(entry: AuditEntry) -> AuditEntryModel:
    return AuditEntryModel(
        id=entry.id,
        actor=entry.actor,
        action=entry.action.value,
        level=entry.level.value,
        detail=dict(entry.detail),
        ip_address=entry.ip_address,
        retention_days=entry.retention_days,
        created_at=entry.created_at,
    )
