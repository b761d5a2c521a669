"""SQLAlchemy model for failed-attempt counters."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from keygate.infrastructure.persistence.sqlalchemy.models.base import (
    Base,
    TimestampMixin,
)


class LockoutCounterModel(Base, TimestampMixin):
    """One row per tracked key (``account:<email>`` or ``ip:<address>``)."""

    __tablename__ = "lockout_counters"

    key: Mapped[str] = mapped_column(String(320), primary_key=True)
    failed_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    first_failure_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    locked_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    lockout_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Bumped on every write; concurrent writers compare and swap on it
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<LockoutCounterModel(key={self.key}, attempts={self.failed_attempts})>"
