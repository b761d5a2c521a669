"""SQLAlchemy model for hardware bindings."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from keygate.domain.shared.time import utc_now
from keygate.infrastructure.persistence.sqlalchemy.models.base import Base


class HwidBindingModel(Base):
    """The unique constraint on ``subscription_id`` is the cross-process guard
    for the one-binding-per-subscription rule.
    """

    __tablename__ = "hwid_bindings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    subscription_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    fingerprint: Mapped[str] = mapped_column(String(255), nullable=False)
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bound_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    def __repr__(self) -> str:
        return (
            f"<HwidBindingModel(subscription_id={self.subscription_id!r}, "
            f"locked={self.locked})>"
        )
