"""Shared SQLAlchemy model primitives."""

from keygate.infrastructure.persistence.sqlalchemy.models.base import (
    Base,
    TimestampMixin,
)

__all__ = ["Base", "TimestampMixin"]
