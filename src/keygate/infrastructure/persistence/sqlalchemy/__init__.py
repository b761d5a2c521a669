"""SQLAlchemy infrastructure shared by all keygate packages."""

from keygate.infrastructure.persistence.sqlalchemy.models import Base, TimestampMixin

__all__ = ["Base", "TimestampMixin"]
