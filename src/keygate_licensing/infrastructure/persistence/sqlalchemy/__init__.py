"""SQLAlchemy persistence for hardware bindings."""

from keygate_licensing.infrastructure.persistence.sqlalchemy.models import (
    HwidBindingModel,
)
from keygate_licensing.infrastructure.persistence.sqlalchemy.repositories import (
    HwidBindingRepositorySQLAlchemy,
)

__all__ = ["HwidBindingModel", "HwidBindingRepositorySQLAlchemy"]
