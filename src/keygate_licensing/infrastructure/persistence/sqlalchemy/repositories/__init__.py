from keygate_licensing.infrastructure.persistence.sqlalchemy.repositories.hwid_binding_repository import (  # noqa: E501
    HwidBindingRepositorySQLAlchemy,
)

__all__ = ["HwidBindingRepositorySQLAlchemy"]
