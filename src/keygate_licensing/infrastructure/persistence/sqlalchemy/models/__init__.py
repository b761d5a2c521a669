from keygate_licensing.infrastructure.persistence.sqlalchemy.models.hwid_binding_model import (  # noqa: E501
    HwidBindingModel,
)

__all__ = ["HwidBindingModel"]
