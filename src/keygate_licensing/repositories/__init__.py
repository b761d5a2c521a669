"""Abstract repository interfaces for hardware bindings."""

from keygate_licensing.repositories.hwid_binding_repository import (
    HwidBindingRepository,
)

__all__ = ["HwidBindingRepository"]
