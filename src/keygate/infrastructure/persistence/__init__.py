"""Persistence helpers shared by every package."""

from keygate.infrastructure.persistence.store_guard import StoreGuard

__all__ = ["StoreGuard"]
