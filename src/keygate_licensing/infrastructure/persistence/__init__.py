"""Persistence adapters for hardware bindings."""
