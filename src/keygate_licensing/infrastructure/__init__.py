from keygate_licensing.infrastructure.memory import InMemoryHwidBindingRepository

__all__ = ["InMemoryHwidBindingRepository"]
