from keygate_identity.domain.lockout.counter import (
    LockoutCounter,
    LockoutDecision,
    LockoutState,
)

__all__ = ["LockoutCounter", "LockoutDecision", "LockoutState"]
