"""Keygate Licensing - hardware-ID binding of subscriptions.

- Fingerprint derivation from client hardware signals
- Format validation and suspicion heuristics
- One locked fingerprint per subscription
"""

from keygate_licensing.domain import (
    FingerprintAssessment,
    FingerprintViolation,
    HardwareSignals,
    HwidBinding,
    assess_fingerprint,
    derive_fingerprint,
    validate_fingerprint,
)
from keygate_licensing.exceptions import (
    HwidAlreadyLockedError,
    HwidBindingNotFoundError,
    HwidBindingOwnershipError,
    InvalidFingerprintError,
    LicensingError,
)
from keygate_licensing.repositories import HwidBindingRepository
from keygate_licensing.services import HwidBinder, SubscriptionLocks

__all__ = [
    "FingerprintAssessment",
    "FingerprintViolation",
    "HardwareSignals",
    "HwidAlreadyLockedError",
    "HwidBinder",
    "HwidBinding",
    "HwidBindingNotFoundError",
    "HwidBindingOwnershipError",
    "HwidBindingRepository",
    "InvalidFingerprintError",
    "LicensingError",
    "SubscriptionLocks",
    "assess_fingerprint",
    "derive_fingerprint",
    "validate_fingerprint",
]
