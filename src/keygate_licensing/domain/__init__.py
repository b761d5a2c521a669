from keygate_licensing.domain.binding import HwidBinding
from keygate_licensing.domain.fingerprint import (
    FingerprintAssessment,
    FingerprintViolation,
    HardwareSignals,
    assess_fingerprint,
    check_fingerprint,
    derive_fingerprint,
    shannon_entropy,
    validate_fingerprint,
)

__all__ = [
    "FingerprintAssessment",
    "FingerprintViolation",
    "HardwareSignals",
    "HwidBinding",
    "assess_fingerprint",
    "check_fingerprint",
    "derive_fingerprint",
    "shannon_entropy",
    "validate_fingerprint",
]
