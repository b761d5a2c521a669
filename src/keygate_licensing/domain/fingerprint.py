"""Hardware fingerprint derivation and checks.

A fingerprint is the upper-case SHA-256 hex digest of a canonical,
labelled serialisation of the client's hardware and environment signals,
clipped to the configured length bounds. The same signals always produce the
same fingerprint; changing any one of them produces a different one.
"""

from __future__ import annotations

import hashlib
import json
import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum

from keygate_config import HwidPolicy
from keygate_licensing.exceptions import InvalidFingerprintError

# Length of a derived fingerprint before policy bounds are applied
DEFAULT_FINGERPRINT_LENGTH = 16

# Well-known spoofed or virtual-machine identifiers
BLACKLISTED_FINGERPRINTS = frozenset(
    {
        "0000-0000-0000-0000",
        "1111-1111-1111-1111",
        "FFFF-FFFF-FFFF-FFFF",
        "AAAA-AAAA-AAAA-AAAA",
        "TEST-TEST-TEST-TEST",
        "FAKE-FAKE-FAKE-FAKE",
        "NULL-NULL-NULL-NULL",
        "VMWARE-VMWARE-VMWARE",
        "VBOX-VBOX-VBOX-VBOX",
        "HYPER-HYPER-HYPER-HYPER",
    },
)
MAX_REPEATED_RATIO = 0.7
MIN_ENTROPY_BITS = 2.5


@dataclass(frozen=True)
class HardwareSignals:
    """Client-reported hardware and environment signals."""

    screen_width: int
    screen_height: int
    color_depth: int
    timezone: str
    locale: str
    platform: str
    user_agent: str = ""
    canvas: str = ""
    webgl: str = ""
    audio: str = ""

    def canonical(self) -> str:
        """Order-fixed, labelled serialisation used as the hash input."""
        components = [
            ("screen", f"{self.screen_width}x{self.screen_height}x{self.color_depth}"),
            ("tz", self.timezone),
            ("lang", self.locale),
            ("platform", self.platform),
            ("ua", self.user_agent),
            ("canvas", self.canvas),
            ("webgl", self.webgl),
            ("audio", self.audio),
        ]
        return json.dumps(components, separators=(",", ":"), ensure_ascii=True)


def derive_fingerprint(
    signals: HardwareSignals,
    policy: HwidPolicy | None = None,
    length: int = DEFAULT_FINGERPRINT_LENGTH,
) -> str:
    """Hash ``signals`` into a fingerprint that satisfies ``policy``.

    Examples
    --------
    >>> signals = HardwareSignals(1920, 1080, 24, "Europe/Berlin", "de-DE", "Linux x86_64")
    >>> derive_fingerprint(signals) == derive_fingerprint(signals)
    True
    >>> len(derive_fingerprint(signals))
    16
    """
    policy = policy or HwidPolicy()
    target = min(max(length, policy.min_length), policy.max_length)

    digest = hashlib.sha256(signals.canonical().encode("utf-8")).hexdigest()
    material = digest
    # Chain further digests when the policy asks for more than one digest
    while len(material) < target:
        digest = hashlib.sha256(digest.encode("ascii")).hexdigest()
        material += digest
    return material[:target].upper()


class FingerprintViolation(str, Enum):
    REQUIRED = "required"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    INVALID_CHARSET = "invalid_charset"


def check_fingerprint(value: str | None, policy: HwidPolicy) -> FingerprintViolation | None:
    if not value:
        return FingerprintViolation.REQUIRED
    if len(value) < policy.min_length:
        return FingerprintViolation.TOO_SHORT
    if len(value) > policy.max_length:
        return FingerprintViolation.TOO_LONG
    if not policy.matches_charset(value):
        return FingerprintViolation.INVALID_CHARSET
    return None


def validate_fingerprint(value: str | None, policy: HwidPolicy) -> str:
    """Return ``value`` unchanged or raise ``InvalidFingerprintError``."""
    violation = check_fingerprint(value, policy)
    if violation is not None:
        raise InvalidFingerprintError(violation.value)
    return value  # type: ignore[return-value]


@dataclass(frozen=True)
class FingerprintAssessment:
    suspicious: bool
    reason: str | None = None


def assess_fingerprint(value: str) -> FingerprintAssessment:
    """Flag fingerprints that look spoofed. Never used to reject a bind."""
    if value.upper() in BLACKLISTED_FINGERPRINTS:
        return FingerprintAssessment(True, "blacklisted")

    cleaned = value.replace("-", "").replace(":", "")
    if not cleaned:
        return FingerprintAssessment(True, "empty")

    char, count = Counter(cleaned).most_common(1)[0]
    if count / len(cleaned) > MAX_REPEATED_RATIO:
        return FingerprintAssessment(True, f"repeated character {char!r}")

    if shannon_entropy(cleaned) < MIN_ENTROPY_BITS:
        return FingerprintAssessment(True, "low entropy")

    return FingerprintAssessment(False)


def shannon_entropy(value: str) -> float:
    if not value:
        return 0.0
    length = len(value)
    return -sum(
        (n / length) * math.log2(n / length) for n in Counter(value).values()
    )
