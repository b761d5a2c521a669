"""Password policy engine.

Pure evaluation of a candidate password against the configured rules. Every
rule is checked independently so callers can show complete feedback.
"""

from dataclasses import dataclass, field
from enum import Enum

from keygate_config import PasswordPolicy


class PasswordViolation(str, Enum):
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    NO_UPPERCASE = "no_uppercase"
    NO_LOWERCASE = "no_lowercase"
    NO_NUMBERS = "no_numbers"
    NO_SPECIAL_CHARS = "no_special_chars"


@dataclass(frozen=True)
class PasswordValidationResult:
    valid: bool
    violations: list[PasswordViolation] = field(default_factory=list)


class PasswordPolicyEngine:
    """Validates passwords against a ``PasswordPolicy``.

    Examples
    --------
    >>> engine = PasswordPolicyEngine(PasswordPolicy())
    >>> engine.validate("ab").violations
    [<PasswordViolation.TOO_SHORT: 'too_short'>, <PasswordViolation.NO_UPPERCASE: 'no_uppercase'>, <PasswordViolation.NO_NUMBERS: 'no_numbers'>]
    """  # NOQA: E501

    def __init__(self, policy: PasswordPolicy | None = None):
        self._policy = policy or PasswordPolicy()

    @property
    def policy(self) -> PasswordPolicy:
        return self._policy

    def validate(self, candidate: str) -> PasswordValidationResult:
        policy = self._policy
        value = candidate or ""
        violations: list[PasswordViolation] = []

        if len(value) < policy.min_length:
            violations.append(PasswordViolation.TOO_SHORT)
        if len(value) > policy.max_length:
            violations.append(PasswordViolation.TOO_LONG)
        if policy.require_uppercase and not any(c.isupper() for c in value):
            violations.append(PasswordViolation.NO_UPPERCASE)
        if policy.require_lowercase and not any(c.islower() for c in value):
            violations.append(PasswordViolation.NO_LOWERCASE)
        if policy.require_numbers and not any(c.isdigit() for c in value):
            violations.append(PasswordViolation.NO_NUMBERS)
        if policy.require_special_chars and not any(
            c in policy.special_chars for c in value
        ):
            violations.append(PasswordViolation.NO_SPECIAL_CHARS)

        return PasswordValidationResult(valid=not violations, violations=violations)

    def describe(self, violation: PasswordViolation) -> str:
        """User-facing message for one violation."""
        policy = self._policy
        messages = {
            PasswordViolation.TOO_SHORT: (
                f"Password must be at least {policy.min_length} characters long"
            ),
            PasswordViolation.TOO_LONG: (
                f"Password cannot exceed {policy.max_length} characters"
            ),
            PasswordViolation.NO_UPPERCASE: (
                "Password must contain at least one uppercase letter"
            ),
            PasswordViolation.NO_LOWERCASE: (
                "Password must contain at least one lowercase letter"
            ),
            PasswordViolation.NO_NUMBERS: "Password must contain at least one number",
            PasswordViolation.NO_SPECIAL_CHARS: (
                "Password must contain at least one special character"
            ),
        }
        return messages[violation]
