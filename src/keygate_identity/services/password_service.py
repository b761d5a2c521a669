"""Password hashing service using bcrypt.

Provides secure password hashing and verification. Strength rules are
delegated to the password policy engine.
"""

import bcrypt

from keygate_identity.exceptions import WeakPasswordError
from keygate_identity.services.password_policy import PasswordPolicyEngine


class PasswordHashingService:
    """Service for secure password hashing and verification.

    Uses bcrypt for password hashing with configurable work factor.

    Examples
    --------
    >>> service = PasswordHashingService(rounds=4)
    >>> hash = service.hash("MySecurePassw0rd")
    >>> service.verify("MySecurePassw0rd", hash)
    True
    >>> service.verify("wrong_password", hash)
    False
    """

    # bcrypt ignores everything past 72 bytes
    MAX_BCRYPT_BYTES = 72

    def __init__(
        self,
        rounds: int = 12,
        policy_engine: PasswordPolicyEngine | None = None,
    ):
        """Initialize the password hashing service.

        Parameters
        ----------
        rounds
            The bcrypt work factor (log2 of iterations). Default is 12,
            which is a good balance of security and performance.
        policy_engine
            Strength rules applied before hashing
        """
        self._rounds = rounds
        self._policy_engine = policy_engine or PasswordPolicyEngine()
        self._dummy_hash: str | None = None

    @property
    def policy_engine(self) -> PasswordPolicyEngine:
        return self._policy_engine

    def hash(self, password: str) -> str:
        """Hash a plaintext password.

        Parameters
        ----------
        password
            The plaintext password to hash

        Returns
        -------
        The bcrypt hash as a string

        Raises
        ------
        WeakPasswordError
            If password doesn't meet requirements
        """
        self.validate_strength(password)
        return self._hash_unchecked(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash.

        Returns
        -------
        True if password matches, False otherwise (including malformed hashes)
        """
        try:
            return bcrypt.checkpw(
                self._encode(password),
                password_hash.encode("utf-8"),
            )
        except (ValueError, TypeError):
            # Invalid hash format
            return False

    def validate_strength(self, password: str) -> None:
        """Raise ``WeakPasswordError`` carrying every violated rule."""
        result = self._policy_engine.validate(password)
        if not result.valid:
            first = self._policy_engine.describe(result.violations[0])
            raise WeakPasswordError(first, violations=result.violations)

    def needs_rehash(self, password_hash: str) -> bool:
        """Check if a password hash needs to be rehashed.

        After changing the rounds setting, existing hashes can be
        identified for rehashing on next login.
        """
        try:
            # bcrypt format: $2b$XX$...
            parts = password_hash.split("$")
            if len(parts) >= 3:
                current_rounds = int(parts[2])
                return current_rounds != self._rounds
        except (ValueError, IndexError):
            pass
        return True

    def rehash(self, password: str) -> str:
        """Hash an already accepted password with the current work factor.

        Strength rules are not re-applied; a password set under an older
        policy must keep working.
        """
        return self._hash_unchecked(password)

    def dummy_hash(self) -> str:
        """Hash of a fixed value, for constant-time checks on unknown users."""
        if self._dummy_hash is None:
            self._dummy_hash = self._hash_unchecked("keygate-timing-equaliser")
        return self._dummy_hash

    def _hash_unchecked(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(self._encode(password), salt).decode("utf-8")

    def _encode(self, password: str) -> bytes:
        return password.encode("utf-8")[: self.MAX_BCRYPT_BYTES]
