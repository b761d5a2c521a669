from enum import Enum


class UserRole(str, Enum):
    """Closed set of roles. Levels and permissions live in ROLE_DEFINITIONS."""

    USER = "user"
    STAFF = "staff"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: "str | UserRole") -> "UserRole | None":
        """Return the role for ``value`` or None if it is not a known role."""
        if isinstance(value, UserRole):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None
