"""Single-use secrets for password reset and email verification links.

Only the SHA-256 hex digest of a token is ever persisted.
"""

import hashlib
import secrets

# 24 random bytes encode to exactly 32 URL-safe characters
TOKEN_BYTES = 24


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()
