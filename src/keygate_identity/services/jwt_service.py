"""JWT token service.

Provides signed identity token issuance and validation.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import UUID

import jwt

from keygate.domain.shared.time import utc_now
from keygate_config import ConfigError, TokenSettings
from keygate_identity.exceptions import InvalidTokenError, TokenExpiredError
from keygate_identity.schemas import IssuedToken, TokenClaims, TokenValidation

logger = logging.getLogger(__name__)

RESERVED_CLAIMS = frozenset({"sub", "role", "iss", "aud", "iat", "exp", "nbf", "jti"})
REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub"]


class JWTService:
    """Service for JWT token creation and verification.

    Tokens are HMAC-signed with a single server-held secret and carry the
    subject, a role snapshot, issuer, audience, issued-at, expiry and a
    unique ``jti``.

    Examples
    --------
    >>> service = JWTService(TokenSettings(secret_key="your-secret-key"))
    >>> issued = service.issue(user_id, "user")
    >>> service.validate(issued.token).valid
    True
    """

    def __init__(
        self,
        settings: TokenSettings,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the JWT service.

        Parameters
        ----------
        settings
            Signing secret, issuer/audience and TTL
        clock
            Source of the current time; injectable for tests

        Raises
        ------
        ConfigError
            If the signing secret is empty
        """
        if not settings.secret_key:
            msg = "JWT secret key cannot be empty"
            raise ConfigError(msg)

        self._settings = settings
        self._clock = clock

    @property
    def settings(self) -> TokenSettings:
        return self._settings

    def issue(
        self,
        subject: UUID,
        role: str,
        extra_claims: dict[str, Any] | None = None,
    ) -> IssuedToken:
        """Create a signed access token.

        Parameters
        ----------
        subject
            The user's unique identifier
        role
            Role at issuance
        extra_claims
            Additional non-reserved claims

        Returns
        -------
        The encoded token with its id and validity window
        """
        extras = dict(extra_claims or {})
        clashing = RESERVED_CLAIMS & extras.keys()
        if clashing:
            msg = f"Reserved claims cannot be overridden: {sorted(clashing)}"
            raise ValueError(msg)

        # JWT timestamps have second resolution
        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + self._settings.access_token_ttl
        jti = uuid.uuid4().hex

        payload: dict[str, Any] = {
            **extras,
            "sub": str(subject),
            "role": str(getattr(role, "value", role)),
            "iss": self._settings.issuer,
            "aud": self._settings.audience,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": jti,
        }

        token = jwt.encode(
            payload,
            self._settings.secret_key,
            algorithm=self._settings.algorithm,
        )
        return IssuedToken(
            token=token,
            jti=jti,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def verify(self, token: str) -> TokenClaims:
        """Verify and decode a token.

        Returns
        -------
        TokenClaims containing the decoded data

        Raises
        ------
        TokenExpiredError
            If the expiry instant has passed
        InvalidTokenError
            If the token is malformed, tampered with, or for another
            issuer/audience
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key,
                algorithms=[self._settings.algorithm],
                audience=self._settings.audience,
                issuer=self._settings.issuer,
                options={
                    "require": REQUIRED_CLAIMS,
                    # Expiry is checked against the injected clock below
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )

            expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
            issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
            claims = TokenClaims(
                user_id=UUID(payload["sub"]),
                role=str(payload.get("role", "")),
                issuer=payload["iss"],
                audience=self._settings.audience,
                issued_at=issued_at,
                expires_at=expires_at,
                jti=str(payload.get("jti", "")),
                extra={k: v for k, v in payload.items() if k not in RESERVED_CLAIMS},
            )

        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e
        except (KeyError, ValueError, TypeError, OverflowError) as e:
            raise InvalidTokenError(f"Malformed token payload: {e}") from e

        leeway = self._settings.leeway_seconds
        if self._clock().timestamp() >= expires_at.timestamp() + leeway:
            raise TokenExpiredError

        if not claims.jti:
            msg = "Token has no id"
            raise InvalidTokenError(msg)

        return claims

    def validate(self, token: str) -> TokenValidation:
        """Validate a token without raising.

        Fails closed: any problem yields ``valid=False`` with an error code.
        """
        try:
            return TokenValidation.ok(self.verify(token))
        except InvalidTokenError as e:
            logger.debug("Token rejected: %s", e.message)
            return TokenValidation.invalid(e.code)
