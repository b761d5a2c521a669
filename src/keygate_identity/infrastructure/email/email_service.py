"""Outbound email port.

Delivery mechanics are an external collaborator. The application services
only hand over the recipient and a link; ``LoggingEmailService`` is the
development implementation and records that a message would have been sent.
"""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

PASSWORD_RESET_SUBJECT = "Password Reset Request - Keygate"

PASSWORD_RESET_TEXT = """Hello,

You requested a password reset for your Keygate account.

Click the link below to reset your password (valid for {ttl_hours} hour(s)):
{reset_link}

If you didn't request this, you can safely ignore this email.

-- Keygate
"""

VERIFICATION_SUBJECT = "Verify your email address - Keygate"

VERIFICATION_TEXT = """Hello,

Please confirm your email address by opening the link below:
{verification_link}

-- Keygate
"""


class EmailService(ABC):
    @abstractmethod
    def send_password_reset_email(
        self,
        to_email: str,
        reset_link: str,
        ttl_hours: int = 1,
    ) -> None:
        """Deliver a password reset link."""

    @abstractmethod
    def send_verification_email(self, to_email: str, verification_link: str) -> None:
        """Deliver an email verification link."""


class LoggingEmailService(EmailService):
    """Renders messages and logs their delivery without sending anything.

    The links carry single-use secrets and are never written to the log.
    """

    def __init__(self) -> None:
        self.outbox: list[tuple[str, str, str]] = []

    def send_password_reset_email(
        self,
        to_email: str,
        reset_link: str,
        ttl_hours: int = 1,
    ) -> None:
        body = PASSWORD_RESET_TEXT.format(reset_link=reset_link, ttl_hours=ttl_hours)
        self._deliver(to_email, PASSWORD_RESET_SUBJECT, body)

    def send_verification_email(self, to_email: str, verification_link: str) -> None:
        body = VERIFICATION_TEXT.format(verification_link=verification_link)
        self._deliver(to_email, VERIFICATION_SUBJECT, body)

    def _deliver(self, to_email: str, subject: str, body: str) -> None:
        self.outbox.append((to_email, subject, body))
        logger.info("Email '%s' queued for %s", subject, to_email)
