from keygate_identity.infrastructure.email.email_service import (
    EmailService,
    LoggingEmailService,
)

__all__ = ["EmailService", "LoggingEmailService"]
