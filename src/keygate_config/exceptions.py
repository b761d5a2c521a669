"""Configuration exceptions."""

from keygate.domain.shared.exceptions import ErrorCategory, ErrorCode, KeygateError


class ConfigError(KeygateError):
    """Raised at startup when the configuration is unsafe or incomplete.

    This is fatal: the process must refuse to serve traffic.
    """

    code = ErrorCode.CONFIG_ERROR
    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, problems: list[str] | None = None):
        self.problems = problems or []
        if self.problems:
            message = f"{message}: {'; '.join(self.problems)}"
        super().__init__(message)
