"""Hardware-binding exceptions."""

from keygate.domain.shared.exceptions import ErrorCategory, ErrorCode, KeygateError


class LicensingError(KeygateError):
    """Base exception for hardware-binding failures."""

    code = ErrorCode.INVALID_FINGERPRINT
    category = ErrorCategory.VALIDATION


class InvalidFingerprintError(LicensingError):
    """The fingerprint fails the length or charset rules."""

    def __init__(self, reason: str, message: str = "Invalid hardware ID"):
        self.reason = reason
        super().__init__(f"{message}: {reason}")


class HwidAlreadyLockedError(LicensingError):
    """A different fingerprint is already locked to the subscription."""

    code = ErrorCode.HWID_ALREADY_LOCKED
    category = ErrorCategory.CONFLICT

    def __init__(self, subscription_id: str):
        self.subscription_id = subscription_id
        super().__init__(
            "This subscription is locked to another device. "
            "Ask an administrator to reset the hardware binding.",
        )


class HwidBindingNotFoundError(LicensingError):
    code = ErrorCode.HWID_BINDING_NOT_FOUND
    category = ErrorCategory.NOT_FOUND

    def __init__(self, subscription_id: str):
        self.subscription_id = subscription_id
        super().__init__(f"No hardware binding for subscription {subscription_id}")


class HwidBindingOwnershipError(LicensingError):
    """The subscription is bound for another account."""

    code = ErrorCode.PERMISSION_DENIED
    category = ErrorCategory.AUTHORIZATION

    def __init__(self, subscription_id: str):
        self.subscription_id = subscription_id
        super().__init__("Permission denied")
