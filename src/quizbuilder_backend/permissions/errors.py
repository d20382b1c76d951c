"""
Error kinds raised by the access-control layer.

NoContextError, InvalidRoleError and UnknownResourceError are integration
errors and propagate to the caller. AccessDeniedError and VerificationError
are expected runtime outcomes that the API/UI boundary converts into a
response or a user-visible message.
"""

from typing import Optional


class DataIsolationError(Exception):
    """Base class for access-control failures, carrying a machine-readable code"""

    default_code = "DATA_ISOLATION_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code}


class NoContextError(DataIsolationError):
    default_code = "NO_CONTEXT"


class InvalidRoleError(DataIsolationError):
    default_code = "INVALID_ROLE"


class UnknownResourceError(DataIsolationError):
    default_code = "UNKNOWN_RESOURCE"


class AccessDeniedError(DataIsolationError):
    default_code = "ACCESS_DENIED"


class VerificationError(DataIsolationError):
    """A remote access check failed or could not be reached"""

    default_code = "VERIFICATION_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, code)
        self.status_code = status_code


class SubscriptionError(DataIsolationError):
    default_code = "FEATURE_RESTRICTED"

    def __init__(self, message: str, code: Optional[str] = None, upgrade_required: bool = False):
        super().__init__(message, code)
        self.upgrade_required = upgrade_required


USER_MESSAGES = {
    "ACCESS_DENIED": "You do not have access to this resource.",
    "VERIFICATION_ERROR": "We could not verify your access right now. Please try again.",
    "NO_CONTEXT": "Your session has expired. Please sign in again.",
}


def user_message(error: DataIsolationError) -> str:
    """Text shown to the end user for an access-control failure"""
    if isinstance(error, SubscriptionError):
        return error.message
    return USER_MESSAGES.get(error.code, USER_MESSAGES["ACCESS_DENIED"])
