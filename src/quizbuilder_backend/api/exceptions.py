from typing import Any, Dict, Optional
from fastapi import HTTPException, status

from quizbuilder_backend.permissions.errors import (
    AccessDeniedError,
    DataIsolationError,
    InvalidRoleError,
    NoContextError,
    SubscriptionError,
    UnknownResourceError,
    VerificationError,
)

class NotFoundException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_404_NOT_FOUND
        self.detail = detail or "Not found"

class ForbiddenException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_403_FORBIDDEN
        self.detail = detail or "Forbidden"

class BadRequestException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_400_BAD_REQUEST
        self.detail = detail or "Bad request"

class UnauthorizedException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_401_UNAUTHORIZED
        self.detail = detail or "Unauthorized"

class PaymentRequiredException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_402_PAYMENT_REQUIRED
        self.detail = detail or "Upgrade required"

class InternalServerException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        self.detail = detail or "Internal server error"

class BadGatewayException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_502_BAD_GATEWAY
        self.detail = detail or "Bad gateway"

def access_error_to_http_exception(error: DataIsolationError) -> HTTPException:
    details = error.to_dict()
    if isinstance(error, AccessDeniedError):
        return ForbiddenException(detail=details)
    elif isinstance(error, VerificationError):
        return BadGatewayException(detail=details)
    elif isinstance(error, SubscriptionError):
        return PaymentRequiredException(detail={**details, "upgradeRequired": error.upgrade_required})
    elif isinstance(error, (NoContextError, InvalidRoleError)):
        return BadRequestException(detail=details)
    elif isinstance(error, UnknownResourceError):
        return InternalServerException(detail=details)
    else:
        return ForbiddenException(detail=details)
