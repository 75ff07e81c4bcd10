"""
Custom exceptions and error handlers for consistent error responses.

Every rejected dispatch operation maps to one stable error code plus a
human-readable message. Global handlers render them as
``{"error_code", "message", "details"}``.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import InterfaceError, OperationalError
from typing import Any, Dict

logger = logging.getLogger("pharmalink")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class UnauthorizedError(AppException):
    """Raised when the actor's role or ownership does not allow the operation."""

    def __init__(self, message: str = "Not authorized for this operation", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_UNAUTHORIZED",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class NotFoundError(AppException):
    """Raised when a resource is missing or has already moved past the requested state."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class InvalidTransitionError(AppException):
    """Raised when a transition is not part of the order state graph."""

    def __init__(self, message: str, current_status: Any = None, requested_status: Any = None):
        details = {}
        if current_status is not None:
            details["current_status"] = getattr(current_status, "value", current_status)
        if requested_status is not None:
            details["requested_status"] = getattr(requested_status, "value", requested_status)
        super().__init__(
            message=message,
            error_code="ERR_INVALID_TRANSITION",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class InvalidSignatureError(AppException):
    """Raised by the payment verifier when the webhook signature does not match."""

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(
            message=message,
            error_code="ERR_INVALID_SIGNATURE",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class PaymentUnverifiedError(AppException):
    """Raised when an order cannot be marked paid because the payment event is unverified."""

    def __init__(self, message: str = "Payment could not be verified"):
        super().__init__(
            message=message,
            error_code="ERR_PAYMENT_UNVERIFIED",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class BiometricMismatchError(AppException):
    """Raised when proof-of-delivery biometric confirmation fails."""

    def __init__(self, message: str = "Biometric verification failed. Recipient identity mismatch."):
        super().__init__(
            message=message,
            error_code="ERR_BIOMETRIC_MISMATCH",
            status_code=status.HTTP_400_BAD_REQUEST
        )


class AdapterTimeoutError(AppException):
    """Raised when an external verification adapter does not answer in time."""

    def __init__(self, adapter: str, timeout_seconds: float):
        super().__init__(
            message=f"{adapter} did not respond within {timeout_seconds}s",
            error_code="ERR_ADAPTER_TIMEOUT",
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            details={"adapter": adapter, "timeout_seconds": timeout_seconds}
        )


class AdapterUnavailableError(AppException):
    """Raised when an external verification adapter is failing or its circuit is open."""

    def __init__(self, adapter: str, reason: str = "Service unavailable"):
        super().__init__(
            message=f"{adapter} unavailable: {reason}",
            error_code="ERR_ADAPTER_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"adapter": adapter}
        )


class StorageUnavailableError(AppException):
    """Raised when the persistent store cannot be reached."""

    def __init__(self, message: str = "Storage unavailable"):
        super().__init__(
            message=message,
            error_code="ERR_STORAGE_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class TokenRevokedError(AppException):
    """Raised when token has been revoked."""

    def __init__(self):
        super().__init__(
            message="Token has been revoked",
            error_code="ERR_AUTH_002",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHENTICATED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=422,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry the raw exception object, which is not JSON serializable
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


async def storage_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for database connectivity failures."""
    logger.error("Storage unreachable: %s: %s", type(exc).__name__, exc)
    error = StorageUnavailableError()
    return await app_exception_handler(request, error)


STORAGE_EXCEPTIONS = (OperationalError, InterfaceError)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
