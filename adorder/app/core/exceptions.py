"""
Custom exceptions and error handlers for consistent error responses.

Every error leaves the API as ``{"error_code", "message", "details"}``.
``error_code`` is the stable, machine-checkable kind; ``message`` is for humans.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

from adorder.app.core.config import settings

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            error_code="ERR_UNAUTHENTICATED",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "You do not have permission to perform this action", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_FORBIDDEN",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

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


class InvalidArgumentError(AppException):
    """Raised for request validation failures detected by the domain layer."""

    def __init__(self, message: str, error_code: str = "ERR_INVALID_ARGUMENT", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class ConflictError(AppException):
    """Raised when the resource state does not allow the operation."""

    ALREADY_PENDING = "AlreadyPending"
    ALREADY_PROCESSED = "AlreadyProcessed"
    NOT_APPROVED = "NotApproved"
    DUPLICATE = "Duplicate"

    def __init__(self, message: str, reason: str):
        super().__init__(
            message=message,
            error_code="ERR_CONFLICT",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"reason": reason}
        )
        self.reason = reason


class InsufficientBalanceError(AppException):
    """Raised when a debit would exceed the user's balance."""

    def __init__(self, required: int, current: int):
        super().__init__(
            message="Insufficient points balance",
            error_code="ERR_INSUFFICIENT_BALANCE",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={
                "required": required,
                "current": current,
                "shortage": max(0, required - current),
            }
        )
        self.required = required
        self.current = current


class PartialFailureError(AppException):
    """Raised when a multi-step operation failed partway and was rolled back."""

    def __init__(self, message: str, error_code: str = "ERR_PARTIAL_FAILURE", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )


class InternalError(AppException):
    """Raised for unexpected datastore errors."""

    def __init__(self, message: str = "An internal server error occurred"):
        super().__init__(
            message=message,
            error_code="ERR_INTERNAL_SERVER",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class TokenRevokedError(AppException):
    """Raised when token has been revoked."""

    def __init__(self):
        super().__init__(
            message="Token has been revoked",
            error_code="ERR_TOKEN_REVOKED",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


# Routes, below the API version prefix, whose malformed bodies surface as InvalidArgument
INVALID_ARGUMENT_ROUTES = (
    "/orders/confirm",
    "/cancellation-requests",
    "/admin/cancellation-requests",
    "/payment",
)


def _is_invalid_argument_route(path: str) -> bool:
    prefix = f"/{settings.api_version}"
    if not path.startswith(prefix):
        return False
    route = path[len(prefix):]
    return any(route == r or route.startswith(r + "/") for r in INVALID_ARGUMENT_ROUTES)


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.error_code, exc.message)
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
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHENTICATED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        405: "ERR_METHOD_NOT_ALLOWED",
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
    """
    Handler for Pydantic validation errors.

    Malformed bodies on the ordering, cancellation and payment routes are
    reported as InvalidArgument (400) like the checks done by the services;
    everything else keeps the 422 validation envelope.
    """
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]

    if _is_invalid_argument_route(request.url.path) and any(e["loc"][:1] == ["body"] for e in errors):
        return await app_exception_handler(
            request,
            InvalidArgumentError("Invalid request body", details={"errors": errors}),
        )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {"errors": errors}
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
