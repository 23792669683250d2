"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

from buffet_ledger.app.core.config import settings

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    # Set on auth failures that should also drop the session cookie
    clear_session: bool = False

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppException):
    """Raised when input passes schema parsing but fails a business rule."""

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"field": field} if field else None
        )


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class ConflictError(AppException):
    """Raised when a write collides with existing state."""

    def __init__(self, message: str, error_code: str = "ERR_CONFLICT_001", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


# Authentication

class AuthenticationError(AppException):
    """Raised for authentication failures."""

    clear_session = True

    def __init__(self, message: str = "Authentication failed", error_code: str = "ERR_AUTH_001"):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class UnauthenticatedError(AuthenticationError):
    """Raised when no valid session accompanies the request."""

    def __init__(self):
        super().__init__(
            message="Session expired. Please sign in again.",
            error_code="ERR_AUTH_002"
        )


class InvalidPinError(AppException):
    """Raised when a PIN does not match. Reports whether the account just got locked."""

    def __init__(self, locked: bool = False, lockout_minutes: int = 0):
        if locked:
            message = f"Too many incorrect PIN attempts. Sign-in is blocked for {lockout_minutes} minutes."
        else:
            message = "Incorrect PIN."
        super().__init__(
            message=message,
            error_code="ERR_AUTH_003",
            status_code=status.HTTP_401_UNAUTHORIZED,
            details={"locked": locked}
        )


class AccountLockedError(AppException):
    """Raised when a sign-in is attempted during an active lockout window."""

    def __init__(self, remaining_minutes: int):
        self.remaining_minutes = remaining_minutes
        super().__init__(
            message=(
                "Sign-in is blocked after repeated incorrect PIN attempts. "
                f"Try again in about {remaining_minutes} minutes."
            ),
            error_code="ERR_AUTH_004",
            status_code=status.HTTP_423_LOCKED,
            details={"remaining_minutes": remaining_minutes}
        )


class PinNotConfiguredError(AppException):
    """Raised when the user has no PIN hash stored."""

    def __init__(self):
        super().__init__(
            message="No PIN is configured for this user. Contact an administrator.",
            error_code="ERR_AUTH_005",
            status_code=status.HTTP_403_FORBIDDEN
        )


# Ledger entries

class CodeMismatchError(AppException):
    """Raised when the attested company code differs from the stored one."""

    def __init__(self):
        super().__init__(
            message="Company code does not match.",
            error_code="ERR_ENTRY_001",
            status_code=status.HTTP_403_FORBIDDEN
        )


# Settlement

class SettlementError(AppException):
    """Base class for settlement failures."""


class EntriesNotFoundError(SettlementError):
    def __init__(self):
        super().__init__(
            message="None of the selected entries could be found.",
            error_code="ERR_SETTLE_001",
            status_code=status.HTTP_404_NOT_FOUND
        )


class AlreadySettledError(SettlementError):
    def __init__(self, entry_ids: list = None):
        super().__init__(
            message="The selection includes entries that have already been paid.",
            error_code="ERR_SETTLE_002",
            status_code=status.HTTP_409_CONFLICT,
            details={"entry_ids": entry_ids} if entry_ids else None
        )


class MixedCompanyError(SettlementError):
    def __init__(self):
        super().__init__(
            message="Only entries of a single company can be settled together.",
            error_code="ERR_SETTLE_003",
            status_code=status.HTTP_409_CONFLICT
        )


class ToDateTooEarlyError(SettlementError):
    def __init__(self, latest_entry_date):
        super().__init__(
            message="The end date cannot be earlier than the latest selected entry.",
            error_code="ERR_SETTLE_004",
            status_code=status.HTTP_409_CONFLICT,
            details={"latest_entry_date": latest_entry_date.isoformat()}
        )


class ReceiptUploadFailedError(SettlementError):
    def __init__(self):
        super().__init__(
            message="Receipt upload failed. Please try again.",
            error_code="ERR_SETTLE_005",
            status_code=status.HTTP_502_BAD_GATEWAY
        )


class EntryUpdateFailedError(SettlementError):
    def __init__(self):
        super().__init__(
            message="Could not mark the entries as paid. Contact an administrator.",
            error_code="ERR_SETTLE_006",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class NoReceiptError(SettlementError):
    def __init__(self):
        super().__init__(
            message="No receipt is attached to this payment.",
            error_code="ERR_SETTLE_007",
            status_code=status.HTTP_404_NOT_FOUND
        )


class SignFailedError(SettlementError):
    def __init__(self):
        super().__init__(
            message="Could not create a receipt link. Contact an administrator.",
            error_code="ERR_SETTLE_008",
            status_code=status.HTTP_502_BAD_GATEWAY
        )


# Global Exception Handlers

def _clear_session_cookie(response: JSONResponse) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.error_code, exc.message, exc_info=exc.__cause__)
    response = JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )
    if exc.clear_session:
        _clear_session_cookie(response)
    return response


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
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
    errors = exc.errors()
    first = errors[0]["msg"] if errors else "Validation error"
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": first,
            "details": {
                "errors": [
                    {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
                    for err in errors
                ]
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred. Please try again.",
            "details": {}
        }
    )
