"""
Unified exception handling for the Fathom Transcript Manager.

This module provides:
- Custom exception classes for different error types
- Standardized error response format
- Exception handlers for FastAPI

Transcript parsing and duration resolution never raise for malformed input;
these exceptions cover the I/O layers around them.
"""

from __future__ import annotations

from typing import Any, Optional, Dict
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import BaseModel
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Standardized error detail."""
    code: str
    message: str
    field: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Standardized error response format."""
    success: bool = False
    error: ErrorDetail


# =============================================================================
# Custom Exception Classes
# =============================================================================

class TranscriptManagerException(Exception):
    """Base exception for the transcript manager."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        self.field = field
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to standardized error response."""
        return ErrorResponse(
            error=ErrorDetail(
                code=self.code,
                message=self.message,
                field=self.field,
                details=self.details,
            )
        )


# --- Resource Errors ---

class NotFoundError(TranscriptManagerException):
    """Resource not found."""

    def __init__(
        self,
        resource: str,
        resource_id: Optional[Any] = None,
    ):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' not found"

        super().__init__(
            message=message,
            code="RESOURCE_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id},
        )


class ConflictError(TranscriptManagerException):
    """Resource conflict (e.g., operation already running)."""

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
    ):
        super().__init__(
            message=message,
            code="RESOURCE_CONFLICT",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource} if resource else None,
        )


class SyncInProgressError(ConflictError):
    """A meeting sync is already running."""

    def __init__(self):
        super().__init__(message="A meeting sync is already in progress", resource="sync")
        self.code = "SYNC_IN_PROGRESS"


# --- Validation Errors ---

class ValidationError(TranscriptManagerException):
    """Input validation failed."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=422,  # Unprocessable Content
            field=field,
            details=details,
        )


class TooManyTranscriptsError(ValidationError):
    """Export request names more transcripts than allowed."""

    def __init__(self, count: int, max_count: int):
        super().__init__(
            message=f"Too many transcripts requested: {count} (maximum: {max_count})",
            field="transcript_ids",
            details={"count": count, "max_count": max_count},
        )


# --- Service Errors ---

class ServiceError(TranscriptManagerException):
    """External service error."""

    def __init__(
        self,
        service: str,
        message: str = "Service temporarily unavailable",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=f"{service}: {message}",
            code="SERVICE_ERROR",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"service": service, **(details or {})},
        )


class FathomAPIError(ServiceError):
    """Fathom API returned an error or could not be reached."""

    def __init__(
        self,
        message: str = "Fathom API temporarily unavailable",
        status_code: Optional[int] = None,
    ):
        super().__init__(
            service="fathom",
            message=message,
            details={"upstream_status": status_code} if status_code else None,
        )
        self.code = "FATHOM_API_ERROR"
        self.upstream_status = status_code


class DatabaseError(ServiceError):
    """Database service error."""

    def __init__(self, message: str = "Database temporarily unavailable"):
        super().__init__(service="database", message=message)
        self.code = "DATABASE_ERROR"


# --- Sync Errors ---

class SyncError(TranscriptManagerException):
    """Meeting sync failed."""

    def __init__(
        self,
        message: str,
        synced: int = 0,
    ):
        super().__init__(
            message=message,
            code="SYNC_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"synced": synced},
        )


# =============================================================================
# Exception Handlers for FastAPI
# =============================================================================

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
}


def _error_json(status_code: int, detail: ErrorDetail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=detail).model_dump(),
    )


async def transcript_manager_exception_handler(
    request: Request, exc: TranscriptManagerException
) -> JSONResponse:
    """Render TranscriptManagerException subclasses with their own code and status."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{type(exc).__name__}: {exc.code} - {exc.message}",
        extra={"details": exc.details, "path": request.url.path},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Render request validation failures (missing ``q``, empty
    ``transcript_ids``) in the standard envelope, naming the first bad field.
    """
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]

    return _error_json(
        422,
        ErrorDetail(
            code="VALIDATION_ERROR",
            message=first.get("msg", "Invalid request"),
            field=".".join(location) or None,
            details={"errors": len(errors)},
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Convert HTTP errors, including unknown routes, to the standard envelope."""
    return _error_json(
        exc.status_code,
        ErrorDetail(
            code=HTTP_ERROR_CODES.get(exc.status_code, "UNKNOWN_ERROR"),
            message=str(exc.detail),
        ),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without leaking their text."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True,
        extra={"path": request.url.path},
    )
    return _error_json(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorDetail(
            code="INTERNAL_ERROR",
            message="An unexpected error occurred. Please try again later.",
        ),
    )


def register_exception_handlers(app):
    """Register all exception handlers with FastAPI app."""
    app.add_exception_handler(TranscriptManagerException, transcript_manager_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
