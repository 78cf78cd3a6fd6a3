"""
Shared HTTP error classes and utilities for Huddle services.

Provides:
- Base exception class for API errors
- Domain subclasses (Validation, Auth, Permission, AccessDenied, NotFound,
  Conflict, State)
- Shared error response model
- Utility to convert exceptions to error responses
- FastAPI exception handler registration

Basic Exception Usage:
>>> from services.common.http_errors import ValidationError, NotFoundError
>>>
>>> # Validation error with field context
>>> error = ValidationError("End time must be after start time", field="end_time")
>>>
>>> # Resource not found
>>> error = NotFoundError("Meeting", "42")

FastAPI Integration:
>>> from fastapi import FastAPI
>>> from services.common.http_errors import register_huddle_exception_handlers
>>>
>>> app = FastAPI()
>>> register_huddle_exception_handlers(app)

Error Code Taxonomy:
===================
- VALIDATION_* : Input validation errors (400)
- AUTH_* : Authentication errors (401)
- ACCESS_* / PERMISSION_* : Authorization errors (403)
- NOT_FOUND : Resource not found (404)
- MEETING_CONFLICT / INVALID_STATE : Scheduling and state errors (409)
- SERVICE_* : Internal service errors (5xx)
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Specific error codes carried in the ``details.code`` field."""

    # ==========================================
    # GENERAL ERRORS (4xx client errors)
    # ==========================================
    VALIDATION_FAILED = "VALIDATION_FAILED"  # HTTP 400 - Input validation failed
    NOT_FOUND = "NOT_FOUND"  # HTTP 404 - Resource not found
    ALREADY_EXISTS = "ALREADY_EXISTS"  # HTTP 400 - Unique value already taken
    INTERNAL_ERROR = "INTERNAL_ERROR"  # HTTP 500 - Generic internal error

    # ==========================================
    # AUTHENTICATION ERRORS (401 Unauthorized)
    # ==========================================
    AUTH_FAILED = "AUTH_FAILED"  # Generic authentication failure
    TOKEN_EXPIRED = "TOKEN_EXPIRED"  # Access token has expired
    TOKEN_INVALID = "TOKEN_INVALID"  # Token format or signature invalid
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"  # User account is deactivated

    # ==========================================
    # AUTHORIZATION ERRORS (403 Forbidden)
    # ==========================================
    PERMISSION_DENIED = "PERMISSION_DENIED"  # Caller does not own the resource
    ACCESS_DENIED = "ACCESS_DENIED"  # Join refused by the meeting access policy

    # ==========================================
    # SCHEDULING ERRORS (409 Conflict)
    # ==========================================
    MEETING_CONFLICT = "MEETING_CONFLICT"  # Overlaps an existing meeting
    INVALID_STATE = "INVALID_STATE"  # Action not valid for current status

    # ==========================================
    # SERVICE ERRORS (5xx server errors)
    # ==========================================
    SERVICE_ERROR = "SERVICE_ERROR"  # Generic service error
    DATABASE_ERROR = "DATABASE_ERROR"  # Database connectivity/operation error


# Shared error response model (Pydantic)
class ErrorResponse(BaseModel):
    """
    Standardized error response model for all Huddle services.

    Attributes:
        type: Error type categorization (e.g., "validation_error", "not_found")
        message: Human-readable error message for end users
        details: Optional dictionary containing additional error context
        timestamp: ISO 8601 timestamp of when the error occurred
        request_id: Unique identifier for tracing and debugging purposes
    """

    type: str
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: str
    request_id: str


class HuddleAPIException(Exception):
    """
    Base exception class for all Huddle API errors.

    Every error raised by the scheduling core is one of these, so the HTTP
    layer only needs to read ``status_code`` and ``to_error_response()``.

    Args:
        message: The error message to display to users
        details: Optional dictionary with additional error context
        error_type: Error category string (defaults to "internal_error")
        error_code: Specific error code from ErrorCode enum
        status_code: HTTP status code (defaults to 500)
        request_id: Optional request ID (auto-generated if not provided)
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_type: str = "internal_error",
        error_code: Optional[ErrorCode] = None,
        status_code: int = 500,
        request_id: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        self.error_type = error_type
        self.error_code = error_code
        self.status_code = status_code
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.request_id = request_id or str(uuid.uuid4())
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """
        Convert exception to ErrorResponse Pydantic model.

        Example:
            >>> error = ValidationError("Invalid input", field="title")
            >>> error.to_error_response().model_dump()
            {
                'type': 'validation_error',
                'message': 'Invalid input',
                'details': {'field': 'title', 'code': 'VALIDATION_FAILED'},
                'timestamp': '2025-01-15T10:30:00Z',
                'request_id': 'req-abc123'
            }
        """
        details = {
            **self.details,
            **({"code": self.error_code.value} if self.error_code else {}),
        }
        return ErrorResponse(
            type=self.error_type,
            message=self.message,
            details=details if details else None,
            timestamp=self.timestamp,
            request_id=self.request_id,
        )


class ValidationError(HuddleAPIException):
    """
    Exception for input validation errors (HTTP 400).

    Used for bad input shape or range, such as an end time before the start
    time or a meeting password that fails the strength policy.

    Examples:
        >>> error = ValidationError("Meeting duration cannot exceed 8 hours")

        >>> error = ValidationError(
        ...     "Invalid password",
        ...     field="password",
        ...     details={"errors": ["Password must be at least 4 characters long"]}
        ... )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ):
        validation_details = details or {}
        if field:
            validation_details["field"] = field
        if value is not None:
            validation_details["value"] = str(value)
        super().__init__(
            message=message,
            details=validation_details,
            error_type="validation_error",
            error_code=code,
            status_code=400,
        )
        self.field = field
        self.value = value


class NotFoundError(HuddleAPIException):
    """
    Exception for resource not found errors (HTTP 404).

    Examples:
        >>> error = NotFoundError("Meeting", "42")
        >>> print(error.message)
        Meeting 42 not found

        >>> error = NotFoundError("Participant")
        >>> print(error.message)
        Participant not found
    """

    def __init__(
        self,
        resource: str,
        identifier: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        if identifier:
            message = f"{resource} {identifier} not found"
        else:
            message = f"{resource} not found"
        notfound_details = {
            **(details or {}),
            "resource": resource,
            "identifier": identifier,
        }
        super().__init__(
            message=message,
            details=notfound_details,
            error_type="not_found",
            error_code=ErrorCode.NOT_FOUND,
            status_code=404,
        )
        self.resource = resource
        self.identifier = identifier


class AuthError(HuddleAPIException):
    """
    Exception for authentication errors (HTTP 401).

    Examples:
        >>> error = AuthError("Invalid email or password")

        >>> error = AuthError("Access token has expired", code=ErrorCode.TOKEN_EXPIRED)
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.AUTH_FAILED,
        status_code: int = 401,
    ):
        super().__init__(
            message=message,
            details=details,
            error_type="auth_error",
            error_code=code,
            status_code=status_code,
        )


class PermissionDeniedError(HuddleAPIException):
    """
    Exception for ownership and permission failures (HTTP 403).

    Raised when a caller who is not the organizer attempts an organizer-only
    action, or reads a meeting they take no part in.
    """

    def __init__(
        self,
        message: str = "Access denied",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            details=details,
            error_type="permission_error",
            error_code=ErrorCode.PERMISSION_DENIED,
            status_code=403,
        )


class AccessDeniedError(HuddleAPIException):
    """
    Exception for join-time access failures (HTTP 403).

    ``reason`` is the machine-readable denial reason (for example
    ``"invalid_password"``); the stored meeting password is never included.
    """

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        access_details = details or {}
        if reason:
            access_details["reason"] = reason
        super().__init__(
            message=message,
            details=access_details,
            error_type="access_denied",
            error_code=ErrorCode.ACCESS_DENIED,
            status_code=403,
        )
        self.reason = reason


class ConflictError(HuddleAPIException):
    """
    Exception for scheduling conflicts (HTTP 409).

    Examples:
        >>> error = ConflictError(
        ...     "Time conflict detected with existing meetings: Standup",
        ...     details={"conflicting_meeting_ids": [7]}
        ... )
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            details=details,
            error_type="conflict_error",
            error_code=ErrorCode.MEETING_CONFLICT,
            status_code=409,
        )


class StateError(HuddleAPIException):
    """
    Exception for actions that are invalid for the resource's current status
    (HTTP 409), e.g. cancelling a meeting twice.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            details=details,
            error_type="state_error",
            error_code=ErrorCode.INVALID_STATE,
            status_code=409,
        )


# Utility to convert exceptions to error responses
def exception_to_response(exc: Exception) -> ErrorResponse:
    """
    Convert any exception to a standardized ErrorResponse Pydantic model.

    1. HuddleAPIException: Uses the built-in to_error_response() method
    2. HTTPException: Extracts detail information and normalizes format
    3. Generic Exception: Creates a safe internal error response

    Note:
        Generic exceptions keep only their type name in the details so that no
        internal state leaks to clients.
    """
    if isinstance(exc, HuddleAPIException):
        return exc.to_error_response()
    elif isinstance(exc, HTTPException):
        detail = (
            exc.detail if isinstance(exc.detail, dict) else {"message": str(exc.detail)}
        )
        return ErrorResponse(
            type="http_error",
            message=detail.get("message", "HTTP error"),
            details=detail,
            timestamp=datetime.now(timezone.utc).isoformat(),
            request_id=str(uuid.uuid4()),
        )
    else:
        return ErrorResponse(
            type="internal_error",
            message="Internal server error",
            details={"error_type": type(exc).__name__},
            timestamp=datetime.now(timezone.utc).isoformat(),
            request_id=str(uuid.uuid4()),
        )


def register_huddle_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers for FastAPI applications.

    - HuddleAPIException: Returns exception's status_code with error details
    - HTTPException: Returns exception's status_code with normalized details
    - Generic Exception: Returns 500 status with safe error message
    """
    from fastapi import Request
    from fastapi.responses import JSONResponse

    from services.common.logging_config import log_http_error

    @app.exception_handler(HuddleAPIException)
    async def huddle_api_exception_handler(
        request: Request, exc: HuddleAPIException
    ) -> JSONResponse:
        error_response = exc.to_error_response()
        log_http_error(
            error_type=exc.error_type,
            message=exc.message,
            status_code=exc.status_code,
            request_id=exc.request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code, content=error_response.model_dump()
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        error_response = exception_to_response(exc)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response.model_dump(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        error_response = exception_to_response(exc)
        return JSONResponse(status_code=500, content=error_response.model_dump())
