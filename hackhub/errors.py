"""
hackhub/errors.py
HTTP error envelope shared by every handler

Every error leaving the API has the same shape:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": ... (optional)
}

Domain failures (hackhub.exceptions.AssignmentError) carry their own
status code. 500 is reserved for unexpected server errors and never
echoes the exception text back to the caller.
"""
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import status
from fastapi.responses import JSONResponse

from hackhub.exceptions import AssignmentError

logger = logging.getLogger(__name__)


class ErrorCode:
    """Transport-level codes. Domain codes live on the exception classes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID = "AUTH_INVALID"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @classmethod
    def for_status(cls, status_code: int) -> str:
        if status_code == status.HTTP_401_UNAUTHORIZED:
            return cls.AUTH_REQUIRED
        if status_code == status.HTTP_403_FORBIDDEN:
            return cls.PERMISSION_DENIED
        if status_code >= 500:
            return cls.INTERNAL_ERROR
        return cls.INVALID_INPUT


def error_envelope(error: str, message: str, code: str, details: Any = None) -> Dict[str, Any]:
    body = {"success": False, "error": error, "message": message, "code": code}
    if details:
        body["details"] = details
    return body


def error_response(
    status_code: int,
    error: str,
    message: str,
    code: str,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_envelope(error, message, code, details),
        headers=headers
    )


class APIError(Exception):
    """Transport error raised from dependencies (auth, role checks)."""

    def __init__(self, status_code: int, error: str, message: str, code: str, details: Any = None):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return error_envelope(self.error, self.message, self.code, self.details)

    def to_response(self) -> JSONResponse:
        return error_response(self.status_code, self.error, self.message, self.code, self.details)


class UnauthorizedError(APIError):
    def __init__(self, message: str = "Invalid or expired token", code: str = ErrorCode.AUTH_INVALID):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "Unauthorized", message, code)


class ForbiddenError(APIError):
    def __init__(self, message: str, code: str = ErrorCode.PERMISSION_DENIED, details: Optional[Dict] = None):
        super().__init__(status.HTTP_403_FORBIDDEN, "Forbidden", message, code, details)


def assignment_error_response(exc: AssignmentError) -> JSONResponse:
    """Render a domain exception with its own status code."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def internal_error_response(error: Exception, context: str = "") -> JSONResponse:
    """Log an unexpected error under a short id and return a safe 500."""
    log_id = str(uuid.uuid4())[:8]
    logger.error(f"[{log_id}] Internal error in {context}: {type(error).__name__}: {str(error)}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Error",
        "An unexpected error occurred. Please try again later.",
        ErrorCode.INTERNAL_ERROR,
        {"log_id": log_id}
    )
