"""
Domain errors and their HTTP rendering.

Services raise these; a single exception handler turns them into the
standard error envelope used across the API:

    {"error": {"code": "...", "message": "...", "status": 400}}
"""

from __future__ import annotations

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

log = structlog.get_logger()


class SyncNotesError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400
    code: str = "BAD_REQUEST"
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAuthenticated(SyncNotesError):
    status_code = 401
    code = "NOT_AUTHENTICATED"
    default_message = "Authentication required"


class NotAuthorized(SyncNotesError):
    status_code = 403
    code = "NOT_AUTHORIZED"
    default_message = "You don't have permission to perform this action"


class NotFound(SyncNotesError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    default_message = "User not found"


class Conflict(SyncNotesError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Request conflicts with the current state"


class InvariantViolation(Conflict):
    code = "INVARIANT_VIOLATION"
    default_message = "Operation would violate an organization invariant"


class ValidationFailed(SyncNotesError):
    status_code = 422
    code = "VALIDATION_FAILED"
    default_message = "Invalid request"


class OtpNotRequested(SyncNotesError):
    code = "OTP_NOT_REQUESTED"
    default_message = "No code found. Please request a new one."


class OtpExpired(SyncNotesError):
    code = "OTP_EXPIRED"
    default_message = "Code has expired. Please request a new one."


class OtpMismatch(SyncNotesError):
    code = "OTP_MISMATCH"
    default_message = "Invalid code. Please check and try again."


class EmailDispatchFailed(SyncNotesError):
    status_code = 502
    code = "EMAIL_DISPATCH_FAILED"
    default_message = "Failed to send email. Please try again later."


def error_body(code: str, message: str, status: int) -> dict:
    return {"error": {"code": code, "message": message, "status": status}}


async def syncnotes_error_handler(request: Request, exc: SyncNotesError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request.failed", path=request.url.path, code=exc.code, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.status_code),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request-body validation failures in the standard envelope."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = ValidationFailed.default_message
    return JSONResponse(
        status_code=ValidationFailed.status_code,
        content=error_body(ValidationFailed.code, message, ValidationFailed.status_code),
    )
