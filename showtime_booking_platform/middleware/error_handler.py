"""
Error handling middleware for the Showtime Booking Platform.

Every exception that escapes a route is converted to a ``ShowtimeError`` and
rendered as ``{"error": ..., "error_id": ..., "timestamp": ...}`` with the
status code of its error code.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, TimeoutError as SQLTimeoutError
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.exceptions import (
    AuthenticationError,
    BookingPersistenceError,
    ErrorCode,
    ReservationError,
    ShowtimeError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR_CODE = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.SEAT_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.HOLD_EXPIRED: status.HTTP_410_GONE,
    ErrorCode.BOOKING_PERSISTENCE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.TRANSPORT_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}

DATABASE_UNAVAILABLE = (OperationalError, InterfaceError, SQLTimeoutError)


def field_errors_of(exc) -> Dict[str, list]:
    """Group pydantic/FastAPI validation messages by dotted field path."""
    field_errors: Dict[str, list] = {}
    for error in exc.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        field_errors.setdefault(field_path, []).append(error["msg"])
    return field_errors


def error_body(exc: ShowtimeError, error_id: str) -> Dict[str, Any]:
    return {
        "error": exc.to_dict(),
        "error_id": error_id,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


def _integrity_constraint(exc: IntegrityError) -> str:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    for marker, constraint in (("unique", "unique"), ("foreign key", "foreign_key"), ("not null", "not_null")):
        if marker in message:
            return constraint
    return "unknown"


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turns every exception raised below it into a structured JSON error."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            error_id = str(uuid4())
            self._log(request, exc, error_id)
            return self._render(exc, error_id)

    def _as_showtime_error(self, exc: Exception) -> ShowtimeError:
        if isinstance(exc, ShowtimeError):
            return exc
        if isinstance(exc, PydanticValidationError):
            return ValidationError("Request validation failed", field_errors=field_errors_of(exc))
        if isinstance(exc, IntegrityError):
            return ValidationError(
                "Data integrity constraint violation",
                details={"constraint_type": _integrity_constraint(exc)}
            )
        if isinstance(exc, DATABASE_UNAVAILABLE):
            return TransportError("request", "Database service temporarily unavailable")
        return ShowtimeError(
            "An unexpected error occurred",
            details={"error_type": type(exc).__name__} if self.debug else None
        )

    def _render(self, exc: Exception, error_id: str) -> JSONResponse:
        error = self._as_showtime_error(exc)
        body = error_body(error, error_id)

        headers = {}
        if error.retry_after:
            headers["Retry-After"] = str(error.retry_after)
        if isinstance(error, AuthenticationError):
            headers["WWW-Authenticate"] = "Bearer"

        if self.debug and error is not exc and error.error_code == ErrorCode.INTERNAL_ERROR:
            body["debug"] = {
                "exception": str(exc),
                "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            }

        return JSONResponse(
            status_code=STATUS_BY_ERROR_CODE.get(error.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR),
            content=body,
            headers=headers
        )

    def _log(self, request: Request, exc: Exception, error_id: str) -> None:
        user_id = getattr(request.state, "user_id", None)
        extra = {
            "error_id": error_id,
            "request": {"method": request.method, "path": request.url.path},
            "user_id": str(user_id) if user_id else None,
        }

        if not isinstance(exc, ShowtimeError):
            logger.exception(f"Unexpected error [{error_id}]: {exc}", extra=extra)
            return

        extra.update(error_code=exc.error_code.value, details=exc.details)
        if isinstance(exc, ReservationError):
            logger.info(f"Reservation refused [{error_id}]: {exc.message}", extra=extra)
        elif isinstance(exc, (TransportError, BookingPersistenceError)) or exc.error_code == ErrorCode.INTERNAL_ERROR:
            logger.error(f"System error [{error_id}]: {exc.message}", extra=extra)
        else:
            logger.warning(f"Client error [{error_id}]: {exc.message}", extra=extra)
