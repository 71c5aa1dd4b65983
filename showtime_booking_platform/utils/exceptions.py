"""
Custom exceptions for the Showtime Booking Platform.
"""

from typing import Any, Dict, Optional, List, Sequence
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the platform."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    # Reservation errors
    SEAT_CONFLICT = "SEAT_CONFLICT"
    HOLD_EXPIRED = "HOLD_EXPIRED"
    BOOKING_PERSISTENCE_ERROR = "BOOKING_PERSISTENCE_ERROR"

    # Infrastructure errors
    TRANSPORT_ERROR = "TRANSPORT_ERROR"


class ShowtimeError(Exception):
    """Base exception class for the Showtime platform."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        retry_after: Optional[int] = None
    ):
        """Initialize the exception with comprehensive error information."""
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        self.retry_after = retry_after
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggestions:
            result["suggestions"] = self.suggestions

        if self.retry_after:
            result["retry_after"] = self.retry_after

        return result


class ValidationError(ShowtimeError):
    """Exception raised for invalid requests, before the ledger is touched."""

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, List[str]]] = None,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        merged_details = dict(details or {})
        if field_errors:
            merged_details["field_errors"] = field_errors
        kwargs.setdefault("error_code", ErrorCode.VALIDATION_ERROR)
        kwargs.setdefault("suggestions", ["Check the request and try again"])
        super().__init__(message, details=merged_details or None, **kwargs)
        self.field_errors = field_errors or {}


class NotFoundError(ShowtimeError):
    """Base exception for resource not found errors."""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_type else None,
            **kwargs
        )


class MovieNotFoundError(NotFoundError):
    """Exception raised when a movie is not found."""

    def __init__(self, movie_id: str, **kwargs):
        super().__init__(
            f"Movie {movie_id} not found",
            resource_type="movie",
            resource_id=str(movie_id),
            suggestions=["Browse the movie list"],
            **kwargs
        )


class ScreenNotFoundError(NotFoundError):
    """Exception raised when a screen is not found."""

    def __init__(self, screen_id: str, **kwargs):
        super().__init__(
            f"Screen {screen_id} not found",
            resource_type="screen",
            resource_id=str(screen_id),
            **kwargs
        )


class ShowNotFoundError(NotFoundError):
    """Exception raised when a show is not found."""

    def __init__(self, show_id: str, **kwargs):
        super().__init__(
            f"Show {show_id} not found",
            resource_type="show",
            resource_id=str(show_id),
            suggestions=["Check the show ID", "Browse upcoming shows for the movie"],
            **kwargs
        )


class BookingNotFoundError(NotFoundError):
    """Exception raised when a booking is not found."""

    def __init__(self, booking_id: str, **kwargs):
        super().__init__(
            f"Booking {booking_id} not found",
            resource_type="booking",
            resource_id=str(booking_id),
            suggestions=["Check the booking ID", "View your booking history"],
            **kwargs
        )


class AuthenticationError(ShowtimeError):
    """Exception raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.UNAUTHORIZED,
            suggestions=["Sign in again"],
            **kwargs
        )


class AuthorizationError(ShowtimeError):
    """Exception raised when a user acts on a resource they do not own."""

    def __init__(self, message: str = "Access denied", **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.FORBIDDEN,
            **kwargs
        )


class ReservationError(ShowtimeError):
    """Base exception for recoverable reservation outcomes."""
    pass


class SeatConflictError(ReservationError):
    """Exception raised when requested seats are held by someone else or booked."""

    def __init__(self, show_id: str, conflicting_seat_ids: Sequence[Any], **kwargs):
        self.show_id = str(show_id)
        self.conflicting_seat_ids = [str(seat_id) for seat_id in conflicting_seat_ids]
        super().__init__(
            f"{len(self.conflicting_seat_ids)} of the selected seats are no longer available",
            error_code=ErrorCode.SEAT_CONFLICT,
            details={"show_id": self.show_id, "conflicting_seat_ids": self.conflicting_seat_ids},
            suggestions=["Pick different seats", "Refresh the seat map"],
            **kwargs
        )


class HoldExpiredError(ReservationError):
    """Exception raised when a hold lapsed before it was confirmed."""

    def __init__(self, show_id: str, seat_ids: Sequence[Any], **kwargs):
        self.show_id = str(show_id)
        self.seat_ids = [str(seat_id) for seat_id in seat_ids]
        super().__init__(
            "Your hold on the selected seats has expired",
            error_code=ErrorCode.HOLD_EXPIRED,
            details={"show_id": self.show_id, "seat_ids": self.seat_ids},
            suggestions=["Select the seats again", "Confirm within the hold time"],
            **kwargs
        )


class BookingPersistenceError(ShowtimeError):
    """Exception raised when the booking record cannot be written."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.BOOKING_PERSISTENCE_ERROR,
            suggestions=["Select the seats again"],
            **kwargs
        )


class TransportError(ShowtimeError):
    """Exception raised when the data store cannot be reached."""

    def __init__(self, operation: str, message: str = "Data store unavailable", **kwargs):
        kwargs.setdefault("retry_after", 5)
        super().__init__(
            f"{operation} failed: {message}",
            error_code=ErrorCode.TRANSPORT_ERROR,
            details={"operation": operation},
            suggestions=["Try again in a few seconds", "Check your booking history before retrying a confirmation"],
            **kwargs
        )
