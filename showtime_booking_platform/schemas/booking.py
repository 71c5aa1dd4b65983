"""
Pydantic schemas for booking responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from ..models.booking import Booking, BookingStatus


class BookingSeatResponse(BaseModel):
    """Schema for a booked seat in responses."""

    seat_id: UUID
    label: str
    seat_type: str


class BookingResponse(BaseModel):
    """Schema for booking responses."""

    id: UUID
    user_id: UUID
    show_id: UUID
    seat_count: int
    total_amount: Decimal
    status: BookingStatus
    confirmed_at: datetime

    # Related data
    movie_title: Optional[str] = None
    show_time: Optional[datetime] = None
    screen_name: Optional[str] = None
    seats: List[BookingSeatResponse] = []

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        """Build a response from a booking whose show and seats are loaded."""
        show = booking.show
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            show_id=booking.show_id,
            seat_count=booking.seat_count,
            total_amount=booking.total_amount,
            status=booking.status,
            confirmed_at=booking.confirmed_at,
            movie_title=show.movie.title if show and show.movie else None,
            show_time=show.show_time if show else None,
            screen_name=show.screen.name if show and show.screen else None,
            seats=[
                BookingSeatResponse(
                    seat_id=booking_seat.seat_id,
                    label=booking_seat.seat.label,
                    seat_type=booking_seat.seat.seat_type.value
                )
                for booking_seat in sorted(
                    booking.booking_seats,
                    key=lambda bs: (bs.seat.row_number, bs.seat.seat_number)
                )
            ]
        )


class BookingListResponse(BaseModel):
    """Schema for booking list responses."""

    bookings: List[BookingResponse]
    limit: int
    offset: int
