"""
Database models for the Showtime booking platform.
"""

from .base import Base
from .movie import Movie
from .screen import Screen
from .seat import Seat, SeatType
from .show import Show
from .show_seat import ShowSeat, SeatStatus
from .booking import Booking, BookingStatus
from .booking_seat import BookingSeat

__all__ = [
    "Base",
    "Movie",
    "Screen",
    "Seat",
    "SeatType",
    "Show",
    "ShowSeat",
    "SeatStatus",
    "Booking",
    "BookingStatus",
    "BookingSeat",
]
