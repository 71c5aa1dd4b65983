"""Business logic services for the Showtime Booking Platform."""

from .seat_ledger import SeatLedger, ExpiredHold
from .booking_store import BookingStore
from .reservation_coordinator import ReservationCoordinator, HoldTicket
from .expiry_sweeper import ExpirySweeper
from .catalog_service import CatalogService

__all__ = [
    "SeatLedger",
    "ExpiredHold",
    "BookingStore",
    "ReservationCoordinator",
    "HoldTicket",
    "ExpirySweeper",
    "CatalogService",
]
