"""
BookingSeat model linking bookings to the show seats they own.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .seat import Seat
    from .show_seat import ShowSeat


class BookingSeat(Base):
    """BookingSeat model linking bookings to the show seats they own."""

    __tablename__ = "booking_seats"

    # Foreign key relationships
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    seat_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("seats.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    show_seat_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("show_seats.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", back_populates="booking_seats")
    seat: Mapped["Seat"] = relationship("Seat")
    show_seat: Mapped["ShowSeat"] = relationship("ShowSeat")

    # A show seat belongs to at most one booking
    __table_args__ = (
        UniqueConstraint("show_seat_id", name="uq_booking_seats_show_seat"),
        UniqueConstraint("booking_id", "seat_id", name="uq_booking_seats_booking_seat"),
    )

    def __repr__(self) -> str:
        return (
            f"<BookingSeat(id={self.id}, booking_id={self.booking_id}, "
            f"seat_id={self.seat_id})>"
        )
