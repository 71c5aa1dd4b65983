"""
ShowSeat model holding the per-show state of one seat.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .show import Show
    from .seat import Seat


class SeatStatus(enum.Enum):
    """Enumeration for per-show seat status."""
    AVAILABLE = "available"
    HELD = "held"
    BOOKED = "booked"


class ShowSeat(Base):
    """Per-show state of one seat.

    One row exists per (show, seat) pair from show creation onwards. Rows are
    only mutated through the seat ledger; BOOKED is terminal for the show.
    """

    __tablename__ = "show_seats"

    show_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("shows.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    seat_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("seats.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    status: Mapped[SeatStatus] = mapped_column(
        Enum(SeatStatus),
        default=SeatStatus.AVAILABLE,
        nullable=False,
        index=True
    )

    # Present only while the seat is held
    holder_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    hold_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True
    )

    # Relationships
    show: Mapped["Show"] = relationship("Show", back_populates="show_seats")
    seat: Mapped["Seat"] = relationship("Seat", back_populates="show_seats")

    __table_args__ = (
        UniqueConstraint("show_id", "seat_id", name="uq_show_seats_show_seat"),
        CheckConstraint(
            "(status = 'HELD' AND holder_token IS NOT NULL AND hold_expires_at IS NOT NULL) "
            "OR (status <> 'HELD' AND holder_token IS NULL AND hold_expires_at IS NULL)",
            name="ck_show_seats_hold_fields"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ShowSeat(id={self.id}, show_id={self.show_id}, "
            f"seat_id={self.seat_id}, status={self.status.value})>"
        )
