"""
Seat model for the fixed physical seats of a screen.
"""

import enum
import uuid
from typing import List, TYPE_CHECKING

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .screen import Screen
    from .show_seat import ShowSeat


class SeatType(enum.Enum):
    """Enumeration for seat class."""
    STANDARD = "standard"
    PREMIUM = "premium"
    RECLINER = "recliner"


class Seat(Base):
    """Seat model for the fixed physical seats of a screen.

    Seats are immutable once the screen is laid out; per-show availability
    lives in ShowSeat.
    """

    __tablename__ = "seats"

    screen_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("screens.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    row_number: Mapped[int] = mapped_column(Integer, nullable=False)
    seat_number: Mapped[int] = mapped_column(Integer, nullable=False)

    seat_type: Mapped[SeatType] = mapped_column(
        Enum(SeatType),
        default=SeatType.STANDARD,
        nullable=False
    )

    # Relationships
    screen: Mapped["Screen"] = relationship("Screen", back_populates="seats")

    show_seats: Mapped[List["ShowSeat"]] = relationship(
        "ShowSeat",
        back_populates="seat",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint(
            "screen_id", "row_number", "seat_number",
            name="uq_seats_screen_location"
        ),
        CheckConstraint("row_number > 0", name="ck_seats_row_positive"),
        CheckConstraint("seat_number > 0", name="ck_seats_number_positive"),
    )

    @property
    def row_label(self) -> str:
        """Row letter as printed on the seat map (1 -> A)."""
        return chr(ord("A") + self.row_number - 1)

    @property
    def label(self) -> str:
        """Get a human-readable seat identifier, e.g. A1."""
        return f"{self.row_label}{self.seat_number}"

    def __repr__(self) -> str:
        return (
            f"<Seat(id={self.id}, screen_id={self.screen_id}, "
            f"label='{self.label}', type={self.seat_type.value})>"
        )
