"""
Show model for a movie screening in a screen over a time window.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .movie import Movie
    from .screen import Screen
    from .show_seat import ShowSeat
    from .booking import Booking


class Show(Base):
    """Show model for a movie screening in a screen over a time window."""

    __tablename__ = "shows"

    movie_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("movies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    screen_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("screens.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    show_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True
    )
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Ticket price applied to every seat of the show
    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal('0.00')
    )

    # Relationships
    movie: Mapped["Movie"] = relationship("Movie", back_populates="shows")
    screen: Mapped["Screen"] = relationship("Screen", back_populates="shows")

    show_seats: Mapped[List["ShowSeat"]] = relationship(
        "ShowSeat",
        back_populates="show",
        cascade="all, delete-orphan"
    )

    bookings: Mapped[List["Booking"]] = relationship("Booking", back_populates="show")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_shows_price_non_negative"),
        CheckConstraint("end_time > show_time", name="ck_shows_time_window"),
    )

    def __repr__(self) -> str:
        return (
            f"<Show(id={self.id}, movie_id={self.movie_id}, "
            f"screen_id={self.screen_id}, show_time={self.show_time})>"
        )
