"""
Screen model describing a physical auditorium.
"""

from typing import List, TYPE_CHECKING

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .seat import Seat
    from .show import Show


class Screen(Base):
    """Screen model describing a physical auditorium."""

    __tablename__ = "screens"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    rows: Mapped[int] = mapped_column(Integer, nullable=False)
    seats_per_row: Mapped[int] = mapped_column(Integer, nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    seats: Mapped[List["Seat"]] = relationship(
        "Seat",
        back_populates="screen",
        cascade="all, delete-orphan",
        order_by="[Seat.row_number, Seat.seat_number]"
    )

    shows: Mapped[List["Show"]] = relationship("Show", back_populates="screen")

    __table_args__ = (
        CheckConstraint("rows > 0", name="ck_screens_rows_positive"),
        CheckConstraint("seats_per_row > 0", name="ck_screens_seats_per_row_positive"),
        CheckConstraint("total_seats = rows * seats_per_row", name="ck_screens_total_seats"),
    )

    def __repr__(self) -> str:
        return (
            f"<Screen(id={self.id}, name='{self.name}', "
            f"layout={self.rows}x{self.seats_per_row})>"
        )
