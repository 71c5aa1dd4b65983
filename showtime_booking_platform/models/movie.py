"""
Movie model for the film catalogue.
"""

from datetime import date
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .show import Show


class Movie(Base):
    """Movie model for the film catalogue."""

    __tablename__ = "movies"

    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    genre: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    rating: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    poster_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    release_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Relationships
    shows: Mapped[List["Show"]] = relationship(
        "Show",
        back_populates="movie",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_movies_duration_positive"),
    )

    def __repr__(self) -> str:
        return f"<Movie(id={self.id}, title='{self.title}')>"
