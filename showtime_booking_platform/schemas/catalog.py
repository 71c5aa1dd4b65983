"""
Catalogue schemas: movies, screens and shows.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MovieBase(BaseModel):
    """Base movie schema with common fields."""

    title: str = Field(..., min_length=1, max_length=255, description="Movie title")
    description: Optional[str] = Field(None, description="Synopsis")
    duration_minutes: int = Field(..., gt=0, description="Running time in minutes")
    genre: Optional[str] = Field(None, max_length=100)
    rating: Optional[str] = Field(None, max_length=20, description="Certification, e.g. PG-13")
    poster_url: Optional[str] = Field(None, max_length=500)
    release_date: Optional[date] = None


class MovieCreate(MovieBase):
    """Schema for creating a movie."""
    pass


class MovieResponse(MovieBase):
    """Schema for movie responses."""

    id: UUID

    model_config = ConfigDict(from_attributes=True)


class ScreenCreate(BaseModel):
    """Schema for creating a screen together with its seats."""

    name: str = Field(..., min_length=1, max_length=100)
    rows: int = Field(..., gt=0, le=26, description="Number of rows, labelled A-Z")
    seats_per_row: int = Field(..., gt=0, le=100)
    premium_rows: List[int] = Field(default_factory=list, description="Row numbers with premium seats")

    @model_validator(mode="after")
    def premium_rows_within_screen(self):
        """Validate that premium rows exist on the screen."""
        for row in self.premium_rows:
            if row < 1 or row > self.rows:
                raise ValueError(f"Premium row {row} is outside 1..{self.rows}")
        return self


class ScreenResponse(BaseModel):
    """Schema for screen responses."""

    id: UUID
    name: str
    rows: int
    seats_per_row: int
    total_seats: int

    model_config = ConfigDict(from_attributes=True)


class ShowCreate(BaseModel):
    """Schema for scheduling a show."""

    movie_id: UUID
    screen_id: UUID
    show_time: datetime
    end_time: Optional[datetime] = Field(None, description="Defaults to show_time plus the movie's running time")
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)

    @model_validator(mode="after")
    def end_after_start(self):
        """Validate the time window."""
        if self.show_time.tzinfo is None:
            raise ValueError("show_time must include a timezone")
        if self.end_time is not None:
            if self.end_time.tzinfo is None:
                raise ValueError("end_time must include a timezone")
            if self.end_time <= self.show_time:
                raise ValueError("end_time must be after show_time")
        return self


class ShowResponse(BaseModel):
    """Schema for show responses."""

    id: UUID
    movie_id: UUID
    screen_id: UUID
    show_time: datetime
    end_time: datetime
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class ShowDetailResponse(ShowResponse):
    """Show with its movie and screen, as rendered on the booking page."""

    movie: MovieResponse
    screen: ScreenResponse
