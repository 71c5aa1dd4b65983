"""
Pydantic schemas for seat maps and seat holds.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from ..models.seat import SeatType
from ..models.show_seat import SeatStatus


class SeatStateResponse(BaseModel):
    """One seat of a show's seat map."""

    seat_id: UUID
    label: str = Field(..., description="Row letter and seat number, e.g. A1")
    row_number: int
    seat_number: int
    seat_type: SeatType
    status: SeatStatus


class SeatRowResponse(BaseModel):
    """One row of a seat map."""

    row_label: str
    seats: List[SeatStateResponse]


class SeatMapResponse(BaseModel):
    """Schema for seat map response."""

    show_id: UUID
    rows: List[SeatRowResponse]
    total_seats: int
    available_seats: int
    held_seats: int
    booked_seats: int


class HoldRequest(BaseModel):
    """Schema for holding seats of a show."""

    seat_ids: List[UUID] = Field(..., min_length=1, description="Seats to hold")
    ttl_seconds: Optional[int] = Field(None, ge=1, description="Hold lifetime, defaults to the server setting")

    @field_validator('seat_ids')
    @classmethod
    def seat_ids_must_be_distinct(cls, v):
        """Validate that no seat is requested twice."""
        if len(set(v)) != len(v):
            raise ValueError("Seat IDs must be distinct")
        return v


class HoldTicketSchema(BaseModel):
    """A hold ticket as exchanged with the client.

    Returned by the hold endpoint and sent back verbatim to confirm or cancel.
    """

    show_id: UUID
    user_id: UUID
    seat_ids: List[UUID] = Field(..., min_length=1)
    holder_token: str = Field(..., min_length=1, max_length=64)
    expires_at: datetime

    model_config = {"from_attributes": True}


class CancelHoldResponse(BaseModel):
    """Response for a cancelled hold."""

    released_seats: int
    message: str = "Hold released"
