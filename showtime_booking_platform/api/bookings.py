"""
Booking history API endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..schemas.booking import BookingListResponse, BookingResponse
from ..services import BookingStore
from ..utils.dependencies import get_booking_store, get_current_user_id
from ..utils.exceptions import BookingNotFoundError

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("", response_model=BookingListResponse)
async def list_my_bookings(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: UUID = Depends(get_current_user_id),
    store: BookingStore = Depends(get_booking_store)
):
    """List the current user's bookings, newest first."""
    bookings = await store.list_for_user(user_id, limit=limit, offset=offset)
    return BookingListResponse(
        bookings=[BookingResponse.from_booking(booking) for booking in bookings],
        limit=limit,
        offset=offset
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    store: BookingStore = Depends(get_booking_store)
):
    """Get one of the current user's bookings."""
    booking = await store.get(booking_id)
    # Other users' bookings are reported as missing
    if booking is None or booking.user_id != user_id:
        raise BookingNotFoundError(str(booking_id))
    return BookingResponse.from_booking(booking)
