"""
Hold confirmation and cancellation API endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..schemas.booking import BookingResponse
from ..schemas.common import RESERVATION_ERROR_RESPONSES
from ..schemas.seat import CancelHoldResponse, HoldTicketSchema
from ..services import HoldTicket, ReservationCoordinator
from ..utils.dependencies import get_current_user_id, get_reservation_coordinator
from ..utils.exceptions import AuthorizationError

router = APIRouter(prefix="/holds", tags=["holds"])


def _ticket_for_user(ticket: HoldTicketSchema, user_id: UUID) -> HoldTicket:
    """Convert a client ticket, rejecting tickets issued to another user."""
    if ticket.user_id != user_id:
        raise AuthorizationError("This hold belongs to another user")

    return HoldTicket(
        show_id=ticket.show_id,
        user_id=ticket.user_id,
        seat_ids=tuple(ticket.seat_ids),
        holder_token=ticket.holder_token,
        expires_at=ticket.expires_at
    )


@router.post(
    "/confirm",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses=RESERVATION_ERROR_RESPONSES
)
async def confirm_booking(
    ticket: HoldTicketSchema,
    user_id: UUID = Depends(get_current_user_id),
    coordinator: ReservationCoordinator = Depends(get_reservation_coordinator)
):
    """
    Confirm a hold into a booking.

    Errors:
        410 HOLD_EXPIRED if the hold lapsed,
        409 SEAT_CONFLICT if a seat was taken by someone else,
        503 TRANSPORT_ERROR if the outcome is unknown; check GET /bookings
        before confirming again
    """
    booking = await coordinator.confirm_booking(_ticket_for_user(ticket, user_id))
    return BookingResponse.from_booking(booking)


@router.post("/cancel", response_model=CancelHoldResponse, responses=RESERVATION_ERROR_RESPONSES)
async def cancel_hold(
    ticket: HoldTicketSchema,
    user_id: UUID = Depends(get_current_user_id),
    coordinator: ReservationCoordinator = Depends(get_reservation_coordinator)
):
    """Release a hold. Cancelling an expired or already cancelled hold succeeds."""
    released = await coordinator.cancel_hold(_ticket_for_user(ticket, user_id))
    return CancelHoldResponse(released_seats=released)
