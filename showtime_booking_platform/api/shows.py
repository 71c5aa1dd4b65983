"""
Show, seat map and seat hold API endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..schemas.catalog import ShowDetailResponse
from ..schemas.common import RESERVATION_ERROR_RESPONSES
from ..schemas.seat import HoldRequest, HoldTicketSchema, SeatMapResponse
from ..services import CatalogService, ReservationCoordinator
from ..utils.dependencies import (
    get_catalog_service,
    get_current_user_id,
    get_reservation_coordinator,
)

router = APIRouter(prefix="/shows", tags=["shows"])


@router.get("/{show_id}", response_model=ShowDetailResponse)
async def get_show(show_id: UUID, catalog: CatalogService = Depends(get_catalog_service)):
    """Get a show with its movie and screen."""
    return await catalog.get_show(show_id)


@router.get("/{show_id}/seats", response_model=SeatMapResponse)
async def get_seat_map(show_id: UUID, catalog: CatalogService = Depends(get_catalog_service)):
    """
    Get the seat map of a show.

    Every seat is reported as available, held or booked. The map may lag a
    concurrent hold by a few seconds; a hold request is always checked
    against the current state.
    """
    return await catalog.get_seat_map(show_id)


@router.post(
    "/{show_id}/holds",
    response_model=HoldTicketSchema,
    status_code=status.HTTP_201_CREATED,
    responses=RESERVATION_ERROR_RESPONSES
)
async def hold_seats(
    show_id: UUID,
    hold_request: HoldRequest,
    user_id: UUID = Depends(get_current_user_id),
    coordinator: ReservationCoordinator = Depends(get_reservation_coordinator)
):
    """
    Hold the selected seats for the current user.

    All seats are held or none are. The returned ticket must be sent back
    unchanged to confirm or cancel the hold before it expires.

    Errors:
        409 SEAT_CONFLICT with the conflicting seat ids,
        422 VALIDATION_ERROR, 404 NOT_FOUND, 503 TRANSPORT_ERROR
    """
    ticket = await coordinator.hold_seats(
        show_id,
        user_id,
        hold_request.seat_ids,
        ttl_seconds=hold_request.ttl_seconds
    )
    return HoldTicketSchema(
        show_id=ticket.show_id,
        user_id=ticket.user_id,
        seat_ids=list(ticket.seat_ids),
        holder_token=ticket.holder_token,
        expires_at=ticket.expires_at
    )
