"""
Reservation coordinator: the public hold, confirm and cancel operations.

Each operation runs as a single transaction over the seat ledger and the
booking store. A confirmation writes the seat transition and the booking
record together or not at all.
"""

import logging
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..cache import CacheInvalidator
from ..config import get_settings
from ..models import Booking, BookingSeat, BookingStatus, Seat, Show, ShowSeat
from ..utils.clock import Clock, ensure_utc, utcnow
from ..utils.exceptions import (
    HoldExpiredError,
    SeatConflictError,
    ShowNotFoundError,
    ValidationError,
)
from ..utils.logging_config import log_business_event
from ..utils.retry import retry_on_transport_error, transport_guard
from .booking_store import BookingStore
from .seat_ledger import SeatLedger

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class HoldTicket:
    """Proof of a successful hold, returned to the client in full."""
    show_id: UUID
    user_id: UUID
    seat_ids: Tuple[UUID, ...]
    holder_token: str
    expires_at: datetime


def compute_total(price: Decimal, seat_count: int) -> Decimal:
    """Total charged for ``seat_count`` seats at ``price``, rounded to cents."""
    return (Decimal(price) * seat_count).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class ReservationCoordinator:
    """Orchestrates seat holds and their confirmation into bookings."""

    def __init__(self, session: AsyncSession, clock: Clock = utcnow):
        self.session = session
        self.settings = get_settings()
        self.clock = clock
        self.ledger = SeatLedger(session, clock)
        self.bookings = BookingStore(session)

    async def hold_seats(
        self,
        show_id: UUID,
        user_id: UUID,
        seat_ids: Sequence[UUID],
        ttl_seconds: Optional[int] = None
    ) -> HoldTicket:
        """
        Hold a set of seats for a user, all or nothing.

        Args:
            show_id: Show UUID
            user_id: Identifier of the requesting user
            seat_ids: Seats to hold
            ttl_seconds: Hold lifetime, defaults to the configured TTL

        Returns:
            HoldTicket carrying the holder token and expiry

        Raises:
            ValidationError: If the request is malformed
            ShowNotFoundError: If the show does not exist
            SeatConflictError: If any seat is held by someone else or booked
            TransportError: If the store could not be reached
        """
        ttl = self._validate_ttl(ttl_seconds)
        requested = self._validate_seat_ids(seat_ids)

        logger.info(f"Holding {len(requested)} seats for user {user_id}, show {show_id}")

        holder_token = secrets.token_urlsafe(32)

        async with self._unit_of_work("hold_seats"):
            show = await self._get_show(show_id)
            await self._validate_seats_on_screen(show, requested)
            held = await self.ledger.try_hold(show_id, requested, holder_token, ttl)

        # All rows of one hold share an expiry
        expires_at = ensure_utc(held[0].hold_expires_at)

        await CacheInvalidator.invalidate_seat_caches(str(show_id))
        log_business_event(
            "seats_held",
            {"show_id": str(show_id), "seat_count": len(requested), "expires_at": expires_at.isoformat()},
            user_id=str(user_id)
        )

        return HoldTicket(
            show_id=show_id,
            user_id=user_id,
            seat_ids=tuple(requested),
            holder_token=holder_token,
            expires_at=expires_at
        )

    async def confirm_booking(self, ticket: HoldTicket) -> Booking:
        """
        Turn a live hold into a confirmed booking.

        The seat transition and the booking record commit together. A
        transport failure is reported as TransportError and never retried
        here: the client should look up its bookings before trying again.

        Args:
            ticket: Ticket returned by hold_seats

        Returns:
            The confirmed booking with its seats

        Raises:
            HoldExpiredError: If the hold lapsed before confirmation
            SeatConflictError: If any seat is booked or held under another token
            BookingPersistenceError: If the booking record could not be written
            TransportError: If the store could not be reached
        """
        seat_ids = self._validate_seat_ids(ticket.seat_ids)

        logger.info(f"Confirming hold on {len(seat_ids)} seats for user {ticket.user_id}, show {ticket.show_id}")

        try:
            async with self._unit_of_work("confirm_booking"):
                show = await self._get_show(ticket.show_id)
                show_seats = await self.ledger.confirm(ticket.show_id, seat_ids, ticket.holder_token)
                booking = await self.bookings.create(
                    self._build_booking(ticket, show, show_seats)
                )
        except SeatConflictError as e:
            # Seats re-taken after this hold lapsed and was swept. The swept rows
            # no longer carry the old expiry, so the ticket's is used; it only
            # picks which error is reported, the ledger alone decides the outcome.
            if ensure_utc(ticket.expires_at) <= self.clock():
                raise HoldExpiredError(ticket.show_id, e.conflicting_seat_ids) from e
            raise

        await CacheInvalidator.invalidate_seat_caches(str(ticket.show_id))
        log_business_event(
            "booking_confirmed",
            {
                "booking_id": str(booking.id),
                "show_id": str(ticket.show_id),
                "seat_count": booking.seat_count,
                "total_amount": str(booking.total_amount),
            },
            user_id=str(ticket.user_id)
        )

        logger.info(f"Booking {booking.id} confirmed")
        return booking

    @retry_on_transport_error()
    async def cancel_hold(self, ticket: HoldTicket) -> int:
        """
        Release the seats of a hold.

        Idempotent: seats already released, swept or booked are untouched.

        Returns:
            Number of seats returned to available
        """
        async with self._unit_of_work("cancel_hold"):
            released = await self.ledger.release(
                ticket.show_id, list(ticket.seat_ids), ticket.holder_token
            )

        if released:
            await CacheInvalidator.invalidate_seat_caches(str(ticket.show_id))
            log_business_event(
                "hold_cancelled",
                {"show_id": str(ticket.show_id), "seat_count": released},
                user_id=str(ticket.user_id)
            )

        return released

    async def get_states(self, show_id: UUID) -> List[ShowSeat]:
        """Current seat states of a show, for rendering."""
        return await self.ledger.get_states(show_id)

    @asynccontextmanager
    async def _unit_of_work(self, operation: str):
        """Commit on success, roll back on any error."""
        async with transport_guard(self.session, operation):
            try:
                yield
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

    async def _get_show(self, show_id: UUID) -> Show:
        result = await self.session.execute(
            select(Show)
            .options(selectinload(Show.movie), selectinload(Show.screen))
            .where(Show.id == show_id)
        )
        show = result.scalar_one_or_none()
        if not show:
            raise ShowNotFoundError(str(show_id))
        return show

    async def _validate_seats_on_screen(self, show: Show, seat_ids: List[UUID]) -> None:
        result = await self.session.execute(
            select(Seat.id).where(
                and_(
                    Seat.screen_id == show.screen_id,
                    Seat.id.in_(seat_ids)
                )
            )
        )
        found = set(result.scalars().all())
        invalid = [str(seat_id) for seat_id in seat_ids if seat_id not in found]
        if invalid:
            raise ValidationError(
                "Some seats do not belong to this show's screen",
                field_errors={"seat_ids": [f"Unknown seat {seat_id}" for seat_id in invalid]},
                details={"show_id": str(show.id), "invalid_seat_ids": invalid}
            )

    def _validate_seat_ids(self, seat_ids: Sequence[UUID]) -> List[UUID]:
        requested = list(seat_ids)

        if not requested:
            raise ValidationError(
                "Select at least one seat",
                field_errors={"seat_ids": ["Must not be empty"]}
            )

        if len(requested) > self.settings.max_seats_per_hold:
            raise ValidationError(
                f"At most {self.settings.max_seats_per_hold} seats can be held at once",
                field_errors={"seat_ids": [f"Must contain at most {self.settings.max_seats_per_hold} seats"]}
            )

        if len(set(requested)) != len(requested):
            raise ValidationError(
                "Seat selection contains duplicates",
                field_errors={"seat_ids": ["Seats must be distinct"]}
            )

        return requested

    def _validate_ttl(self, ttl_seconds: Optional[int]) -> timedelta:
        if ttl_seconds is None:
            ttl_seconds = self.settings.hold_ttl_seconds

        if ttl_seconds < 1 or ttl_seconds > self.settings.max_hold_ttl_seconds:
            raise ValidationError(
                f"Hold TTL must be between 1 and {self.settings.max_hold_ttl_seconds} seconds",
                field_errors={"ttl_seconds": ["Out of range"]}
            )

        return timedelta(seconds=ttl_seconds)

    def _build_booking(self, ticket: HoldTicket, show: Show, show_seats: List[ShowSeat]) -> Booking:
        return Booking(
            id=uuid4(),
            user_id=ticket.user_id,
            show_id=show.id,
            show=show,
            seat_count=len(show_seats),
            total_amount=compute_total(show.price, len(show_seats)),
            status=BookingStatus.CONFIRMED,
            confirmed_at=self.clock(),
            booking_seats=[
                BookingSeat(
                    seat_id=show_seat.seat_id,
                    seat=show_seat.seat,
                    show_seat_id=show_seat.id,
                    show_seat=show_seat
                )
                for show_seat in show_seats
            ]
        )
