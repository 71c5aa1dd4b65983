"""
Booking record store: persistence of confirmed bookings.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import Booking, BookingSeat, Show
from ..utils.exceptions import BookingPersistenceError
from ..utils.retry import retry_on_transport_error, transport_guard

logger = logging.getLogger(__name__)


class BookingStore:
    """Writes and reads Booking records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: Booking) -> Booking:
        """
        Add a booking to the current transaction and flush it.

        The caller commits, so the booking and the seat transition it
        records become visible together.

        Raises:
            BookingPersistenceError: If the record violates a constraint
        """
        self.session.add(booking)
        try:
            await self.session.flush()
        except IntegrityError as e:
            logger.error(f"Integrity error while recording booking for show {booking.show_id}: {e.orig}")
            raise BookingPersistenceError("Failed to record booking") from e

        return booking

    @retry_on_transport_error()
    async def get(self, booking_id: UUID) -> Optional[Booking]:
        """Get a booking with its show and seats loaded."""
        async with transport_guard(self.session, "get_booking"):
            result = await self.session.execute(
                select(Booking)
                .options(*self._detail_options())
                .where(Booking.id == booking_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    @retry_on_transport_error()
    async def list_for_user(self, user_id: UUID, limit: int = 50, offset: int = 0) -> List[Booking]:
        """
        List a user's bookings, newest confirmation first.

        Args:
            user_id: User UUID
            limit: Page size
            offset: Page offset

        Returns:
            Bookings with their show and seats loaded
        """
        async with transport_guard(self.session, "list_bookings"):
            result = await self.session.execute(
                select(Booking)
                .options(*self._detail_options())
                .where(Booking.user_id == user_id)
                .order_by(Booking.confirmed_at.desc(), Booking.id)
                .limit(limit)
                .offset(offset)
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())

    @staticmethod
    def _detail_options():
        return (
            selectinload(Booking.show).selectinload(Show.movie),
            selectinload(Booking.show).selectinload(Show.screen),
            selectinload(Booking.booking_seats).selectinload(BookingSeat.seat),
        )
