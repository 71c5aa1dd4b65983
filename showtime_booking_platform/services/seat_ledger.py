"""
Seat ledger: the durable per-show seat state and its atomic transitions.

Every transition is a conditional update over the whole requested seat set,
preceded by row locks taken in seat id order, so two concurrent requests for
the same seat serialize and exactly one of them observes it as available. The
ledger never commits; the caller owns the transaction and must roll it back
when any method raises.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import and_, case, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, selectinload

from ..models import Seat, SeatStatus, ShowSeat
from ..utils.clock import Clock, utcnow
from ..utils.exceptions import HoldExpiredError, SeatConflictError, ValidationError
from ..utils.retry import retry_on_transport_error, transport_guard

logger = logging.getLogger(__name__)


@dataclass
class ExpiredHold:
    """Seats of one lapsed hold, as found by the sweeper."""
    show_id: UUID
    holder_token: str
    seat_ids: List[UUID] = field(default_factory=list)


class SeatLedger:
    """Owns every mutation of ShowSeat rows."""

    def __init__(self, session: AsyncSession, clock: Clock = utcnow):
        self.session = session
        self.clock = clock

    @retry_on_transport_error()
    async def get_states(self, show_id: UUID) -> List[ShowSeat]:
        """
        Get the seat states of a show ordered by row and seat number.

        Args:
            show_id: Show UUID

        Returns:
            ShowSeat rows with their physical seat loaded
        """
        async with transport_guard(self.session, "get_states"):
            result = await self.session.execute(
                select(ShowSeat)
                .join(ShowSeat.seat)
                .options(contains_eager(ShowSeat.seat))
                .where(ShowSeat.show_id == show_id)
                .order_by(Seat.row_number, Seat.seat_number)
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())

    async def try_hold(
        self,
        show_id: UUID,
        seat_ids: Sequence[UUID],
        holder_token: str,
        ttl: timedelta
    ) -> List[ShowSeat]:
        """
        Move every requested seat from available to held, or none of them.

        Args:
            show_id: Show UUID
            seat_ids: Distinct seat UUIDs to hold
            holder_token: Opaque token identifying the hold
            ttl: How long the hold lasts

        Returns:
            The held ShowSeat rows

        Raises:
            SeatConflictError: If any seat is not available; lists all of them
            ValidationError: If a seat has no state row for this show
        """
        expires_at = self.clock() + ttl

        rows = await self._lock_rows(show_id, seat_ids)
        conflicting = [row.seat_id for row in rows if row.status != SeatStatus.AVAILABLE]
        if conflicting:
            raise SeatConflictError(show_id, conflicting)

        result = await self.session.execute(
            update(ShowSeat)
            .where(
                and_(
                    ShowSeat.show_id == show_id,
                    ShowSeat.seat_id.in_(seat_ids),
                    ShowSeat.status == SeatStatus.AVAILABLE
                )
            )
            .values(
                status=SeatStatus.HELD,
                holder_token=holder_token,
                hold_expires_at=expires_at
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != len(seat_ids):
            # Some seat changed between the lock read and the update
            raise SeatConflictError(show_id, await self._unavailable_seat_ids(show_id, seat_ids))

        return await self._reload(show_id, seat_ids)

    async def confirm(
        self,
        show_id: UUID,
        seat_ids: Sequence[UUID],
        holder_token: str
    ) -> List[ShowSeat]:
        """
        Move every seat held by ``holder_token`` to booked.

        A hold is valid only if it has not expired at the moment of the
        conditional update; confirm never succeeds for part of the set.

        Args:
            show_id: Show UUID
            seat_ids: Seat UUIDs of the hold
            holder_token: Token presented by the client

        Returns:
            The booked ShowSeat rows with their seats loaded

        Raises:
            SeatConflictError: If any seat is booked or held under another token
            HoldExpiredError: If the hold lapsed or was already released
            ValidationError: If a seat has no state row for this show
        """
        now = self.clock()
        hold_is_live = and_(
            ShowSeat.status == SeatStatus.HELD,
            ShowSeat.holder_token == holder_token,
            ShowSeat.hold_expires_at > now
        )

        result = await self.session.execute(
            select(ShowSeat, case((hold_is_live, True), else_=False).label("hold_live"))
            .where(
                and_(
                    ShowSeat.show_id == show_id,
                    ShowSeat.seat_id.in_(seat_ids)
                )
            )
            .order_by(ShowSeat.seat_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        rows: List[Tuple[ShowSeat, bool]] = [(row[0], bool(row[1])) for row in result.all()]
        self._ensure_complete(show_id, seat_ids, [show_seat for show_seat, _ in rows])

        conflicting = []
        expired = []
        for show_seat, hold_live in rows:
            if show_seat.status == SeatStatus.BOOKED or (
                show_seat.status == SeatStatus.HELD and show_seat.holder_token != holder_token
            ):
                conflicting.append(show_seat.seat_id)
            elif not hold_live:
                expired.append(show_seat.seat_id)

        if conflicting:
            raise SeatConflictError(show_id, conflicting)
        if expired:
            raise HoldExpiredError(show_id, expired)

        result = await self.session.execute(
            update(ShowSeat)
            .where(
                and_(
                    ShowSeat.show_id == show_id,
                    ShowSeat.seat_id.in_(seat_ids),
                    hold_is_live
                )
            )
            .values(
                status=SeatStatus.BOOKED,
                holder_token=None,
                hold_expires_at=None
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != len(seat_ids):
            raise HoldExpiredError(show_id, seat_ids)

        return await self._reload(show_id, seat_ids)

    async def release(
        self,
        show_id: UUID,
        seat_ids: Sequence[UUID],
        holder_token: str,
        expired_before: Optional[datetime] = None
    ) -> int:
        """
        Return seats held by ``holder_token`` to available.

        Idempotent: seats that are available, booked or held under another
        token are left untouched.

        Args:
            show_id: Show UUID
            seat_ids: Seat UUIDs of the hold
            holder_token: Token of the hold to release
            expired_before: Only release holds that expired at or before this time

        Returns:
            Number of seats released
        """
        conditions = [
            ShowSeat.show_id == show_id,
            ShowSeat.seat_id.in_(seat_ids),
            ShowSeat.status == SeatStatus.HELD,
            ShowSeat.holder_token == holder_token,
        ]
        if expired_before is not None:
            conditions.append(ShowSeat.hold_expires_at <= expired_before)

        result = await self.session.execute(
            update(ShowSeat)
            .where(and_(*conditions))
            .values(
                status=SeatStatus.AVAILABLE,
                holder_token=None,
                hold_expires_at=None
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @retry_on_transport_error()
    async def find_expired_holds(self, now: datetime, limit: int = 500) -> List[ExpiredHold]:
        """
        Find held seats whose expiry is at or before ``now``.

        Args:
            now: Cut-off time
            limit: Maximum number of seats to return

        Returns:
            Expired holds grouped by show and holder token
        """
        async with transport_guard(self.session, "find_expired_holds"):
            result = await self.session.execute(
                select(ShowSeat.show_id, ShowSeat.holder_token, ShowSeat.seat_id)
                .where(
                    and_(
                        ShowSeat.status == SeatStatus.HELD,
                        ShowSeat.hold_expires_at <= now
                    )
                )
                .order_by(ShowSeat.hold_expires_at)
                .limit(limit)
            )
            rows = result.all()

        holds: Dict[Tuple[UUID, str], ExpiredHold] = {}
        for show_id, holder_token, seat_id in rows:
            key = (show_id, holder_token)
            if key not in holds:
                holds[key] = ExpiredHold(show_id=show_id, holder_token=holder_token)
            holds[key].seat_ids.append(seat_id)

        return list(holds.values())

    async def _lock_rows(self, show_id: UUID, seat_ids: Sequence[UUID]) -> List[ShowSeat]:
        """Lock the state rows of the requested seats in seat id order."""
        result = await self.session.execute(
            select(ShowSeat)
            .where(
                and_(
                    ShowSeat.show_id == show_id,
                    ShowSeat.seat_id.in_(seat_ids)
                )
            )
            .order_by(ShowSeat.seat_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        rows = list(result.scalars().all())
        self._ensure_complete(show_id, seat_ids, rows)
        return rows

    def _ensure_complete(self, show_id: UUID, seat_ids: Sequence[UUID], rows: Sequence[ShowSeat]) -> None:
        found = {row.seat_id for row in rows}
        missing = [str(seat_id) for seat_id in seat_ids if seat_id not in found]
        if missing:
            raise ValidationError(
                f"Seats are not part of show {show_id}",
                details={"show_id": str(show_id), "invalid_seat_ids": missing}
            )

    async def _unavailable_seat_ids(self, show_id: UUID, seat_ids: Sequence[UUID]) -> List[UUID]:
        result = await self.session.execute(
            select(ShowSeat.seat_id)
            .where(
                and_(
                    ShowSeat.show_id == show_id,
                    ShowSeat.seat_id.in_(seat_ids),
                    ShowSeat.status != SeatStatus.AVAILABLE
                )
            )
        )
        return list(result.scalars().all())

    async def _reload(self, show_id: UUID, seat_ids: Sequence[UUID]) -> List[ShowSeat]:
        result = await self.session.execute(
            select(ShowSeat)
            .options(selectinload(ShowSeat.seat))
            .where(
                and_(
                    ShowSeat.show_id == show_id,
                    ShowSeat.seat_id.in_(seat_ids)
                )
            )
            .order_by(ShowSeat.seat_id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
