"""
Expiry sweeper: returns lapsed holds to available.
"""

import asyncio
import logging
from typing import Optional, Set
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..cache import CacheInvalidator
from ..config import get_settings
from ..utils.clock import Clock, utcnow
from ..utils.exceptions import TransportError
from ..utils.logging_config import log_business_event, log_performance
from ..utils.retry import transport_guard
from .seat_ledger import SeatLedger

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Periodically releases held seats whose expiry has passed.

    Each release re-checks token and expiry inside the conditional update, so
    a sweep racing a confirmation or a fresh hold never frees a live seat.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        interval_seconds: Optional[float] = None,
        batch_size: Optional[int] = None,
        clock: Clock = utcnow
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.hold_sweep_interval_seconds
        )
        self.batch_size = batch_size if batch_size is not None else settings.hold_sweep_batch_size
        self.clock = clock
        self.running = False
        self._task: Optional[asyncio.Task] = None

    async def sweep_once(self) -> int:
        """
        Release every hold that expired at or before now.

        Returns:
            Number of seats returned to available
        """
        started = asyncio.get_running_loop().time()
        now = self.clock()
        released = 0
        touched_shows: Set[UUID] = set()

        async with self.session_factory() as session:
            ledger = SeatLedger(session, self.clock)
            expired_holds = await ledger.find_expired_holds(now, self.batch_size)

            for hold in expired_holds:
                try:
                    async with transport_guard(session, "sweep_expired_holds"):
                        try:
                            count = await ledger.release(
                                hold.show_id,
                                hold.seat_ids,
                                hold.holder_token,
                                expired_before=now
                            )
                            await session.commit()
                        except Exception:
                            await session.rollback()
                            raise
                except TransportError as e:
                    # Left for the next pass
                    logger.error(f"Failed to release expired hold on show {hold.show_id}: {e}")
                    continue

                released += count
                if count:
                    touched_shows.add(hold.show_id)

        for show_id in touched_shows:
            await CacheInvalidator.invalidate_seat_caches(str(show_id))

        if released:
            log_business_event(
                "holds_expired",
                {"seat_count": released, "show_count": len(touched_shows)}
            )
            log_performance("sweep_expired_holds", asyncio.get_running_loop().time() - started, seat_count=released)

        return released

    async def run(self) -> None:
        """Sweep on a fixed interval until stopped."""
        logger.info(f"Expiry sweeper running every {self.interval_seconds}s")

        while self.running:
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error(f"Expiry sweep failed: {e}", exc_info=True)

            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start the sweep loop as a background task of the running event loop."""
        if self.running:
            return

        self.running = True
        self._task = asyncio.create_task(self.run(), name="expiry-sweeper")
        logger.info("Expiry sweeper started")

    async def stop(self) -> None:
        """Stop the sweep loop and wait for it to finish."""
        if not self.running:
            return

        self.running = False

        if self._task and not self._task.done():
            self._task.cancel()

        if self._task:
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

        logger.info("Expiry sweeper stopped")
