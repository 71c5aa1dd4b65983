"""
Shared fixtures: an aiosqlite database per test, a controllable clock and a
seeded show.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict
from uuid import UUID

# Settings are read once at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["ENABLE_INPROCESS_SWEEPER"] = "false"
os.environ["READ_RETRY_ATTEMPTS"] = "2"
os.environ["READ_RETRY_BASE_DELAY"] = "0"

import pytest  # noqa: E402
from sqlalchemy import select  # noqa: E402

from showtime_booking_platform.database import create_database_engine, create_session_factory  # noqa: E402
from showtime_booking_platform.models import Base, Seat, SeatStatus, ShowSeat  # noqa: E402
from showtime_booking_platform.schemas.catalog import MovieCreate, ScreenCreate, ShowCreate  # noqa: E402
from showtime_booking_platform.services import CatalogService, ReservationCoordinator  # noqa: E402
from showtime_booking_platform.utils.auth import create_access_token  # noqa: E402

SHOW_PRICE = Decimal("12.50")


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@dataclass
class SeededShow:
    show_id: UUID
    movie_id: UUID
    screen_id: UUID
    price: Decimal
    seats: Dict[str, UUID]


@pytest.fixture
def clock():
    return FakeClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
async def engine(tmp_path):
    engine = create_database_engine(f"sqlite+aiosqlite:///{tmp_path / 'showtime.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def seeded_show(session_factory, clock) -> SeededShow:
    """A 2x5 screen (row B premium) showing one movie tomorrow."""
    async with session_factory() as session:
        catalog = CatalogService(session, clock)
        screen = await catalog.create_screen(
            ScreenCreate(name="Screen 1", rows=2, seats_per_row=5, premium_rows=[2])
        )
        movie = await catalog.create_movie(
            MovieCreate(title="Orbit of Sparrows", duration_minutes=120, genre="Sci-Fi")
        )
        show = await catalog.create_show(
            ShowCreate(
                movie_id=movie.id,
                screen_id=screen.id,
                show_time=clock.now + timedelta(days=1),
                price=SHOW_PRICE,
            )
        )

        result = await session.execute(select(Seat).where(Seat.screen_id == screen.id))
        seats = {seat.label: seat.id for seat in result.scalars().all()}

        return SeededShow(
            show_id=show.id,
            movie_id=movie.id,
            screen_id=screen.id,
            price=SHOW_PRICE,
            seats=seats,
        )


@pytest.fixture
async def new_coordinator(session_factory, clock):
    """Build coordinators on independent sessions, as concurrent requests would."""
    sessions = []

    def _make() -> ReservationCoordinator:
        session = session_factory()
        sessions.append(session)
        return ReservationCoordinator(session, clock)

    yield _make

    for session in sessions:
        await session.close()


@pytest.fixture
def seat_statuses(session_factory):
    """Read the current status of every seat of a show."""

    async def _read(show_id: UUID) -> Dict[UUID, SeatStatus]:
        async with session_factory() as session:
            result = await session.execute(
                select(ShowSeat.seat_id, ShowSeat.status).where(ShowSeat.show_id == show_id)
            )
            return {seat_id: status for seat_id, status in result.all()}

    return _read


@pytest.fixture
def auth_headers():
    def _headers(user_id: UUID) -> Dict[str, str]:
        token = create_access_token(user_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
