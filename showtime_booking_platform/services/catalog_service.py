"""
Catalogue service: movies, screens, shows and show seat maps.
"""

import logging
from datetime import timedelta
from itertools import groupby
from typing import List
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..cache import get_cache, CacheKeyBuilder, CacheTTL, CacheInvalidator
from ..config import get_settings
from ..models import Movie, Screen, Seat, SeatStatus, SeatType, Show, ShowSeat
from ..schemas.catalog import MovieCreate, MovieResponse, ScreenCreate, ShowCreate, ShowResponse
from ..schemas.seat import SeatMapResponse, SeatRowResponse, SeatStateResponse
from ..utils.clock import Clock, utcnow
from ..utils.exceptions import (
    MovieNotFoundError,
    ScreenNotFoundError,
    ShowNotFoundError,
    ValidationError
)
from ..utils.retry import retry_on_transport_error, transport_guard
from .seat_ledger import SeatLedger

logger = logging.getLogger(__name__)


class CatalogService:
    """Service class for the movie catalogue and show schedule."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        """Initialize the catalogue service with database session."""
        self.db = db
        self.clock = clock
        self.settings = get_settings()
        self.cache = get_cache()

    @retry_on_transport_error()
    async def list_movies(self) -> List[MovieResponse]:
        """
        List all movies, newest first.

        Returns:
            Movies ordered by release date, then creation time
        """
        cache_key = CacheKeyBuilder.movie_list()
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return [MovieResponse.model_validate(item) for item in cached]

        async with transport_guard(self.db, "list_movies"):
            result = await self.db.execute(
                select(Movie).order_by(
                    Movie.release_date.desc().nulls_last(),
                    Movie.created_at.desc()
                )
            )
            movies = [MovieResponse.model_validate(movie) for movie in result.scalars().all()]

        await self.cache.set(
            cache_key,
            [movie.model_dump(mode="json") for movie in movies],
            CacheTTL.MOVIE_LIST
        )
        return movies

    @retry_on_transport_error()
    async def get_movie(self, movie_id: UUID) -> Movie:
        """
        Get movie by ID.

        Raises:
            MovieNotFoundError: If movie is not found
        """
        async with transport_guard(self.db, "get_movie"):
            movie = await self.db.get(Movie, movie_id)
        if not movie:
            raise MovieNotFoundError(str(movie_id))
        return movie

    @retry_on_transport_error()
    async def list_upcoming_shows(self, movie_id: UUID) -> List[ShowResponse]:
        """
        List shows of a movie that have not started yet, soonest first.

        Args:
            movie_id: Movie UUID

        Returns:
            Upcoming shows

        Raises:
            MovieNotFoundError: If movie is not found
        """
        cache_key = CacheKeyBuilder.upcoming_shows(str(movie_id))
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return [ShowResponse.model_validate(item) for item in cached]

        await self.get_movie(movie_id)

        async with transport_guard(self.db, "list_upcoming_shows"):
            result = await self.db.execute(
                select(Show)
                .where(
                    and_(
                        Show.movie_id == movie_id,
                        Show.show_time >= self.clock()
                    )
                )
                .order_by(Show.show_time)
            )
            shows = [ShowResponse.model_validate(show) for show in result.scalars().all()]

        await self.cache.set(
            cache_key,
            [show.model_dump(mode="json") for show in shows],
            CacheTTL.UPCOMING_SHOWS
        )
        return shows

    @retry_on_transport_error()
    async def get_show(self, show_id: UUID) -> Show:
        """
        Get a show with its movie and screen loaded.

        Raises:
            ShowNotFoundError: If show is not found
        """
        async with transport_guard(self.db, "get_show"):
            result = await self.db.execute(
                select(Show)
                .options(selectinload(Show.movie), selectinload(Show.screen))
                .where(Show.id == show_id)
            )
            show = result.scalar_one_or_none()
        if not show:
            raise ShowNotFoundError(str(show_id))
        return show

    async def get_seat_map(self, show_id: UUID) -> SeatMapResponse:
        """
        Get the seat map of a show, grouped by row.

        Served from a short-lived cache that every seat transition
        invalidates.

        Raises:
            ShowNotFoundError: If show is not found
        """
        cache_key = CacheKeyBuilder.seat_map(str(show_id))
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return SeatMapResponse.model_validate(cached)

        await self.get_show(show_id)
        states = await SeatLedger(self.db, self.clock).get_states(show_id)
        seat_map = self._build_seat_map(show_id, states)

        await self.cache.set(
            cache_key,
            seat_map.model_dump(mode="json"),
            self.settings.seat_map_cache_ttl_seconds
        )
        return seat_map

    async def create_movie(self, movie_data: MovieCreate) -> Movie:
        """Create a new movie."""
        movie = Movie(**movie_data.model_dump())

        try:
            self.db.add(movie)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to create movie: {e.orig}") from e

        await CacheInvalidator.invalidate_movie_caches()
        logger.info(f"Created movie {movie.id} '{movie.title}'")
        return movie

    async def create_screen(self, screen_data: ScreenCreate) -> Screen:
        """
        Create a screen and its rows x seats_per_row seats.

        Raises:
            ValidationError: If a screen with the same name exists
        """
        premium_rows = set(screen_data.premium_rows)
        screen = Screen(
            name=screen_data.name,
            rows=screen_data.rows,
            seats_per_row=screen_data.seats_per_row,
            total_seats=screen_data.rows * screen_data.seats_per_row,
            seats=[
                Seat(
                    row_number=row,
                    seat_number=number,
                    seat_type=SeatType.PREMIUM if row in premium_rows else SeatType.STANDARD
                )
                for row in range(1, screen_data.rows + 1)
                for number in range(1, screen_data.seats_per_row + 1)
            ]
        )

        try:
            self.db.add(screen)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError(
                f"Failed to create screen: {e.orig}",
                field_errors={"name": ["Screen name must be unique"]}
            ) from e

        logger.info(f"Created screen {screen.id} '{screen.name}' with {screen.total_seats} seats")
        return screen

    async def create_show(self, show_data: ShowCreate) -> Show:
        """
        Schedule a show and create one available seat state per screen seat.

        Args:
            show_data: Show creation data

        Returns:
            Created show

        Raises:
            MovieNotFoundError: If movie is not found
            ScreenNotFoundError: If screen is not found
            ValidationError: If the show overlaps another show on the screen
        """
        movie = await self.get_movie(show_data.movie_id)
        screen = await self.db.get(Screen, show_data.screen_id)
        if not screen:
            raise ScreenNotFoundError(str(show_data.screen_id))

        end_time = show_data.end_time or show_data.show_time + timedelta(minutes=movie.duration_minutes)

        overlapping = await self.db.scalar(
            select(func.count(Show.id)).where(
                and_(
                    Show.screen_id == screen.id,
                    Show.show_time < end_time,
                    Show.end_time > show_data.show_time
                )
            )
        )
        if overlapping:
            raise ValidationError(
                f"Screen '{screen.name}' already has a show in that time window",
                field_errors={"show_time": ["Overlaps another show on this screen"]}
            )

        seat_ids = (
            await self.db.execute(select(Seat.id).where(Seat.screen_id == screen.id))
        ).scalars().all()

        show = Show(
            movie_id=movie.id,
            screen_id=screen.id,
            show_time=show_data.show_time,
            end_time=end_time,
            price=show_data.price,
            show_seats=[
                ShowSeat(seat_id=seat_id, status=SeatStatus.AVAILABLE)
                for seat_id in seat_ids
            ]
        )

        try:
            self.db.add(show)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to create show: {e.orig}") from e

        await CacheInvalidator.invalidate_show_caches(str(movie.id))
        logger.info(f"Scheduled show {show.id} of '{movie.title}' on '{screen.name}' with {len(seat_ids)} seats")
        return show

    @staticmethod
    def _build_seat_map(show_id: UUID, states: List[ShowSeat]) -> SeatMapResponse:
        counts = {status: 0 for status in SeatStatus}
        rows = []

        for row_number, row_group in groupby(states, key=lambda state: state.seat.row_number):
            row_states = list(row_group)
            seats = []
            for state in row_states:
                counts[state.status] += 1
                seats.append(
                    SeatStateResponse(
                        seat_id=state.seat_id,
                        label=state.seat.label,
                        row_number=row_number,
                        seat_number=state.seat.seat_number,
                        seat_type=state.seat.seat_type,
                        status=state.status
                    )
                )
            rows.append(SeatRowResponse(row_label=row_states[0].seat.row_label, seats=seats))

        return SeatMapResponse(
            show_id=show_id,
            rows=rows,
            total_seats=len(states),
            available_seats=counts[SeatStatus.AVAILABLE],
            held_seats=counts[SeatStatus.HELD],
            booked_seats=counts[SeatStatus.BOOKED]
        )
