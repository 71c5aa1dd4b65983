"""
Tests for the movie catalogue and show schedule.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from showtime_booking_platform.models import SeatStatus, SeatType
from showtime_booking_platform.schemas.catalog import MovieCreate, ShowCreate
from showtime_booking_platform.services import CatalogService
from showtime_booking_platform.utils.exceptions import (
    MovieNotFoundError,
    ScreenNotFoundError,
    ShowNotFoundError,
    ValidationError,
)


async def test_list_movies_newest_release_first(session_factory, clock):
    async with session_factory() as session:
        catalog = CatalogService(session, clock)
        await catalog.create_movie(MovieCreate(title="Older", duration_minutes=90, release_date=date(2025, 5, 1)))
        await catalog.create_movie(MovieCreate(title="Newer", duration_minutes=95, release_date=date(2026, 9, 1)))
        await catalog.create_movie(MovieCreate(title="Undated", duration_minutes=100))

        movies = await catalog.list_movies()

    assert [movie.title for movie in movies] == ["Newer", "Older", "Undated"]


async def test_get_unknown_movie(session_factory, clock):
    async with session_factory() as session:
        with pytest.raises(MovieNotFoundError):
            await CatalogService(session, clock).get_movie(uuid4())


async def test_show_end_defaults_to_running_time(session_factory, seeded_show, clock):
    async with session_factory() as session:
        show = await CatalogService(session, clock).get_show(seeded_show.show_id)

    assert show.end_time - show.show_time == timedelta(minutes=120)
    assert show.movie.title == "Orbit of Sparrows"
    assert show.screen.total_seats == 10


async def test_get_unknown_show(session_factory, clock):
    async with session_factory() as session:
        with pytest.raises(ShowNotFoundError):
            await CatalogService(session, clock).get_show(uuid4())


async def test_upcoming_shows_exclude_started_ones(session_factory, seeded_show, clock):
    async with session_factory() as session:
        catalog = CatalogService(session, clock)
        await catalog.create_show(
            ShowCreate(
                movie_id=seeded_show.movie_id,
                screen_id=seeded_show.screen_id,
                show_time=clock.now - timedelta(days=2),
                price=Decimal("9.00"),
            )
        )
        later = await catalog.create_show(
            ShowCreate(
                movie_id=seeded_show.movie_id,
                screen_id=seeded_show.screen_id,
                show_time=clock.now + timedelta(days=3),
                price=Decimal("14.00"),
            )
        )

        shows = await catalog.list_upcoming_shows(seeded_show.movie_id)

    assert [show.id for show in shows] == [seeded_show.show_id, later.id]


async def test_overlapping_show_on_same_screen_is_rejected(session_factory, seeded_show, clock):
    async with session_factory() as session:
        with pytest.raises(ValidationError) as exc_info:
            await CatalogService(session, clock).create_show(
                ShowCreate(
                    movie_id=seeded_show.movie_id,
                    screen_id=seeded_show.screen_id,
                    show_time=clock.now + timedelta(days=1, minutes=30),
                    price=Decimal("12.50"),
                )
            )

    assert "show_time" in exc_info.value.field_errors


async def test_show_on_unknown_screen(session_factory, seeded_show, clock):
    async with session_factory() as session:
        with pytest.raises(ScreenNotFoundError):
            await CatalogService(session, clock).create_show(
                ShowCreate(
                    movie_id=seeded_show.movie_id,
                    screen_id=uuid4(),
                    show_time=clock.now + timedelta(days=5),
                    price=Decimal("12.50"),
                )
            )


async def test_seat_map_groups_rows_and_counts_states(new_coordinator, session_factory, seeded_show, clock):
    seats = seeded_show.seats
    held = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [seats["A1"], seats["A2"]])
    booked = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [seats["B3"]])
    await new_coordinator().confirm_booking(booked)

    async with session_factory() as session:
        seat_map = await CatalogService(session, clock).get_seat_map(seeded_show.show_id)

    assert [row.row_label for row in seat_map.rows] == ["A", "B"]
    assert [seat.label for seat in seat_map.rows[0].seats] == ["A1", "A2", "A3", "A4", "A5"]
    assert all(seat.seat_type == SeatType.PREMIUM for seat in seat_map.rows[1].seats)
    assert (seat_map.total_seats, seat_map.available_seats, seat_map.held_seats, seat_map.booked_seats) == (10, 7, 2, 1)

    statuses = {seat.seat_id: seat.status for row in seat_map.rows for seat in row.seats}
    assert statuses[held.seat_ids[0]] == SeatStatus.HELD
    assert statuses[seats["B3"]] == SeatStatus.BOOKED


async def test_seat_map_of_unknown_show(session_factory, clock):
    async with session_factory() as session:
        with pytest.raises(ShowNotFoundError):
            await CatalogService(session, clock).get_seat_map(uuid4())
