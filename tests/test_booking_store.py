"""
Tests for the booking record store.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from showtime_booking_platform.models import Booking, BookingSeat, BookingStatus
from showtime_booking_platform.services import BookingStore
from showtime_booking_platform.utils.exceptions import BookingPersistenceError


async def _book(new_coordinator, seeded_show, user_id, *labels):
    seat_ids = [seeded_show.seats[label] for label in labels]
    ticket = await new_coordinator().hold_seats(seeded_show.show_id, user_id, seat_ids)
    return await new_coordinator().confirm_booking(ticket)


async def test_list_for_user_is_newest_first(new_coordinator, session_factory, seeded_show, clock):
    user_id = uuid4()
    first = await _book(new_coordinator, seeded_show, user_id, "A1")
    clock.advance(minutes=10)
    second = await _book(new_coordinator, seeded_show, user_id, "A2", "A3")
    await _book(new_coordinator, seeded_show, uuid4(), "A4")

    async with session_factory() as session:
        bookings = await BookingStore(session).list_for_user(user_id)

    assert [booking.id for booking in bookings] == [second.id, first.id]


async def test_list_for_user_pages(new_coordinator, session_factory, seeded_show, clock):
    user_id = uuid4()
    first = await _book(new_coordinator, seeded_show, user_id, "A1")
    clock.advance(minutes=1)
    await _book(new_coordinator, seeded_show, user_id, "A2")

    async with session_factory() as session:
        page = await BookingStore(session).list_for_user(user_id, limit=1, offset=1)

    assert [booking.id for booking in page] == [first.id]


async def test_get_loads_show_and_seats(new_coordinator, session_factory, seeded_show):
    booking = await _book(new_coordinator, seeded_show, uuid4(), "B2", "B1")

    async with session_factory() as session:
        stored = await BookingStore(session).get(booking.id)

    assert stored is not None
    assert stored.total_amount == Decimal("25.00")
    assert stored.status == BookingStatus.CONFIRMED
    assert stored.show.movie.title == "Orbit of Sparrows"
    assert stored.show.screen.name == "Screen 1"
    assert sorted(booking_seat.seat.label for booking_seat in stored.booking_seats) == ["B1", "B2"]


async def test_get_unknown_booking(session_factory, seeded_show):
    async with session_factory() as session:
        assert await BookingStore(session).get(uuid4()) is None


async def test_show_seat_cannot_be_recorded_twice(new_coordinator, session_factory, seeded_show, clock):
    booking = await _book(new_coordinator, seeded_show, uuid4(), "A1")
    booked_seat = booking.booking_seats[0]

    async with session_factory() as session:
        duplicate = Booking(
            user_id=uuid4(),
            show_id=seeded_show.show_id,
            seat_count=1,
            total_amount=seeded_show.price,
            status=BookingStatus.CONFIRMED,
            confirmed_at=clock(),
            booking_seats=[
                BookingSeat(seat_id=booked_seat.seat_id, show_seat_id=booked_seat.show_seat_id)
            ]
        )

        with pytest.raises(BookingPersistenceError):
            await BookingStore(session).create(duplicate)
        await session.rollback()
