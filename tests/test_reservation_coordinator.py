"""
Tests for holding, confirming and cancelling seats through the coordinator.
"""

import asyncio
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from showtime_booking_platform.models import BookingStatus, SeatStatus
from showtime_booking_platform.services import BookingStore, ExpirySweeper, HoldTicket
from showtime_booking_platform.services.reservation_coordinator import compute_total
from showtime_booking_platform.utils.exceptions import (
    BookingPersistenceError,
    HoldExpiredError,
    SeatConflictError,
    ShowNotFoundError,
    TransportError,
    ValidationError,
)


class TestComputeTotal:
    """Test booking total calculation."""

    def test_multiplies_price_by_seat_count(self):
        assert compute_total(Decimal("12.50"), 2) == Decimal("25.00")
        assert compute_total(Decimal("12.50"), 3) == Decimal("37.50")

    def test_rounds_to_cents(self):
        assert compute_total(Decimal("9.999"), 1) == Decimal("10.00")
        assert compute_total(Decimal("0"), 4) == Decimal("0.00")


class TestHoldSeats:
    """Test seat holds."""

    async def test_hold_returns_ticket(self, new_coordinator, seeded_show, clock, seat_statuses):
        user_id = uuid4()
        seat_ids = [seeded_show.seats["A1"], seeded_show.seats["A2"]]

        ticket = await new_coordinator().hold_seats(seeded_show.show_id, user_id, seat_ids)

        assert ticket.show_id == seeded_show.show_id
        assert ticket.user_id == user_id
        assert ticket.seat_ids == tuple(seat_ids)
        assert ticket.holder_token
        assert ticket.expires_at == clock.now + timedelta(seconds=300)

        statuses = await seat_statuses(seeded_show.show_id)
        assert [statuses[seat_id] for seat_id in seat_ids] == [SeatStatus.HELD, SeatStatus.HELD]

    async def test_hold_uses_requested_ttl(self, new_coordinator, seeded_show, clock):
        ticket = await new_coordinator().hold_seats(
            seeded_show.show_id, uuid4(), [seeded_show.seats["A1"]], ttl_seconds=60
        )

        assert ticket.expires_at == clock.now + timedelta(seconds=60)

    async def test_each_hold_gets_a_distinct_token(self, new_coordinator, seeded_show):
        first = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [seeded_show.seats["A1"]])
        second = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [seeded_show.seats["A2"]])

        assert first.holder_token != second.holder_token

    async def test_overlapping_hold_fails_and_holds_nothing(self, new_coordinator, seeded_show, seat_statuses):
        seats = seeded_show.seats
        await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [seats["A1"], seats["A2"]])

        with pytest.raises(SeatConflictError) as exc_info:
            await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [seats["A2"], seats["A3"]])

        assert exc_info.value.conflicting_seat_ids == [str(seats["A2"])]
        assert (await seat_statuses(seeded_show.show_id))[seats["A3"]] == SeatStatus.AVAILABLE

    async def test_booked_seat_cannot_be_held(self, new_coordinator, seeded_show):
        a1 = seeded_show.seats["A1"]
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1])
        await new_coordinator().confirm_booking(ticket)

        with pytest.raises(SeatConflictError):
            await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1])

    async def test_concurrent_holds_on_one_seat_have_one_winner(self, new_coordinator, seeded_show):
        a1 = seeded_show.seats["A1"]

        results = await asyncio.gather(
            *[new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1]) for _ in range(5)],
            return_exceptions=True
        )

        winners = [result for result in results if isinstance(result, HoldTicket)]
        losers = [result for result in results if isinstance(result, SeatConflictError)]
        assert len(winners) == 1
        assert len(losers) == 4
        assert all(loser.conflicting_seat_ids == [str(a1)] for loser in losers)

    async def test_concurrent_overlapping_holds_are_all_or_nothing(self, new_coordinator, seeded_show, seat_statuses):
        seats = seeded_show.seats
        pairs = [("A1", "A2"), ("A2", "A3"), ("A3", "A4"), ("A4", "A1")]

        results = await asyncio.gather(
            *[
                new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [seats[a], seats[b]])
                for a, b in pairs
            ],
            return_exceptions=True
        )

        winners = [result for result in results if isinstance(result, HoldTicket)]
        assert winners
        assert all(isinstance(result, (HoldTicket, SeatConflictError)) for result in results)

        won_seats = {seat_id for ticket in winners for seat_id in ticket.seat_ids}
        assert len(won_seats) == 2 * len(winners)

        statuses = await seat_statuses(seeded_show.show_id)
        held = {seat_id for seat_id, status in statuses.items() if status == SeatStatus.HELD}
        assert held == won_seats

    async def test_expired_but_unswept_hold_is_not_taken(self, new_coordinator, seeded_show, clock):
        a1 = seeded_show.seats["A1"]
        await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1], ttl_seconds=60)
        clock.advance(seconds=120)

        with pytest.raises(SeatConflictError):
            await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1])

    @pytest.mark.parametrize("seat_ids", [[], "duplicates", "too_many"])
    async def test_invalid_seat_selection(self, new_coordinator, seeded_show, seat_ids):
        a1 = seeded_show.seats["A1"]
        if seat_ids == "duplicates":
            seat_ids = [a1, a1]
        elif seat_ids == "too_many":
            seat_ids = [uuid4() for _ in range(11)]

        with pytest.raises(ValidationError) as exc_info:
            await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), seat_ids)

        assert "seat_ids" in exc_info.value.field_errors

    @pytest.mark.parametrize("ttl_seconds", [0, -5, 901])
    async def test_ttl_out_of_range(self, new_coordinator, seeded_show, ttl_seconds):
        with pytest.raises(ValidationError):
            await new_coordinator().hold_seats(
                seeded_show.show_id, uuid4(), [seeded_show.seats["A1"]], ttl_seconds=ttl_seconds
            )

    async def test_seat_from_another_screen_is_rejected(self, new_coordinator, seeded_show, seat_statuses):
        with pytest.raises(ValidationError) as exc_info:
            await new_coordinator().hold_seats(
                seeded_show.show_id, uuid4(), [seeded_show.seats["A1"], uuid4()]
            )

        assert len(exc_info.value.details["invalid_seat_ids"]) == 1
        assert (await seat_statuses(seeded_show.show_id))[seeded_show.seats["A1"]] == SeatStatus.AVAILABLE

    async def test_unknown_show(self, new_coordinator, seeded_show):
        with pytest.raises(ShowNotFoundError):
            await new_coordinator().hold_seats(uuid4(), uuid4(), [seeded_show.seats["A1"]])


class TestConfirmBooking:
    """Test hold confirmation."""

    async def test_confirm_creates_booking(self, new_coordinator, seeded_show, clock, seat_statuses):
        user_id = uuid4()
        seat_ids = [seeded_show.seats["B1"], seeded_show.seats["B2"]]
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, user_id, seat_ids)
        clock.advance(seconds=30)

        booking = await new_coordinator().confirm_booking(ticket)

        assert booking.user_id == user_id
        assert booking.show_id == seeded_show.show_id
        assert booking.seat_count == 2
        assert booking.total_amount == Decimal("25.00")
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.confirmed_at == clock.now
        assert set(booking.seat_ids) == set(seat_ids)

        statuses = await seat_statuses(seeded_show.show_id)
        assert [statuses[seat_id] for seat_id in seat_ids] == [SeatStatus.BOOKED, SeatStatus.BOOKED]

    async def test_total_for_three_seats(self, new_coordinator, seeded_show):
        seats = seeded_show.seats
        ticket = await new_coordinator().hold_seats(
            seeded_show.show_id, uuid4(), [seats["A1"], seats["A2"], seats["A3"]]
        )

        booking = await new_coordinator().confirm_booking(ticket)

        assert booking.total_amount == Decimal("37.50")

    async def test_confirm_after_expiry(self, new_coordinator, seeded_show, clock):
        ticket = await new_coordinator().hold_seats(
            seeded_show.show_id, uuid4(), [seeded_show.seats["A1"]], ttl_seconds=60
        )
        clock.advance(seconds=61)

        with pytest.raises(HoldExpiredError):
            await new_coordinator().confirm_booking(ticket)

        coordinator = new_coordinator()
        assert await coordinator.bookings.list_for_user(ticket.user_id) == []

    async def test_confirm_after_seats_were_swept_and_retaken(
        self, new_coordinator, session_factory, seeded_show, clock
    ):
        a1 = seeded_show.seats["A1"]
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1], ttl_seconds=60)
        clock.advance(seconds=61)
        assert await ExpirySweeper(session_factory, clock=clock).sweep_once() == 1
        await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1])

        with pytest.raises(HoldExpiredError):
            await new_coordinator().confirm_booking(ticket)

    async def test_confirm_with_forged_token_is_a_conflict(self, new_coordinator, seeded_show):
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [seeded_show.seats["A1"]])
        forged = HoldTicket(
            show_id=ticket.show_id,
            user_id=uuid4(),
            seat_ids=ticket.seat_ids,
            holder_token="not-the-token",
            expires_at=ticket.expires_at
        )

        with pytest.raises(SeatConflictError):
            await new_coordinator().confirm_booking(forged)

    async def test_confirming_twice_books_once(self, new_coordinator, seeded_show):
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [seeded_show.seats["A1"]])
        await new_coordinator().confirm_booking(ticket)

        with pytest.raises(SeatConflictError):
            await new_coordinator().confirm_booking(ticket)

        coordinator = new_coordinator()
        assert len(await coordinator.bookings.list_for_user(ticket.user_id)) == 1

    async def test_failed_booking_write_leaves_seats_held(
        self, monkeypatch, new_coordinator, seeded_show, seat_statuses
    ):
        a1 = seeded_show.seats["A1"]
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1])

        async def failing_create(self, booking):
            raise BookingPersistenceError("Failed to record booking")

        monkeypatch.setattr(BookingStore, "create", failing_create)

        with pytest.raises(BookingPersistenceError):
            await new_coordinator().confirm_booking(ticket)

        monkeypatch.undo()
        assert (await seat_statuses(seeded_show.show_id))[a1] == SeatStatus.HELD
        assert await new_coordinator().bookings.list_for_user(ticket.user_id) == []

    async def test_transport_failure_during_confirm_is_not_retried(
        self, monkeypatch, new_coordinator, seeded_show, seat_statuses
    ):
        a1 = seeded_show.seats["A1"]
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1])
        calls = []

        async def unreachable_create(self, booking):
            calls.append(booking)
            raise OperationalError("INSERT INTO bookings", {}, Exception("connection reset"))

        monkeypatch.setattr(BookingStore, "create", unreachable_create)

        with pytest.raises(TransportError):
            await new_coordinator().confirm_booking(ticket)

        assert len(calls) == 1
        assert (await seat_statuses(seeded_show.show_id))[a1] == SeatStatus.HELD

    async def test_ticket_expiry_does_not_override_the_ledger(self, new_coordinator, seeded_show, clock):
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [seeded_show.seats["A1"]])
        stale_copy = replace(ticket, expires_at=clock.now - timedelta(minutes=1))

        booking = await new_coordinator().confirm_booking(stale_copy)

        assert booking.seat_count == 1

    async def test_extended_ticket_expiry_cannot_confirm_a_lapsed_hold(self, new_coordinator, seeded_show, clock):
        ticket = await new_coordinator().hold_seats(
            seeded_show.show_id, uuid4(), [seeded_show.seats["A1"]], ttl_seconds=60
        )
        extended = replace(ticket, expires_at=clock.now + timedelta(hours=1))
        clock.advance(seconds=61)

        with pytest.raises(HoldExpiredError):
            await new_coordinator().confirm_booking(extended)


class TestCancelHold:
    """Test hold cancellation."""

    async def test_cancel_releases_seats(self, new_coordinator, seeded_show, seat_statuses):
        seat_ids = [seeded_show.seats["A1"], seeded_show.seats["A2"]]
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), seat_ids)

        assert await new_coordinator().cancel_hold(ticket) == 2

        statuses = await seat_statuses(seeded_show.show_id)
        assert all(statuses[seat_id] == SeatStatus.AVAILABLE for seat_id in seat_ids)

    async def test_cancel_is_idempotent(self, new_coordinator, seeded_show):
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [seeded_show.seats["A1"]])

        await new_coordinator().cancel_hold(ticket)

        assert await new_coordinator().cancel_hold(ticket) == 0

    async def test_cancel_after_confirm_keeps_booking(self, new_coordinator, seeded_show, seat_statuses):
        a1 = seeded_show.seats["A1"]
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1])
        await new_coordinator().confirm_booking(ticket)

        assert await new_coordinator().cancel_hold(ticket) == 0
        assert (await seat_statuses(seeded_show.show_id))[a1] == SeatStatus.BOOKED

    async def test_cancelled_seats_can_be_held_again(self, new_coordinator, seeded_show):
        a1 = seeded_show.seats["A1"]
        ticket = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1])
        await new_coordinator().cancel_hold(ticket)

        again = await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [a1])

        assert again.seat_ids == (a1,)


class TestGetStates:
    """Test seat state reads through the coordinator."""

    async def test_swept_hold_reads_as_available(self, new_coordinator, session_factory, seeded_show, clock):
        b1 = seeded_show.seats["B1"]
        await new_coordinator().hold_seats(seeded_show.show_id, uuid4(), [b1], ttl_seconds=5)

        states = {state.seat_id: state.status for state in await new_coordinator().get_states(seeded_show.show_id)}
        assert states[b1] == SeatStatus.HELD

        clock.advance(seconds=6)
        assert await ExpirySweeper(session_factory, clock=clock).sweep_once() == 1

        states = await new_coordinator().get_states(seeded_show.show_id)
        assert len(states) == len(seeded_show.seats)
        assert {state.seat_id: state.status for state in states}[b1] == SeatStatus.AVAILABLE
