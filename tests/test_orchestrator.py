import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from showtime_engine.core.errors import (
    AlreadyCancelledError,
    InsufficientSeatsError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from showtime_engine.models.booking import Booking, BookingStatus
from showtime_engine.schemas.notification import BookingEventKind
from showtime_engine.services import orchestrator as orchestrator_module
from showtime_engine.services.orchestrator import BookingOrchestrator


@pytest.fixture
def showtime(catalog, cinema, show_start):
    return catalog.assign_showtime(
        cinema.movie.id, cinema.theater.id, cinema.screen.id, show_start, Decimal("12.50")
    )


@pytest.fixture
def small_showtime(catalog, cinema, show_start):
    return catalog.assign_showtime(
        cinema.movie.id, cinema.theater.id, cinema.small_screen.id, show_start, Decimal("9")
    )


def _book(orchestrator, showtime, seats, user_id=None):
    return orchestrator.book(
        user_id or uuid.uuid4(), showtime.movie_id, showtime.theater_id, showtime.id, seats
    )


def test_booking_scenario_60_then_41(orchestrator, ledger, showtime):
    first = _book(orchestrator, showtime, 60)
    assert first.status == BookingStatus.ACTIVE
    assert first.total_price == Decimal("750.00")
    assert first.price_per_seat == Decimal("12.50")
    assert first.booking_number.startswith("SHW-")
    assert ledger.available_seats(showtime.id) == 40

    with pytest.raises(InsufficientSeatsError) as exc_info:
        _book(orchestrator, showtime, 41)
    assert exc_info.value.available == 40
    assert "40" in exc_info.value.message
    assert ledger.available_seats(showtime.id) == 40


def test_mismatched_movie_or_theater_is_not_found(orchestrator, showtime):
    with pytest.raises(NotFoundError):
        orchestrator.book(uuid.uuid4(), uuid.uuid4(), showtime.theater_id, showtime.id, 1)
    with pytest.raises(NotFoundError):
        orchestrator.book(uuid.uuid4(), showtime.movie_id, uuid.uuid4(), showtime.id, 1)
    with pytest.raises(NotFoundError):
        orchestrator.book(uuid.uuid4(), showtime.movie_id, showtime.theater_id, uuid.uuid4(), 1)


def test_seat_count_must_be_positive(orchestrator, ledger, showtime):
    with pytest.raises(ValidationError):
        _book(orchestrator, showtime, 0)
    assert ledger.available_seats(showtime.id) == 100


def test_confirmation_event_carries_display_data(orchestrator, notifier, showtime):
    user_id = uuid.uuid4()
    booking = _book(orchestrator, showtime, 2, user_id=user_id)

    kind, payload = notifier.events[-1]
    assert kind == BookingEventKind.CONFIRMED
    assert payload.booking_id == booking.id
    assert payload.user_id == user_id
    assert payload.movie_title == "Inception"
    assert payload.theater_name == "Galaxy Cinema"
    assert payload.screen_name == "Screen 1"
    assert payload.seats == 2
    assert payload.date == "January 15, 2030"
    assert payload.time == "2:00 PM"


def test_cancel_releases_seats_and_rejects_second_cancel(orchestrator, ledger, notifier, showtime):
    booking = _book(orchestrator, showtime, 5)
    assert ledger.available_seats(showtime.id) == 95

    cancelled = orchestrator.cancel(booking.id)
    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert ledger.available_seats(showtime.id) == 100
    assert notifier.events[-1][0] == BookingEventKind.CANCELLED

    with pytest.raises(AlreadyCancelledError):
        orchestrator.cancel(booking.id)
    assert ledger.available_seats(showtime.id) == 100


def test_cancel_checks_ownership(orchestrator, showtime):
    owner = uuid.uuid4()
    booking = _book(orchestrator, showtime, 1, user_id=owner)
    with pytest.raises(NotFoundError):
        orchestrator.cancel(booking.id, user_id=uuid.uuid4())
    assert orchestrator.cancel(booking.id, user_id=owner).status == BookingStatus.CANCELLED


def test_cancel_unknown_booking(orchestrator):
    with pytest.raises(NotFoundError):
        orchestrator.cancel(uuid.uuid4())


def test_notifier_failure_does_not_block_booking(catalog, ledger, compensator, showtime):
    class BrokenNotifier:
        def notify(self, kind, payload):
            raise RuntimeError("mail server down")

    orchestrator = BookingOrchestrator(catalog, ledger, notifier=BrokenNotifier(), compensator=compensator)
    booking = _book(orchestrator, showtime, 3)
    assert booking.status == BookingStatus.ACTIVE
    assert orchestrator.cancel(booking.id).status == BookingStatus.CANCELLED


def test_failed_booking_write_releases_reservation(orchestrator, ledger, compensator, showtime, db, monkeypatch):
    def fail(*args, **kwargs):
        raise OperationalError("INSERT INTO bookings", {}, Exception("disk I/O error"))

    monkeypatch.setattr(orchestrator, "_persist_booking", fail)

    with pytest.raises(InternalError):
        _book(orchestrator, showtime, 4)

    assert compensator.wait_idle(timeout=10)
    assert ledger.available_seats(showtime.id) == 100
    assert db.query(Booking).count() == 0


def _fail_nth_booking_load(monkeypatch, n):
    real_load = orchestrator_module._load_booking
    calls = []

    def flaky_load(*args, **kwargs):
        calls.append(1)
        if len(calls) == n:
            raise OperationalError("SELECT FROM bookings", {}, Exception("server closed the connection"))
        return real_load(*args, **kwargs)

    monkeypatch.setattr(orchestrator_module, "_load_booking", flaky_load)


def test_committed_booking_keeps_its_seats_when_read_back_fails(
    orchestrator, ledger, compensator, notifier, showtime, db, monkeypatch
):
    _fail_nth_booking_load(monkeypatch, 1)

    with pytest.raises(InternalError) as exc_info:
        _book(orchestrator, showtime, 4)
    assert exc_info.value.reconciliation_needed is False

    assert compensator.wait_idle(timeout=10)
    assert ledger.availability(showtime.id).reserved == 4
    bookings = db.query(Booking).all()
    assert [(b.status, b.number_of_seats) for b in bookings] == [(BookingStatus.ACTIVE, 4)]
    assert exc_info.value.details["booking_id"] == str(bookings[0].id)
    assert notifier.events == []


def test_cancel_releases_seats_before_reading_back(orchestrator, ledger, showtime, monkeypatch):
    booking = _book(orchestrator, showtime, 5)
    # first load is the status check, the second is the read-back after the commit
    _fail_nth_booking_load(monkeypatch, 2)

    with pytest.raises(InternalError):
        orchestrator.cancel(booking.id)

    monkeypatch.undo()
    assert orchestrator.get_booking(booking.id).status == BookingStatus.CANCELLED
    assert ledger.available_seats(showtime.id) == 100


def test_compensation_retries_transient_failures(ledger, compensator, showtime, monkeypatch):
    ledger.reserve(showtime.id, 4)
    real_release = ledger.release
    calls = []

    def flaky_release(showtime_id, count):
        calls.append(count)
        if len(calls) < 3:
            raise InternalError("Seat release failed")
        return real_release(showtime_id, count)

    monkeypatch.setattr(ledger, "release", flaky_release)
    snapshot = compensator.submit_release(showtime.id, 4).result(timeout=10)
    assert len(calls) == 3
    assert snapshot.reserved == 0


def test_exhausted_release_on_cancel_needs_reconciliation(orchestrator, ledger, notifier, showtime, monkeypatch):
    booking = _book(orchestrator, showtime, 2)

    def broken_release(showtime_id, count):
        raise InternalError("Seat release failed")

    monkeypatch.setattr(ledger, "release", broken_release)
    with pytest.raises(InternalError) as exc_info:
        orchestrator.cancel(booking.id)
    assert exc_info.value.reconciliation_needed is True
    assert exc_info.value.details["booking_id"] == str(booking.id)

    monkeypatch.undo()
    assert orchestrator.get_booking(booking.id).status == BookingStatus.CANCELLED
    assert notifier.events[-1][0] == BookingEventKind.CANCELLED
    # seats are still counted until reconciliation runs
    assert ledger.available_seats(showtime.id) == 98
    ledger.reconcile(showtime.id)
    assert ledger.available_seats(showtime.id) == 100


def test_concurrent_bookings_for_last_seats(orchestrator, ledger, small_showtime, db):
    def attempt(_):
        try:
            _book(orchestrator, small_showtime, 1)
            return "ok"
        except InsufficientSeatsError:
            return "full"

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(16)))

    assert results.count("ok") == 3
    assert results.count("full") == 13
    assert ledger.availability(small_showtime.id).reserved == 3
    active = db.query(Booking).filter(Booking.status == BookingStatus.ACTIVE).count()
    assert active == 3


def test_concurrent_cancels_transition_once(orchestrator, ledger, showtime):
    booking = _book(orchestrator, showtime, 3)
    barrier = threading.Barrier(4)

    def attempt(_):
        barrier.wait()
        try:
            orchestrator.cancel(booking.id)
            return "cancelled"
        except AlreadyCancelledError:
            return "already"

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(attempt, range(4)))

    assert results.count("cancelled") == 1
    assert results.count("already") == 3
    assert ledger.available_seats(showtime.id) == 100


def test_list_bookings_is_paginated_per_user(orchestrator, showtime):
    user_id = uuid.uuid4()
    for seats in (1, 2, 3):
        _book(orchestrator, showtime, seats, user_id=user_id)
    _book(orchestrator, showtime, 1)

    page, total = orchestrator.list_bookings(user_id, page=1, limit=2)
    assert total == 3
    assert len(page) == 2
    assert page[0].showtime.movie.title == "Inception"

    cancelled, total = orchestrator.list_bookings(user_id, status=BookingStatus.CANCELLED)
    assert (cancelled, total) == ([], 0)
