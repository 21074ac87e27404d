"""
Booking Orchestrator: the booking and cancellation workflows.

    book:   resolve showtime -> reserve seats -> write booking -> notify
    cancel: mark cancelled   -> release seats -> notify

The ledger and the booking table are not written in one transaction. A
booking write that fails after seats were reserved is undone by a
background release (see ``Compensator``).
"""
import logging
import random
import string
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, sessionmaker

from showtime_engine.core.config import settings
from showtime_engine.core.errors import (
    AlreadyCancelledError,
    EngineError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from showtime_engine.db.session import SessionLocal
from showtime_engine.models.booking import Booking, BookingStatus
from showtime_engine.models.showtime import Showtime
from showtime_engine.schemas.notification import BookingEvent, BookingEventKind
from showtime_engine.services.catalog import ShowtimeCatalog
from showtime_engine.services.compensation import Compensator
from showtime_engine.services.ledger import SeatLedger
from showtime_engine.services.notifier import DatabaseNotifier, Notifier

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _generate_booking_number(db: Session) -> str:
    """Generate a unique 'SHW-XXXXXXXX' booking reference."""
    chars = string.ascii_uppercase + string.digits
    while True:
        number = f"{settings.BOOKING_NUMBER_PREFIX}-" + "".join(random.choices(chars, k=8))
        if not db.query(Booking).filter(Booking.booking_number == number).first():
            return number


def _load_booking(db: Session, booking_id: UUID, user_id: Optional[UUID] = None) -> Optional[Booking]:
    """Load a booking with its showtime display relations eager-loaded."""
    query = (
        db.query(Booking)
        .options(
            joinedload(Booking.showtime).joinedload(Showtime.movie),
            joinedload(Booking.showtime).joinedload(Showtime.theater),
            joinedload(Booking.showtime).joinedload(Showtime.screen),
        )
        .filter(Booking.id == booking_id)
    )
    if user_id is not None:
        query = query.filter(Booking.user_id == user_id)
    return query.first()


def format_show_date(value: datetime) -> str:
    return f"{value:%B} {value.day}, {value.year}"


def format_show_time(value: datetime) -> str:
    return value.strftime("%I:%M %p").lstrip("0")


class BookingOrchestrator:
    def __init__(
        self,
        catalog: ShowtimeCatalog,
        ledger: SeatLedger,
        notifier: Optional[Notifier] = None,
        compensator: Optional[Compensator] = None,
        session_factory: sessionmaker = SessionLocal,
    ):
        self._catalog = catalog
        self._ledger = ledger
        self._notifier = notifier or DatabaseNotifier(session_factory)
        self._compensator = compensator or Compensator(ledger)
        self._session_factory = session_factory

    @property
    def compensator(self) -> Compensator:
        return self._compensator

    # ------------------------------------------------------------------
    # Book
    # ------------------------------------------------------------------

    def book(
        self,
        user_id: UUID,
        movie_id: UUID,
        theater_id: UUID,
        showtime_id: UUID,
        requested_seats: int,
    ) -> Booking:
        showtime = self._catalog.get_showtime(showtime_id)
        if showtime.movie_id != movie_id or showtime.theater_id != theater_id:
            raise NotFoundError(
                "Show time not found for this movie and theater",
                {"showtime_id": str(showtime_id), "movie_id": str(movie_id), "theater_id": str(theater_id)},
            )
        if requested_seats is None or requested_seats < 1:
            raise ValidationError("Number of seats must be at least 1", {"requested": requested_seats})

        self._ledger.reserve(showtime.id, requested_seats)

        try:
            booking_id = self._persist_booking(user_id, showtime, requested_seats)
        except Exception as exc:
            context = {"user_id": user_id, "movie_id": movie_id, "theater_id": theater_id}
            logger.error(
                "Booking write failed after reserving %d seat(s) on showtime %s; releasing them",
                requested_seats, showtime.id,
            )
            self._compensator.submit_release(showtime.id, requested_seats, context)
            if isinstance(exc, EngineError):
                raise
            raise InternalError(
                "Booking failed; the reserved seats are being released",
                {"showtime_id": str(showtime.id)},
            ) from exc

        # Committed from here on: the seats belong to the booking whatever happens next
        booking = self._reload_booking(booking_id)
        self._emit(BookingEventKind.CONFIRMED, booking, showtime)
        return booking

    def _persist_booking(self, user_id: UUID, showtime: Showtime, seats: int) -> UUID:
        """Write the booking row. Returns its id once the commit has succeeded."""
        booking_id = uuid.uuid4()
        price_per_seat = Decimal(showtime.price)
        with self._session_factory() as db:
            db.add(Booking(
                id=booking_id,
                user_id=user_id,
                showtime_id=showtime.id,
                movie_id=showtime.movie_id,
                theater_id=showtime.theater_id,
                booking_number=_generate_booking_number(db),
                number_of_seats=seats,
                price_per_seat=price_per_seat,
                total_price=price_per_seat * seats,
                status=BookingStatus.ACTIVE,
            ))
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
        return booking_id

    def _reload_booking(self, booking_id: UUID) -> Booking:
        try:
            with self._session_factory() as db:
                booking = _load_booking(db, booking_id)
        except SQLAlchemyError as exc:
            logger.error("Booking %s is committed but could not be read back", booking_id)
            raise InternalError(
                "Booking was recorded but could not be loaded",
                {"booking_id": str(booking_id)},
            ) from exc
        if booking is None:
            raise NotFoundError("Booking not found", {"booking_id": str(booking_id)})
        return booking

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def cancel(self, booking_id: UUID, user_id: Optional[UUID] = None) -> Booking:
        with self._session_factory() as db:
            booking = _load_booking(db, booking_id, user_id)
            if not booking:
                raise NotFoundError("Booking not found", {"booking_id": str(booking_id)})
            if booking.status == BookingStatus.CANCELLED:
                raise AlreadyCancelledError("Booking already cancelled", {"booking_id": str(booking_id)})
            showtime_id = booking.showtime_id
            seats = booking.number_of_seats
            booking_number = booking.booking_number

            # Conditional on the current status so concurrent cancels transition once
            result = db.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status == BookingStatus.ACTIVE)
                .values(status=BookingStatus.CANCELLED, cancelled_at=datetime.now(timezone.utc).replace(tzinfo=None))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                raise AlreadyCancelledError("Booking already cancelled", {"booking_id": str(booking_id)})
            db.commit()

        failure: Optional[InternalError] = None
        try:
            self._compensator.release_with_retry(
                showtime_id,
                seats,
                {"booking_id": booking_id, "booking_number": booking_number},
            )
        except InternalError as exc:
            failure = exc

        try:
            booking = self._reload_booking(booking_id)
        except InternalError:
            if failure is not None:
                raise failure
            raise
        self._emit(BookingEventKind.CANCELLED, booking, booking.showtime)
        if failure is not None:
            raise failure
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: UUID, user_id: Optional[UUID] = None) -> Booking:
        with self._session_factory() as db:
            booking = _load_booking(db, booking_id, user_id)
            if not booking:
                raise NotFoundError("Booking not found", {"booking_id": str(booking_id)})
            return booking

    def list_bookings(
        self,
        user_id: UUID,
        status: Optional[BookingStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Booking], int]:
        """Return one page of a user's bookings, newest first, and the total count."""
        with self._session_factory() as db:
            query = db.query(Booking).filter(Booking.user_id == user_id)
            if status:
                query = query.filter(Booking.status == status)
            total = query.count()
            bookings = (
                query.options(
                    joinedload(Booking.showtime).joinedload(Showtime.movie),
                    joinedload(Booking.showtime).joinedload(Showtime.theater),
                    joinedload(Booking.showtime).joinedload(Showtime.screen),
                )
                .order_by(Booking.created_at.desc(), Booking.booking_number)
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
            return bookings, total

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------

    def _emit(self, kind: BookingEventKind, booking: Booking, showtime: Showtime) -> None:
        """Hand the event to the notifier. Failures are logged, never raised."""
        try:
            payload = BookingEvent(
                booking_id=booking.id,
                booking_number=booking.booking_number,
                user_id=booking.user_id,
                movie_title=showtime.movie.title,
                theater_name=showtime.theater.name,
                screen_name=showtime.screen.name,
                seats=booking.number_of_seats,
                date=format_show_date(showtime.start_time),
                time=format_show_time(showtime.start_time),
            )
            self._notifier.notify(kind, payload)
        except Exception:
            logger.exception("Notifier failed for %s of booking %s", kind.value, booking.id)
