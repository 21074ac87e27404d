"""
Showtime Catalog: schedules movies onto screens.

For a single screen, active showtimes never overlap. Intervals are half-open,
``[start_time, end_time)``, so a showing may start at the exact minute the
previous one ends.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, sessionmaker

from showtime_engine.core.errors import ConflictError, InternalError, NotFoundError, ValidationError
from showtime_engine.core.locks import KeyedLocks
from showtime_engine.db.session import SessionLocal
from showtime_engine.models.booking import Booking, BookingStatus
from showtime_engine.models.showtime import Showtime, SeatLedgerEntry
from showtime_engine.models.theater import Screen, Theater
from showtime_engine.services import registry
from showtime_engine.services.ledger import SeatLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotRequest:
    screen_id: UUID
    start_time: datetime
    price: Decimal = Decimal("0")


def to_utc_naive(value: datetime) -> datetime:
    """Showtimes are stored as naive UTC; naive input is taken to be UTC already."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and start_b < end_a


class ShowtimeCatalog:
    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        ledger: Optional[SeatLedger] = None,
        screen_locks: Optional[KeyedLocks] = None,
    ):
        self._session_factory = session_factory
        self._ledger = ledger or SeatLedger(session_factory)
        self._screen_locks = screen_locks or KeyedLocks()

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    def assign_showtime(
        self,
        movie_id: UUID,
        theater_id: UUID,
        screen_id: UUID,
        start_time: datetime,
        price: Decimal = Decimal("0"),
    ) -> Showtime:
        return self.assign_showtimes(movie_id, theater_id, [SlotRequest(screen_id, start_time, price)])[0]

    def assign_showtimes(
        self,
        movie_id: UUID,
        theater_id: UUID,
        slots: Sequence[SlotRequest],
    ) -> list[Showtime]:
        """
        Schedule a batch of showings of one movie in one theater.

        Entries are checked in order against the stored schedule and against
        the entries before them. The first conflict rejects the whole batch;
        nothing is written unless every entry fits.
        """
        if not slots:
            raise ValidationError("At least one show time is required")

        now = utcnow()
        for index, slot in enumerate(slots):
            if slot.price is None or Decimal(slot.price) < 0:
                raise ValidationError(
                    f"Price must not be negative (entry {index})",
                    {"index": index, "price": str(slot.price)},
                )
            if to_utc_naive(slot.start_time) <= now:
                raise ValidationError(
                    f"Start time must be in the future (entry {index})",
                    {"index": index, "start_time": slot.start_time.isoformat()},
                )

        screen_ids = {slot.screen_id for slot in slots}
        with self._screen_locks.hold_many(screen_ids):
            with self._session_factory() as db:
                movie = registry.get_movie(db, movie_id)
                theater = registry.get_theater(db, theater_id)
                screens = {
                    screen_id: registry.get_screen(db, screen_id, theater_id=theater.id, for_update=True)
                    for screen_id in sorted(screen_ids, key=str)
                }

                duration = timedelta(minutes=movie.duration_minutes)
                pending: list[Showtime] = []
                for index, slot in enumerate(slots):
                    screen = screens[slot.screen_id]
                    start = to_utc_naive(slot.start_time)
                    end = start + duration
                    self._check_overlap(db, theater, screen, start, end, pending, index)

                    showtime = Showtime(
                        movie_id=movie.id,
                        theater_id=theater.id,
                        screen_id=screen.id,
                        start_time=start,
                        end_time=end,
                        price=Decimal(slot.price),
                    )
                    # Capacity is copied, later screen edits do not reach this showtime
                    showtime.ledger = SeatLedgerEntry(capacity=screen.capacity, reserved=0)
                    pending.append(showtime)

                db.add_all(pending)
                try:
                    db.commit()
                except SQLAlchemyError as exc:
                    db.rollback()
                    raise InternalError(
                        "Failed to assign movie to theater",
                        {"movie_id": str(movie_id), "theater_id": str(theater_id)},
                    ) from exc

                for showtime in pending:
                    db.refresh(showtime)

        logger.info(
            "Scheduled %d showtime(s) of movie %s in theater %s on screen(s) %s",
            len(pending), movie_id, theater_id, ", ".join(sorted(str(s) for s in screen_ids)),
        )
        return pending

    def _check_overlap(
        self,
        db: Session,
        theater: Theater,
        screen: Screen,
        start: datetime,
        end: datetime,
        pending: list[Showtime],
        index: int,
    ) -> None:
        """Raise ConflictError if ``[start, end)`` collides on ``screen``."""
        conflict = (
            db.query(Showtime)
            .filter(
                Showtime.screen_id == screen.id,
                Showtime.is_active == True,
                Showtime.start_time < end,
                Showtime.end_time > start,
            )
            .order_by(Showtime.start_time)
            .first()
        )
        conflict_id = str(conflict.id) if conflict else None

        if conflict is None:
            for earlier in pending:
                if earlier.screen_id == screen.id and overlaps(start, end, earlier.start_time, earlier.end_time):
                    conflict = earlier
                    break

        if conflict is None:
            return

        logger.info(
            "Rejected showtime on screen %s at %s: overlaps %s-%s",
            screen.id, start, conflict.start_time, conflict.end_time,
        )
        raise ConflictError(
            (
                f"Screen is already occupied from {conflict.start_time:%Y-%m-%d %H:%M} "
                f"to {conflict.end_time:%Y-%m-%d %H:%M}. "
                f"Theater: {theater.name}, Screen: {screen.name}, "
                f"Start Time: {start:%Y-%m-%d %H:%M} (entry {index})"
            ),
            {
                "showtime_id": conflict_id,
                "theater": theater.name,
                "screen": screen.name,
                "start_time": conflict.start_time.isoformat(),
                "end_time": conflict.end_time.isoformat(),
                "index": index,
            },
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_showtime(self, showtime_id: UUID, active_only: bool = True) -> Showtime:
        with self._session_factory() as db:
            query = (
                db.query(Showtime)
                .options(
                    joinedload(Showtime.movie),
                    joinedload(Showtime.theater),
                    joinedload(Showtime.screen),
                    joinedload(Showtime.ledger),
                )
                .filter(Showtime.id == showtime_id)
            )
            if active_only:
                query = query.filter(Showtime.is_active == True)
            showtime = query.first()
            if not showtime:
                raise NotFoundError("Show time not found", {"showtime_id": str(showtime_id)})
            return showtime

    def list_showtimes(
        self,
        theater_id: UUID,
        movie_id: Optional[UUID] = None,
        on_date: Optional[date] = None,
    ) -> list[dict]:
        """Active showtimes in a theater with live seat availability, earliest first."""
        with self._session_factory() as db:
            registry.get_theater(db, theater_id)
            query = (
                db.query(Showtime)
                .options(
                    joinedload(Showtime.movie),
                    joinedload(Showtime.screen),
                    joinedload(Showtime.ledger),
                )
                .filter(Showtime.theater_id == theater_id, Showtime.is_active == True)
            )
            if movie_id:
                query = query.filter(Showtime.movie_id == movie_id)
            if on_date:
                day_start = datetime.combine(on_date, time.min)
                query = query.filter(
                    Showtime.start_time >= day_start,
                    Showtime.start_time < day_start + timedelta(days=1),
                )

            return [
                {
                    "id": s.id,
                    "movie_id": s.movie_id,
                    "theater_id": s.theater_id,
                    "screen_id": s.screen_id,
                    "start_time": s.start_time,
                    "end_time": s.end_time,
                    "price": s.price,
                    "is_active": s.is_active,
                    "movie_title": s.movie.title,
                    "screen": {"id": s.screen.id, "name": s.screen.name},
                    "capacity": s.ledger.capacity,
                    "available_seats": s.ledger.available,
                }
                for s in query.order_by(Showtime.start_time).all()
            ]

    def screen_schedule(self, screen_id: UUID, on_date: Optional[date] = None) -> dict:
        with self._session_factory() as db:
            screen = registry.get_screen(db, screen_id)
            query = (
                db.query(Showtime)
                .options(joinedload(Showtime.movie), joinedload(Showtime.ledger))
                .filter(Showtime.screen_id == screen_id, Showtime.is_active == True)
            )
            if on_date:
                day_start = datetime.combine(on_date, time.min)
                query = query.filter(
                    Showtime.start_time >= day_start,
                    Showtime.start_time < day_start + timedelta(days=1),
                )
            else:
                query = query.filter(Showtime.end_time > utcnow())

            return {
                "screen_id": screen.id,
                "screen_name": screen.name,
                "capacity": screen.capacity,
                "slots": [
                    {
                        "id": s.id,
                        "movie_id": s.movie_id,
                        "movie_title": s.movie.title,
                        "start_time": s.start_time,
                        "end_time": s.end_time,
                        "capacity": s.ledger.capacity,
                        "reserved": s.ledger.reserved,
                    }
                    for s in query.order_by(Showtime.start_time).all()
                ],
            }

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def delete_showtime(self, showtime_id: UUID) -> Showtime:
        """Deactivate a showtime. Refused while any seat is held on it."""
        with self._ledger.locked(showtime_id):
            with self._session_factory() as db:
                showtime = (
                    db.query(Showtime)
                    .filter(Showtime.id == showtime_id, Showtime.is_active == True)
                    .with_for_update()
                    .first()
                )
                if not showtime:
                    raise NotFoundError("Show time not found", {"showtime_id": str(showtime_id)})

                entry = (
                    db.query(SeatLedgerEntry)
                    .filter(SeatLedgerEntry.showtime_id == showtime_id)
                    .with_for_update()
                    .first()
                )
                active_bookings = (
                    db.query(Booking)
                    .filter(Booking.showtime_id == showtime_id, Booking.status == BookingStatus.ACTIVE)
                    .count()
                )
                if active_bookings or (entry is not None and entry.reserved > 0):
                    db.rollback()
                    raise ConflictError(
                        "Show time has active bookings and cannot be deleted",
                        {"showtime_id": str(showtime_id), "active_bookings": active_bookings},
                    )

                showtime.is_active = False
                db.commit()
                db.refresh(showtime)

        logger.info("Deactivated showtime %s", showtime_id)
        return showtime
