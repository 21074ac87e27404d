"""
Seat Ledger: per-showtime count of seats held by active bookings.

Every mutation of ``seat_ledger.reserved`` goes through :meth:`SeatLedger.reserve`
or :meth:`SeatLedger.release`. Both run inside a per-showtime lock and apply a
single conditional ``UPDATE``, so the database row is never read, changed in
Python and written back.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, NamedTuple, Optional
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from showtime_engine.core.errors import InsufficientSeatsError, InternalError, NotFoundError, ValidationError
from showtime_engine.core.locks import KeyedLocks
from showtime_engine.db.session import SessionLocal
from showtime_engine.models.booking import Booking, BookingStatus
from showtime_engine.models.showtime import Showtime, SeatLedgerEntry

logger = logging.getLogger(__name__)


class LedgerSnapshot(NamedTuple):
    showtime_id: UUID
    capacity: int
    reserved: int

    @property
    def available(self) -> int:
        return self.capacity - self.reserved


class LedgerCorrection(NamedTuple):
    showtime_id: UUID
    recorded: int
    actual: int


class SeatLedger:
    def __init__(self, session_factory: sessionmaker = SessionLocal, locks: Optional[KeyedLocks] = None):
        self._session_factory = session_factory
        self._locks = locks or KeyedLocks()

    @contextmanager
    def locked(self, showtime_id: UUID) -> Iterator[None]:
        """Serialise against every other ledger mutation of ``showtime_id``."""
        with self._locks.hold(showtime_id):
            yield

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load(self, db: Session, showtime_id: UUID, for_update: bool = False) -> SeatLedgerEntry:
        query = db.query(SeatLedgerEntry).filter(SeatLedgerEntry.showtime_id == showtime_id)
        if for_update:
            query = query.with_for_update()
        entry = query.first()
        if entry is None:
            raise NotFoundError("Show time not found", {"showtime_id": str(showtime_id)})
        return entry

    def availability(self, showtime_id: UUID) -> LedgerSnapshot:
        with self._session_factory() as db:
            entry = self._load(db, showtime_id)
            return LedgerSnapshot(entry.showtime_id, entry.capacity, entry.reserved)

    def available_seats(self, showtime_id: UUID) -> int:
        return self.availability(showtime_id).available

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def reserve(self, showtime_id: UUID, count: int) -> LedgerSnapshot:
        """
        Hold ``count`` seats on an active showtime.

        Raises ``InsufficientSeatsError`` (with the current availability) when
        the seats would exceed capacity; ``reserved`` is left untouched then.
        """
        if count is None or count < 1:
            raise ValidationError("Number of seats must be at least 1", {"requested": count})

        showtime_is_active = (
            select(Showtime.id)
            .where(Showtime.id == showtime_id, Showtime.is_active == True)
            .exists()
        )

        with self.locked(showtime_id):
            with self._session_factory() as db:
                try:
                    # The new counts come back with the UPDATE; nothing is read after the commit
                    row = db.execute(
                        update(SeatLedgerEntry)
                        .where(
                            SeatLedgerEntry.showtime_id == showtime_id,
                            SeatLedgerEntry.reserved + count <= SeatLedgerEntry.capacity,
                            showtime_is_active,
                        )
                        .values(reserved=SeatLedgerEntry.reserved + count)
                        .returning(SeatLedgerEntry.capacity, SeatLedgerEntry.reserved)
                        .execution_options(synchronize_session=False)
                    ).first()
                    if row is not None:
                        db.commit()
                        return LedgerSnapshot(showtime_id, row.capacity, row.reserved)
                    db.rollback()

                    entry = self._load(db, showtime_id)
                    is_active = db.query(Showtime.is_active).filter(Showtime.id == showtime_id).scalar()
                except SQLAlchemyError as exc:
                    db.rollback()
                    raise InternalError(
                        "Seat reservation failed",
                        {"showtime_id": str(showtime_id), "requested": count},
                    ) from exc

                if not is_active:
                    raise NotFoundError("Show time not found", {"showtime_id": str(showtime_id)})

                logger.info(
                    "Reservation rejected for showtime %s: requested=%d available=%d",
                    showtime_id, count, entry.available,
                )
                raise InsufficientSeatsError(showtime_id, available=entry.available, requested=count)

    def release(self, showtime_id: UUID, count: int) -> LedgerSnapshot:
        """
        Give back ``count`` seats. ``reserved`` is floored at zero.

        An ``InternalError`` from here means the release was not applied, so
        callers may retry it.
        """
        if count is None or count < 1:
            raise ValidationError("Number of seats must be at least 1", {"released": count})

        with self.locked(showtime_id):
            with self._session_factory() as db:
                try:
                    entry = self._load(db, showtime_id, for_update=True)
                    if count > entry.reserved:
                        logger.warning(
                            "Release of %d seat(s) on showtime %s exceeds reserved=%d; flooring at 0",
                            count, showtime_id, entry.reserved,
                        )
                    row = db.execute(
                        update(SeatLedgerEntry)
                        .where(SeatLedgerEntry.showtime_id == showtime_id)
                        .values(
                            reserved=case(
                                (SeatLedgerEntry.reserved >= count, SeatLedgerEntry.reserved - count),
                                else_=0,
                            )
                        )
                        .returning(SeatLedgerEntry.capacity, SeatLedgerEntry.reserved)
                        .execution_options(synchronize_session=False)
                    ).one()
                    db.commit()
                except SQLAlchemyError as exc:
                    db.rollback()
                    raise InternalError(
                        "Seat release failed",
                        {"showtime_id": str(showtime_id), "released": count},
                    ) from exc
                return LedgerSnapshot(showtime_id, row.capacity, row.reserved)

    def reconcile(self, showtime_id: Optional[UUID] = None) -> list[LedgerCorrection]:
        """
        Recompute ``reserved`` from active bookings and correct any drift.

        Meant for maintenance runs after a reconciliation-needed error: a
        booking in flight (seats held, record not yet written) would be
        counted as drift.
        """
        if showtime_id is not None:
            showtime_ids = [showtime_id]
        else:
            with self._session_factory() as db:
                showtime_ids = [row[0] for row in db.query(SeatLedgerEntry.showtime_id).all()]

        corrections = []
        for sid in showtime_ids:
            with self.locked(sid):
                with self._session_factory() as db:
                    entry = self._load(db, sid, for_update=True)
                    actual = (
                        db.query(func.coalesce(func.sum(Booking.number_of_seats), 0))
                        .filter(Booking.showtime_id == sid, Booking.status == BookingStatus.ACTIVE)
                        .scalar()
                    )
                    if actual == entry.reserved:
                        continue
                    if actual > entry.capacity:
                        logger.error(
                            "Showtime %s has %d active seat(s) booked over capacity %d",
                            sid, actual, entry.capacity,
                        )
                    logger.warning(
                        "Ledger drift on showtime %s: recorded=%d actual=%d",
                        sid, entry.reserved, actual,
                    )
                    corrections.append(LedgerCorrection(sid, entry.reserved, actual))
                    entry.reserved = min(actual, entry.capacity)
                    db.commit()
        return corrections
