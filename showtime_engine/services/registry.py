"""
Screen Registry: theater, screen and movie records read by the engine.

The engine treats these as reference data. ``register_theater`` and
``register_movie`` exist to load that data; everything else only reads,
except ``update_screen_capacity`` which enforces the capacity policy.
"""
import logging
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from showtime_engine.core.errors import ConflictError, NotFoundError, ValidationError
from showtime_engine.models.movie import Movie
from showtime_engine.models.showtime import Showtime, SeatLedgerEntry
from showtime_engine.models.theater import Theater, Screen

logger = logging.getLogger(__name__)


def get_theater(db: Session, theater_id: UUID) -> Theater:
    theater = db.query(Theater).filter(Theater.id == theater_id, Theater.is_active == True).first()
    if not theater:
        raise NotFoundError("Theater not found", {"theater_id": str(theater_id)})
    return theater


def get_screen(
    db: Session,
    screen_id: UUID,
    theater_id: Optional[UUID] = None,
    for_update: bool = False,
) -> Screen:
    """Load an active screen, optionally requiring it to belong to ``theater_id``.

    ``for_update`` takes a row lock on backends that support it, which
    serialises schedule changes on the screen across processes.
    """
    query = db.query(Screen).filter(Screen.id == screen_id, Screen.is_active == True)
    if theater_id is not None:
        query = query.filter(Screen.theater_id == theater_id)
    if for_update:
        query = query.with_for_update()
    screen = query.first()
    if not screen:
        if theater_id is not None:
            raise NotFoundError(
                f"Screen {screen_id} not found in this theater",
                {"screen_id": str(screen_id), "theater_id": str(theater_id)},
            )
        raise NotFoundError("Screen not found", {"screen_id": str(screen_id)})
    return screen


def get_movie(db: Session, movie_id: UUID) -> Movie:
    movie = db.query(Movie).filter(Movie.id == movie_id, Movie.is_active == True).first()
    if not movie:
        raise NotFoundError("Movie not found", {"movie_id": str(movie_id)})
    return movie


def list_screens(db: Session, theater_id: UUID) -> list[Screen]:
    get_theater(db, theater_id)
    return (
        db.query(Screen)
        .filter(Screen.theater_id == theater_id, Screen.is_active == True)
        .order_by(Screen.name)
        .all()
    )


def register_theater(
    db: Session,
    name: str,
    location: Optional[str] = None,
    screens: Iterable[tuple[str, int]] = (),
) -> Theater:
    """Create a theater with its screens. A repeated screen name is skipped."""
    theater = Theater(name=name, location=location)
    db.add(theater)
    db.flush()

    seen = set()
    for screen_name, capacity in screens:
        if screen_name in seen:
            continue
        if capacity is None or capacity <= 0:
            db.rollback()
            raise ValidationError(
                f"Screen '{screen_name}' must have a positive capacity",
                {"screen": screen_name, "capacity": capacity},
            )
        seen.add(screen_name)
        db.add(Screen(theater_id=theater.id, name=screen_name, capacity=capacity))

    db.commit()
    db.refresh(theater)
    return theater


def register_movie(
    db: Session,
    title: str,
    duration_minutes: int,
    genre: Optional[str] = None,
    language: Optional[str] = None,
) -> Movie:
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError("Movie duration must be a positive number of minutes")
    movie = Movie(title=title, duration_minutes=duration_minutes, genre=genre, language=language)
    db.add(movie)
    db.commit()
    db.refresh(movie)
    return movie


def update_screen_capacity(db: Session, screen_id: UUID, capacity: int) -> Screen:
    """
    Change a screen's capacity for showtimes created from now on.

    Existing showtimes keep the capacity copied into their ledger entry. A
    decrease below the seats already held on any active showtime of this
    screen is rejected.
    """
    if capacity is None or capacity <= 0:
        raise ValidationError("Capacity must be greater than zero", {"capacity": capacity})

    screen = get_screen(db, screen_id, for_update=True)

    max_reserved = (
        db.query(func.max(SeatLedgerEntry.reserved))
        .join(Showtime, Showtime.id == SeatLedgerEntry.showtime_id)
        .filter(Showtime.screen_id == screen_id, Showtime.is_active == True)
        .scalar()
    ) or 0

    if capacity < max_reserved:
        db.rollback()
        raise ConflictError(
            f"Screen capacity cannot drop to {capacity}: a showtime on this screen already holds {max_reserved} seat(s)",
            {"screen_id": str(screen_id), "capacity": capacity, "max_reserved": max_reserved},
        )

    logger.info("Screen %s capacity changed %d -> %d", screen_id, screen.capacity, capacity)
    screen.capacity = capacity
    db.commit()
    db.refresh(screen)
    return screen
