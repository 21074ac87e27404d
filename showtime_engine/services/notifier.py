import logging
from typing import Protocol

from sqlalchemy.orm import sessionmaker

from showtime_engine.db.session import SessionLocal
from showtime_engine.models.notification import Notification
from showtime_engine.schemas.notification import BookingEvent, BookingEventKind

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, kind: BookingEventKind, payload: BookingEvent) -> None: ...


class DatabaseNotifier:
    """Stores one in-app notification per booking event for the booking's owner."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    def notify(self, kind: BookingEventKind, payload: BookingEvent) -> None:
        if kind == BookingEventKind.CONFIRMED:
            title = "Booking Confirmed"
            message = (
                f"Your booking for {payload.movie_title} is confirmed! "
                f"{payload.theater_name}, {payload.screen_name} on {payload.date} at {payload.time}, "
                f"{payload.seats} seat(s). Ref: {payload.booking_number}"
            )
        else:
            title = "Booking Cancelled"
            message = (
                f"Your booking #{payload.booking_number} for {payload.movie_title} "
                f"on {payload.date} at {payload.time} has been cancelled."
            )

        with self._session_factory() as db:
            db.add(Notification(
                user_id=payload.user_id,
                title=title,
                message=message,
                type=kind.value,
                reference_id=payload.booking_id,
            ))
            db.commit()
        logger.debug("Stored %s notification for booking %s", kind.value, payload.booking_id)
