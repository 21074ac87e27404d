from enum import Enum
from typing import Optional
from pydantic import BaseModel, UUID4
from datetime import datetime


class Notification(BaseModel):
    id: UUID4
    user_id: UUID4
    title: str
    message: str
    type: str
    is_read: bool
    reference_id: Optional[UUID4] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BookingEventKind(str, Enum):
    CONFIRMED = "booking_confirmed"
    CANCELLED = "booking_cancelled"


# Payload handed to the notifier; display fields are resolved by the orchestrator
class BookingEvent(BaseModel):
    booking_id: UUID4
    booking_number: str
    user_id: UUID4
    movie_title: str
    theater_name: str
    screen_name: str
    seats: int
    date: str   # e.g. "October 18, 2026"
    time: str   # e.g. "2:00 PM"
