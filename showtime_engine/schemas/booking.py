from typing import Optional
from pydantic import BaseModel, Field, UUID4
from decimal import Decimal
from datetime import datetime

from showtime_engine.models.booking import BookingStatus


# Booking: Create (POST /bookings)
class BookingCreate(BaseModel):
    user_id: UUID4
    movie_id: UUID4
    theater_id: UUID4
    showtime_id: UUID4
    seats: int = Field(ge=1)


# Nested display data for booking history
class BookingShowtimeSummary(BaseModel):
    movie_title: str
    theater_name: str
    theater_location: Optional[str] = None
    screen_name: str
    start_time: datetime
    end_time: datetime


# Booking: Full response
class Booking(BaseModel):
    id: UUID4
    booking_number: str
    user_id: UUID4
    showtime_id: UUID4
    movie_id: UUID4
    theater_id: UUID4
    number_of_seats: int
    price_per_seat: Decimal
    total_price: Decimal
    status: BookingStatus
    created_at: datetime
    cancelled_at: Optional[datetime] = None
    showtime: Optional[BookingShowtimeSummary] = None

    class Config:
        from_attributes = True
