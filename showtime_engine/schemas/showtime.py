from typing import Annotated, Optional, List
from pydantic import BaseModel, UUID4, Field
from decimal import Decimal
from datetime import datetime

from showtime_engine.schemas.theater import ScreenSummary


# Showtime: one entry of an assignment batch
class ShowtimeSlotInput(BaseModel):
    screen_id: UUID4
    start_time: datetime
    price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)


# Showtime: assign (POST /showtimes/assign)
class ShowtimeAssign(BaseModel):
    movie_id: UUID4
    theater_id: UUID4
    show_times: Annotated[List[ShowtimeSlotInput], Field(min_length=1)]


# Showtime: DB response
class Showtime(BaseModel):
    id: UUID4
    movie_id: UUID4
    theater_id: UUID4
    screen_id: UUID4
    start_time: datetime
    end_time: datetime
    price: Decimal
    is_active: bool = True

    class Config:
        from_attributes = True


class ShowtimeAssignResponse(BaseModel):
    showtime_ids: List[UUID4]
    showtimes: List[Showtime]


# Seat ledger view (GET /showtimes/{id}/availability)
class Availability(BaseModel):
    showtime_id: UUID4
    capacity: int
    reserved: int
    available: int


# Showtime with live availability: theater listing
class ShowtimeWithAvailability(Showtime):
    movie_title: str
    screen: Optional[ScreenSummary] = None
    capacity: int
    available_seats: int


# Screen schedule entry: GET /screens/{id}/schedule
class ScreenScheduleEntry(BaseModel):
    id: UUID4
    movie_id: UUID4
    movie_title: str
    start_time: datetime
    end_time: datetime
    capacity: int
    reserved: int


class ScreenScheduleResponse(BaseModel):
    screen_id: UUID4
    screen_name: str
    capacity: int
    slots: List[ScreenScheduleEntry]
