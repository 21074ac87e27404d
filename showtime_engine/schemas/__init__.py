from showtime_engine.schemas.common import (
    PaginatedResponse, ErrorResponse, ConflictErrorResponse,
    InsufficientSeatsErrorResponse, InternalErrorResponse,
)
from showtime_engine.schemas.theater import Screen, ScreenCapacityUpdate, ScreenSummary
from showtime_engine.schemas.showtime import (
    ShowtimeSlotInput, ShowtimeAssign, Showtime, ShowtimeAssignResponse,
    Availability, ShowtimeWithAvailability, ScreenScheduleEntry, ScreenScheduleResponse,
)
from showtime_engine.schemas.booking import Booking, BookingCreate, BookingShowtimeSummary
from showtime_engine.schemas.notification import Notification, BookingEvent, BookingEventKind
