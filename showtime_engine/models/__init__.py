from showtime_engine.models.theater import Theater, Screen
from showtime_engine.models.movie import Movie
from showtime_engine.models.showtime import Showtime, SeatLedgerEntry
from showtime_engine.models.booking import Booking, BookingStatus
from showtime_engine.models.notification import Notification
