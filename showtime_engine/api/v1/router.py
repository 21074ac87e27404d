from fastapi import APIRouter

# Scheduling
from showtime_engine.api.v1.showtimes import (
    router as showtimes_router,
    theater_showtimes_router,
    screen_schedule_router,
)

# Screen registry
from showtime_engine.api.v1.screens import theater_router as theater_screens_router, screen_router

# Bookings
from showtime_engine.api.v1.bookings import router as bookings_router

# Notifications
from showtime_engine.api.v1.notifications import router as notifications_router

api_router = APIRouter()

# --- Scheduling ---
api_router.include_router(showtimes_router)
api_router.include_router(theater_showtimes_router)
api_router.include_router(screen_schedule_router)

# --- Screen registry ---
api_router.include_router(theater_screens_router)
api_router.include_router(screen_router)

# --- Bookings ---
api_router.include_router(bookings_router)

# --- Notifications ---
api_router.include_router(notifications_router)
