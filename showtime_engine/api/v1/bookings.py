from uuid import UUID
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from showtime_engine.api.deps import get_orchestrator
from showtime_engine.models.booking import Booking, BookingStatus
from showtime_engine.schemas.booking import (
    BookingCreate,
    Booking as BookingSchema,
    BookingShowtimeSummary,
)
from showtime_engine.schemas.common import (
    ErrorResponse,
    InsufficientSeatsErrorResponse,
    InternalErrorResponse,
    PaginatedResponse,
)
from showtime_engine.services.orchestrator import BookingOrchestrator

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _serialize_booking(booking: Booking) -> BookingSchema:
    """Convert a Booking ORM object to its schema representation."""
    showtime_summary = None
    st = booking.showtime
    if st is not None:
        showtime_summary = BookingShowtimeSummary(
            movie_title=st.movie.title,
            theater_name=st.theater.name,
            theater_location=st.theater.location,
            screen_name=st.screen.name,
            start_time=st.start_time,
            end_time=st.end_time,
        )

    return BookingSchema(
        id=booking.id,
        booking_number=booking.booking_number,
        user_id=booking.user_id,
        showtime_id=booking.showtime_id,
        movie_id=booking.movie_id,
        theater_id=booking.theater_id,
        number_of_seats=booking.number_of_seats,
        price_per_seat=booking.price_per_seat,
        total_price=booking.total_price,
        status=booking.status,
        created_at=booking.created_at,
        cancelled_at=booking.cancelled_at,
        showtime=showtime_summary,
    )


# ---------------------------------------------------------------------------
# POST /bookings: reserve seats and record the booking
# ---------------------------------------------------------------------------


@router.post(
    "/",
    response_model=BookingSchema,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": InsufficientSeatsErrorResponse},
        500: {"model": InternalErrorResponse},
    },
)
def create_booking(
    data: BookingCreate,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    """
    Book seats for a showtime.
    - The showtime must belong to the given movie and theater.
    - Total = showtime price × seats, fixed at booking time.
    - When not enough seats are left the response carries the current availability.
    """
    booking = orchestrator.book(
        data.user_id,
        data.movie_id,
        data.theater_id,
        data.showtime_id,
        data.seats,
    )
    return _serialize_booking(booking)


# ---------------------------------------------------------------------------
# GET /bookings: a user's booking history
# ---------------------------------------------------------------------------


@router.get("/", response_model=PaginatedResponse[BookingSchema])
def list_bookings(
    user_id: UUID = Query(..., description="Owner of the bookings"),
    status: Optional[BookingStatus] = Query(None, description="Filter by status: active, cancelled"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    """Return the user's bookings, newest first."""
    bookings, total = orchestrator.list_bookings(user_id, status=status, page=page, limit=limit)
    return PaginatedResponse[BookingSchema](
        data=[_serialize_booking(b) for b in bookings],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


# ---------------------------------------------------------------------------
# GET /bookings/{id}
# ---------------------------------------------------------------------------


@router.get("/{booking_id}", response_model=BookingSchema, responses={404: {"model": ErrorResponse}})
def get_booking(
    booking_id: UUID,
    user_id: Optional[UUID] = Query(None, description="When given, the booking must belong to this user"),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    return _serialize_booking(orchestrator.get_booking(booking_id, user_id=user_id))


# ---------------------------------------------------------------------------
# PATCH /bookings/{id}/cancel
# ---------------------------------------------------------------------------


@router.patch(
    "/{booking_id}/cancel",
    response_model=BookingSchema,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": InternalErrorResponse},
    },
)
def cancel_booking(
    booking_id: UUID,
    user_id: Optional[UUID] = Query(None, description="When given, the booking must belong to this user"),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    """
    Cancel an active booking.
    - Frees its seats on the showtime.
    - Cancelling twice is rejected with 409.
    - Sends a cancellation notification.
    """
    return _serialize_booking(orchestrator.cancel(booking_id, user_id=user_id))
