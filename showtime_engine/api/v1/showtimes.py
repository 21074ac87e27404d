from uuid import UUID
from typing import List, Optional
from datetime import date

from fastapi import APIRouter, Depends, Query, status

from showtime_engine.api.deps import get_catalog, get_ledger
from showtime_engine.schemas.common import ConflictErrorResponse, ErrorResponse
from showtime_engine.schemas.showtime import (
    Availability,
    ShowtimeAssign,
    ShowtimeAssignResponse,
    Showtime as ShowtimeSchema,
    ShowtimeWithAvailability,
    ScreenScheduleResponse,
)
from showtime_engine.services.catalog import ShowtimeCatalog, SlotRequest
from showtime_engine.services.ledger import SeatLedger

router = APIRouter(prefix="/showtimes", tags=["Showtimes"])
theater_showtimes_router = APIRouter(prefix="/theaters", tags=["Showtimes"])
screen_schedule_router = APIRouter(prefix="/screens", tags=["Screen Schedule"])


# ---------------------------------------------------------------------------
# POST /showtimes/assign: schedule a batch of showings (all or nothing)
# ---------------------------------------------------------------------------


@router.post(
    "/assign",
    response_model=ShowtimeAssignResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ConflictErrorResponse}},
)
def assign_showtimes(
    data: ShowtimeAssign,
    catalog: ShowtimeCatalog = Depends(get_catalog),
):
    """
    Assign a movie to screens of a theater.

    - End time is the start time plus the movie's duration.
    - Every entry must fit the screen's existing schedule and must not overlap
      another entry of the same request on the same screen.
    - On the first conflict nothing is created and the colliding showtime is
      reported.
    """
    showtimes = catalog.assign_showtimes(
        data.movie_id,
        data.theater_id,
        [SlotRequest(s.screen_id, s.start_time, s.price) for s in data.show_times],
    )
    return ShowtimeAssignResponse(
        showtime_ids=[s.id for s in showtimes],
        showtimes=[ShowtimeSchema.model_validate(s) for s in showtimes],
    )


@router.get("/{showtime_id}", response_model=ShowtimeSchema, responses={404: {"model": ErrorResponse}})
def get_showtime(
    showtime_id: UUID,
    catalog: ShowtimeCatalog = Depends(get_catalog),
):
    return catalog.get_showtime(showtime_id)


@router.get(
    "/{showtime_id}/availability",
    response_model=Availability,
    responses={404: {"model": ErrorResponse}},
)
def get_availability(
    showtime_id: UUID,
    ledger: SeatLedger = Depends(get_ledger),
):
    """Seats held and seats left for a showtime."""
    snapshot = ledger.availability(showtime_id)
    return Availability(
        showtime_id=snapshot.showtime_id,
        capacity=snapshot.capacity,
        reserved=snapshot.reserved,
        available=snapshot.available,
    )


@router.delete("/{showtime_id}", status_code=status.HTTP_200_OK, responses={409: {"model": ErrorResponse}})
def delete_showtime(
    showtime_id: UUID,
    catalog: ShowtimeCatalog = Depends(get_catalog),
):
    catalog.delete_showtime(showtime_id)
    return {"id": str(showtime_id), "is_active": False}


# ---------------------------------------------------------------------------
# GET /theaters/{id}/showtimes: what is playing, with seats left
# ---------------------------------------------------------------------------


@theater_showtimes_router.get("/{theater_id}/showtimes", response_model=List[ShowtimeWithAvailability])
def list_theater_showtimes(
    theater_id: UUID,
    movie_id: Optional[UUID] = Query(None, description="Only showings of this movie"),
    date: Optional[date] = Query(None, description="Only showings starting on this (UTC) date"),
    catalog: ShowtimeCatalog = Depends(get_catalog),
):
    return catalog.list_showtimes(theater_id, movie_id=movie_id, on_date=date)


# ---------------------------------------------------------------------------
# GET /screens/{id}/schedule
# ---------------------------------------------------------------------------


@screen_schedule_router.get("/{screen_id}/schedule", response_model=ScreenScheduleResponse)
def get_screen_schedule(
    screen_id: UUID,
    date: Optional[date] = Query(None, description="Filter by date (omit to see all upcoming)"),
    catalog: ShowtimeCatalog = Depends(get_catalog),
):
    """
    Show everything scheduled on a screen.
    - Pass `date` to see a single day.
    - Omit `date` to see all showings that have not ended yet.
    """
    return catalog.screen_schedule(screen_id, on_date=date)
