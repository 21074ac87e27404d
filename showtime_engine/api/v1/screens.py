from uuid import UUID
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from showtime_engine.db.session import get_db
from showtime_engine.schemas.common import ErrorResponse
from showtime_engine.schemas.theater import Screen as ScreenSchema, ScreenCapacityUpdate
from showtime_engine.services import registry

theater_router = APIRouter(prefix="/theaters", tags=["Screens"])
screen_router = APIRouter(prefix="/screens", tags=["Screens"])


@theater_router.get("/{theater_id}/screens", response_model=List[ScreenSchema])
def list_screens(
    theater_id: UUID,
    db: Session = Depends(get_db),
):
    return registry.list_screens(db, theater_id)


@screen_router.patch(
    "/{screen_id}/capacity",
    response_model=ScreenSchema,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def update_capacity(
    screen_id: UUID,
    data: ScreenCapacityUpdate,
    db: Session = Depends(get_db),
):
    """
    Change a screen's capacity. Applies to showtimes created afterwards;
    a value below the seats already held on a showtime is rejected.
    """
    return registry.update_screen_capacity(db, screen_id, data.capacity)
