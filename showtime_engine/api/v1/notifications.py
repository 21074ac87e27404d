from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from showtime_engine.core.errors import NotFoundError
from showtime_engine.db.session import get_db
from showtime_engine.models.notification import Notification
from showtime_engine.schemas.notification import Notification as NotificationSchema
from showtime_engine.schemas.common import PaginatedResponse

router = APIRouter(prefix="/users", tags=["Notifications"])


@router.get("/{user_id}/notifications", response_model=PaginatedResponse[NotificationSchema])
def list_notifications(
    user_id: UUID,
    unread_only: bool = Query(False, description="Return only unread notifications"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Return a user's booking notifications, newest first."""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)  # noqa: E712

    total = query.count()
    notifications = (
        query.order_by(Notification.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return PaginatedResponse[NotificationSchema](
        data=[NotificationSchema.model_validate(n) for n in notifications],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.patch("/{user_id}/notifications/{notif_id}/read", response_model=NotificationSchema)
def mark_notification_read(
    user_id: UUID,
    notif_id: UUID,
    db: Session = Depends(get_db),
):
    """Mark a single notification as read."""
    notif = db.query(Notification).filter(
        Notification.id == notif_id,
        Notification.user_id == user_id,
    ).first()
    if not notif:
        raise NotFoundError("Notification not found", {"notification_id": str(notif_id)})
    notif.is_read = True
    db.commit()
    db.refresh(notif)
    return notif
