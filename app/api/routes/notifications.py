from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_admin
from app.core.exceptions import NotFoundError
from app.db.models import Admin
from app.db.session import get_db
from app.services.notification_service import (
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)

router = APIRouter()


@router.get("/")
def admin_notifications(
    unreadOnly: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return {"data": list_notifications(db, admin.id, limit=limit, unread_only=unreadOnly)}


@router.post("/{notification_id}/read")
def read_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    data = mark_notification_read(db, admin.id, notification_id)
    if not data:
        raise NotFoundError("Notification not found")
    return {"data": data}


@router.post("/read-all")
def read_all_notifications(
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return {"data": {"updated": mark_all_notifications_read(db, admin.id)}}
