from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_dispatcher, require_roles
from app.db.models import Admin
from app.db.session import get_db
from app.schemas.auth import PushTokenUpdate
from app.schemas.visitor import VisitorCreate
from app.services import visitor_service
from app.services.notification_service import NotificationDispatcher
from app.services.visit_service import serialize_visit
from app.services.visitor_service import serialize_visitor

router = APIRouter()
staff = require_roles("admin", "superadmin")


@router.get("/")
def list_visitors(
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": [serialize_visitor(row) for row in visitor_service.list_visitors(db, limit)]}


@router.post("/")
def register_visitor(
    payload: VisitorCreate,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    visitor, delivery = visitor_service.register_visitor(
        db,
        dispatcher,
        email=payload.email,
        full_name=payload.fullName,
        phone=payload.phone,
        company=payload.company,
        photo_url=payload.photoUrl,
        fcm_token=payload.fcmToken,
    )
    data = serialize_visitor(visitor)
    data["welcomeDelivery"] = delivery.status.value
    return {"data": data}


@router.get("/search")
def search_visitors(
    q: str = Query(default=""),
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": [serialize_visitor(row) for row in visitor_service.search_visitors(db, q)]}


@router.get("/{visitor_id}")
def visitor_detail(
    visitor_id: str,
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    visitor = visitor_service.get_visitor(db, visitor_id)
    data = serialize_visitor(visitor)
    data["visits"] = [serialize_visit(visit) for visit in visitor_service.list_visitor_visits(db, visitor.id)]
    return {"data": data}


@router.put("/{visitor_id}/push-token")
def update_push_token(
    visitor_id: str,
    payload: PushTokenUpdate,
    db: Session = Depends(get_db),
):
    """Register or clear a visitor's device token.

    Unauthenticated: visitors carry no credential in this service, so any
    caller who knows a visitor id can replace its token and redirect that
    visitor's pushes. Expose it only behind the visitor app's gateway until
    visitor tokens exist.
    """
    visitor = visitor_service.update_push_token(db, visitor_id, payload.token)
    return {"data": {"id": visitor.id, "hasPushToken": bool(visitor.fcm_token)}}
