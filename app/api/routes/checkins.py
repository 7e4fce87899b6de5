from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_dispatcher, require_roles
from app.db.models import Admin
from app.db.session import get_db
from app.schemas.checkin import CheckOutRequest, QRValidateRequest, QRVerifyRequest
from app.services import checkin_service
from app.services.checkin_service import serialize_checkin
from app.services.notification_service import NotificationDispatcher
from app.services.visit_service import serialize_visit

router = APIRouter()
staff = require_roles("admin", "superadmin")


@router.get("/today")
def today_checkins(
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": [serialize_checkin(row) for row in checkin_service.list_today_checkins(db)]}


@router.get("/active")
def active_checkins(
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": [serialize_checkin(row) for row in checkin_service.list_active_checkins(db)]}


@router.get("/recent")
def recent_checkins(
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": [serialize_checkin(row) for row in checkin_service.list_recent_checkins(db)]}


@router.post("/validate")
def validate_qr(
    payload: QRValidateRequest,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    admin: Admin = Depends(staff),
):
    result = checkin_service.validate_qr_code(
        db,
        dispatcher,
        payload.qrData,
        location=payload.location,
        verified_by=admin.id,
    )
    return {
        "data": {
            "checkIn": serialize_checkin(result.checkin),
            "visit": serialize_visit(result.visit),
            "delivery": result.delivery.status.value,
        }
    }


@router.post("/verify")
def verify_qr(
    payload: QRVerifyRequest,
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": checkin_service.verify_visit(db, payload.qrData)}


@router.post("/checkout")
def checkout(
    payload: CheckOutRequest,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    _: Admin = Depends(staff),
):
    result = checkin_service.check_out_visitor(
        db,
        dispatcher,
        payload.visitId,
        visitor_id=payload.visitorId,
        location=payload.location,
    )
    return {
        "data": {
            "checkIn": serialize_checkin(result.checkin),
            "durationMinutes": result.duration_minutes,
            "delivery": result.delivery.status.value,
        }
    }


@router.get("/{checkin_id}")
def checkin_detail(
    checkin_id: str,
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": serialize_checkin(checkin_service.get_checkin(db, checkin_id))}
