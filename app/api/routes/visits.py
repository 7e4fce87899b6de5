from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_dispatcher, require_roles
from app.db.models import Admin
from app.db.session import get_db
from app.schemas.visit import BulkApproveRequest, VisitCreate, VisitDeny
from app.services import visit_service
from app.services.activity_service import list_activity_logs, serialize_activity_log
from app.services.notification_service import NotificationDispatcher
from app.services.visit_service import serialize_visit

router = APIRouter()
staff = require_roles("admin", "superadmin")


@router.get("/")
def list_visits(
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": [serialize_visit(visit) for visit in visit_service.list_visits(db)]}


@router.get("/pending")
def pending_visits(
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": [serialize_visit(visit) for visit in visit_service.list_pending_visits(db)]}


@router.get("/today")
def today_visits(
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": [serialize_visit(visit) for visit in visit_service.list_today_visits(db)]}


@router.get("/search")
def search_visits(
    q: str = Query(default=""),
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": [serialize_visit(visit) for visit in visit_service.search_visits(db, q)]}


@router.post("/")
def create_visit(
    payload: VisitCreate,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    visit = visit_service.create_visit(
        db,
        dispatcher,
        visitor_id=payload.visitorId,
        visit_date=payload.visitDate,
        purpose=payload.purpose,
        host_name=payload.hostName,
        host_department=payload.hostDepartment,
        expected_arrival_time=payload.expectedArrivalTime,
        expected_departure_time=payload.expectedDepartureTime,
        notes=payload.notes,
    )
    return {"data": serialize_visit(visit)}


@router.post("/bulk-approve")
def bulk_approve(
    payload: BulkApproveRequest,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    admin: Admin = Depends(staff),
):
    return {"data": visit_service.bulk_approve_visits(db, dispatcher, payload.visitIds, admin.id)}


@router.get("/{visit_id}")
def visit_detail(
    visit_id: str,
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    visit = visit_service.get_visit(db, visit_id)
    data = serialize_visit(visit)
    data["activity"] = [serialize_activity_log(row) for row in list_activity_logs(db, visit_id=visit.id)]
    return {"data": data}


@router.post("/{visit_id}/approve")
def approve_visit(
    visit_id: str,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    admin: Admin = Depends(staff),
):
    decision = visit_service.approve_visit(db, dispatcher, visit_id, admin.id)
    return {"data": {"visit": serialize_visit(decision.visit), "delivery": decision.delivery.status.value}}


@router.post("/{visit_id}/deny")
def deny_visit(
    visit_id: str,
    payload: VisitDeny,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    admin: Admin = Depends(staff),
):
    decision = visit_service.deny_visit(db, dispatcher, visit_id, admin.id, payload.reason)
    return {"data": {"visit": serialize_visit(decision.visit), "delivery": decision.delivery.status.value}}
