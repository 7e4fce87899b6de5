import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.dates import day_bounds, utcnow
from app.core.exceptions import (
    AppException,
    ConflictStateError,
    ExternalServiceError,
    NotFoundError,
    ValidationFailedError,
)
from app.db.models import Admin, Visit, VisitStatus, Visitor
from app.repositories import checkins as checkin_repo
from app.repositories import visits as visit_repo
from app.services.activity_service import write_activity_log
from app.services.notification_service import DeliveryResult, NotificationDispatcher
from app.services.qr_service import issue_qr_payload

logger = logging.getLogger(__name__)
settings = get_settings()

SYSTEM_ACTOR = "system"


@dataclass
class VisitDecision:
    visit: Visit
    delivery: DeliveryResult


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_visit(visit: Visit) -> dict[str, Any]:
    return {
        "id": visit.id,
        "visitorId": visit.visitor_id,
        "visitorName": visit.visitor_name,
        "visitorEmail": visit.visitor_email,
        "visitorPhone": visit.visitor_phone,
        "visitorCompany": visit.visitor_company,
        "purpose": visit.purpose,
        "hostName": visit.host_name,
        "hostDepartment": visit.host_department,
        "visitDate": _iso(visit.visit_date),
        "expectedArrivalTime": _iso(visit.expected_arrival_time),
        "expectedDepartureTime": _iso(visit.expected_departure_time),
        "status": visit.status.value,
        "qrCode": visit.qr_code,
        "notes": visit.notes,
        "denialReason": visit.denial_reason,
        "approvedBy": visit.approved_by,
        "approvedAt": _iso(visit.approved_at),
        "lastCheckInTime": _iso(visit.last_check_in_time),
        "lastCheckOutTime": _iso(visit.last_check_out_time),
        "visitDurationMinutes": visit.visit_duration_minutes,
        "createdAt": _iso(visit.created_at),
        "updatedAt": _iso(visit.updated_at),
    }


def get_visit(db: Session, visit_id: str) -> Visit:
    visit = visit_repo.get_visit(db, visit_id)
    if not visit:
        raise NotFoundError(f"Visit {visit_id} not found")
    return visit


def list_visits(db: Session) -> list[Visit]:
    return visit_repo.list_recent_visits(db)


def list_pending_visits(db: Session) -> list[Visit]:
    return visit_repo.list_visits_by_status(db, VisitStatus.pending)


def list_today_visits(db: Session, now: datetime | None = None) -> list[Visit]:
    start, end = day_bounds(now or utcnow())
    return visit_repo.list_visits_between(db, start, end)


def search_visits(db: Session, term: str) -> list[Visit]:
    if not (term or "").strip():
        return list_visits(db)
    return visit_repo.search_visits(db, term)


def get_visit_counts(db: Session, now: datetime | None = None) -> dict[str, int]:
    start, end = day_bounds(now or utcnow())
    return {
        "totalToday": visit_repo.count_visits(db, start=start, end=end),
        "pending": visit_repo.count_visits(db, status=VisitStatus.pending),
        "approvedToday": visit_repo.count_visits(db, status=VisitStatus.approved, start=start, end=end),
        "checkedIn": checkin_repo.count_checkins_between(db, start, end, open_only=True),
    }


def _require_pending(db: Session, visit_id: str) -> Visit:
    visit = get_visit(db, visit_id)
    if visit.status != VisitStatus.pending:
        raise ConflictStateError(f"Visit is already {visit.status.value}")
    return visit


def _transition_from_pending(db: Session, visit_id: str, values: dict[str, Any], action: str) -> Visit:
    """Apply ``values`` only if the visit is still pending.

    A concurrent decision that landed first turns this call into a
    ConflictStateError instead of silently overwriting it.
    """
    try:
        if not visit_repo.transition_status(db, visit_id, VisitStatus.pending, values):
            db.rollback()
            current = visit_repo.get_visit(db, visit_id)
            if not current:
                raise NotFoundError(f"Visit {visit_id} not found")
            raise ConflictStateError(f"Visit is already {current.status.value}")
        db.commit()
        return get_visit(db, visit_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise ExternalServiceError(f"Error {action} visit: {exc}") from exc


def approve_visit(
    db: Session,
    dispatcher: NotificationDispatcher,
    visit_id: str,
    approver_id: str,
    now: datetime | None = None,
) -> VisitDecision:
    now = now or utcnow()
    visit = _require_pending(db, visit_id)
    qr = issue_qr_payload(visit.id, visit.visitor_id, issued_at=now)
    visit = _transition_from_pending(
        db,
        visit_id,
        {
            "status": VisitStatus.approved,
            "approved_by": approver_id,
            "approved_at": now,
            "updated_at": now,
            "qr_code": qr.to_json(),
        },
        action="approving",
    )
    logger.info("visit.approved visit_id=%s approver_id=%s", visit.id, approver_id)
    write_activity_log(
        db,
        "visit_status_changed",
        visit_id=visit.id,
        visitor_id=visit.visitor_id,
        actor_id=approver_id,
        meta={"oldStatus": "pending", "newStatus": "approved"},
    )
    delivery = dispatcher.visit_approved(visit)
    return VisitDecision(visit=visit, delivery=delivery)


def deny_visit(
    db: Session,
    dispatcher: NotificationDispatcher,
    visit_id: str,
    approver_id: str,
    reason: str,
    now: datetime | None = None,
) -> VisitDecision:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailedError("A denial reason is required")

    now = now or utcnow()
    _require_pending(db, visit_id)
    visit = _transition_from_pending(
        db,
        visit_id,
        {
            "status": VisitStatus.denied,
            "denial_reason": reason,
            "approved_by": approver_id,
            "approved_at": now,
            "updated_at": now,
        },
        action="denying",
    )
    logger.info("visit.denied visit_id=%s approver_id=%s", visit.id, approver_id)
    write_activity_log(
        db,
        "visit_status_changed",
        visit_id=visit.id,
        visitor_id=visit.visitor_id,
        actor_id=approver_id,
        meta={"oldStatus": "pending", "newStatus": "denied", "reason": reason},
    )
    delivery = dispatcher.visit_denied(visit, reason)
    return VisitDecision(visit=visit, delivery=delivery)


def bulk_approve_visits(
    db: Session,
    dispatcher: NotificationDispatcher,
    visit_ids: list[str],
    approver_id: str,
) -> dict[str, Any]:
    unique_ids = list(dict.fromkeys(visit_id for visit_id in visit_ids or [] if visit_id))
    if not unique_ids:
        raise ValidationFailedError("visitIds array is required")
    if len(unique_ids) > settings.BULK_APPROVE_LIMIT:
        raise ValidationFailedError(f"Maximum {settings.BULK_APPROVE_LIMIT} visits can be approved at once")

    results = []
    for visit_id in unique_ids:
        try:
            decision = approve_visit(db, dispatcher, visit_id, approver_id)
        except AppException as exc:
            results.append({"visitId": visit_id, "success": False, "error": exc.message})
            continue
        results.append(
            {"visitId": visit_id, "success": True, "delivery": decision.delivery.status.value}
        )

    approved = sum(1 for item in results if item["success"])
    logger.info("visit.bulk_approve approver_id=%s approved=%s failed=%s", approver_id, approved, len(results) - approved)
    return {"approved": approved, "failed": len(results) - approved, "results": results}


def create_visit(
    db: Session,
    dispatcher: NotificationDispatcher,
    visitor_id: str,
    visit_date: datetime,
    purpose: str = "",
    host_name: str = "",
    host_department: str = "",
    expected_arrival_time: datetime | None = None,
    expected_departure_time: datetime | None = None,
    notes: str = "",
) -> Visit:
    visitor = db.query(Visitor).filter(Visitor.id == visitor_id).first()
    if not visitor:
        raise NotFoundError(f"Visitor {visitor_id} not found")
    if expected_arrival_time and expected_departure_time and expected_departure_time < expected_arrival_time:
        raise ValidationFailedError("Expected departure must not be before expected arrival")

    try:
        visit = visit_repo.create_visit(
            db,
            visitor_id=visitor.id,
            visitor_name=visitor.full_name,
            visitor_email=visitor.email,
            visitor_phone=visitor.phone or "",
            visitor_company=visitor.company or "",
            purpose=purpose,
            host_name=host_name,
            host_department=host_department,
            visit_date=visit_date,
            expected_arrival_time=expected_arrival_time,
            expected_departure_time=expected_departure_time,
            notes=notes,
            status=VisitStatus.pending,
        )
        db.commit()
        db.refresh(visit)
    except SQLAlchemyError as exc:
        db.rollback()
        raise ExternalServiceError(f"Error creating visit: {exc}") from exc

    logger.info("visit.created visit_id=%s visitor_id=%s", visit.id, visitor.id)
    write_activity_log(
        db,
        "visit_created",
        visit_id=visit.id,
        visitor_id=visitor.id,
        meta={"visitorName": visitor.full_name, "status": visit.status.value},
    )

    admins = db.query(Admin).filter(Admin.is_active.is_(True)).all()
    for admin in admins:
        dispatcher.new_visit_request(admin.id, visit)
    return visit
