import logging
from dataclasses import dataclass
from datetime import datetime
from time import perf_counter
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.dates import day_bounds, utcnow
from app.core.exceptions import (
    AlreadyCheckedInError,
    AppException,
    ExternalServiceError,
    NotFoundError,
    SignatureMismatchError,
    VisitNotApprovedError,
    VisitNotFoundError,
)
from app.db.models import CheckIn, Visit, VisitStatus
from app.repositories import checkins as checkin_repo
from app.repositories import visits as visit_repo
from app.services.activity_service import write_activity_log
from app.services.notification_service import DeliveryResult, NotificationDispatcher
from app.services.qr_service import QRPayload, parse_qr_payload, verify_qr_payload

logger = logging.getLogger(__name__)


@dataclass
class CheckInResult:
    checkin: CheckIn
    visit: Visit
    delivery: DeliveryResult


@dataclass
class CheckOutResult:
    checkin: CheckIn
    duration_minutes: int
    delivery: DeliveryResult


def serialize_checkin(checkin: CheckIn) -> dict[str, Any]:
    return {
        "id": checkin.id,
        "visitId": checkin.visit_id,
        "visitorId": checkin.visitor_id,
        "checkInTime": checkin.check_in_time.isoformat(),
        "checkInLocation": checkin.check_in_location,
        "checkOutTime": checkin.check_out_time.isoformat() if checkin.check_out_time else None,
        "checkOutLocation": checkin.check_out_location,
        "verifiedBy": checkin.verified_by,
        "createdAt": checkin.created_at.isoformat() if checkin.created_at else None,
    }


def _load_checkable_visit(db: Session, payload: QRPayload) -> Visit:
    visit = visit_repo.get_visit(db, payload.visit_id)
    if not visit:
        raise VisitNotFoundError(payload.visit_id)
    if visit.visitor_id != payload.visitor_id:
        raise SignatureMismatchError("QR code does not belong to this visit")
    if visit.status != VisitStatus.approved:
        raise VisitNotApprovedError(visit.id, visit.status.value)
    return visit


def verify_visit(db: Session, qr_payload: str, now: datetime | None = None) -> dict[str, Any]:
    """Dry-run of validate_qr_code: reports whether the code would be accepted."""
    try:
        payload = parse_qr_payload(qr_payload)
        verify_qr_payload(payload, now=now)
        visit = _load_checkable_visit(db, payload)
    except AppException as exc:
        return {"valid": False, "reason": exc.code, "message": exc.message}

    open_checkin = checkin_repo.find_open_checkin(db, visit.id)
    return {
        "valid": open_checkin is None,
        "reason": "already_checked_in" if open_checkin else None,
        "visitId": visit.id,
        "visitorName": visit.visitor_name,
        "hostName": visit.host_name,
        "visitDate": visit.visit_date.isoformat(),
        "checkedIn": open_checkin is not None,
    }


def validate_qr_code(
    db: Session,
    dispatcher: NotificationDispatcher,
    qr_payload: str,
    location: str = "",
    verified_by: str | None = None,
    now: datetime | None = None,
) -> CheckInResult:
    started = perf_counter()
    now = now or utcnow()
    phase = "verify_signature"
    try:
        payload = parse_qr_payload(qr_payload)
        verify_qr_payload(payload, now=now)

        phase = "load_visit"
        visit = _load_checkable_visit(db, payload)
        if checkin_repo.find_open_checkin(db, visit.id):
            raise AlreadyCheckedInError(visit.id)

        phase = "create_checkin"
        try:
            checkin = checkin_repo.create_checkin(
                db,
                visit_id=visit.id,
                visitor_id=visit.visitor_id,
                check_in_time=now,
                check_in_location=location,
                verified_by=verified_by,
                created_at=now,
            )
            visit_repo.update_visit_fields(
                db,
                visit.id,
                {"last_check_in_id": checkin.id, "last_check_in_time": now},
            )
            db.commit()
        except IntegrityError as exc:
            # A concurrent scan won the race for the open check-in slot.
            db.rollback()
            raise AlreadyCheckedInError(visit.id) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise ExternalServiceError(f"Error creating check-in: {exc}") from exc
    except AppException:
        elapsed_ms = (perf_counter() - started) * 1000
        logger.info("checkin.validate rejected in %.1fms phase=%s", elapsed_ms, phase)
        raise

    db.refresh(checkin)
    write_activity_log(
        db,
        "check_in",
        visit_id=checkin.visit_id,
        visitor_id=checkin.visitor_id,
        actor_id=verified_by,
        meta={"checkInId": checkin.id, "location": location},
    )
    delivery = dispatcher.check_in_success(checkin.visitor_id, checkin.visit_id)

    elapsed_ms = (perf_counter() - started) * 1000
    logger.info(
        "checkin.validate completed in %.1fms visit_id=%s checkin_id=%s delivery=%s",
        elapsed_ms,
        checkin.visit_id,
        checkin.id,
        delivery.status.value,
    )
    return CheckInResult(checkin=checkin, visit=visit_repo.get_visit(db, checkin.visit_id), delivery=delivery)


def check_out_visitor(
    db: Session,
    dispatcher: NotificationDispatcher,
    visit_id: str,
    visitor_id: str | None = None,
    location: str = "",
    now: datetime | None = None,
) -> CheckOutResult:
    now = now or utcnow()
    checkin = checkin_repo.find_open_checkin(db, visit_id, visitor_id)
    if not checkin:
        raise NotFoundError("No active check-in found for this visit")

    # Negative durations pass through unchanged.
    duration_minutes = int((now - checkin.check_in_time).total_seconds() // 60)
    try:
        checkin.check_out_time = now
        checkin.check_out_location = location
        visit_repo.update_visit_fields(
            db,
            checkin.visit_id,
            {"last_check_out_time": now, "visit_duration_minutes": duration_minutes},
        )
        db.commit()
        db.refresh(checkin)
    except SQLAlchemyError as exc:
        db.rollback()
        raise ExternalServiceError(f"Error checking out visitor: {exc}") from exc

    logger.info("checkin.checkout visit_id=%s checkin_id=%s minutes=%s", visit_id, checkin.id, duration_minutes)
    write_activity_log(
        db,
        "check_out",
        visit_id=checkin.visit_id,
        visitor_id=checkin.visitor_id,
        meta={"checkInId": checkin.id, "durationMinutes": duration_minutes, "location": location},
    )
    delivery = dispatcher.check_out_success(checkin.visitor_id, checkin.visit_id, duration_minutes)
    return CheckOutResult(checkin=checkin, duration_minutes=duration_minutes, delivery=delivery)


def get_checkin(db: Session, checkin_id: str) -> CheckIn:
    checkin = checkin_repo.get_checkin(db, checkin_id)
    if not checkin:
        raise NotFoundError(f"Check-in {checkin_id} not found")
    return checkin


def list_today_checkins(db: Session, now: datetime | None = None) -> list[CheckIn]:
    start, end = day_bounds(now or utcnow())
    return checkin_repo.list_checkins_between(db, start, end)


def list_active_checkins(db: Session, now: datetime | None = None) -> list[CheckIn]:
    start, end = day_bounds(now or utcnow())
    return checkin_repo.list_checkins_between(db, start, end, open_only=True)


def list_recent_checkins(db: Session, limit: int = 10) -> list[CheckIn]:
    return checkin_repo.list_recent_checkins(db, limit)

