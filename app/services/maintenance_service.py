"""Periodic sweeps over visits, notifications and activity logs.

Each sweep walks its whole match set inside one invocation, one page of at
most ``MAINTENANCE_BATCH_SIZE`` rows at a time, committing every page as a
single transaction.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.dates import day_bounds, start_of_day, utcnow
from app.db.models import ActivityLog, Admin, Notification, VisitStatus
from app.repositories import checkins as checkin_repo
from app.repositories import visits as visit_repo
from app.services.activity_service import write_activity_log
from app.services.notification_service import DeliveryStatus, NotificationDispatcher
from app.services.visit_service import SYSTEM_ACTOR

logger = logging.getLogger(__name__)
settings = get_settings()

EXPIRED_VISIT_REASON = "Visit request expired - scheduled date has passed"


def _delete_in_pages(db: Session, model, criteria: list, batch_size: int) -> tuple[int, int]:
    deleted = 0
    batches = 0
    last_id = None
    while True:
        query = db.query(model.id).filter(*criteria)
        if last_id is not None:
            query = query.filter(model.id > last_id)
        ids = [row[0] for row in query.order_by(model.id.asc()).limit(batch_size).all()]
        if not ids:
            break
        try:
            db.query(model).filter(model.id.in_(ids)).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        deleted += len(ids)
        batches += 1
        last_id = ids[-1]
        if len(ids) < batch_size:
            break
    return deleted, batches


def send_upcoming_visit_reminders(
    db: Session,
    dispatcher: NotificationDispatcher,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or utcnow()
    window_start = now + timedelta(minutes=settings.REMINDER_LEAD_MINUTES)
    window_end = window_start + timedelta(minutes=settings.REMINDER_WINDOW_MINUTES)

    visits = visit_repo.list_approved_arriving_between(db, window_start, window_end)
    sent: list[str] = []
    skipped = 0
    failed = 0
    for visit in visits:
        result = dispatcher.visit_reminder(visit)
        if result.status == DeliveryStatus.delivered:
            sent.append(visit.id)
        elif result.status == DeliveryStatus.token_missing:
            skipped += 1
        else:
            failed += 1

    logger.info("maintenance.reminders sent=%s skipped=%s failed=%s", len(sent), skipped, failed)
    return {"sent": len(sent), "skipped": skipped, "failed": failed, "visitIds": sent}


def build_daily_stats(db: Session, now: datetime | None = None) -> dict[str, int]:
    start, end = day_bounds(now or utcnow())
    return {
        "totalVisits": visit_repo.count_visits(db, start=start, end=end),
        "approved": visit_repo.count_visits(db, status=VisitStatus.approved, start=start, end=end),
        "pending": visit_repo.count_visits(db, status=VisitStatus.pending, start=start, end=end),
        "denied": visit_repo.count_visits(db, status=VisitStatus.denied, start=start, end=end),
        "checkIns": checkin_repo.count_checkins_between(db, start, end),
    }


def send_daily_summary(
    db: Session,
    dispatcher: NotificationDispatcher,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or utcnow()
    stats = build_daily_stats(db, now)
    admins = db.query(Admin).filter(Admin.is_active.is_(True)).order_by(Admin.id.asc()).all()

    sent = 0
    for admin in admins:
        if dispatcher.daily_summary(admin.id, stats, start_of_day(now)).delivered:
            sent += 1

    logger.info("maintenance.daily_summary admins=%s sent=%s stats=%s", len(admins), sent, stats)
    return {"sent": sent, "stats": stats}


def cleanup_old_notifications(
    db: Session,
    now: datetime | None = None,
    batch_size: int | None = None,
) -> dict[str, int]:
    cutoff = (now or utcnow()) - timedelta(days=settings.NOTIFICATION_RETENTION_DAYS)
    deleted, batches = _delete_in_pages(
        db,
        Notification,
        [Notification.created_at < cutoff, Notification.is_read.is_(True)],
        batch_size or settings.MAINTENANCE_BATCH_SIZE,
    )
    logger.info("maintenance.cleanup_notifications deleted=%s batches=%s", deleted, batches)
    return {"deleted": deleted, "batches": batches}


def cleanup_old_activity_logs(
    db: Session,
    now: datetime | None = None,
    batch_size: int | None = None,
) -> dict[str, int]:
    cutoff = (now or utcnow()) - timedelta(days=settings.ACTIVITY_LOG_RETENTION_DAYS)
    deleted, batches = _delete_in_pages(
        db,
        ActivityLog,
        [ActivityLog.created_at < cutoff],
        batch_size or settings.MAINTENANCE_BATCH_SIZE,
    )
    logger.info("maintenance.cleanup_activity_logs deleted=%s batches=%s", deleted, batches)
    return {"deleted": deleted, "batches": batches}


def auto_expire_pending_visits(
    db: Session,
    dispatcher: NotificationDispatcher,
    now: datetime | None = None,
    batch_size: int | None = None,
) -> dict[str, Any]:
    now = now or utcnow()
    cutoff = start_of_day(now)
    batch_size = batch_size or settings.MAINTENANCE_BATCH_SIZE

    expired_ids: list[str] = []
    skipped = 0
    last_id = None
    while True:
        page = visit_repo.page_pending_before(db, cutoff, last_id, batch_size)
        if not page:
            break
        last_id = page[-1].id
        page_ids = [visit.id for visit in page]

        expired_page: list[str] = []
        try:
            for visit_id in page_ids:
                # Guarded on pending so a visit decided mid-sweep is left alone.
                changed = visit_repo.transition_status(
                    db,
                    visit_id,
                    VisitStatus.pending,
                    {
                        "status": VisitStatus.denied,
                        "denial_reason": EXPIRED_VISIT_REASON,
                        "approved_by": SYSTEM_ACTOR,
                        "approved_at": now,
                        "updated_at": now,
                    },
                )
                if changed:
                    expired_page.append(visit_id)
                else:
                    skipped += 1
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("maintenance.auto_expire failed on page after %s", page_ids[0])
            raise

        for visit_id in expired_page:
            visit = visit_repo.get_visit(db, visit_id)
            write_activity_log(
                db,
                "visit_status_changed",
                visit_id=visit.id,
                visitor_id=visit.visitor_id,
                actor_id=SYSTEM_ACTOR,
                meta={"oldStatus": "pending", "newStatus": "denied", "reason": EXPIRED_VISIT_REASON},
            )
            dispatcher.visit_denied(visit, EXPIRED_VISIT_REASON)
        expired_ids.extend(expired_page)

        if len(page) < batch_size:
            break

    logger.info("maintenance.auto_expire expired=%s skipped=%s", len(expired_ids), skipped)
    return {"expired": len(expired_ids), "skipped": skipped, "visitIds": expired_ids}
