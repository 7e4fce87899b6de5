"""
Scheduled maintenance tasks
"""

from contextlib import contextmanager

from app.core.celery_app import celery_app
from app.db.session import SessionLocal
from app.services import maintenance_service
from app.services.notification_service import NotificationDispatcher
from app.services.push_gateway import get_push_gateway


@contextmanager
def _session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@celery_app.task(name="maintenance.send_upcoming_visit_reminders")
def send_upcoming_visit_reminders():
    with _session() as db:
        return maintenance_service.send_upcoming_visit_reminders(db, NotificationDispatcher(db, get_push_gateway()))


@celery_app.task(name="maintenance.send_daily_summary")
def send_daily_summary():
    with _session() as db:
        return maintenance_service.send_daily_summary(db, NotificationDispatcher(db, get_push_gateway()))


@celery_app.task(name="maintenance.cleanup_old_notifications")
def cleanup_old_notifications():
    with _session() as db:
        return maintenance_service.cleanup_old_notifications(db)


@celery_app.task(name="maintenance.auto_expire_pending_visits")
def auto_expire_pending_visits():
    with _session() as db:
        return maintenance_service.auto_expire_pending_visits(db, NotificationDispatcher(db, get_push_gateway()))


@celery_app.task(name="maintenance.cleanup_old_activity_logs")
def cleanup_old_activity_logs():
    with _session() as db:
        return maintenance_service.cleanup_old_activity_logs(db)
