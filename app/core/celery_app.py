"""
Celery configuration for the scheduled maintenance sweeps
"""

from celery import Celery
from celery.schedules import crontab

from app.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "visitor_management",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.tasks.maintenance_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=15 * 60,
    task_soft_time_limit=12 * 60,
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    "send-upcoming-visit-reminders": {
        "task": "maintenance.send_upcoming_visit_reminders",
        "schedule": crontab(minute=0),
    },
    "send-daily-summary": {
        "task": "maintenance.send_daily_summary",
        "schedule": crontab(minute=0, hour=17),
    },
    "cleanup-old-notifications": {
        "task": "maintenance.cleanup_old_notifications",
        "schedule": crontab(minute=0, hour=0),
    },
    "auto-expire-pending-visits": {
        "task": "maintenance.auto_expire_pending_visits",
        "schedule": crontab(minute=0, hour="*/6"),
    },
    "cleanup-old-activity-logs": {
        "task": "maintenance.cleanup_old_activity_logs",
        "schedule": crontab(minute=30, hour=0),
    },
}
