"""Tests for the Celery beat wiring of the maintenance sweeps."""

from unittest.mock import patch

from celery.schedules import crontab

from app.core.celery_app import celery_app
from app.tasks import maintenance_tasks


class TestBeatSchedule:
    def test_every_job_is_scheduled(self):
        schedule = celery_app.conf.beat_schedule
        expected = {
            "maintenance.send_upcoming_visit_reminders": crontab(minute=0),
            "maintenance.send_daily_summary": crontab(minute=0, hour=17),
            "maintenance.cleanup_old_notifications": crontab(minute=0, hour=0),
            "maintenance.auto_expire_pending_visits": crontab(minute=0, hour="*/6"),
            "maintenance.cleanup_old_activity_logs": crontab(minute=30, hour=0),
        }

        actual = {entry["task"]: entry["schedule"] for entry in schedule.values()}

        assert actual == expected

    def test_tasks_are_registered(self):
        for entry in celery_app.conf.beat_schedule.values():
            assert entry["task"] in celery_app.tasks


class TestTaskWrappers:
    def test_cleanup_task_runs_service_with_fresh_session(self, db):
        with patch.object(maintenance_tasks, "SessionLocal", return_value=db), patch.object(
            db, "close"
        ) as close:
            result = maintenance_tasks.cleanup_old_notifications.run()

        assert result == {"deleted": 0, "batches": 0}
        close.assert_called_once()

    def test_expire_task_uses_push_gateway(self, db, gateway):
        with patch.object(maintenance_tasks, "SessionLocal", return_value=db), patch.object(
            maintenance_tasks, "get_push_gateway", return_value=gateway
        ):
            result = maintenance_tasks.auto_expire_pending_visits.run()

        assert result == {"expired": 0, "skipped": 0, "visitIds": []}
