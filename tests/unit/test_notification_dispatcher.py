"""Tests for push delivery and the in-app notification history."""

from app.db.models import Notification
from app.services.notification_service import (
    DeliveryStatus,
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)


class TestNotify:
    def test_delivered_push_carries_type_and_visit_id(self, db, dispatcher, gateway, make_visitor):
        visitor = make_visitor()

        result = dispatcher.notify(visitor.id, "Hello", "Body", "visit_approved", related_visit_id="visit-9")

        assert result.status == DeliveryStatus.delivered
        assert result.message_id == "projects/test/messages/1"
        message = gateway.sent[0]
        assert message.token == visitor.fcm_token
        assert message.data == {"type": "visit_approved", "visitId": "visit-9"}
        assert message.channel_id == "visit_updates"
        assert message.priority == "high"
        assert db.query(Notification).count() == 1

    def test_missing_token_skips_push_but_keeps_record(self, db, dispatcher, gateway, make_visitor):
        visitor = make_visitor(fcm_token=None)

        result = dispatcher.notify(visitor.id, "Hello", "Body", "visit_reminder")

        assert result.status == DeliveryStatus.token_missing
        assert not result.delivered
        assert gateway.sent == []
        row = db.query(Notification).one()
        assert row.user_id == visitor.id
        assert result.notification_id == row.id

    def test_send_failure_is_reported_not_raised(self, db, dispatcher, gateway, make_visitor):
        visitor = make_visitor()
        gateway.fail_with = RuntimeError("registration-token-not-registered")

        result = dispatcher.notify(visitor.id, "Hello", "Body", "check_in_success")

        assert result.status == DeliveryStatus.send_failed
        assert "registration-token-not-registered" in result.error
        assert db.query(Notification).count() == 1

    def test_unknown_user_writes_nothing(self, db, dispatcher, gateway):
        result = dispatcher.notify("ghost", "Hello", "Body", "visit_approved")

        assert result.status == DeliveryStatus.token_missing
        assert result.notification_id is None
        assert db.query(Notification).count() == 0

    def test_admin_tokens_are_resolved(self, dispatcher, gateway, make_admin, make_visit):
        admin = make_admin(fcm_token="admin-token")
        visit = make_visit()

        result = dispatcher.new_visit_request(admin.id, visit)

        assert result.delivered
        assert gateway.sent[0].token == "admin-token"
        assert gateway.sent[0].channel_id == "admin_alerts"


class TestTemplates:
    def test_visit_denied_includes_reason(self, dispatcher, gateway, make_visit):
        visit = make_visit()

        dispatcher.visit_denied(visit, "Host unavailable")

        message = gateway.sent[0]
        assert message.title == "Visit Request Denied"
        assert message.body == "Your visit request has been denied. Reason: Host unavailable"
        assert message.data["reason"] == "Host unavailable"

    def test_check_out_success_reports_duration(self, dispatcher, gateway, make_visit):
        visit = make_visit()

        dispatcher.check_out_success(visit.visitor_id, visit.id, 95)

        assert "95 minutes" in gateway.sent[0].body
        assert gateway.sent[0].data["durationMinutes"] == "95"

    def test_welcome_greets_by_name(self, db, dispatcher, gateway, make_visitor):
        visitor = make_visitor(full_name="Ada Lovelace")

        result = dispatcher.welcome(visitor)

        message = gateway.sent[0]
        assert message.title == "Welcome to Visitor Management System"
        assert message.body == "Hello Ada Lovelace! Your account has been created successfully."
        assert message.data == {"type": "welcome", "visitorId": visitor.id}
        assert message.color == "#3b82f6"
        assert message.priority == "normal"
        record = db.query(Notification).filter(Notification.id == result.notification_id).one()
        assert record.kind == "welcome"


class TestInbox:
    def test_mark_read_and_read_all(self, db, dispatcher, make_visitor):
        visitor = make_visitor(fcm_token=None)
        first = dispatcher.notify(visitor.id, "One", "Body", "visit_reminder")
        dispatcher.notify(visitor.id, "Two", "Body", "visit_reminder")
        dispatcher.notify(visitor.id, "Three", "Body", "visit_reminder")

        data = mark_notification_read(db, visitor.id, first.notification_id)
        assert data["isRead"] is True
        assert mark_notification_read(db, "someone-else", first.notification_id) is None

        assert mark_all_notifications_read(db, visitor.id) == 2
        assert all(item["isRead"] for item in list_notifications(db, visitor.id))
