"""Tests for visitor registration and the visitor directory."""

import json

import pytest

from app.core.exceptions import ConflictStateError, ValidationFailedError
from app.db.models import ActivityLog, Notification, Visitor
from app.services import visitor_service
from app.services.notification_service import DeliveryStatus


class TestRegisterVisitor:
    def test_register_logs_activity_and_welcomes(self, db, dispatcher, gateway):
        visitor, delivery = visitor_service.register_visitor(
            db,
            dispatcher,
            email="  Ada@Example.com ",
            full_name="Ada Lovelace",
            company="Analytical Engines",
            fcm_token="device-ada",
        )

        assert visitor.email == "ada@example.com"
        assert visitor.fcm_token == "device-ada"
        assert delivery.status == DeliveryStatus.delivered
        assert gateway.sent[0].data["type"] == "welcome"
        assert gateway.sent[0].token == "device-ada"

        record = db.query(Notification).filter(Notification.user_id == visitor.id).one()
        assert record.kind == "welcome"
        log = db.query(ActivityLog).filter(ActivityLog.kind == "visitor_created").one()
        assert log.visitor_id == visitor.id
        assert json.loads(log.meta_json)["fullName"] == "Ada Lovelace"

    def test_without_token_still_records_welcome(self, db, dispatcher, gateway):
        visitor, delivery = visitor_service.register_visitor(db, dispatcher, email="grace@example.com", full_name="Grace")

        assert delivery.status == DeliveryStatus.token_missing
        assert gateway.sent == []
        assert db.query(Notification).filter(Notification.user_id == visitor.id).count() == 1

    def test_failed_push_keeps_registration(self, db, dispatcher, gateway):
        gateway.fail_with = RuntimeError("fcm unavailable")

        visitor, delivery = visitor_service.register_visitor(
            db, dispatcher, email="alan@example.com", full_name="Alan", fcm_token="device-alan"
        )

        assert delivery.status == DeliveryStatus.send_failed
        assert db.query(Visitor).filter(Visitor.id == visitor.id).count() == 1

    def test_duplicate_email_conflicts(self, db, dispatcher, make_visitor):
        make_visitor(email="taken@example.com")

        with pytest.raises(ConflictStateError):
            visitor_service.register_visitor(db, dispatcher, email="TAKEN@example.com", full_name="Someone")

        assert db.query(Visitor).filter(Visitor.email == "taken@example.com").count() == 1

    @pytest.mark.parametrize(
        "email, full_name",
        [("", "Ada"), ("   ", "Ada"), ("ada@example.com", ""), ("ada@example.com", "  ")],
    )
    def test_required_fields(self, db, dispatcher, gateway, email, full_name):
        with pytest.raises(ValidationFailedError):
            visitor_service.register_visitor(db, dispatcher, email=email, full_name=full_name)

        assert db.query(Visitor).count() == 0
        assert gateway.sent == []


class TestPushToken:
    def test_change_is_logged_once(self, db, make_visitor):
        visitor = make_visitor(fcm_token=None)

        visitor_service.update_push_token(db, visitor.id, " device-1 ")
        visitor_service.update_push_token(db, visitor.id, "device-1")

        assert visitor_service.get_visitor(db, visitor.id).fcm_token == "device-1"
        assert db.query(ActivityLog).filter(ActivityLog.kind == "fcm_token_updated").count() == 1


class TestSearch:
    def test_underscore_is_literal(self, db, make_visitor):
        make_visitor(company="Acme_Labs")
        make_visitor(company="AcmeXLabs")

        found = visitor_service.search_visitors(db, "e_l")

        assert [visitor.company for visitor in found] == ["Acme_Labs"]

    def test_percent_is_literal(self, db, make_visitor):
        make_visitor(company="100% Organic")
        make_visitor(company="1000 Things")

        found = visitor_service.search_visitors(db, "100%")

        assert [visitor.company for visitor in found] == ["100% Organic"]
