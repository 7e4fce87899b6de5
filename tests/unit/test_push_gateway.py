"""Tests for the Firebase push gateway that need no network."""

import base64
import json

import pytest

from app.core.config import Settings
from app.core.exceptions import ExternalServiceError
from app.services.push_gateway import FirebasePushGateway, PushMessage


def _gateway(**overrides) -> FirebasePushGateway:
    return FirebasePushGateway(Settings(**overrides))


class TestBuildMessage:
    def test_android_and_apns_options(self):
        message = PushMessage(
            token="device-1",
            title="Visit Approved",
            body="Your visit request has been approved.",
            data={"type": "visit_approved", "visitId": "v1"},
            channel_id="visit_updates",
            color="#10b981",
            priority="high",
            badge=1,
        )

        built = _gateway().build_message(message)

        assert built.token == "device-1"
        assert built.data == {"type": "visit_approved", "visitId": "v1"}
        assert built.android.priority == "high"
        assert built.android.notification.channel_id == "visit_updates"
        assert built.apns.payload.aps.badge == 1

    def test_no_badge_means_no_apns_block(self):
        built = _gateway().build_message(PushMessage(token="t", title="x", body="y", priority="normal"))

        assert built.apns is None
        assert built.android.priority == "normal"


class TestConfiguration:
    def test_missing_project_id(self):
        gateway = _gateway(FIREBASE_PROJECT_ID="")

        with pytest.raises(ExternalServiceError, match="FIREBASE_PROJECT_ID"):
            gateway.send(PushMessage(token="t", title="x", body="y"))

    def test_service_account_from_base64(self):
        account = {"type": "service_account", "project_id": "demo"}
        encoded = base64.b64encode(json.dumps(account).encode("utf-8")).decode("ascii")

        assert _gateway(FIREBASE_SERVICE_ACCOUNT_BASE64=encoded)._load_service_account() == account

    def test_invalid_service_account_json(self):
        with pytest.raises(ExternalServiceError):
            _gateway(FIREBASE_SERVICE_ACCOUNT_JSON="{broken")._load_service_account()

    def test_no_service_account(self):
        assert _gateway()._load_service_account() is None
