"""Tests for QR payload signing and parsing."""

import base64
import json
from datetime import datetime, timedelta

import pytest

from app.core.config import get_settings
from app.core.exceptions import SignatureMismatchError, ValidationFailedError
from app.services.qr_service import (
    QRPayload,
    encode_qr_string,
    issue_qr_payload,
    parse_qr_payload,
    sign,
    verify_qr_payload,
)


class TestSign:
    def test_signature_is_sixteen_hex_chars(self):
        signature = sign("visit-1", "visitor-1", 1715680800000, secret="k")
        assert len(signature) == 16
        int(signature, 16)

    def test_signature_depends_on_every_field(self):
        base = sign("visit-1", "visitor-1", 1, secret="k")
        assert sign("visit-2", "visitor-1", 1, secret="k") != base
        assert sign("visit-1", "visitor-2", 1, secret="k") != base
        assert sign("visit-1", "visitor-1", 2, secret="k") != base
        assert sign("visit-1", "visitor-1", 1, secret="other") != base


class TestParse:
    def test_parses_json(self):
        payload = issue_qr_payload("visit-1", "visitor-1", issued_at=datetime(2024, 5, 14, 10, 0))
        parsed = parse_qr_payload(payload.to_json())
        assert parsed == payload

    def test_parses_base64(self):
        payload = issue_qr_payload("visit-1", "visitor-1")
        assert parse_qr_payload(encode_qr_string(payload)) == payload

    def test_timestamp_is_milliseconds(self):
        payload = issue_qr_payload("visit-1", "visitor-1", issued_at=datetime(2024, 5, 14, 10, 0))
        assert payload.timestamp == 1715680800000
        assert payload.issued_at == datetime(2024, 5, 14, 10, 0)

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "   ",
            "not base64 at all!",
            "{not json",
            "[1, 2]",
            json.dumps({"visitId": "v", "visitorId": "u", "timestamp": 1}),
            json.dumps({"visitId": "v", "visitorId": "u", "timestamp": "soon", "signature": "x"}),
        ],
    )
    def test_malformed_payload_is_validation_error(self, raw):
        with pytest.raises(ValidationFailedError):
            parse_qr_payload(raw)

    def test_base64_of_non_object(self):
        raw = base64.b64encode(b'"just a string"').decode("ascii")
        with pytest.raises(ValidationFailedError):
            parse_qr_payload(raw)


class TestVerify:
    def test_valid_signature_passes(self):
        verify_qr_payload(issue_qr_payload("visit-1", "visitor-1"))

    def test_tampered_visit_id_is_rejected(self):
        payload = issue_qr_payload("visit-1", "visitor-1")
        forged = QRPayload("visit-2", payload.visitor_id, payload.timestamp, payload.signature)
        with pytest.raises(SignatureMismatchError):
            verify_qr_payload(forged)

    def test_wrong_secret_is_rejected(self):
        payload = issue_qr_payload("visit-1", "visitor-1")
        forged = QRPayload(
            payload.visit_id,
            payload.visitor_id,
            payload.timestamp,
            sign(payload.visit_id, payload.visitor_id, payload.timestamp, secret="leaked"),
        )
        with pytest.raises(SignatureMismatchError) as exc_info:
            verify_qr_payload(forged)
        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "signature_mismatch"

    def test_old_code_accepted_when_expiry_disabled(self):
        issued = datetime(2020, 1, 1)
        payload = issue_qr_payload("visit-1", "visitor-1", issued_at=issued)
        verify_qr_payload(payload, now=issued + timedelta(days=900))

    def test_expired_code_rejected_when_max_age_set(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "QR_MAX_AGE_DAYS", 30)
        issued = datetime(2024, 1, 1)
        payload = issue_qr_payload("visit-1", "visitor-1", issued_at=issued)

        verify_qr_payload(payload, now=issued + timedelta(days=29))
        with pytest.raises(SignatureMismatchError, match="expired"):
            verify_qr_payload(payload, now=issued + timedelta(days=31))

    @pytest.mark.parametrize("signature", ["é" * 16, "ü", "ß"])
    def test_non_ascii_signature_is_mismatch(self, signature):
        payload = issue_qr_payload("visit-1", "visitor-1")
        forged = QRPayload(payload.visit_id, payload.visitor_id, payload.timestamp, signature)

        with pytest.raises(SignatureMismatchError):
            verify_qr_payload(forged)

    def test_non_ascii_signature_survives_parsing(self):
        payload = issue_qr_payload("visit-1", "visitor-1")
        data = json.loads(payload.to_json())
        data["signature"] = "ß"

        with pytest.raises(SignatureMismatchError):
            verify_qr_payload(parse_qr_payload(json.dumps(data, ensure_ascii=False)))
