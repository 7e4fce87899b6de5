import base64
import binascii
import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from app.core.config import get_settings
from app.core.exceptions import SignatureMismatchError, ValidationFailedError

SIGNATURE_LENGTH = 16


@dataclass(frozen=True)
class QRPayload:
    visit_id: str
    visitor_id: str
    timestamp: int
    signature: str

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc).replace(tzinfo=None)

    def to_json(self) -> str:
        return json.dumps(
            {
                "visitId": self.visit_id,
                "visitorId": self.visitor_id,
                "timestamp": self.timestamp,
                "signature": self.signature,
            },
            separators=(",", ":"),
        )


def sign(visit_id: str, visitor_id: str, timestamp: int, secret: str | None = None) -> str:
    key = (secret or get_settings().QR_SECRET).encode("utf-8")
    message = f"{visit_id}:{visitor_id}:{timestamp}".encode("utf-8")
    return hmac.new(key, message, hashlib.sha256).hexdigest()[:SIGNATURE_LENGTH]


def issue_qr_payload(visit_id: str, visitor_id: str, issued_at: datetime | None = None) -> QRPayload:
    moment = issued_at or datetime.utcnow()
    timestamp = int(moment.replace(tzinfo=timezone.utc).timestamp() * 1000)
    return QRPayload(
        visit_id=visit_id,
        visitor_id=visitor_id,
        timestamp=timestamp,
        signature=sign(visit_id, visitor_id, timestamp),
    )


def encode_qr_string(payload: QRPayload) -> str:
    """Base64 form printed into the QR image."""
    return base64.b64encode(payload.to_json().encode("utf-8")).decode("ascii")


def parse_qr_payload(raw: str) -> QRPayload:
    text = (raw or "").strip()
    if not text:
        raise ValidationFailedError("QR payload is required")

    if not text.startswith("{"):
        try:
            text = base64.b64decode(text, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ValidationFailedError("QR payload is not valid base64 or JSON") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationFailedError("QR payload is not valid JSON") from exc

    if not isinstance(data, dict):
        raise ValidationFailedError("QR payload must be a JSON object")
    missing = [key for key in ("visitId", "visitorId", "timestamp", "signature") if not data.get(key)]
    if missing:
        raise ValidationFailedError(f"QR payload is missing {', '.join(missing)}")
    try:
        timestamp = int(data["timestamp"])
    except (TypeError, ValueError) as exc:
        raise ValidationFailedError("QR payload timestamp must be an integer") from exc

    return QRPayload(
        visit_id=str(data["visitId"]),
        visitor_id=str(data["visitorId"]),
        timestamp=timestamp,
        signature=str(data["signature"]),
    )


def verify_qr_payload(payload: QRPayload, now: datetime | None = None) -> None:
    expected = sign(payload.visit_id, payload.visitor_id, payload.timestamp)
    # compare_digest rejects non-ASCII str operands, so compare encoded bytes
    if not hmac.compare_digest(expected.encode("ascii"), payload.signature.encode("utf-8")):
        raise SignatureMismatchError()

    max_age_days = get_settings().QR_MAX_AGE_DAYS
    if max_age_days > 0:
        age = (now or datetime.utcnow()) - payload.issued_at
        if age > timedelta(days=max_age_days):
            raise SignatureMismatchError("QR code has expired")
