import base64
import json
import logging
from dataclasses import dataclass, field
from threading import Lock

import firebase_admin
from firebase_admin import credentials as firebase_credentials
from firebase_admin import messaging

from app.core.config import Settings, get_settings
from app.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass
class PushMessage:
    token: str
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    channel_id: str | None = None
    color: str | None = None
    priority: str = "high"
    badge: int | None = None


class PushGateway:
    """Delivers a single push message; raises on failure."""

    def send(self, message: PushMessage) -> str:
        raise NotImplementedError


class FirebasePushGateway(PushGateway):
    def __init__(self, settings: Settings):
        self.settings = settings
        self._app = None
        self._init_lock = Lock()

    def _ensure_app(self):
        if self._app is not None:
            return self._app

        with self._init_lock:
            if self._app is not None:
                return self._app
            if not self.settings.FIREBASE_PROJECT_ID:
                raise ExternalServiceError("FIREBASE_PROJECT_ID is not configured")
            try:
                self._app = firebase_admin.get_app()
                return self._app
            except ValueError:
                pass

            service_account = self._load_service_account()
            options = {"projectId": self.settings.FIREBASE_PROJECT_ID}
            if service_account:
                cred = firebase_credentials.Certificate(service_account)
                self._app = firebase_admin.initialize_app(credential=cred, options=options)
            else:
                logger.warning(
                    "Firebase service account credentials not configured. Falling back to default credentials lookup."
                )
                self._app = firebase_admin.initialize_app(options=options)
            return self._app

    def _load_service_account(self) -> dict | None:
        raw_json = (self.settings.FIREBASE_SERVICE_ACCOUNT_JSON or "").strip()
        if raw_json:
            try:
                return json.loads(raw_json)
            except json.JSONDecodeError as exc:
                raise ExternalServiceError("FIREBASE_SERVICE_ACCOUNT_JSON is not valid JSON") from exc

        raw_base64 = (self.settings.FIREBASE_SERVICE_ACCOUNT_BASE64 or "").strip()
        if raw_base64:
            try:
                return json.loads(base64.b64decode(raw_base64).decode("utf-8"))
            except (ValueError, UnicodeDecodeError) as exc:
                raise ExternalServiceError("FIREBASE_SERVICE_ACCOUNT_BASE64 is invalid") from exc

        return None

    def build_message(self, message: PushMessage) -> messaging.Message:
        android = messaging.AndroidConfig(
            priority="high" if message.priority == "high" else "normal",
            notification=messaging.AndroidNotification(
                sound="default",
                color=message.color,
                channel_id=message.channel_id,
            ),
        )
        apns = None
        if message.badge is not None:
            apns = messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound="default", badge=message.badge))
            )
        return messaging.Message(
            token=message.token,
            notification=messaging.Notification(title=message.title, body=message.body),
            data={key: str(value) for key, value in message.data.items()},
            android=android,
            apns=apns,
        )

    def send(self, message: PushMessage) -> str:
        app = self._ensure_app()
        return messaging.send(self.build_message(message), app=app)


_gateway: FirebasePushGateway | None = None
_gateway_lock = Lock()


def get_push_gateway() -> PushGateway:
    global _gateway
    if _gateway is None:
        with _gateway_lock:
            if _gateway is None:
                _gateway = FirebasePushGateway(get_settings())
    return _gateway
