import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import Admin, Notification, Visit, Visitor
from app.services.push_gateway import PushGateway, PushMessage

logger = logging.getLogger(__name__)

# kind -> (android channel, accent color, priority, iOS badge)
PUSH_STYLES: dict[str, tuple[str | None, str | None, str, int | None]] = {
    "visit_approved": ("visit_updates", "#10b981", "high", 1),
    "visit_denied": ("visit_updates", "#ef4444", "high", None),
    "check_in_success": ("visit_updates", "#10b981", "high", None),
    "check_out_success": ("visit_updates", "#3b82f6", "normal", None),
    "visit_reminder": ("visit_reminders", "#3b82f6", "high", 1),
    "new_visit_request": ("admin_alerts", None, "high", None),
    "daily_summary": ("daily_reports", None, "normal", None),
    "welcome": (None, "#3b82f6", "normal", None),
}


class DeliveryStatus(str, Enum):
    delivered = "delivered"
    token_missing = "token_missing"
    send_failed = "send_failed"


@dataclass
class DeliveryResult:
    status: DeliveryStatus
    user_id: str
    notification_id: str | None = None
    message_id: str | None = None
    error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status == DeliveryStatus.delivered


class NotificationDispatcher:
    """Sends push notifications and keeps the in-app notification history.

    Every call for a known user writes a Notification row, whatever happens to
    the push itself. Send failures are reported through the returned
    DeliveryResult, never raised.
    """

    def __init__(self, db: Session, gateway: PushGateway):
        self.db = db
        self.gateway = gateway

    def _resolve_token(self, user_id: str) -> tuple[bool, str | None]:
        visitor = self.db.query(Visitor).filter(Visitor.id == user_id).first()
        if visitor:
            return True, visitor.fcm_token
        admin = self.db.query(Admin).filter(Admin.id == user_id).first()
        if admin:
            return True, admin.fcm_token
        return False, None

    def _save_record(
        self,
        user_id: str,
        title: str,
        body: str,
        kind: str,
        related_visit_id: str | None,
    ) -> str | None:
        try:
            row = Notification(
                user_id=user_id,
                title=title,
                body=body,
                kind=kind,
                related_visit_id=related_visit_id,
                is_read=False,
            )
            self.db.add(row)
            self.db.commit()
            return row.id
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to store %s notification for user %s", kind, user_id)
            return None

    def notify(
        self,
        user_id: str,
        title: str,
        body: str,
        kind: str,
        related_visit_id: str | None = None,
        data: dict[str, str] | None = None,
    ) -> DeliveryResult:
        exists, token = self._resolve_token(user_id)
        notification_id = None
        if exists:
            notification_id = self._save_record(user_id, title, body, kind, related_visit_id)

        if not token:
            logger.info("No push token for user %s, skipped %s push", user_id, kind)
            return DeliveryResult(DeliveryStatus.token_missing, user_id, notification_id=notification_id)

        payload = {"type": kind}
        if related_visit_id:
            payload["visitId"] = related_visit_id
        payload.update(data or {})
        channel_id, color, priority, badge = PUSH_STYLES.get(kind, (None, None, "normal", None))
        message = PushMessage(
            token=token,
            title=title,
            body=body,
            data=payload,
            channel_id=channel_id,
            color=color,
            priority=priority,
            badge=badge,
        )
        try:
            message_id = self.gateway.send(message)
        except Exception as exc:
            logger.warning("Push %s to user %s failed: %s", kind, user_id, exc)
            return DeliveryResult(
                DeliveryStatus.send_failed,
                user_id,
                notification_id=notification_id,
                error=str(exc),
            )

        logger.info("Push %s delivered to user %s", kind, user_id)
        return DeliveryResult(
            DeliveryStatus.delivered,
            user_id,
            notification_id=notification_id,
            message_id=message_id,
        )

    def visit_approved(self, visit: Visit) -> DeliveryResult:
        return self.notify(
            visit.visitor_id,
            "Visit Approved",
            f"Your visit request for {visit.visit_date:%b %d, %Y} has been approved.",
            "visit_approved",
            related_visit_id=visit.id,
            data={"visitDate": visit.visit_date.isoformat()},
        )

    def visit_denied(self, visit: Visit, reason: str) -> DeliveryResult:
        return self.notify(
            visit.visitor_id,
            "Visit Request Denied",
            f"Your visit request has been denied. Reason: {reason}",
            "visit_denied",
            related_visit_id=visit.id,
            data={"reason": reason},
        )

    def check_in_success(self, visitor_id: str, visit_id: str) -> DeliveryResult:
        return self.notify(
            visitor_id,
            "Check-In Successful",
            "You have successfully checked in. Welcome!",
            "check_in_success",
            related_visit_id=visit_id,
        )

    def check_out_success(self, visitor_id: str, visit_id: str, duration_minutes: int) -> DeliveryResult:
        return self.notify(
            visitor_id,
            "Checked Out",
            f"You have checked out after {duration_minutes} minutes. Thank you for visiting!",
            "check_out_success",
            related_visit_id=visit_id,
            data={"durationMinutes": str(duration_minutes)},
        )

    def visit_reminder(self, visit: Visit) -> DeliveryResult:
        arrival = visit.expected_arrival_time or visit.visit_date
        return self.notify(
            visit.visitor_id,
            "Visit Reminder",
            f"Your visit is scheduled in 2 hours at {arrival:%H:%M} UTC",
            "visit_reminder",
            related_visit_id=visit.id,
            data={"visitTime": arrival.isoformat()},
        )

    def new_visit_request(self, admin_id: str, visit: Visit) -> DeliveryResult:
        return self.notify(
            admin_id,
            "New Visit Request",
            f"{visit.visitor_name} from {visit.visitor_company} - {visit.visit_date:%b %d, %Y}",
            "new_visit_request",
            related_visit_id=visit.id,
            data={"visitorName": visit.visitor_name, "company": visit.visitor_company},
        )

    def welcome(self, visitor: Visitor) -> DeliveryResult:
        return self.notify(
            visitor.id,
            "Welcome to Visitor Management System",
            f"Hello {visitor.full_name}! Your account has been created successfully.",
            "welcome",
            data={"visitorId": visitor.id},
        )

    def daily_summary(self, admin_id: str, stats: dict, day: datetime) -> DeliveryResult:
        return self.notify(
            admin_id,
            "Daily Summary",
            (
                f"Today: {stats['totalVisits']} visits, {stats['checkIns']} check-ins, "
                f"{stats['pending']} pending approvals"
            ),
            "daily_summary",
            data={
                "totalVisits": str(stats["totalVisits"]),
                "checkIns": str(stats["checkIns"]),
                "pending": str(stats["pending"]),
                "date": day.isoformat(),
            },
        )


def serialize_notification(row: Notification) -> dict:
    return {
        "id": row.id,
        "title": row.title,
        "body": row.body,
        "kind": row.kind,
        "relatedVisitId": row.related_visit_id,
        "isRead": row.is_read,
        "readAt": row.read_at.isoformat() if row.read_at else None,
        "createdAt": row.created_at.isoformat(),
    }


def list_notifications(db: Session, user_id: str, limit: int = 50, unread_only: bool = False) -> list[dict]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    rows = query.order_by(Notification.created_at.desc()).limit(limit).all()
    return [serialize_notification(row) for row in rows]


def mark_notification_read(db: Session, user_id: str, notification_id: str) -> dict | None:
    row = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not row:
        return None
    row.is_read = True
    row.read_at = row.read_at or datetime.utcnow()
    db.commit()
    db.refresh(row)
    return serialize_notification(row)


def mark_all_notifications_read(db: Session, user_id: str) -> int:
    rows = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .all()
    )
    if not rows:
        return 0
    now = datetime.utcnow()
    for row in rows:
        row.is_read = True
        row.read_at = now
    db.commit()
    return len(rows)
