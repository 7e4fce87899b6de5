import logging
from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictStateError, ExternalServiceError, NotFoundError, ValidationFailedError
from app.db.models import Visit, Visitor
from app.repositories.search import LIKE_ESCAPE, contains_pattern
from app.services.activity_service import write_activity_log
from app.services.notification_service import DeliveryResult, NotificationDispatcher

logger = logging.getLogger(__name__)

VISITOR_LIST_LIMIT = 100


def serialize_visitor(visitor: Visitor) -> dict[str, Any]:
    return {
        "id": visitor.id,
        "email": visitor.email,
        "fullName": visitor.full_name,
        "phone": visitor.phone,
        "company": visitor.company,
        "photoUrl": visitor.photo_url,
        "hasPushToken": bool(visitor.fcm_token),
        "createdAt": visitor.created_at.isoformat() if visitor.created_at else None,
        "updatedAt": visitor.updated_at.isoformat() if visitor.updated_at else None,
    }


def list_visitors(db: Session, limit: int = VISITOR_LIST_LIMIT) -> list[Visitor]:
    return db.query(Visitor).order_by(Visitor.created_at.desc()).limit(limit).all()


def search_visitors(db: Session, term: str, limit: int = VISITOR_LIST_LIMIT) -> list[Visitor]:
    if not (term or "").strip():
        return list_visitors(db, limit)
    pattern = contains_pattern(term)
    return (
        db.query(Visitor)
        .filter(
            or_(
                Visitor.full_name.ilike(pattern, escape=LIKE_ESCAPE),
                Visitor.email.ilike(pattern, escape=LIKE_ESCAPE),
                Visitor.company.ilike(pattern, escape=LIKE_ESCAPE),
                Visitor.phone.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
        .order_by(Visitor.created_at.desc())
        .limit(limit)
        .all()
    )


def get_visitor(db: Session, visitor_id: str) -> Visitor:
    visitor = db.query(Visitor).filter(Visitor.id == visitor_id).first()
    if not visitor:
        raise NotFoundError(f"Visitor {visitor_id} not found")
    return visitor


def list_visitor_visits(db: Session, visitor_id: str, limit: int = 50) -> list[Visit]:
    return (
        db.query(Visit)
        .filter(Visit.visitor_id == visitor_id)
        .order_by(Visit.visit_date.desc())
        .limit(limit)
        .all()
    )


def update_push_token(db: Session, visitor_id: str, token: str | None) -> Visitor:
    visitor = get_visitor(db, visitor_id)
    new_token = (token or "").strip() or None
    if visitor.fcm_token == new_token:
        return visitor

    visitor.fcm_token = new_token
    db.commit()
    db.refresh(visitor)
    logger.info("visitor.push_token_updated visitor_id=%s", visitor.id)
    write_activity_log(db, "fcm_token_updated", visitor_id=visitor.id)
    return visitor


def register_visitor(
    db: Session,
    dispatcher: NotificationDispatcher,
    email: str,
    full_name: str,
    phone: str = "",
    company: str = "",
    photo_url: str | None = None,
    fcm_token: str | None = None,
) -> tuple[Visitor, DeliveryResult]:
    """Create a visitor profile and send the welcome notification.

    Emails are stored lowercased and must be unique. The welcome push is
    best-effort: a missing token or failed send still leaves the visitor
    registered and the in-app notification recorded.
    """
    normalized_email = (email or "").strip().lower()
    name = (full_name or "").strip()
    if not normalized_email:
        raise ValidationFailedError("Email is required")
    if not name:
        raise ValidationFailedError("Full name is required")
    if db.query(Visitor).filter(Visitor.email == normalized_email).first():
        raise ConflictStateError("A visitor with this email already exists")

    try:
        visitor = Visitor(
            email=normalized_email,
            full_name=name,
            phone=(phone or "").strip(),
            company=(company or "").strip(),
            photo_url=photo_url or None,
            fcm_token=(fcm_token or "").strip() or None,
        )
        db.add(visitor)
        db.commit()
        db.refresh(visitor)
    except SQLAlchemyError as exc:
        db.rollback()
        raise ExternalServiceError(f"Error creating visitor: {exc}") from exc

    logger.info("visitor.created visitor_id=%s", visitor.id)
    write_activity_log(
        db,
        "visitor_created",
        visitor_id=visitor.id,
        meta={"fullName": visitor.full_name, "company": visitor.company},
    )
    delivery = dispatcher.welcome(visitor)
    return visitor, delivery
