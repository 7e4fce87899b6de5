import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import ActivityLog

logger = logging.getLogger(__name__)


def write_activity_log(
    db: Session,
    kind: str,
    visit_id: str | None = None,
    visitor_id: str | None = None,
    actor_id: str | None = None,
    meta: dict[str, Any] | None = None,
) -> ActivityLog | None:
    """Append an activity entry. The log is an audit trail, so a failed write
    is logged and rolled back rather than failing the operation it records."""
    row = ActivityLog(
        kind=kind,
        visit_id=visit_id,
        visitor_id=visitor_id,
        actor_id=actor_id,
        meta_json=json.dumps(meta or {}, ensure_ascii=True, default=str),
    )
    try:
        db.add(row)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to write %s activity log for visit %s", kind, visit_id)
        return None
    return row


def serialize_activity_log(row: ActivityLog) -> dict[str, Any]:
    return {
        "id": row.id,
        "kind": row.kind,
        "visitId": row.visit_id,
        "visitorId": row.visitor_id,
        "actorId": row.actor_id,
        "meta": json.loads(row.meta_json or "{}"),
        "createdAt": row.created_at.isoformat() if row.created_at else None,
    }


def list_activity_logs(db: Session, visit_id: str | None = None, limit: int = 200) -> list[ActivityLog]:
    query = db.query(ActivityLog)
    if visit_id:
        query = query.filter(ActivityLog.visit_id == visit_id)
    return query.order_by(ActivityLog.created_at.desc()).limit(limit).all()
