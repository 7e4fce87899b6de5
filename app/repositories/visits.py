from datetime import datetime
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.db.models import Visit, VisitStatus
from app.repositories.search import LIKE_ESCAPE, contains_pattern

RECENT_VISITS_LIMIT = 100


def create_visit(db: Session, **fields: Any) -> Visit:
    visit = Visit(**fields)
    db.add(visit)
    db.flush()
    return visit


def get_visit(db: Session, visit_id: str) -> Visit | None:
    return db.query(Visit).filter(Visit.id == visit_id).first()


def list_recent_visits(db: Session, limit: int = RECENT_VISITS_LIMIT) -> list[Visit]:
    return db.query(Visit).order_by(Visit.created_at.desc()).limit(limit).all()


def list_visits_by_status(db: Session, status: VisitStatus) -> list[Visit]:
    return db.query(Visit).filter(Visit.status == status).order_by(Visit.visit_date.asc()).all()


def list_visits_between(db: Session, start: datetime, end: datetime) -> list[Visit]:
    return (
        db.query(Visit)
        .filter(Visit.visit_date >= start, Visit.visit_date < end)
        .order_by(Visit.visit_date.asc())
        .all()
    )


def search_visits(db: Session, term: str, limit: int = RECENT_VISITS_LIMIT) -> list[Visit]:
    pattern = contains_pattern(term)
    return (
        db.query(Visit)
        .filter(
            or_(
                Visit.visitor_name.ilike(pattern, escape=LIKE_ESCAPE),
                Visit.visitor_email.ilike(pattern, escape=LIKE_ESCAPE),
                Visit.visitor_company.ilike(pattern, escape=LIKE_ESCAPE),
                Visit.host_name.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
        .order_by(Visit.created_at.desc())
        .limit(limit)
        .all()
    )


def count_visits(
    db: Session,
    status: VisitStatus | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> int:
    query = db.query(func.count(Visit.id))
    if status is not None:
        query = query.filter(Visit.status == status)
    if start is not None:
        query = query.filter(Visit.visit_date >= start)
    if end is not None:
        query = query.filter(Visit.visit_date < end)
    return int(query.scalar() or 0)


def filter_visits(
    db: Session,
    start: datetime | None = None,
    end: datetime | None = None,
    visitor_id: str | None = None,
    newest_first: bool = False,
    limit: int | None = None,
) -> list[Visit]:
    query = db.query(Visit)
    if visitor_id:
        query = query.filter(Visit.visitor_id == visitor_id)
    if start is not None:
        query = query.filter(Visit.visit_date >= start)
    if end is not None:
        query = query.filter(Visit.visit_date < end)
    order = Visit.visit_date.desc() if newest_first else Visit.visit_date.asc()
    query = query.order_by(order, Visit.id)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def transition_status(
    db: Session,
    visit_id: str,
    expected: VisitStatus,
    values: dict[str, Any],
) -> bool:
    """Conditionally update a visit that is still in ``expected`` status.

    Returns False when no row matched: the visit is gone or another writer
    already moved it. Does not commit.
    """
    updated = (
        db.query(Visit)
        .filter(Visit.id == visit_id, Visit.status == expected)
        .update(values, synchronize_session=False)
    )
    return updated == 1


def update_visit_fields(db: Session, visit_id: str, values: dict[str, Any]) -> None:
    db.query(Visit).filter(Visit.id == visit_id).update(values, synchronize_session=False)


def list_approved_arriving_between(db: Session, start: datetime, end: datetime) -> list[Visit]:
    return (
        db.query(Visit)
        .filter(
            Visit.status == VisitStatus.approved,
            Visit.expected_arrival_time >= start,
            Visit.expected_arrival_time <= end,
        )
        .order_by(Visit.expected_arrival_time.asc())
        .all()
    )


def page_pending_before(db: Session, cutoff: datetime, after_id: str | None, limit: int) -> list[Visit]:
    query = db.query(Visit).filter(Visit.status == VisitStatus.pending, Visit.visit_date < cutoff)
    if after_id is not None:
        query = query.filter(Visit.id > after_id)
    return query.order_by(Visit.id.asc()).limit(limit).all()
