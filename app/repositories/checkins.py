from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.models import CheckIn


def create_checkin(db: Session, **fields: Any) -> CheckIn:
    checkin = CheckIn(**fields)
    db.add(checkin)
    db.flush()
    return checkin


def get_checkin(db: Session, checkin_id: str) -> CheckIn | None:
    return db.query(CheckIn).filter(CheckIn.id == checkin_id).first()


def find_open_checkin(db: Session, visit_id: str, visitor_id: str | None = None) -> CheckIn | None:
    query = db.query(CheckIn).filter(CheckIn.visit_id == visit_id, CheckIn.check_out_time.is_(None))
    if visitor_id:
        query = query.filter(CheckIn.visitor_id == visitor_id)
    return query.order_by(CheckIn.check_in_time.desc()).first()


def list_checkins_between(db: Session, start: datetime, end: datetime, open_only: bool = False) -> list[CheckIn]:
    query = db.query(CheckIn).filter(CheckIn.check_in_time >= start, CheckIn.check_in_time < end)
    if open_only:
        query = query.filter(CheckIn.check_out_time.is_(None))
    return query.order_by(CheckIn.check_in_time.desc()).all()


def list_recent_checkins(db: Session, limit: int = 10) -> list[CheckIn]:
    return db.query(CheckIn).order_by(CheckIn.check_in_time.desc()).limit(limit).all()


def count_checkins_between(db: Session, start: datetime, end: datetime, open_only: bool = False) -> int:
    query = db.query(func.count(CheckIn.id)).filter(CheckIn.check_in_time >= start, CheckIn.check_in_time < end)
    if open_only:
        query = query.filter(CheckIn.check_out_time.is_(None))
    return int(query.scalar() or 0)


def count_checkins_for_visits(db: Session, visit_ids: list[str]) -> int:
    if not visit_ids:
        return 0
    return int(db.query(func.count(CheckIn.id)).filter(CheckIn.visit_id.in_(visit_ids)).scalar() or 0)
