from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.api.deps import require_roles
from app.core.dates import utcnow
from app.db.models import Admin
from app.db.session import get_db
from app.services.report_service import export_visits_csv, get_visit_stats

router = APIRouter()
staff = require_roles("admin", "superadmin")


@router.get("/stats")
def visit_stats(
    startDate: date | None = Query(default=None),
    endDate: date | None = Query(default=None),
    visitorId: str | None = Query(default=None),
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    return {"data": get_visit_stats(db, start=startDate, end=endDate, visitor_id=visitorId)}


@router.get("/export")
def export_visits(
    startDate: date | None = Query(default=None),
    endDate: date | None = Query(default=None),
    db: Session = Depends(get_db),
    _: Admin = Depends(staff),
):
    content = export_visits_csv(db, start=startDate, end=endDate)
    filename = f"visits-export-{utcnow():%Y-%m-%d}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
