import csv
import io
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.core.dates import start_of_day
from app.core.exceptions import ValidationFailedError
from app.db.models import Visit, VisitStatus
from app.repositories import checkins as checkin_repo
from app.repositories import visits as visit_repo

EXPORT_ROW_LIMIT = 1000
CSV_HEADER = [
    "Visit Date",
    "Visitor Name",
    "Email",
    "Company",
    "Phone",
    "Host Name",
    "Department",
    "Purpose",
    "Status",
    "Approved By",
    "Approval Date",
]


def _range(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    if start and end and end < start:
        raise ValidationFailedError("endDate must not be before startDate")
    range_start = start_of_day(start) if start else None
    # End date is inclusive.
    range_end = start_of_day(end) + timedelta(days=1) if end else None
    return range_start, range_end


def get_visit_stats(
    db: Session,
    start: date | None = None,
    end: date | None = None,
    visitor_id: str | None = None,
) -> dict[str, Any]:
    range_start, range_end = _range(start, end)
    visits = visit_repo.filter_visits(db, start=range_start, end=range_end, visitor_id=visitor_id)

    by_status = {status.value: 0 for status in VisitStatus}
    companies: set[str] = set()
    hosts: set[str] = set()
    for visit in visits:
        by_status[visit.status.value] += 1
        if visit.visitor_company:
            companies.add(visit.visitor_company)
        if visit.host_name:
            hosts.add(visit.host_name)

    return {
        "totalVisits": len(visits),
        "approved": by_status["approved"],
        "pending": by_status["pending"],
        "denied": by_status["denied"],
        "checkIns": checkin_repo.count_checkins_for_visits(db, [visit.id for visit in visits]),
        "uniqueCompanies": len(companies),
        "uniqueHosts": len(hosts),
        "companies": sorted(companies),
        "hosts": sorted(hosts),
    }


def visit_csv_row(visit: Visit) -> list[str]:
    return [
        f"{visit.visit_date:%Y-%m-%d}",
        visit.visitor_name or "",
        visit.visitor_email or "",
        visit.visitor_company or "",
        visit.visitor_phone or "",
        visit.host_name or "",
        visit.host_department or "",
        visit.purpose or "",
        visit.status.value,
        visit.approved_by or "",
        f"{visit.approved_at:%Y-%m-%d %H:%M}" if visit.approved_at else "",
    ]


def render_visits_csv(visits: list[Visit]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for visit in visits:
        writer.writerow(visit_csv_row(visit))
    return buffer.getvalue()


def export_visits_csv(db: Session, start: date | None = None, end: date | None = None) -> str:
    range_start, range_end = _range(start, end)
    visits = visit_repo.filter_visits(
        db,
        start=range_start,
        end=range_end,
        newest_first=True,
        limit=EXPORT_ROW_LIMIT,
    )
    return render_visits_csv(visits)
