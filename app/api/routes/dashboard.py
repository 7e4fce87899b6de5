from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import require_roles
from app.db.models import Admin
from app.db.session import get_db
from app.services.checkin_service import list_recent_checkins, serialize_checkin
from app.services.visit_service import get_visit_counts, list_today_visits, serialize_visit

router = APIRouter()


@router.get("/overview")
def dashboard_overview(
    db: Session = Depends(get_db),
    _: Admin = Depends(require_roles("admin", "superadmin")),
):
    return {
        "data": {
            "counts": get_visit_counts(db),
            "todayVisits": [serialize_visit(visit) for visit in list_today_visits(db)],
            "recentCheckIns": [serialize_checkin(row) for row in list_recent_checkins(db)],
        }
    }
