from app.db.models.activity_log import ActivityLog
from app.db.models.admin import Admin, AdminRole
from app.db.models.checkin import CheckIn
from app.db.models.notification import Notification
from app.db.models.visit import Visit, VisitStatus
from app.db.models.visitor import Visitor

__all__ = [
    "ActivityLog",
    "Admin",
    "AdminRole",
    "CheckIn",
    "Notification",
    "Visit",
    "VisitStatus",
    "Visitor",
]
