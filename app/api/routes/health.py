import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.session import get_db

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


def _database_ok(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        return False
    return True


@router.get("/health")
def health(db: Session = Depends(get_db)):
    database_ok = _database_ok(db)
    return {
        "status": "ok" if database_ok else "degraded",
        "database": "ok" if database_ok else "unavailable",
        "pushConfigured": bool(settings.FIREBASE_PROJECT_ID.strip()),
        "environment": settings.ENVIRONMENT,
    }
