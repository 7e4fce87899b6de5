import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import setup_logging
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.middleware.request_context import RequestContextMiddleware
from app.services.auth_service import seed_superadmin

settings = get_settings()
setup_logging(logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)
app.include_router(api_router, prefix=settings.API_V1_PREFIX)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)
register_exception_handlers(app)


@app.on_event("startup")
async def on_startup():
    Base.metadata.create_all(bind=engine)
    if settings.ENVIRONMENT.lower() != "development":
        return
    db = SessionLocal()
    try:
        seed_superadmin(db, settings.SEED_ADMIN_EMAIL, settings.SEED_ADMIN_PASSWORD)
        logger.info("Development seed checked for %s", settings.SEED_ADMIN_EMAIL)
    finally:
        db.close()
