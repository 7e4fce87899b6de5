from fastapi import APIRouter

from app.api.routes import admin, auth, checkins, dashboard, health, notifications, reports, visitor, visits

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(visits.router, prefix="/visits", tags=["visits"])
api_router.include_router(visitor.router, prefix="/visitors", tags=["visitors"])
api_router.include_router(checkins.router, prefix="/checkins", tags=["checkins"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
