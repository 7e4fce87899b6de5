from app.core.config import get_settings

settings = get_settings()

app = "app.main:app"
host = settings.BACKEND_HOST
port = settings.BACKEND_PORT
log_level = "debug" if settings.DEBUG else "info"
# Maintenance jobs run under Celery beat, not in the API workers.
workers = 1 if settings.DEBUG else 4
