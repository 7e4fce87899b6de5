from functools import lru_cache
from pathlib import Path
from typing import List
from urllib.parse import urlparse
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(ENV_FILE), case_sensitive=False)

    APP_NAME: str = "Visitor Management Backend"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 8000

    DATABASE_URL: str = "sqlite:///./visitor_management.db"

    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"

    # QR payload signing. Rotating the secret invalidates every issued code.
    QR_SECRET: str = "visitor-management-secret-key"
    # 0 disables expiry; codes are usually issued well before the visit date.
    QR_MAX_AGE_DAYS: int = 0

    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_SERVICE_ACCOUNT_JSON: str = ""
    FIREBASE_SERVICE_ACCOUNT_BASE64: str = ""

    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    REMINDER_LEAD_MINUTES: int = 120
    REMINDER_WINDOW_MINUTES: int = 15
    NOTIFICATION_RETENTION_DAYS: int = 30
    ACTIVITY_LOG_RETENTION_DAYS: int = 90
    MAINTENANCE_BATCH_SIZE: int = 500
    BULK_APPROVE_LIMIT: int = 50

    SEED_ADMIN_EMAIL: str = "admin@visitors.local"
    SEED_ADMIN_PASSWORD: str = "Password123!"

    @property
    def cors_origins(self) -> List[str]:
        origins: list[str] = []
        for raw in self.CORS_ORIGINS.split(","):
            value = raw.strip()
            if not value:
                continue
            parsed = urlparse(value)
            if parsed.scheme and parsed.netloc:
                value = f"{parsed.scheme}://{parsed.netloc}"
            origins.append(value.rstrip("/"))
        return origins


@lru_cache
def get_settings() -> Settings:
    return Settings()
