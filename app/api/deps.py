from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.security import decode_access_token
from app.db.models import Admin
from app.db.session import get_db
from app.services.notification_service import NotificationDispatcher
from app.services.push_gateway import PushGateway, get_push_gateway

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Admin:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    try:
        claims = decode_access_token(credentials.credentials)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))

    admin = db.query(Admin).filter(Admin.id == claims["sub"]).first()
    if not admin or not admin.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return admin


def require_roles(*roles: str):
    def dependency(admin: Admin = Depends(get_current_admin)) -> Admin:
        if admin.role.value not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return admin

    return dependency


def get_dispatcher(
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_push_gateway),
) -> NotificationDispatcher:
    return NotificationDispatcher(db, gateway)
