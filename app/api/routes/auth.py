from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_admin
from app.db.models import Admin
from app.db.session import get_db
from app.schemas.auth import LoginRequest, PushTokenUpdate
from app.services import auth_service

router = APIRouter()


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    data = auth_service.login(db=db, email=payload.email, password=payload.password)
    return {"data": data.model_dump()}


@router.get("/me")
def me(admin: Admin = Depends(get_current_admin)):
    return {"data": auth_service.serialize_admin(admin)}


@router.put("/me/push-token")
def update_my_push_token(
    payload: PushTokenUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    admin = auth_service.update_admin_push_token(db, admin, payload.token)
    return {"data": {"id": admin.id, "hasPushToken": bool(admin.fcm_token)}}
