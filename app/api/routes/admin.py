from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import require_roles
from app.db.models import Admin
from app.db.session import get_db
from app.schemas.auth import AdminCreateRequest
from app.services.activity_service import write_activity_log
from app.services.auth_service import create_admin, serialize_admin

router = APIRouter()


@router.post("/admins")
def admin_create_admin(
    payload: AdminCreateRequest,
    db: Session = Depends(get_db),
    actor: Admin = Depends(require_roles("superadmin")),
):
    admin = create_admin(
        db,
        email=payload.email,
        full_name=payload.fullName,
        password=payload.password,
        role=payload.role,
        department=payload.department,
    )
    write_activity_log(
        db,
        "admin_created",
        actor_id=actor.id,
        meta={"adminId": admin.id, "role": admin.role.value},
    )
    return {"data": serialize_admin(admin)}
