import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import AppException, ValidationFailedError
from app.core.security import create_access_token, hash_password, verify_password
from app.db.models import Admin, AdminRole
from app.schemas.auth import AuthAdmin, AuthResponse

logger = logging.getLogger(__name__)


def serialize_admin(admin: Admin) -> dict:
    return {
        "id": admin.id,
        "fullName": admin.full_name,
        "email": admin.email,
        "role": admin.role.value,
        "department": admin.department,
    }


def login(db: Session, email: str, password: str) -> AuthResponse:
    login_key = (email or "").strip().lower()
    admin = db.query(Admin).filter(Admin.email == login_key, Admin.is_active.is_(True)).first()
    if not admin or not verify_password(password, admin.password_hash):
        raise AppException("Invalid credentials or account not authorized.", status_code=401)

    admin.last_login_at = datetime.utcnow()
    db.commit()
    db.refresh(admin)
    logger.info("auth.login admin_id=%s", admin.id)

    return AuthResponse(
        accessToken=create_access_token(admin.id, admin.role.value),
        admin=AuthAdmin(**serialize_admin(admin)),
    )


def create_admin(
    db: Session,
    email: str,
    full_name: str,
    password: str,
    role: str = AdminRole.admin.value,
    department: str = "",
) -> Admin:
    try:
        admin_role = AdminRole(role)
    except ValueError as exc:
        raise ValidationFailedError("Invalid role") from exc

    normalized_email = email.strip().lower()
    if db.query(Admin).filter(Admin.email == normalized_email).first():
        raise AppException("Email already exists", status_code=409)

    admin = Admin(
        email=normalized_email,
        full_name=full_name.strip(),
        password_hash=hash_password(password),
        role=admin_role,
        department=department,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("auth.admin_created admin_id=%s role=%s", admin.id, admin.role.value)
    return admin


def update_admin_push_token(db: Session, admin: Admin, token: str | None) -> Admin:
    admin.fcm_token = (token or "").strip() or None
    db.commit()
    db.refresh(admin)
    return admin


def seed_superadmin(db: Session, email: str, password: str) -> None:
    if db.query(Admin).count() > 0:
        return
    try:
        db.add(
            Admin(
                email=email.strip().lower(),
                full_name="Demo Superadmin",
                password_hash=hash_password(password),
                role=AdminRole.superadmin,
                is_active=True,
            )
        )
        db.commit()
    except IntegrityError:
        # Another worker/process already inserted seed rows.
        db.rollback()
