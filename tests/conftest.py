"""Pytest configuration for backend tests."""

import os
from datetime import datetime

import pytest

# Must be set before app.core.config caches its settings.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("QR_SECRET", "test-qr-secret")

from app.core.security import create_access_token, hash_password  # noqa: E402
from app.db import models  # noqa: E402,F401
from app.db.base import Base  # noqa: E402
from app.db.models import Admin, AdminRole, Visit, VisitStatus, Visitor  # noqa: E402
from app.db.session import build_engine, build_session_factory  # noqa: E402
from app.services.notification_service import NotificationDispatcher  # noqa: E402
from app.services.push_gateway import PushGateway, PushMessage  # noqa: E402

NOW = datetime(2024, 5, 14, 10, 0, 0)


class FakePushGateway(PushGateway):
    """Records every message instead of talking to Firebase."""

    def __init__(self):
        self.sent: list[PushMessage] = []
        self.fail_with: Exception | None = None

    def send(self, message: PushMessage) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(message)
        return f"projects/test/messages/{len(self.sent)}"


@pytest.fixture
def db():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = build_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def gateway():
    return FakePushGateway()


@pytest.fixture
def dispatcher(db, gateway):
    return NotificationDispatcher(db, gateway)


@pytest.fixture
def make_visitor(db):
    counter = {"n": 0}

    def _make(**overrides) -> Visitor:
        counter["n"] += 1
        fields = {
            "email": f"visitor{counter['n']}@example.com",
            "full_name": f"Visitor {counter['n']}",
            "phone": "+15550100",
            "company": "Acme",
            "fcm_token": f"token-{counter['n']}",
        }
        fields.update(overrides)
        visitor = Visitor(**fields)
        db.add(visitor)
        db.commit()
        db.refresh(visitor)
        return visitor

    return _make


@pytest.fixture
def make_admin(db):
    counter = {"n": 0}

    def _make(**overrides) -> Admin:
        counter["n"] += 1
        fields = {
            "email": f"admin{counter['n']}@example.com",
            "full_name": f"Admin {counter['n']}",
            "password_hash": "not-a-real-hash",
            "role": AdminRole.admin,
            "is_active": True,
        }
        fields.update(overrides)
        admin = Admin(**fields)
        db.add(admin)
        db.commit()
        db.refresh(admin)
        return admin

    return _make


@pytest.fixture
def make_visit(db, make_visitor):
    def _make(visitor: Visitor | None = None, **overrides) -> Visit:
        visitor = visitor or make_visitor()
        fields = {
            "visitor_id": visitor.id,
            "visitor_name": visitor.full_name,
            "visitor_email": visitor.email,
            "visitor_phone": visitor.phone,
            "visitor_company": visitor.company,
            "purpose": "Quarterly review",
            "host_name": "Dana Host",
            "host_department": "Finance",
            "visit_date": NOW,
            "status": VisitStatus.pending,
        }
        fields.update(overrides)
        visit = Visit(**fields)
        db.add(visit)
        db.commit()
        db.refresh(visit)
        return visit

    return _make


@pytest.fixture
def client(db, gateway):
    from fastapi.testclient import TestClient

    from app.db.session import get_db
    from app.main import app
    from app.services.push_gateway import get_push_gateway

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_push_gateway] = lambda: gateway
    # No context manager: startup would create tables on the configured engine.
    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(make_admin):
    def _headers(admin: Admin | None = None) -> dict[str, str]:
        admin = admin or make_admin()
        return {"Authorization": f"Bearer {create_access_token(admin.id, admin.role.value)}"}

    return _headers


@pytest.fixture
def password_admin(make_admin):
    return make_admin(email="desk@example.com", password_hash=hash_password("s3cret-pass"))
