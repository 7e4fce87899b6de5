"""Tests for the error taxonomy and how it renders over HTTP."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.exceptions import (
    AlreadyCheckedInError,
    AppException,
    ConflictStateError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    SignatureMismatchError,
    UnauthenticatedError,
    ValidationFailedError,
    VisitNotApprovedError,
    VisitNotFoundError,
    register_exception_handlers,
)


@pytest.fixture
def raising_client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/raise/{name}")
    def _raise(name: str):
        errors = {
            "unauthenticated": UnauthenticatedError(),
            "forbidden": PermissionDeniedError(),
            "external": ExternalServiceError("Error approving visit: disk full"),
            "not_approved": VisitNotApprovedError("visit-1", "pending"),
        }
        raise errors[name]

    @app.get("/boom")
    def _boom():
        raise RuntimeError("unexpected")

    return TestClient(app, raise_server_exceptions=False)


class TestTaxonomy:
    @pytest.mark.parametrize(
        "error, status_code, code",
        [
            (NotFoundError(), 404, "not_found"),
            (ValidationFailedError("bad"), 422, "validation_failed"),
            (UnauthenticatedError(), 401, "unauthenticated"),
            (PermissionDeniedError(), 403, "permission_denied"),
            (SignatureMismatchError(), 400, "signature_mismatch"),
            (ConflictStateError("taken"), 409, "conflict_state"),
            (ExternalServiceError("down"), 502, "external_service_failure"),
            (VisitNotFoundError("v1"), 404, "visit_not_found"),
            (VisitNotApprovedError("v1", "denied"), 409, "visit_not_approved"),
            (AlreadyCheckedInError("v1"), 409, "already_checked_in"),
        ],
    )
    def test_status_and_code(self, error, status_code, code):
        assert isinstance(error, AppException)
        assert error.status_code == status_code
        assert error.code == code

    def test_qr_errors_keep_their_family(self):
        assert isinstance(VisitNotFoundError("v1"), NotFoundError)
        assert isinstance(AlreadyCheckedInError("v1"), ConflictStateError)
        assert AlreadyCheckedInError("v1").message == "Visitor is already checked in for this visit"


class TestHandlers:
    @pytest.mark.parametrize(
        "name, status_code, code",
        [
            ("unauthenticated", 401, "unauthenticated"),
            ("forbidden", 403, "permission_denied"),
            ("external", 502, "external_service_failure"),
            ("not_approved", 409, "visit_not_approved"),
        ],
    )
    def test_app_exceptions_render_message_and_code(self, raising_client, name, status_code, code):
        response = raising_client.get(f"/raise/{name}")

        assert response.status_code == status_code
        assert response.json()["code"] == code
        assert response.json()["message"]

    def test_unhandled_exception_is_500(self, raising_client):
        response = raising_client.get("/boom")

        assert response.status_code == 500
        assert response.json()["message"] == "Internal server error"
