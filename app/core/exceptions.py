import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    code = "error"

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(AppException):
    code = "not_found"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ValidationFailedError(AppException):
    code = "validation_failed"

    def __init__(self, message: str):
        super().__init__(message, status_code=422)


class UnauthenticatedError(AppException):
    code = "unauthenticated"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401)


class PermissionDeniedError(AppException):
    code = "permission_denied"

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, status_code=403)


class SignatureMismatchError(AppException):
    code = "signature_mismatch"

    def __init__(self, message: str = "Invalid QR code signature"):
        super().__init__(message, status_code=400)


class ConflictStateError(AppException):
    code = "conflict_state"

    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class ExternalServiceError(AppException):
    code = "external_service_failure"

    def __init__(self, message: str):
        super().__init__(message, status_code=502)


class VisitNotFoundError(NotFoundError):
    code = "visit_not_found"

    def __init__(self, visit_id: str):
        self.visit_id = visit_id
        super().__init__(f"Visit {visit_id} not found")


class VisitNotApprovedError(ConflictStateError):
    code = "visit_not_approved"

    def __init__(self, visit_id: str, status: str):
        self.visit_id = visit_id
        self.status = status
        super().__init__(f"Visit is {status}, only approved visits can check in")


class AlreadyCheckedInError(ConflictStateError):
    code = "already_checked_in"

    def __init__(self, visit_id: str):
        self.visit_id = visit_id
        super().__init__("Visitor is already checked in for this visit")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def _app_exception_handler(_: Request, exc: AppException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.message, "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error", "detail": str(exc)},
        )
