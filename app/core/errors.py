import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core import config

logger = logging.getLogger(__name__)

# ==================== ERROR TAXONOMY ====================

class AppError(HTTPException):
    """
    Base for expected failures.
    Extra keyword arguments are merged into the JSON error body.
    """
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)
        self.extra = extra


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class AuthError(AppError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    default_message = "You do not have permission to access this resource."


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Resource already exists"


class GatewayError(AppError):
    status_code = 502
    default_message = "Payment gateway error"


class InternalError(AppError):
    status_code = 500


class DuplicateEmail(Conflict):
    default_message = "User with this email already exists"


class InvalidCredentials(AuthError):
    default_message = "Invalid email or password"


class InvalidOrExpiredToken(ValidationError):
    default_message = "Invalid or expired reset token"


class AlreadyEnrolled(Conflict):
    default_message = "You have already made payment for this course"


class TransactionNotFound(NotFound):
    default_message = "Payment record not found"


# ==================== HANDLERS ====================

def _error_body(message: str, extra: Optional[Dict[str, Any]] = None) -> dict:
    body = {"success": False, "message": message}
    if extra:
        body.update(extra)
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    extra = getattr(exc, "extra", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), extra),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", []) if part != "body"),
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body("Validation failed", {"errors": errors}),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        f"❌ Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc
    )

    extra = None
    if not config.IS_PRODUCTION:
        extra = {"error": str(exc), "path": request.url.path}

    return JSONResponse(status_code=500, content=_error_body("Internal server error", extra))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
