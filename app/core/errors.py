"""Error taxonomy and the uniform error envelope.

Every failure that reaches a client is rendered as::

    {"success": false, "message": ..., "code": ..., "timestamp": ...}

Authentication and authorization failures carry deliberately generic
messages; the specific reason travels in ``AppError.reason`` so it can be
logged and audited without being sent over the wire.
"""
import logging
from enum import Enum
from typing import Any
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from .base import utcnow
from .config import Settings

log = logging.getLogger("app.errors")


class ErrorCode(str, Enum):
    AUTH_INVALID_CREDENTIALS = "AUTH_001"
    AUTH_TOKEN_EXPIRED = "AUTH_002"
    AUTH_TOKEN_INVALID = "AUTH_003"
    AUTH_UNAUTHORIZED = "AUTH_004"
    AUTHZ_FORBIDDEN = "AUTHZ_001"
    VALIDATION_FAILED = "VAL_001"
    BUSINESS_CONFLICT = "BUS_001"
    BUSINESS_NOT_FOUND = "BUS_003"
    LGPD_CONSENT_REQUIRED = "LGPD_001"
    LGPD_RETENTION_VIOLATION = "LGPD_002"
    RATE_LIMITED = "RATE_001"
    SYSTEM_DATABASE_ERROR = "SYS_001"
    SYSTEM_INTERNAL_ERROR = "SYS_003"


class AppError(Exception):
    status_code: int = 500
    code: ErrorCode = ErrorCode.SYSTEM_INTERNAL_ERROR
    message: str = "An internal server error occurred."

    def __init__(self, message: str | None = None, *, code: ErrorCode | None = None,
                 reason: str | None = None, errors: list[dict] | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if code:
            self.code = code
        self.reason = reason
        self.errors = errors


class AuthenticationFailure(AppError):
    status_code = 401
    code = ErrorCode.AUTH_UNAUTHORIZED
    message = "Authentication required"


class AuthorizationFailure(AppError):
    status_code = 403
    code = ErrorCode.AUTHZ_FORBIDDEN
    message = "Access denied"


class ValidationFailure(AppError):
    status_code = 400
    code = ErrorCode.VALIDATION_FAILED
    message = "Invalid data"


class ConflictFailure(AppError):
    status_code = 409
    code = ErrorCode.BUSINESS_CONFLICT
    message = "Conflict with the current state of the resource"


class NotFoundFailure(AppError):
    status_code = 404
    code = ErrorCode.BUSINESS_NOT_FOUND
    message = "Resource not found"


class ComplianceFailure(AppError):
    status_code = 403
    code = ErrorCode.LGPD_CONSENT_REQUIRED
    message = "Operation blocked by a data-protection rule"


class RetentionBlocked(ComplianceFailure):
    status_code = 409
    code = ErrorCode.LGPD_RETENTION_VIOLATION
    message = "Medical records are retained by law and cannot be deleted"


class RateLimited(AppError):
    status_code = 429
    code = ErrorCode.RATE_LIMITED
    message = "Too many requests, try again later"


class SystemFailure(AppError):
    status_code = 500
    code = ErrorCode.SYSTEM_DATABASE_ERROR
    message = "An internal server error occurred."


def error_body(message: str, code: ErrorCode | str, **extra: Any) -> dict:
    body = {
        "success": False,
        "message": message,
        "code": code.value if isinstance(code, ErrorCode) else code,
        "timestamp": utcnow().isoformat(),
    }
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


_STATUS_CODES = {
    400: ErrorCode.VALIDATION_FAILED,
    401: ErrorCode.AUTH_UNAUTHORIZED,
    403: ErrorCode.AUTHZ_FORBIDDEN,
    404: ErrorCode.BUSINESS_NOT_FOUND,
    409: ErrorCode.BUSINESS_CONFLICT,
    429: ErrorCode.RATE_LIMITED,
}


def install_exception_handlers(app: FastAPI, settings: Settings):

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if isinstance(exc, SystemFailure):
            log.error(f"System failure on {request.method} {request.url.path}: {exc}", exc_info=exc)
        elif exc.reason:
            log.info(f"{exc.__class__.__name__} on {request.method} {request.url.path}: reason={exc.reason}")
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.code, errors=exc.errors))

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content=error_body("Invalid data", ErrorCode.VALIDATION_FAILED, errors=errors))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = _STATUS_CODES.get(exc.status_code, ErrorCode.SYSTEM_INTERNAL_ERROR)
        return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail), code), headers=getattr(exc, "headers", None))

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        log.error(f"Storage failure on {request.method} {request.url.path}", exc_info=exc)
        failure = SystemFailure()
        return JSONResponse(status_code=failure.status_code, content=error_body(failure.message, failure.code))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        log.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=exc)
        detail = None if settings.ENV != "local" else repr(exc)
        return JSONResponse(
            status_code=500,
            content=error_body("An internal server error occurred.", ErrorCode.SYSTEM_INTERNAL_ERROR, detail=detail),
        )
