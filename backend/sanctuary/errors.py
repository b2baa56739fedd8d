"""Error kinds and the uniform response envelope.

Every response leaving the service has the shape::

    {"success": true,  "data": {...}, "message": "..."}   # message optional
    {"success": false, "error": "...", "kind": "..."}

``kind`` is stable and machine-checkable; ``error`` is human readable and
never carries stack traces, file-system paths or secrets.
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base exception for errors surfaced to callers."""
    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(ServiceError):
    """Signing configuration is missing or malformed."""
    kind = "configuration_error"
    status_code = 503

    def __init__(self, message: str = "Agora service not configured"):
        super().__init__(message)


class NotFoundError(ServiceError):
    """Session or file is absent. Expired sessions are reported the same way."""
    kind = "not_found"
    status_code = 404


class FeatureUnsupportedError(ServiceError):
    """Session exists but has no channel identity."""
    kind = "feature_unsupported"
    status_code = 400

    def __init__(self, message: str = "This sanctuary session does not support audio features"):
        super().__init__(message)


class ValidationError(ServiceError):
    """Missing field, length violation or bad enum value."""
    kind = "validation_error"
    status_code = 400


class InvalidFormatError(ValidationError):
    """Requested avatar does not have an image extension."""
    kind = "invalid_format"

    def __init__(self, message: str = "Invalid image format"):
        super().__init__(message)


class AuthenticationError(ServiceError):
    kind = "authentication_error"
    status_code = 401


class AuthorizationError(ServiceError):
    """Authenticated, but the role does not reach the requested tier."""
    kind = "authorization_error"
    status_code = 403

    def __init__(self, message: str = "Access denied: Admin privileges required"):
        super().__init__(message)


class InternalError(ServiceError):
    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str = "Server error"):
        super().__init__(message)


def success(data: Any, message: Optional[str] = None) -> dict:
    """Wrap a payload in the success envelope."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def error_response(error: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"success": False, "error": error.message, "kind": error.kind},
    )


def _describe_validation(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    if location:
        return f"{location}: {first.get('msg', 'invalid value')}"
    return first.get("msg", "Invalid request")


def register_exception_handlers(app: FastAPI) -> None:
    """Render all failures through the envelope."""

    @app.exception_handler(ServiceError)
    async def _service_error(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(ValidationError(_describe_validation(exc)))

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(InternalError())
