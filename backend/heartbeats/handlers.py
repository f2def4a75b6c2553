"""Exception handlers mapping errors to responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import HttpError, StealthBlockedError
from .responses import json_response, ok_response
from .security import has_auth_token

logger = logging.getLogger(__name__)


async def http_error_handler(request: Request, exc: HttpError):
    # Blocked requests are never logged
    if isinstance(exc, StealthBlockedError):
        return ok_response()

    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(level, f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return json_response({"error": exc.message}, exc.status_code)


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"{request.method} {request.url.path} -> constraint violation: {exc.orig}")
    return json_response({"error": "Bad Request (constraint violation)"}, 400)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"{request.method} {request.url.path} -> invalid request: {exc.errors()}")
    return json_response({"error": "Bad Request"}, 400)


async def starlette_http_handler(request: Request, exc: StarletteHTTPException):
    # Unknown path or method is a bad request, not a 404/405
    status = 400 if exc.status_code in (404, 405) else exc.status_code
    message = "Bad Request" if status == 400 else str(exc.detail)
    logger.warning(f"{request.method} {request.url.path} -> {status}")
    return json_response({"error": message}, status)


async def unhandled_error_handler(request: Request, exc: Exception):
    """Last resort; details only go to callers already holding the admin token."""
    logger.error(f"{request.method} {request.url.path} -> unhandled error", exc_info=exc)

    settings = request.app.state.settings
    if has_auth_token(request, settings.auth_header, settings.admin_token):
        return json_response({"error": "Internal Server Error", "detail": str(exc)}, 500)
    return json_response({"error": "Internal Server Error"}, 500)


def register_exception_handlers(app: FastAPI):
    """Install the error taxonomy on an app."""
    app.add_exception_handler(HttpError, http_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_http_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
