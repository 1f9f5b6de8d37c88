"""
CiviSure - Error Taxonomy and JSON Error Envelope

Services raise CiviSureError subclasses; the handlers registered by
register_exception_handlers() turn them (and framework errors) into
{"success": false, "message": ...} responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from civisure.config import settings

logger = logging.getLogger(__name__)


class CiviSureError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    default_message = "Something went wrong!"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(CiviSureError):
    status_code = 400
    default_message = "Invalid or missing fields"


class Unauthorized(CiviSureError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(CiviSureError):
    status_code = 403
    default_message = "Admin access required"


class NotFound(CiviSureError):
    status_code = 404
    default_message = "Not found"


class Conflict(CiviSureError):
    status_code = 409
    default_message = "Already exists"


class ServiceUnavailable(CiviSureError):
    status_code = 503
    default_message = "Service is not available"


class InternalError(CiviSureError):
    status_code = 500


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    """Build the uniform error envelope."""
    content = {"success": False, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def civisure_error_handler(request: Request, exc: CiviSureError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, InvalidInput.default_message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return error_response(404, "Route not found")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the defect, hide the detail outside debug mode."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    if settings.DEBUG:
        return error_response(500, "Something went wrong!", error=str(exc))
    return error_response(500, "Something went wrong!")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CiviSureError, civisure_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
