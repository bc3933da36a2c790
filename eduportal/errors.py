"""
============================================================================
FILE: errors.py
LOCATION: eduportal/errors.py
============================================================================

PURPOSE:
    Error taxonomy shared by every request handler, plus the FastAPI
    exception handlers that render them.

ERROR RESPONSE STRUCTURE:
    {"error": "Human-readable message", "details": "optional extra text"}

HTTP STATUS CODE DISCIPLINE:
    - 400 Invalid: malformed id, missing field, referential mismatch,
      delete blocked by dependent records
    - 401 Unauthenticated: no session or invalid session
    - 403 Denied: session valid but scope or ownership check failed
    - 404 NotFound: no such record (or a concealed out-of-scope record)
    - 409 Conflict: duplicate unique key
    - 500 Unexpected: storage/backend failure, never caused by user input

USAGE:
    from eduportal.errors import NotFound, register_exception_handlers

    raise NotFound("Department not found")
============================================================================
"""

from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from eduportal.logging_config import get_logger


logger = get_logger("errors")


class PortalError(Exception):
    """Base error with a fixed HTTP status and a user-safe message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An internal error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body

    def to_response(self) -> JSONResponse:
        headers = None
        if self.status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=self.status_code,
            content=self.to_dict(),
            headers=headers,
        )


class Invalid(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthenticated(PortalError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class Denied(PortalError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class NotFound(PortalError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(PortalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class Unexpected(PortalError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def _validation_details(exc: RequestValidationError) -> str:
    issues = exc.errors()
    if not issues:
        return ""
    first = issues[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return exc.to_response()


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = {"error": "Validation failed"}
    details = _validation_details(exc)
    if details:
        body["details"] = details
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": "Too many requests", "details": str(exc.detail)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return Unexpected().to_response()


def register_exception_handlers(app: FastAPI) -> None:
    """Install the portal error handlers on an application."""
    app.add_exception_handler(PortalError, portal_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
