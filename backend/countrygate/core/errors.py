"""Error taxonomy and the JSON error envelope returned for every failure."""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.background import BackgroundTask
from starlette.exceptions import HTTPException as StarletteHTTPException

from countrygate.services.usage import record_key_usage

logger = logging.getLogger("countrygate.errors")


# ─── Exception hierarchy ───


class CountryGateError(Exception):
    """Base class for failures surfaced to the caller."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Any = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class AuthenticationFailure(CountryGateError):
    """Missing, malformed or expired bearer token / API key."""

    status_code = 401
    default_message = "Not authenticated"


class AuthorizationFailure(CountryGateError):
    """Credential recognised but not allowed (inactive or expired key)."""

    status_code = 403
    default_message = "Not authorised"


class NotFound(CountryGateError):
    status_code = 404
    default_message = "Not found"


class ConflictError(CountryGateError):
    status_code = 409
    default_message = "Resource already exists"


class ValidationFailure(CountryGateError):
    status_code = 400
    default_message = "Invalid request"


class UpstreamFailure(CountryGateError):
    """The country-data API errored or could not be reached."""

    status_code = 502
    default_message = "Error fetching country data"


# ─── Envelope ───


def error_body(message: str, detail: Any = None, **extra) -> dict:
    body = {"success": False, "message": message}
    if detail is not None:
        body["error"] = detail
    body.update(extra)
    return body


def _pending_usage(request: Request) -> Optional[BackgroundTask]:
    """A verified key whose request failed downstream still counts as used."""
    pending = getattr(request.state, "key_usage", None)
    if pending:
        return BackgroundTask(record_key_usage, *pending)
    return None


def register_exception_handlers(app: FastAPI):
    """Render every failure as ``{"success": false, "message": ...}``."""

    @app.exception_handler(CountryGateError)
    async def domain_error_handler(request: Request, exc: CountryGateError):
        if exc.status_code >= 500:
            logger.warning("%s %s -> %d: %s", request.method, request.url.path,
                           exc.status_code, exc.detail or exc.message)
        headers = None
        if isinstance(exc, AuthenticationFailure):
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.detail),
            headers=headers,
            background=_pending_usage(request),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=ValidationFailure.status_code,
            content=error_body(ValidationFailure.default_message, errors=errors),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc,
                     exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=error_body(CountryGateError.default_message),
            background=_pending_usage(request),
        )
