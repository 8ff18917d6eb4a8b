"""
Error handling for the Grimoire API.

Known failures (``GrimoireError`` subclasses and request validation errors)
are translated by exception handlers into ``{"error", "detail"}`` bodies.
Anything else is caught by ``ErrorHandlingMiddleware`` and reported as a 500
with an error id that can be matched against the logs.
"""

import uuid
from typing import Callable, Dict

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.exceptions import ConfigurationError, GrimoireError
from ..core.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_ERROR_CODE: Dict[str, int] = {
    "MissingInput": 400,
    "InvalidInput": 400,
    "TranscriptionFailed": 502,
    "IdentificationFailed": 502,
    "UpstreamUnavailable": 503,
}


def status_for(error: GrimoireError) -> int:
    if isinstance(error, ConfigurationError):
        return 500
    return STATUS_BY_ERROR_CODE.get(error.error_code or "", 500)


def error_body(kind: str, detail: str) -> Dict[str, str]:
    return {"error": kind, "detail": detail}


async def grimoire_error_handler(request: Request, exc: GrimoireError) -> JSONResponse:
    """Translate a ``GrimoireError`` into its HTTP status and error body."""
    status_code = status_for(exc)
    kind = exc.error_code or "InternalError"
    if isinstance(exc, ConfigurationError):
        kind = "InternalError"

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Request failed",
        error_code=kind,
        status_code=status_code,
        error=str(exc),
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=error_body(kind, exc.message))


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report payload validation errors as 400 with the offending fields."""
    errors = exc.errors()
    missing = [e for e in errors if e.get("type") == "missing"]
    kind = "MissingInput" if missing else "InvalidInput"

    first = (missing or errors)[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = f"{location or 'body'}: {first.get('msg', 'invalid request')}"

    logger.warning("Request validation failed", error_code=kind, detail=detail)
    return JSONResponse(status_code=400, content=error_body(kind, detail))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GrimoireError, grimoire_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, validation_error_handler  # type: ignore[arg-type]
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware for global handling of unexpected errors."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Handle requests, converting unexpected exceptions into a 500."""
        try:
            response = await call_next(request)
            return response  # type: ignore
        except Exception as e:
            error_id = uuid.uuid4().hex
            logger.error(
                "Unexpected error occurred",
                error_id=error_id,
                error_type=type(e).__name__,
                error_message=str(e),
                path=request.url.path,
                method=request.method,
            )
            body = error_body("InternalError", "Internal server error")
            body["error_id"] = error_id
            return JSONResponse(status_code=500, content=body)
