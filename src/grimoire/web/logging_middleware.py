"""
FastAPI middleware for request/trace ID correlation and structured logging.

Provides automatic request ID generation, correlation tracking, structured
logging and request metrics for all API requests and responses.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.logging import (
    clear_request_context,
    generate_request_id,
    generate_trace_id,
    get_logger,
    set_request_context,
)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request correlation and structured logging."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.logger = get_logger("api.middleware")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with correlation IDs and structured logging."""

        # Honour caller-supplied correlation IDs
        request_id = request.headers.get("x-request-id") or generate_request_id()
        trace_id = request.headers.get("x-trace-id") or generate_trace_id()
        conversation_id = request.headers.get("x-conversation-id")

        set_request_context(
            request_id=request_id, trace_id=trace_id, conversation_id=conversation_id
        )

        self.logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        start_time = time.time()

        try:
            response = await call_next(request)

            duration = time.time() - start_time
            self.logger.log_api_request(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration * 1000,
                failure=response.headers.get("x-grimoire-failure"),
            )
            self._record(request, response.status_code, duration)

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Trace-ID"] = trace_id

            return response  # type: ignore

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                duration_ms=duration * 1000,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._record(request, 500, duration)
            raise

        finally:
            clear_request_context()

    def _record(self, request: Request, status_code: int, duration: float) -> None:
        runtime = getattr(request.app.state, "runtime", None)
        if runtime is None or not runtime.config.monitoring.metrics_enabled:
            return
        runtime.metrics.record_api_request(
            request.method, request.url.path, status_code, duration
        )
