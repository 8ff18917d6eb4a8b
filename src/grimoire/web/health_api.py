"""
Health check API endpoints.

``/health`` is a plain liveness probe; ``/health/detailed`` adds uptime and
persona cache statistics for diagnostics.
"""

import time
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from .. import __version__
from ..core.logging import get_logger

logger = get_logger(__name__)

health_router = APIRouter(prefix="/health", tags=["health"])


@health_router.get("", response_class=PlainTextResponse)
async def health_check() -> str:
    """Basic liveness check."""
    return "OK"


@health_router.get("/detailed")
async def detailed_health_check(request: Request) -> Dict[str, Any]:
    """Detailed health check with runtime status."""
    runtime = request.app.state.runtime
    return {
        "status": "ok",
        "version": __version__,
        "timestamp": time.time(),
        "environment": runtime.config.environment.value,
        **runtime.status(),
        "services": await runtime.service_health(),
    }
