"""
Prometheus metrics API endpoint for Grimoire.

Provides /metrics for Prometheus scraping.
"""

from fastapi import APIRouter, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST

from ..core.logging import get_logger

logger = get_logger(__name__)

metrics_router = APIRouter(tags=["metrics"])


@metrics_router.get("/metrics")
async def get_metrics(request: Request) -> Response:
    """Get Prometheus metrics in text format."""
    runtime = request.app.state.runtime
    if not runtime.config.monitoring.metrics_enabled:
        return PlainTextResponse("# Metrics disabled\n", status_code=404)

    return Response(content=runtime.metrics.get_metrics(), media_type=CONTENT_TYPE_LATEST)
