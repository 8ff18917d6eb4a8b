"""
Prometheus metrics collection for Grimoire.

Counts turns, stage failures and persona cache activity, and times each
pipeline stage and API request.
"""

from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
)

from .. import __version__
from .logging import get_logger

logger = get_logger(__name__)

STAGE_BUCKETS = [0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]


class MetricsCollector:
    """Metrics for one service instance, held in its own registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._initialize_metrics()

    def _initialize_metrics(self) -> None:
        """Initialize all Prometheus metrics."""

        # API Metrics
        self.api_requests_total = Counter(
            "grimoire_api_requests_total",
            "Total number of API requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )

        self.api_request_duration_seconds = Histogram(
            "grimoire_api_request_duration_seconds",
            "API request duration in seconds",
            ["method", "endpoint"],
            buckets=STAGE_BUCKETS,
            registry=self.registry,
        )

        # Pipeline Metrics
        self.turns_total = Counter(
            "grimoire_turns_total",
            "Pipeline turns by entry point and terminal state",
            ["turn_kind", "outcome"],
            registry=self.registry,
        )

        self.stage_failures_total = Counter(
            "grimoire_stage_failures_total",
            "Pipeline stage failures by stage and failure kind",
            ["stage", "kind"],
            registry=self.registry,
        )

        self.stage_duration_seconds = Histogram(
            "grimoire_stage_duration_seconds",
            "Pipeline stage duration in seconds",
            ["stage"],
            buckets=STAGE_BUCKETS,
            registry=self.registry,
        )

        # Persona cache
        self.persona_cache_lookups_total = Counter(
            "grimoire_persona_cache_lookups_total",
            "Persona cache lookups by result",
            ["result"],
            registry=self.registry,
        )

        self.platform_info = Info(
            "grimoire_platform",
            "Platform version information",
            registry=self.registry,
        )
        self.platform_info.info({"version": __version__, "component": "grimoire"})

    def record_api_request(
        self, method: str, endpoint: str, status_code: int, duration: float
    ) -> None:
        """Record API request metrics."""
        self.api_requests_total.labels(
            method=method, endpoint=endpoint, status_code=str(status_code)
        ).inc()
        self.api_request_duration_seconds.labels(
            method=method, endpoint=endpoint
        ).observe(duration)

    def record_turn(self, turn_kind: str, outcome: str) -> None:
        self.turns_total.labels(turn_kind=turn_kind, outcome=outcome).inc()

    def record_stage(self, stage: str, duration: float) -> None:
        self.stage_duration_seconds.labels(stage=stage).observe(duration)

    def record_stage_failure(self, stage: str, kind: str) -> None:
        self.stage_failures_total.labels(stage=stage, kind=kind).inc()

    def record_persona_lookup(self, hit: bool) -> None:
        self.persona_cache_lookups_total.labels(result="hit" if hit else "miss").inc()

    def get_metrics(self) -> bytes:
        """Get Prometheus metrics in text format."""
        return generate_latest(self.registry)

