"""
Outbound Ops API — Process Metrics Registry
=============================================

What:  Process-wide request and error counters plus uptime.
Why:   Exposed by GET /api/metrics for lightweight observability.
How:   prometheus_client Counters on a dedicated CollectorRegistry, one
       MetricsRegistry instance created at import time. Counters are only
       ever incremented; they reset when the process restarts.

Snapshot (JSON served by /api/metrics):
    {"uptime_seconds": 42, "requests_total": 10, "errors_total": 1}

    Values are read back with CollectorRegistry.get_sample_value(), so the
    JSON always agrees with what a Prometheus scrape of the same registry
    would report. Each MetricsRegistry owns its registry, so separate
    instances never collide on metric names.
"""

import time
from typing import Callable, Dict, Optional

from prometheus_client import CollectorRegistry, Counter

REQUESTS_METRIC = "outbound_http_requests_total"
ERRORS_METRIC = "outbound_http_errors_total"


class MetricsRegistry:
    """Request counters for one process."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.time
        self.started_at = self._clock()
        self.collector_registry = CollectorRegistry(auto_describe=True)
        self._requests = Counter(
            REQUESTS_METRIC,
            "Completed HTTP requests handled by instrumented routes.",
            registry=self.collector_registry,
        )
        self._errors = Counter(
            ERRORS_METRIC,
            "Completed HTTP requests that ended with status >= 500.",
            registry=self.collector_registry,
        )

    def record_request(self, status: int) -> None:
        """Counts one completed request; statuses >= 500 also count as errors."""
        self._requests.inc()
        if status >= 500:
            self._errors.inc()

    def _sample(self, name: str) -> int:
        return int(self.collector_registry.get_sample_value(name) or 0)

    def snapshot(self) -> Dict[str, int]:
        return {
            "uptime_seconds": int(self._clock() - self.started_at),
            "requests_total": self._sample(REQUESTS_METRIC),
            "errors_total": self._sample(ERRORS_METRIC),
        }


# Singleton, initialized once at process start
registry = MetricsRegistry()


def record_request(status: int) -> None:
    registry.record_request(status)


def get_metrics_snapshot() -> Dict[str, int]:
    return registry.snapshot()
