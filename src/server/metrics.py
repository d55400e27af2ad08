"""ServiceMetrics — Prometheus counters and histograms for the bridge.

Tracks:
- HTTP requests by method, route path and status (count + duration)
- Alerts forwarded per app
- Upstream delivery failures per app

Uses a dedicated registry so tests and multiple instances never collide on
the process-global default registry.
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_PREFIX = "alertbridge"


class ServiceMetrics:
    """Owns the Prometheus registry and the four service metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()

        self._requests_total = Counter(
            f"{_PREFIX}_http_requests_total",
            "Total number of HTTP requests handled.",
            ["method", "path", "status"],
            registry=self.registry,
        )
        self._request_duration = Histogram(
            f"{_PREFIX}_http_request_duration_seconds",
            "HTTP request duration in seconds.",
            ["method", "path", "status"],
            registry=self.registry,
        )
        self._forwarded_total = Counter(
            f"{_PREFIX}_forwarded_alerts_total",
            "Total number of alerts successfully forwarded to Alertmanager.",
            ["app"],
            registry=self.registry,
        )
        self._upstream_failures_total = Counter(
            f"{_PREFIX}_upstream_failures_total",
            "Total number of failures when calling upstream Alertmanager.",
            ["app"],
            registry=self.registry,
        )

    def observe_request(self, method: str, path: str, status: int, duration_secs: float) -> None:
        status_str = str(status)
        self._requests_total.labels(method, path, status_str).inc()
        self._request_duration.labels(method, path, status_str).observe(duration_secs)

    def inc_forwarded(self, app: str) -> None:
        self._forwarded_total.labels(app).inc()

    def inc_upstream_failure(self, app: str) -> None:
        self._upstream_failures_total.labels(app).inc()

    def render(self) -> tuple[bytes, str]:
        """Exposition body and its content type."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
