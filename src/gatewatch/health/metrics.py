"""Prometheus text exposition of a :class:`HealthStatus`."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

if TYPE_CHECKING:
    from gatewatch.health.models import HealthStatus

METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"
DEFAULT_NAMESPACE = "gatewatch"


class HealthStatusCollector(Collector):
    """Exposes a single health snapshot as a fixed set of series."""

    def __init__(self, status: HealthStatus, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._status = status
        self._ns = namespace

    def _gauge(self, name: str, documentation: str, value: float) -> GaugeMetricFamily:
        return GaugeMetricFamily(f"{self._ns}_{name}", documentation, value=value)

    def collect(self) -> Iterator[Metric]:
        s = self._status
        yield CounterMetricFamily(
            f"{self._ns}_uptime_seconds",
            "Total uptime of the application in seconds",
            value=s.uptime_seconds,
        )
        yield self._gauge("memory_usage_bytes", "Current resident memory usage in bytes", s.memory.used)
        yield self._gauge("instances_total", "Total number of loaded instances", s.instances.total)
        yield self._gauge("instances_active", "Number of instances with an open connection", s.instances.active)
        yield self._gauge("instances_inactive", "Number of instances without an open connection", s.instances.inactive)
        yield self._gauge(
            "database_up", "Database connection status (1 = up, 0 = down)", 1 if s.database.is_up else 0
        )
        yield self._gauge(
            "database_response_time_ms",
            "Database response time in milliseconds",
            s.database.response_time_ms or 0,
        )
        yield self._gauge("redis_up", "Redis connection status (1 = up, 0 = down)", 1 if s.cache.is_up else 0)
        yield self._gauge(
            "redis_response_time_ms",
            "Redis response time in milliseconds",
            s.cache.response_time_ms or 0,
        )


def render_metrics(status: HealthStatus, namespace: str = DEFAULT_NAMESPACE) -> str:
    registry = CollectorRegistry(auto_describe=False)
    registry.register(HealthStatusCollector(status, namespace))
    return generate_latest(registry).decode("utf-8")
