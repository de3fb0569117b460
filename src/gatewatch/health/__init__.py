"""Dependency probes, health aggregation and metrics exposition."""

from gatewatch.health.aggregator import HealthAggregator, determine_overall_status
from gatewatch.health.metrics import METRICS_CONTENT_TYPE, render_metrics
from gatewatch.health.models import (
    HealthStatus,
    InstanceCounts,
    OverallStatus,
    ProbeResult,
    ProbeStatus,
)

__all__ = [
    "HealthAggregator",
    "HealthStatus",
    "InstanceCounts",
    "METRICS_CONTENT_TYPE",
    "OverallStatus",
    "ProbeResult",
    "ProbeStatus",
    "determine_overall_status",
    "render_metrics",
]
