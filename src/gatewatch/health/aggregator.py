"""Health aggregator: fans out to the probes and folds the results."""

from __future__ import annotations

import asyncio
import logging
import platform
import sys
import time
from typing import Iterable, Optional

import psutil

from gatewatch import __version__
from gatewatch.config.models import GatewatchConfig
from gatewatch.errors import AggregationFailure
from gatewatch.health.metrics import render_metrics
from gatewatch.health.models import (
    HealthStatus,
    InstanceCounts,
    MemoryInfo,
    OverallStatus,
    ProbeResult,
    ProbeStatus,
    SystemInfo,
)
from gatewatch.health.probes import probe_cache, probe_database
from gatewatch.registry.cache import CacheBackend
from gatewatch.registry.models import ConnectionState, InstanceHandle
from gatewatch.registry.registry import InstanceRegistry
from gatewatch.registry.store import InstanceStore

logger = logging.getLogger(__name__)

HEALTH_CHECK_FAILED = "Health check failed"


def determine_overall_status(database: ProbeResult, cache: ProbeResult) -> OverallStatus:
    """Database down is fatal; a cache error only degrades. A disabled cache is fine."""
    if database.status is not ProbeStatus.CONNECTED:
        return OverallStatus.UNHEALTHY
    if cache.status is ProbeStatus.ERROR:
        return OverallStatus.DEGRADED
    return OverallStatus.HEALTHY


def count_instances(handles: Iterable[InstanceHandle]) -> InstanceCounts:
    total = active = 0
    for handle in handles:
        total += 1
        if handle.connection_state is ConnectionState.OPEN:
            active += 1
    return InstanceCounts(total=total, active=active, inactive=total - active)


def memory_info() -> MemoryInfo:
    """Resident memory of this process against total system memory."""
    used = psutil.Process().memory_info().rss
    total = psutil.virtual_memory().total
    percentage = round(used / total * 100, 1) if total else 0.0
    return MemoryInfo(used=used, total=total, percentage=percentage)


def system_info() -> SystemInfo:
    return SystemInfo(
        python_version=platform.python_version(),
        platform=sys.platform,
        arch=platform.machine(),
    )


class HealthAggregator:
    """Produces one consistent :class:`HealthStatus` per call. Read-only."""

    def __init__(
        self,
        config: GatewatchConfig,
        store: InstanceStore,
        registry: InstanceRegistry,
        cache: Optional[CacheBackend] = None,
        version: str = __version__,
    ) -> None:
        self._config = config
        self._store = store
        self._registry = registry
        self._cache = cache
        self._version = version
        self._started_at = psutil.Process().create_time()

    @property
    def uptime_seconds(self) -> int:
        """Seconds since the process started, not since this aggregator was built."""
        return max(0, int(time.time() - self._started_at))

    async def _run_probes(self) -> tuple[ProbeResult, ProbeResult]:
        health = self._config.health
        results = await asyncio.gather(
            probe_database(self._store, timeout=health.database_timeout),
            probe_cache(
                self._cache,
                enabled=self._config.cache_enabled,
                timeout=health.cache_timeout,
                key_ttl=health.probe_key_ttl,
            ),
            return_exceptions=True,
        )
        for name, result in zip(("database", "cache"), results):
            if isinstance(result, BaseException):
                raise AggregationFailure(f"{name} probe raised instead of reporting: {result}") from result
        database, cache = results
        return database, cache  # type: ignore[return-value]

    async def get_health_status(self) -> HealthStatus:
        """Never raises; if health cannot be determined the answer is ``unhealthy``."""
        start = time.monotonic()
        try:
            database, cache = await self._run_probes()
            instances = count_instances(self._registry.snapshot())
            overall = determine_overall_status(database, cache)
            status = HealthStatus(
                status=overall,
                version=self._version,
                uptime_seconds=self.uptime_seconds,
                database=database,
                cache=cache,
                instances=instances,
                memory=memory_info(),
                system=system_info(),
            )
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return self._failed_status()
        logger.debug(
            "Health check completed: status=%s duration_ms=%.1f",
            overall.value,
            (time.monotonic() - start) * 1000,
        )
        return status

    def _failed_status(self) -> HealthStatus:
        try:
            memory = memory_info()
        except Exception:
            memory = MemoryInfo()
        return HealthStatus(
            status=OverallStatus.UNHEALTHY,
            version=self._version,
            uptime_seconds=self.uptime_seconds,
            database=ProbeResult(status=ProbeStatus.ERROR, error=HEALTH_CHECK_FAILED),
            cache=ProbeResult(status=ProbeStatus.ERROR, error=HEALTH_CHECK_FAILED),
            instances=InstanceCounts(),
            memory=memory,
            system=system_info(),
        )

    async def get_metrics(self) -> str:
        """Prometheus exposition of a fresh health status. Rendering errors propagate."""
        status = await self.get_health_status()
        try:
            return render_metrics(status)
        except Exception:
            logger.exception("Failed to render metrics")
            raise
