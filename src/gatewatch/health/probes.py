"""Dependency probes: one bounded, timed round trip each."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Awaitable, Optional

from gatewatch.errors import DependencyProbeError
from gatewatch.health.models import ProbeResult, ProbeStatus
from gatewatch.registry.cache import CacheBackend
from gatewatch.registry.store import InstanceStore

logger = logging.getLogger(__name__)

PROBE_KEY_PREFIX = "health_check_"


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 1)


async def _bounded(op: Awaitable[None], timeout: float, what: str) -> None:
    try:
        await asyncio.wait_for(op, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise DependencyProbeError(f"{what} timed out after {timeout}s") from exc


async def probe_database(store: InstanceStore, timeout: float = 3.0) -> ProbeResult:
    """Run the store's trivial query and report latency or the failure."""
    start = time.monotonic()
    try:
        await _bounded(store.ping(), timeout, "Database probe")
    except Exception as exc:
        logger.error("Database health check failed: %s", exc)
        return ProbeResult(status=ProbeStatus.ERROR, response_time_ms=_elapsed_ms(start), error=str(exc))
    return ProbeResult(status=ProbeStatus.CONNECTED, response_time_ms=_elapsed_ms(start))


async def _cache_round_trip(cache: CacheBackend, key_ttl: int) -> None:
    key = f"{PROBE_KEY_PREFIX}{uuid.uuid4().hex}"
    await cache.set(key, "test", key_ttl)
    await cache.get(key)
    await cache.delete(key)


async def probe_cache(
    cache: Optional[CacheBackend],
    enabled: bool,
    timeout: float = 1.0,
    key_ttl: int = 1,
) -> ProbeResult:
    """Write, read back and delete a throwaway key.

    A disabled cache reports ``disabled`` without touching the backend.
    """
    if not enabled:
        return ProbeResult(status=ProbeStatus.DISABLED)
    start = time.monotonic()
    try:
        if cache is None:
            raise DependencyProbeError("Cache is enabled but no client is configured")
        await _bounded(_cache_round_trip(cache, key_ttl), timeout, "Cache probe")
    except Exception as exc:
        logger.error("Cache health check failed: %s", exc)
        return ProbeResult(status=ProbeStatus.ERROR, response_time_ms=_elapsed_ms(start), error=str(exc))
    return ProbeResult(status=ProbeStatus.CONNECTED, response_time_ms=_elapsed_ms(start))
