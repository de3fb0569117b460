"""Tests for the database and cache probes."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from gatewatch.health.models import ProbeStatus
from gatewatch.health.probes import PROBE_KEY_PREFIX, probe_cache, probe_database
from gatewatch.registry.cache import LocalCache
from gatewatch.registry.store import InMemoryInstanceStore


async def _hang(*args, **kwargs):
    await asyncio.sleep(10)


class TestDatabaseProbe:
    @pytest.mark.asyncio
    async def test_connected(self):
        result = await probe_database(InMemoryInstanceStore())
        assert result.status is ProbeStatus.CONNECTED
        assert result.response_time_ms is not None
        assert result.error is None

    @pytest.mark.asyncio
    async def test_error_carries_message_and_latency(self):
        store = AsyncMock()
        store.ping.side_effect = Exception("Connection failed")
        result = await probe_database(store)
        assert result.status is ProbeStatus.ERROR
        assert result.error == "Connection failed"
        assert result.response_time_ms is not None

    @pytest.mark.asyncio
    async def test_timeout(self):
        store = AsyncMock()
        store.ping.side_effect = _hang
        result = await probe_database(store, timeout=0.05)
        assert result.status is ProbeStatus.ERROR
        assert "timed out" in result.error


class TestCacheProbe:
    @pytest.mark.asyncio
    async def test_disabled_skips_round_trip(self):
        cache = AsyncMock()
        result = await probe_cache(cache, enabled=False)
        assert result.status is ProbeStatus.DISABLED
        assert result.response_time_ms is None
        cache.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_round_trip(self):
        cache = AsyncMock()
        result = await probe_cache(cache, enabled=True, key_ttl=2)
        assert result.status is ProbeStatus.CONNECTED
        key, value, ttl = cache.set.await_args.args
        assert key.startswith(PROBE_KEY_PREFIX)
        assert ttl == 2
        cache.get.assert_awaited_once_with(key)
        cache.delete.assert_awaited_once_with(key)

    @pytest.mark.asyncio
    async def test_keys_unique_per_call(self):
        cache = AsyncMock()
        await probe_cache(cache, enabled=True)
        await probe_cache(cache, enabled=True)
        first, second = (c.args[0] for c in cache.set.await_args_list)
        assert first != second

    @pytest.mark.asyncio
    async def test_leaves_no_key_behind(self):
        cache = LocalCache()
        result = await probe_cache(cache, enabled=True)
        assert result.status is ProbeStatus.CONNECTED
        assert await cache.keys("*") == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("step", ["set", "get", "delete"])
    async def test_failure_at_any_step(self, step: str):
        cache = AsyncMock()
        getattr(cache, step).side_effect = ConnectionError("Redis connection failed")
        result = await probe_cache(cache, enabled=True)
        assert result.status is ProbeStatus.ERROR
        assert result.error == "Redis connection failed"

    @pytest.mark.asyncio
    async def test_timeout(self):
        cache = AsyncMock()
        cache.get.side_effect = _hang
        result = await probe_cache(cache, enabled=True, timeout=0.05)
        assert result.status is ProbeStatus.ERROR
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_enabled_without_client(self):
        result = await probe_cache(None, enabled=True)
        assert result.status is ProbeStatus.ERROR
