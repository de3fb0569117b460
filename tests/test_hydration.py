"""Tests for hydration mode resolution and boot-time registry hydration."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import aiosqlite
import pytest

from gatewatch.config.models import GatewatchConfig
from gatewatch.errors import PersistenceError
from gatewatch.registry.cache import LocalCache, instance_key, parse_instance_key
from gatewatch.registry.hydration import HydrationMode, resolve_hydration_mode
from gatewatch.registry.models import ConnectionState
from gatewatch.registry.registry import InstanceRegistry
from gatewatch.registry.session import LocalSession
from gatewatch.registry.store import InMemoryInstanceStore, SqliteInstanceStore


def _config(save_db: bool, redis_enabled: bool, redis_save: bool, hydration: str = "auto") -> GatewatchConfig:
    return GatewatchConfig(
        database={"client_name": "gatewatch_test", "save_instances": save_db},
        cache={"redis": {"enabled": redis_enabled, "save_instances": redis_save}},
        registry={"hydration": hydration},
    )


class TestResolveMode:
    def test_store_preferred(self):
        assert resolve_hydration_mode(_config(True, True, True)) is HydrationMode.STORE

    def test_cache_when_store_not_saving(self):
        assert resolve_hydration_mode(_config(False, True, True)) is HydrationMode.CACHE

    def test_cache_needs_save_instances(self):
        assert resolve_hydration_mode(_config(False, True, False)) is HydrationMode.NONE

    def test_none(self):
        assert resolve_hydration_mode(_config(False, False, False)) is HydrationMode.NONE

    def test_explicit_override(self):
        assert resolve_hydration_mode(_config(True, False, False, hydration="none")) is HydrationMode.NONE
        assert resolve_hydration_mode(_config(True, True, True, hydration="cache")) is HydrationMode.CACHE


class TestInstanceKeys:
    def test_round_trip(self):
        assert parse_instance_key(instance_key("abc", "my-instance")) == ("abc", "my-instance")

    def test_name_may_contain_colons(self):
        assert parse_instance_key("instance:abc:name:with:colons") == ("abc", "name:with:colons")

    @pytest.mark.parametrize("key", ["instance:abc", "other:abc:name", "instance::name", "instance:abc:"])
    def test_malformed(self, key: str):
        assert parse_instance_key(key) is None


async def _seeded_sqlite(tmp_path: Path, record_factory, corrupt: dict[str, str]) -> SqliteInstanceStore:
    """Store holding alpha, beta and gamma, with *corrupt* column values written over gamma."""
    db_path = str(tmp_path / "gatewatch.db")
    store = SqliteInstanceStore(db_path)
    for name in ("alpha", "beta", "gamma"):
        await store.insert(record_factory(name))
    async with aiosqlite.connect(db_path) as db:
        for column, value in corrupt.items():
            await db.execute(f"UPDATE instances SET {column} = ? WHERE name = ?", (value, "gamma"))
        await db.commit()
    return store


CORRUPT_ROWS = [
    {"integration": "TELEGRAM"},
    {"connection_status": "half-open"},
    {"created_at": "yesterday"},
]


class TestStoreHydration:
    @pytest.mark.asyncio
    async def test_loads_all_persisted(self, record_factory):
        store = InMemoryInstanceStore(
            [
                record_factory("alpha"),
                record_factory("beta", state=ConnectionState.OPEN),
                record_factory("foreign", client_name="other"),
            ]
        )
        registry = InstanceRegistry(_config(True, False, False), store)
        loaded = await registry.hydrate()
        assert loaded == 2
        assert set(registry.names) == {"alpha", "beta"}
        assert registry.get("beta").connection_state is ConnectionState.OPEN

    @pytest.mark.asyncio
    async def test_store_failure_is_not_fatal(self):
        store = AsyncMock()
        store.find_by_names.side_effect = PersistenceError("Database error")
        registry = InstanceRegistry(_config(True, False, False), store)
        assert await registry.hydrate() == 0
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_second_hydrate_keeps_existing_handles(self, record_factory):
        store = InMemoryInstanceStore([record_factory("alpha")])
        registry = InstanceRegistry(_config(True, False, False), store)
        await registry.hydrate()
        first = registry.get("alpha")
        assert await registry.hydrate() == 0
        assert registry.get("alpha") is first

    @pytest.mark.asyncio
    async def test_bad_session_is_skipped(self, record_factory):
        store = InMemoryInstanceStore([record_factory("alpha"), record_factory("broken")])

        def factory(record):
            if record.name == "broken":
                raise RuntimeError("cannot build session")
            return LocalSession.from_record(record)

        registry = InstanceRegistry(_config(True, False, False), store, session_factory=factory)
        assert await registry.hydrate() == 1
        assert registry.names == ["alpha"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("corrupt", CORRUPT_ROWS)
    async def test_unreadable_row_is_skipped(self, tmp_path: Path, record_factory, corrupt: dict[str, str]):
        store = await _seeded_sqlite(tmp_path, record_factory, corrupt)
        registry = InstanceRegistry(_config(True, False, False), store)
        assert await registry.hydrate() == 2
        assert sorted(registry.names) == ["alpha", "beta"]


class TestCacheHydration:
    @pytest.mark.asyncio
    async def test_resolves_keys_against_store(self, record_factory):
        store = InMemoryInstanceStore([record_factory("alpha", instance_id="a1")])
        cache = LocalCache()
        await cache.set(instance_key("a1", "alpha"), "a1")
        registry = InstanceRegistry(_config(False, True, True), store, cache=cache)
        assert await registry.hydrate() == 1
        assert registry.get("alpha").id == "a1"

    @pytest.mark.asyncio
    async def test_skips_unresolvable_entries(self, record_factory):
        store = InMemoryInstanceStore([record_factory("alpha", instance_id="a1")])
        cache = LocalCache()
        await cache.set(instance_key("a1", "alpha"), "a1")
        await cache.set(instance_key("gone", "ghost"), "gone")
        await cache.set("instance:malformed", "x")
        registry = InstanceRegistry(_config(False, True, True), store, cache=cache)
        assert await registry.hydrate() == 1
        assert registry.names == ["alpha"]

    @pytest.mark.asyncio
    async def test_store_error_on_one_key_skips_it(self, record_factory):
        good = record_factory("alpha", instance_id="a1")
        store = AsyncMock()

        async def find_first(instance_id=None, number=None):
            if instance_id == "bad":
                raise PersistenceError("row unreadable")
            return good

        store.find_first.side_effect = find_first
        cache = AsyncMock()
        cache.keys.return_value = [instance_key("bad", "broken"), instance_key("a1", "alpha")]
        registry = InstanceRegistry(_config(False, True, True), store, cache=cache)
        assert await registry.hydrate() == 1
        assert registry.names == ["alpha"]
        cache.keys.assert_awaited_once_with("instance:*")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("corrupt", CORRUPT_ROWS)
    async def test_unreadable_row_is_skipped(self, tmp_path: Path, record_factory, corrupt: dict[str, str]):
        store = await _seeded_sqlite(tmp_path, record_factory, corrupt)
        cache = LocalCache()
        for name in ("alpha", "beta", "gamma"):
            await cache.set(instance_key(f"{name}-id", name), f"{name}-id")
        registry = InstanceRegistry(_config(False, True, True), store, cache=cache)
        assert await registry.hydrate() == 2
        assert sorted(registry.names) == ["alpha", "beta"]

    @pytest.mark.asyncio
    async def test_any_resolution_error_skips_only_that_key(self, record_factory):
        good = record_factory("alpha", instance_id="a1")
        store = AsyncMock()

        async def find_first(instance_id=None, number=None):
            if instance_id == "bad":
                raise ValueError("'TELEGRAM' is not a valid Integration")
            return good

        store.find_first.side_effect = find_first
        cache = AsyncMock()
        cache.keys.return_value = [instance_key("bad", "broken"), instance_key("a1", "alpha")]
        registry = InstanceRegistry(_config(False, True, True), store, cache=cache)
        assert await registry.hydrate() == 1
        assert registry.names == ["alpha"]

    @pytest.mark.asyncio
    async def test_records_of_other_clients_are_skipped(self, record_factory):
        store = InMemoryInstanceStore(
            [
                record_factory("alpha", instance_id="a1"),
                record_factory("foreign", instance_id="f1", client_name="other-deployment"),
            ]
        )
        cache = LocalCache()
        await cache.set(instance_key("a1", "alpha"), "a1")
        await cache.set(instance_key("f1", "foreign"), "f1")
        registry = InstanceRegistry(_config(False, True, True), store, cache=cache)
        assert await registry.hydrate() == 1
        assert registry.names == ["alpha"]

    @pytest.mark.asyncio
    async def test_key_enumeration_failure_is_not_fatal(self):
        cache = AsyncMock()
        cache.keys.side_effect = ConnectionError("Redis connection failed")
        registry = InstanceRegistry(_config(False, True, True), InMemoryInstanceStore(), cache=cache)
        assert await registry.hydrate() == 0

    @pytest.mark.asyncio
    async def test_cache_mode_without_cache(self):
        registry = InstanceRegistry(_config(False, True, True), InMemoryInstanceStore(), cache=None)
        assert await registry.hydrate() == 0


class TestNoHydration:
    @pytest.mark.asyncio
    async def test_mode_none_loads_nothing(self, record_factory):
        store = InMemoryInstanceStore([record_factory("alpha")])
        registry = InstanceRegistry(_config(False, False, False), store)
        assert registry.hydration_mode is HydrationMode.NONE
        assert await registry.hydrate() == 0
        assert len(registry) == 0
