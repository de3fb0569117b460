"""Wiring of the store, cache, registry and aggregator from a config."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from gatewatch.config.models import GatewatchConfig
from gatewatch.health.aggregator import HealthAggregator
from gatewatch.registry.cache import CacheBackend, RedisCache
from gatewatch.registry.registry import InstanceRegistry
from gatewatch.registry.session import SessionFactory
from gatewatch.registry.settings import SettingsService
from gatewatch.registry.store import InstanceStore, SqliteInstanceStore


@dataclass
class Services:
    """Process-wide components, built once and shared by reference."""

    config: GatewatchConfig
    store: InstanceStore
    cache: Optional[CacheBackend]
    registry: InstanceRegistry
    aggregator: HealthAggregator
    settings: SettingsService

    async def close(self) -> None:
        if isinstance(self.cache, RedisCache):
            await self.cache.close()


def build_services(
    config: GatewatchConfig,
    store: Optional[InstanceStore] = None,
    cache: Optional[CacheBackend] = None,
    session_factory: Optional[SessionFactory] = None,
) -> Services:
    """Build every component. Explicit *store*/*cache* override the configured ones."""
    if store is None:
        store = SqliteInstanceStore(config.database.path)
    if cache is None and config.cache_enabled:
        cache = RedisCache.from_config(config.cache.redis)
    registry = InstanceRegistry(config, store, cache=cache, session_factory=session_factory)
    aggregator = HealthAggregator(config, store, registry, cache=cache, version=config.gatewatch.version)
    return Services(
        config=config,
        store=store,
        cache=cache,
        registry=registry,
        aggregator=aggregator,
        settings=SettingsService(registry),
    )
