"""Boot-time hydration sources.

The mode is resolved once from configuration; the registry then drains
whichever source it selected through a single loop. Sources are
best-effort: an entry that fails to resolve is logged and skipped.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import AsyncIterator, Optional, Protocol

from gatewatch.config.models import GatewatchConfig
from gatewatch.registry.cache import INSTANCE_KEY_PREFIX, CacheBackend, parse_instance_key
from gatewatch.registry.models import InstanceRecord
from gatewatch.registry.store import InstanceStore

logger = logging.getLogger(__name__)


class HydrationMode(str, Enum):
    STORE = "store"
    CACHE = "cache"
    NONE = "none"


def resolve_hydration_mode(config: GatewatchConfig) -> HydrationMode:
    """Pick the hydration mode. An explicit ``registry.hydration`` wins over ``auto``."""
    explicit = config.registry.hydration
    if explicit != "auto":
        return HydrationMode(explicit)
    if config.database.save_instances:
        return HydrationMode.STORE
    if config.cache_retains_instances:
        return HydrationMode.CACHE
    return HydrationMode.NONE


class HydrationSource(Protocol):
    def records(self) -> AsyncIterator[InstanceRecord]: ...


class StoreHydrationSource:
    """Every record persisted under the deployment's client namespace."""

    def __init__(self, store: InstanceStore, client_name: str) -> None:
        self._store = store
        self._client_name = client_name

    async def records(self) -> AsyncIterator[InstanceRecord]:
        for record in await self._store.find_by_names(None, self._client_name):
            yield record


class CacheHydrationSource:
    """Identity keys retained in the cache, each resolved against the store by id.

    Records owned by another client namespace are skipped, since deployments
    may share a cache prefix.
    """

    def __init__(self, cache: CacheBackend, store: InstanceStore, client_name: str) -> None:
        self._cache = cache
        self._store = store
        self._client_name = client_name

    async def records(self) -> AsyncIterator[InstanceRecord]:
        for key in await self._cache.keys(f"{INSTANCE_KEY_PREFIX}:*"):
            parsed = parse_instance_key(key)
            if parsed is None:
                logger.warning("Skipping malformed instance key %r", key)
                continue
            instance_id, name = parsed
            try:
                record = await self._store.find_first(instance_id=instance_id)
            except Exception as exc:
                logger.warning("Skipping instance %s (%s): %s", name, instance_id, exc)
                continue
            if record is None:
                logger.warning("Skipping instance %s: no persisted record for id %s", name, instance_id)
                continue
            if record.client_name != self._client_name:
                logger.warning(
                    "Skipping instance %s: record belongs to client %s", name, record.client_name
                )
                continue
            yield record


def build_hydration_source(
    mode: HydrationMode,
    store: InstanceStore,
    cache: Optional[CacheBackend],
    client_name: str,
) -> Optional[HydrationSource]:
    if mode is HydrationMode.STORE:
        return StoreHydrationSource(store, client_name)
    if mode is HydrationMode.CACHE:
        if cache is None:
            logger.warning("Cache hydration requested but no cache is configured; skipping")
            return None
        return CacheHydrationSource(cache, store, client_name)
    return None
