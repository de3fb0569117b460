"""Instance registry, its collaborators and boot-time hydration."""

from gatewatch.registry.cache import CacheBackend, LocalCache, RedisCache
from gatewatch.registry.hydration import HydrationMode, resolve_hydration_mode
from gatewatch.registry.models import (
    ConnectionState,
    InstanceData,
    InstanceHandle,
    InstanceRecord,
    InstanceSettings,
    Integration,
)
from gatewatch.registry.registry import InstanceRegistry
from gatewatch.registry.session import InstanceSession, LocalSession
from gatewatch.registry.settings import SettingsService
from gatewatch.registry.store import InMemoryInstanceStore, InstanceStore, SqliteInstanceStore

__all__ = [
    "CacheBackend",
    "ConnectionState",
    "HydrationMode",
    "InMemoryInstanceStore",
    "InstanceData",
    "InstanceHandle",
    "InstanceRecord",
    "InstanceRegistry",
    "InstanceSession",
    "InstanceSettings",
    "InstanceStore",
    "Integration",
    "LocalCache",
    "LocalSession",
    "RedisCache",
    "SettingsService",
    "SqliteInstanceStore",
    "resolve_hydration_mode",
]
