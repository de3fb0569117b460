"""Distributed cache protocol with Redis and in-process backends."""

from __future__ import annotations

import asyncio
import fnmatch
import json
import time
from typing import Any, Callable, Optional, Protocol, runtime_checkable

import redis.asyncio as redis

from gatewatch.config.models import RedisConfig

INSTANCE_KEY_PREFIX = "instance"


def instance_key(instance_id: str, name: str) -> str:
    """Cache key retaining an instance identity: ``instance:{id}:{name}``."""
    return f"{INSTANCE_KEY_PREFIX}:{instance_id}:{name}"


def parse_instance_key(key: str) -> Optional[tuple[str, str]]:
    """Split an identity key into ``(id, name)``; ``None`` when malformed."""
    parts = key.split(":", 2)
    if len(parts) != 3 or parts[0] != INSTANCE_KEY_PREFIX or not parts[1] or not parts[2]:
        return None
    return parts[1], parts[2]


@runtime_checkable
class CacheBackend(Protocol):
    """Key/value cache. Every operation raises on transport failure."""

    async def keys(self, pattern: str) -> list[str]: ...
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None: ...
    async def get(self, key: str) -> Any: ...
    async def delete(self, key: str) -> None: ...


class LocalCache:
    """In-process cache with per-key expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._data: dict[str, tuple[Any, Optional[float]]] = {}
        self._clock = clock
        self._lock = asyncio.Lock()

    def _live(self, key: str, now: float) -> bool:
        _, expires_at = self._data[key]
        if expires_at is not None and expires_at <= now:
            del self._data[key]
            return False
        return True

    async def keys(self, pattern: str) -> list[str]:
        async with self._lock:
            now = self._clock()
            return [k for k in list(self._data) if self._live(k, now) and fnmatch.fnmatchcase(k, pattern)]

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        async with self._lock:
            expires_at = self._clock() + ttl if ttl else None
            self._data[key] = (value, expires_at)

    async def get(self, key: str) -> Any:
        async with self._lock:
            if key not in self._data or not self._live(key, self._clock()):
                return None
            return self._data[key][0]

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)


class RedisCache:
    """Redis-backed cache. Keys are namespaced with ``{prefix_key}:``; values are JSON."""

    def __init__(self, uri: str, prefix_key: str = "gatewatch", client: Optional[redis.Redis] = None) -> None:
        self._prefix = prefix_key
        self._client = client if client is not None else redis.from_url(uri, decode_responses=True)

    @classmethod
    def from_config(cls, config: RedisConfig) -> RedisCache:
        return cls(config.uri, prefix_key=config.prefix_key)

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}" if self._prefix else key

    def _strip(self, key: str) -> str:
        if self._prefix and key.startswith(self._prefix + ":"):
            return key[len(self._prefix) + 1 :]
        return key

    async def keys(self, pattern: str) -> list[str]:
        raw = await self._client.keys(self._key(pattern))
        return [self._strip(k.decode() if isinstance(k, bytes) else k) for k in raw]

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        await self._client.set(self._key(key), json.dumps(value), ex=ttl)

    async def get(self, key: str) -> Any:
        raw = await self._client.get(self._key(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def delete(self, key: str) -> None:
        await self._client.delete(self._key(key))

    async def close(self) -> None:
        await self._client.aclose()
