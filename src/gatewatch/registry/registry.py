"""Instance registry: the in-memory table of loaded instances."""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Sequence

from gatewatch.config.models import GatewatchConfig
from gatewatch.errors import ConflictError, NotFoundError
from gatewatch.registry.cache import CacheBackend, instance_key
from gatewatch.registry.hydration import (
    HydrationMode,
    build_hydration_source,
    resolve_hydration_mode,
)
from gatewatch.registry.models import (
    ConnectionState,
    InstanceData,
    InstanceHandle,
    InstanceRecord,
)
from gatewatch.registry.session import LocalSession, SessionFactory
from gatewatch.registry.store import InstanceStore

logger = logging.getLogger(__name__)


class InstanceRegistry:
    """Single owner of the name -> handle mapping.

    Mutations of the same name are serialized by a per-name lock; reads
    never block. Store and memory are not updated transactionally: a crash
    after the store write in :meth:`create` leaves the store ahead, and
    :meth:`hydrate` recovers it on the next boot.
    """

    def __init__(
        self,
        config: GatewatchConfig,
        store: InstanceStore,
        cache: Optional[CacheBackend] = None,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._cache = cache
        self._session_factory: SessionFactory = session_factory or LocalSession.from_record
        self._handles: Dict[str, InstanceHandle] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self.hydration_mode: HydrationMode = resolve_hydration_mode(config)

    @property
    def client_name(self) -> str:
        return self._config.database.client_name

    @asynccontextmanager
    async def _lock_for(self, name: str) -> AsyncIterator[None]:
        """Hold the lock for *name*. The entry is dropped once nobody holds or awaits it."""
        lock = self._locks.setdefault(name, asyncio.Lock())
        self._lock_users[name] = self._lock_users.get(name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[name] -= 1
            if not self._lock_users[name]:
                del self._lock_users[name]
                del self._locks[name]

    def _retains_identities(self) -> bool:
        return self._cache is not None and self._config.cache_retains_instances

    # ─── reads ───

    def get(self, name: str) -> Optional[InstanceHandle]:
        return self._handles.get(name)

    def require(self, name: str) -> InstanceHandle:
        handle = self._handles.get(name)
        if handle is None:
            raise NotFoundError.for_names([name])
        return handle

    def snapshot(self) -> List[InstanceHandle]:
        """Point-in-time copy of the loaded handles."""
        return list(self._handles.values())

    @property
    def names(self) -> List[str]:
        return list(self._handles.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    # ─── mutations ───

    def _make_handle(self, record: InstanceRecord) -> InstanceHandle:
        return InstanceHandle(
            id=record.id,
            name=record.name,
            session=self._session_factory(record),
            integration=record.integration,
            created_at=record.created_at,
        )

    async def create(self, data: InstanceData) -> InstanceHandle:
        """Persist a new instance and load it.

        Raises ConflictError when the name is already loaded and lets
        PersistenceError through untouched; in both cases nothing is loaded.
        """
        async with self._lock_for(data.name):
            if data.name in self._handles:
                raise ConflictError(f'Instance name "{data.name}" is already in use')
            record = InstanceRecord(
                id=data.id or str(uuid.uuid4()),
                name=data.name,
                client_name=self.client_name,
                integration=data.integration,
                connection_status=data.integration.initial_state,
                number=data.number,
                owner=data.owner,
                profile_name=data.profile_name,
                token=data.token or str(uuid.uuid4()).upper(),
            )
            record = await self._store.insert(record)
            handle = self._make_handle(record)
            self._handles[record.name] = handle

        if self._retains_identities():
            try:
                await self._cache.set(  # type: ignore[union-attr]
                    instance_key(record.id, record.name), record.id, self._config.cache.redis.ttl
                )
            except Exception:
                logger.exception("Failed to cache identity of instance %s", record.name)
        logger.info("Created instance %s (%s)", record.name, record.id)
        return handle

    async def delete(self, name: str) -> None:
        """Un-persist and unload *name*. Deleting an absent name is a no-op.

        The store is updated first. If it raises, the PersistenceError
        propagates and the handle stays loaded and connected.
        """
        async with self._lock_for(name):
            await self._store.delete(name)
            handle = self._handles.pop(name, None)
            if handle is not None:
                try:
                    await handle.disconnect()
                except Exception:
                    logger.exception("Failed to disconnect instance %s during delete", name)

        if handle is not None and self._retains_identities():
            try:
                await self._cache.delete(instance_key(handle.id, name))  # type: ignore[union-attr]
            except Exception:
                logger.exception("Failed to drop cached identity of instance %s", name)
        if handle is not None:
            logger.info("Deleted instance %s", name)

    async def connect(self, name: str) -> InstanceHandle:
        """Ask the handle's session to connect; open handles are returned untouched."""
        handle = self.require(name)
        if handle.connection_state is not ConnectionState.OPEN:
            await handle.connect()
        return handle

    async def hydrate(self) -> int:
        """Load persisted instances into memory. Never raises; returns the number loaded."""
        source = build_hydration_source(self.hydration_mode, self._store, self._cache, self.client_name)
        if source is None:
            logger.info("Hydration disabled (mode=%s)", self.hydration_mode.value)
            return 0

        loaded = 0
        try:
            async for record in source.records():
                async with self._lock_for(record.name):
                    if record.name in self._handles:
                        continue
                    try:
                        self._handles[record.name] = self._make_handle(record)
                    except Exception:
                        logger.exception("Skipping instance %s: session could not be created", record.name)
                        continue
                loaded += 1
        except Exception:
            logger.exception("Hydration from %s aborted after %d instance(s)", self.hydration_mode.value, loaded)
        logger.info("Hydrated %d instance(s) from %s", loaded, self.hydration_mode.value)
        return loaded

    # ─── lookups ───

    async def lookup_by_names(self, names: Optional[Sequence[str]] = None) -> List[InstanceRecord]:
        """Persisted records for *names*, all of which must be loaded.

        With no names, every record in the deployment's namespace is returned.
        """
        if names is None:
            return await self._store.find_by_names(None, self.client_name)
        missing = [n for n in names if n not in self._handles]
        if missing:
            raise NotFoundError.for_names(missing)
        return await self._store.find_by_names(list(names), self.client_name)

    async def lookup_by_id(
        self, instance_id: Optional[str] = None, number: Optional[str] = None
    ) -> List[InstanceRecord]:
        """Resolve a record by id (preferred) or number.

        A record that is persisted but not loaded is reported exactly like
        a missing one, named by the record's name.
        """
        if instance_id is None and number is None:
            raise ValueError("Either an instance id or a number is required")
        record = await self._store.find_first(instance_id=instance_id, number=number)
        if record is None:
            raise NotFoundError.for_names([instance_id if instance_id is not None else str(number)])
        if record.name not in self._handles:
            raise NotFoundError.for_names([record.name])
        return await self._store.find_by_names([record.name], self.client_name)
