"""Session protocol wrapped by instance handles, plus an in-process implementation."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Protocol, runtime_checkable

from gatewatch.registry.models import ConnectionState, InstanceRecord, InstanceSettings


@runtime_checkable
class InstanceSession(Protocol):
    """The protocol session behind a handle. Owns its own connection lifecycle."""

    @property
    def state(self) -> ConnectionState: ...

    @property
    def owner(self) -> Optional[str]: ...

    async def connect(self) -> None: ...
    async def disconnect(self) -> None: ...
    async def set_settings(self, settings: InstanceSettings) -> None: ...
    async def find_settings(self) -> Optional[InstanceSettings]: ...


SessionFactory = Callable[[InstanceRecord], InstanceSession]


class LocalSession:
    """Session kept entirely in process memory.

    Used when no messaging backend is wired in, and as the default for tests.
    """

    def __init__(
        self,
        state: ConnectionState = ConnectionState.CLOSED,
        owner: Optional[str] = None,
    ) -> None:
        self._state = state
        self._owner = owner
        self._settings: Optional[InstanceSettings] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_record(cls, record: InstanceRecord) -> LocalSession:
        return cls(state=record.connection_status, owner=record.owner)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def owner(self) -> Optional[str]:
        return self._owner

    async def connect(self) -> None:
        async with self._lock:
            if self._state is ConnectionState.OPEN:
                return
            self._state = ConnectionState.OPEN

    async def disconnect(self) -> None:
        async with self._lock:
            self._state = ConnectionState.CLOSED

    async def set_settings(self, settings: InstanceSettings) -> None:
        self._settings = settings

    async def find_settings(self) -> Optional[InstanceSettings]:
        return self._settings
