"""Data models for instances, their persisted records and in-memory handles."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from gatewatch.registry.session import InstanceSession


class ConnectionState(str, Enum):
    CLOSED = "close"
    CONNECTING = "connecting"
    OPEN = "open"


class Integration(str, Enum):
    """Channel backing an instance."""

    BAILEYS = "WHATSAPP-BAILEYS"
    BUSINESS = "WHATSAPP-BUSINESS"
    EVOLUTION = "EVOLUTION"

    @property
    def initial_state(self) -> ConnectionState:
        # Socket sessions start closed until paired; API-backed channels are usable immediately.
        if self is Integration.BAILEYS:
            return ConnectionState.CLOSED
        return ConnectionState.OPEN


@dataclass
class InstanceData:
    """Operator-supplied attributes for a new instance."""

    name: str
    id: Optional[str] = None
    integration: Integration = Integration.BAILEYS
    number: Optional[str] = None
    token: Optional[str] = None
    owner: Optional[str] = None
    profile_name: Optional[str] = None


@dataclass
class InstanceRecord:
    """An instance as persisted in the relational store."""

    id: str
    name: str
    client_name: str
    integration: Integration = Integration.BAILEYS
    connection_status: ConnectionState = ConnectionState.CLOSED
    number: Optional[str] = None
    owner: Optional[str] = None
    profile_name: Optional[str] = None
    token: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "client_name": self.client_name,
            "integration": self.integration.value,
            "connection_status": self.connection_status.value,
            "number": self.number,
            "owner": self.owner,
            "profile_name": self.profile_name,
            "token": self.token,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class InstanceSettings:
    """Per-instance behaviour flags. ``None`` means "not configured"."""

    reject_call: Optional[bool] = None
    msg_call: Optional[str] = None
    groups_ignore: Optional[bool] = None
    always_online: Optional[bool] = None
    read_messages: Optional[bool] = None
    read_status: Optional[bool] = None
    sync_full_history: Optional[bool] = None
    wavoip_token: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class InstanceHandle:
    """In-memory representation of a loaded instance.

    Connection state and owner are read through to the wrapped session,
    which is the only thing that mutates them.
    """

    id: str
    name: str
    session: InstanceSession
    integration: Integration = Integration.BAILEYS
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def connection_state(self) -> ConnectionState:
        return self.session.state

    @property
    def owner(self) -> Optional[str]:
        return self.session.owner

    async def connect(self) -> ConnectionState:
        await self.session.connect()
        return self.session.state

    async def disconnect(self) -> None:
        await self.session.disconnect()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "integration": self.integration.value,
            "connection_state": self.connection_state.value,
            "owner": self.owner,
            "created_at": self.created_at.isoformat(),
        }
