"""Persistent instance store protocol with in-memory and SQLite backends."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

import aiosqlite

from gatewatch.errors import PersistenceError
from gatewatch.registry.models import ConnectionState, InstanceRecord, Integration

logger = logging.getLogger(__name__)


@runtime_checkable
class InstanceStore(Protocol):
    """Relational store for instance records."""

    async def find_by_names(
        self, names: Optional[Sequence[str]], client_name: str
    ) -> list[InstanceRecord]: ...
    async def find_first(
        self, instance_id: Optional[str] = None, number: Optional[str] = None
    ) -> Optional[InstanceRecord]: ...
    async def insert(self, record: InstanceRecord) -> InstanceRecord: ...
    async def delete(self, name: str) -> None: ...
    async def ping(self) -> None: ...


class InMemoryInstanceStore:
    """Dict-backed store. Guarded by an asyncio lock."""

    def __init__(self, records: Sequence[InstanceRecord] = ()) -> None:
        self._records: dict[str, InstanceRecord] = {r.name: r for r in records}
        self._lock = asyncio.Lock()

    async def find_by_names(
        self, names: Optional[Sequence[str]], client_name: str
    ) -> list[InstanceRecord]:
        async with self._lock:
            return [
                r
                for r in self._records.values()
                if r.client_name == client_name and (names is None or r.name in names)
            ]

    async def find_first(
        self, instance_id: Optional[str] = None, number: Optional[str] = None
    ) -> Optional[InstanceRecord]:
        async with self._lock:
            for record in self._records.values():
                if instance_id is not None:
                    if record.id == instance_id:
                        return record
                elif number is not None and record.number == number:
                    return record
            return None

    async def insert(self, record: InstanceRecord) -> InstanceRecord:
        async with self._lock:
            if record.name in self._records:
                raise PersistenceError(f'Instance "{record.name}" already persisted')
            if any(r.id == record.id for r in self._records.values()):
                raise PersistenceError(f'Instance id "{record.id}" already persisted')
            self._records[record.name] = record
            return record

    async def delete(self, name: str) -> None:
        async with self._lock:
            self._records.pop(name, None)

    async def ping(self) -> None:
        return None


_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS instances (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    client_name TEXT NOT NULL,
    integration TEXT NOT NULL,
    connection_status TEXT NOT NULL,
    number TEXT,
    owner TEXT,
    profile_name TEXT,
    token TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_instances_client_name ON instances(client_name);
CREATE INDEX IF NOT EXISTS idx_instances_number ON instances(number);
"""

_COLUMNS = (
    "id, name, client_name, integration, connection_status,"
    " number, owner, profile_name, token, created_at"
)


class SqliteInstanceStore:
    """SQLite-backed instance store.

    Every driver error surfaces as PersistenceError. Rows whose stored values
    no longer map onto a record are logged and left out of results.
    """

    def __init__(self, db_path: str = "gatewatch.db") -> None:
        self._db_path = db_path
        self._initialized = False

    async def _init_connection(self, db: aiosqlite.Connection) -> None:
        if not self._initialized:
            await db.executescript(_CREATE_TABLES)
            self._initialized = True

    def _row_to_record(self, row: Any) -> InstanceRecord:
        created = datetime.fromisoformat(str(row[9]))
        if created.tzinfo is None:
            created = created.replace(tzinfo=UTC)
        return InstanceRecord(
            id=str(row[0]),
            name=str(row[1]),
            client_name=str(row[2]),
            integration=Integration(row[3]),
            connection_status=ConnectionState(row[4]),
            number=row[5],
            owner=row[6],
            profile_name=row[7],
            token=row[8],
            created_at=created,
        )

    async def _fetch(self, sql: str, params: Sequence[Any]) -> list[InstanceRecord]:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await self._init_connection(db)
                rows = list(await db.execute_fetchall(sql, tuple(params)))
        except aiosqlite.Error as exc:
            raise PersistenceError(f"Instance query failed: {exc}") from exc
        records = []
        for row in rows:
            try:
                records.append(self._row_to_record(row))
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable instance row %r: %s", row[1], exc)
        return records

    async def find_by_names(
        self, names: Optional[Sequence[str]], client_name: str
    ) -> list[InstanceRecord]:
        if names is None:
            return await self._fetch(
                f"SELECT {_COLUMNS} FROM instances WHERE client_name = ? ORDER BY created_at",
                (client_name,),
            )
        if not names:
            return []
        placeholders = ", ".join("?" for _ in names)
        return await self._fetch(
            f"SELECT {_COLUMNS} FROM instances"
            f" WHERE client_name = ? AND name IN ({placeholders}) ORDER BY created_at",
            (client_name, *names),
        )

    async def find_first(
        self, instance_id: Optional[str] = None, number: Optional[str] = None
    ) -> Optional[InstanceRecord]:
        if instance_id is not None:
            rows = await self._fetch(f"SELECT {_COLUMNS} FROM instances WHERE id = ? LIMIT 1", (instance_id,))
        elif number is not None:
            rows = await self._fetch(f"SELECT {_COLUMNS} FROM instances WHERE number = ? LIMIT 1", (number,))
        else:
            return None
        return rows[0] if rows else None

    async def insert(self, record: InstanceRecord) -> InstanceRecord:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await self._init_connection(db)
                await db.execute(
                    f"INSERT INTO instances ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.id,
                        record.name,
                        record.client_name,
                        record.integration.value,
                        record.connection_status.value,
                        record.number,
                        record.owner,
                        record.profile_name,
                        record.token,
                        record.created_at.isoformat(),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(f'Failed to persist instance "{record.name}": {exc}') from exc
        return record

    async def delete(self, name: str) -> None:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await self._init_connection(db)
                await db.execute("DELETE FROM instances WHERE name = ?", (name,))
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(f'Failed to delete instance "{name}": {exc}') from exc

    async def ping(self) -> None:
        """Trivial round trip. Raises the driver error unchanged so probes report it verbatim."""
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute_fetchall("SELECT 1")
