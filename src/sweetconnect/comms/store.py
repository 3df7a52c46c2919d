"""Durable storage for messages, activities and registered actors."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import aiosqlite

from sweetconnect.comms.message import Activity, Message
from sweetconnect.engine.errors import PersistenceError
from sweetconnect.identity.roles import Actor, Role

logger = logging.getLogger(__name__)

# Older history is not reachable through this interface.
HISTORY_CAP = 50


def _clamp(limit: int) -> int:
    return max(0, min(limit, HISTORY_CAP))


class MessageStore(ABC):
    """Abstract record store for messages, activities and actors."""

    async def open(self) -> None:
        """Acquire underlying resources.  No-op by default."""

    async def close(self) -> None:
        """Release underlying resources.  No-op by default."""

    async def __aenter__(self) -> MessageStore:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @abstractmethod
    async def append(self, message: Message) -> str:
        """Persist *message* atomically and return its id.

        Raises :class:`PersistenceError` on storage failure.
        """
        ...

    @abstractmethod
    async def history(self, actor_id: str, limit: int = HISTORY_CAP) -> list[Message]:
        """Most recent messages sent or received by *actor_id*, newest first."""
        ...

    @abstractmethod
    async def count(self) -> int:
        """Total number of stored messages."""
        ...

    @abstractmethod
    async def append_activity(self, activity: Activity) -> str:
        ...

    @abstractmethod
    async def activities(self, actor_id: str, limit: int = HISTORY_CAP) -> list[Activity]:
        ...

    @abstractmethod
    async def save_actor(self, actor: Actor) -> None:
        """Insert *actor*, or update the stored record with the same id."""
        ...

    @abstractmethod
    async def actors(self) -> list[Actor]:
        """Every stored actor, oldest registration first."""
        ...


# ----------------------------------------------------------------------
# In-memory
# ----------------------------------------------------------------------


class InMemoryMessageStore(MessageStore):
    """Process-local store, used in tests and with ``store.backend: memory``."""

    def __init__(self) -> None:
        self._messages: list[tuple[int, Message]] = []
        self._activities: list[tuple[int, Activity]] = []
        self._ids: set[str] = set()
        self._actors: dict[str, Actor] = {}
        self._seq = 0
        self._lock = asyncio.Lock()

    async def append(self, message: Message) -> str:
        async with self._lock:
            if message.message_id in self._ids:
                raise PersistenceError(f"Duplicate message id {message.message_id}")
            self._seq += 1
            self._messages.append((self._seq, message))
            self._ids.add(message.message_id)
        return message.message_id

    async def history(self, actor_id: str, limit: int = HISTORY_CAP) -> list[Message]:
        matching = [
            (seq, m)
            for seq, m in self._messages
            if m.sender_id == actor_id or m.receiver_id == actor_id
        ]
        matching.sort(key=lambda item: (item[1].created_at, item[0]), reverse=True)
        return [m for _, m in matching[: _clamp(limit)]]

    async def count(self) -> int:
        return len(self._messages)

    async def append_activity(self, activity: Activity) -> str:
        async with self._lock:
            self._seq += 1
            self._activities.append((self._seq, activity))
        return activity.activity_id

    async def activities(self, actor_id: str, limit: int = HISTORY_CAP) -> list[Activity]:
        matching = [(seq, a) for seq, a in self._activities if a.actor_id == actor_id]
        matching.sort(key=lambda item: (item[1].created_at, item[0]), reverse=True)
        return [a for _, a in matching[: _clamp(limit)]]

    async def save_actor(self, actor: Actor) -> None:
        async with self._lock:
            self._actors[actor.actor_id] = actor

    async def actors(self) -> list[Actor]:
        return list(self._actors.values())


# ----------------------------------------------------------------------
# SQLite
# ----------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS actors (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE NOT NULL,
    email TEXT NOT NULL DEFAULT '',
    name TEXT NOT NULL,
    role TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS messages (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE NOT NULL,
    sender_id TEXT NOT NULL,
    receiver_id TEXT NOT NULL,
    content TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'message',
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_messages_sender ON messages(sender_id, created_at);
CREATE INDEX IF NOT EXISTS idx_messages_receiver ON messages(receiver_id, created_at);

CREATE TABLE IF NOT EXISTS activities (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE NOT NULL,
    user_id TEXT NOT NULL,
    activity_type TEXT NOT NULL,
    details TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);
"""


def _ts(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


class SQLiteMessageStore(MessageStore):
    """aiosqlite-backed store.

    All coroutines share one connection, so every write runs its statement
    and its commit or rollback under ``_write_lock``.  A failed insert can
    then only roll back its own row.
    """

    def __init__(self, path: str = "sweetconnect.db") -> None:
        self.path = path
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def open(self) -> None:
        if self._db is not None:
            return
        try:
            self._db = await aiosqlite.connect(self.path)
            await self._db.executescript(_SCHEMA)
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(f"Cannot open store at {self.path}: {exc}") from exc
        logger.info("Opened message store at %s", self.path)

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise PersistenceError("Message store is not open")
        return self._db

    async def _write(self, sql: str, params: tuple[Any, ...], what: str) -> None:
        db = self._conn()
        async with self._write_lock:
            try:
                await db.execute(sql, params)
                await db.commit()
            except aiosqlite.Error as exc:
                await db.rollback()
                raise PersistenceError(f"Failed to {what}: {exc}") from exc

    async def _read(self, sql: str, params: tuple[Any, ...], what: str) -> list[Any]:
        db = self._conn()
        try:
            async with db.execute(sql, params) as cursor:
                return list(await cursor.fetchall())
        except aiosqlite.Error as exc:
            raise PersistenceError(f"Failed to {what}: {exc}") from exc

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def append(self, message: Message) -> str:
        await self._write(
            "INSERT INTO messages (id, sender_id, receiver_id, content, type, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                message.message_id,
                message.sender_id,
                message.receiver_id,
                message.content,
                message.kind,
                _ts(message.created_at),
            ),
            "store message",
        )
        return message.message_id

    async def history(self, actor_id: str, limit: int = HISTORY_CAP) -> list[Message]:
        rows = await self._read(
            "SELECT id, sender_id, receiver_id, content, type, created_at FROM messages "
            "WHERE receiver_id = ? OR sender_id = ? "
            "ORDER BY created_at DESC, seq DESC LIMIT ?",
            (actor_id, actor_id, _clamp(limit)),
            "read history",
        )
        return [
            Message(
                message_id=row[0],
                sender_id=row[1],
                receiver_id=row[2],
                content=row[3],
                kind=row[4],
                created_at=datetime.fromisoformat(row[5]),
            )
            for row in rows
        ]

    async def count(self) -> int:
        rows = await self._read("SELECT COUNT(*) FROM messages", (), "count messages")
        return int(rows[0][0]) if rows else 0

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    async def append_activity(self, activity: Activity) -> str:
        await self._write(
            "INSERT INTO activities (id, user_id, activity_type, details, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                activity.activity_id,
                activity.actor_id,
                activity.activity_type,
                activity.details,
                _ts(activity.created_at),
            ),
            "log activity",
        )
        return activity.activity_id

    async def activities(self, actor_id: str, limit: int = HISTORY_CAP) -> list[Activity]:
        rows = await self._read(
            "SELECT id, user_id, activity_type, details, created_at FROM activities "
            "WHERE user_id = ? ORDER BY created_at DESC, seq DESC LIMIT ?",
            (actor_id, _clamp(limit)),
            "read activities",
        )
        return [
            Activity(
                activity_id=row[0],
                actor_id=row[1],
                activity_type=row[2],
                details=row[3],
                created_at=datetime.fromisoformat(row[4]),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Actors
    # ------------------------------------------------------------------

    async def save_actor(self, actor: Actor) -> None:
        await self._write(
            "INSERT INTO actors (id, email, name, role, created_at) VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET "
            "email = excluded.email, name = excluded.name, role = excluded.role",
            (actor.actor_id, actor.email, actor.name, actor.role.value, _ts(actor.created_at)),
            "save actor",
        )

    async def actors(self) -> list[Actor]:
        rows = await self._read(
            "SELECT id, email, name, role, created_at FROM actors ORDER BY seq",
            (),
            "read actors",
        )
        return [
            Actor(
                actor_id=row[0],
                email=row[1],
                name=row[2],
                role=Role(row[3]),
                created_at=datetime.fromisoformat(row[4]),
            )
            for row in rows
        ]
