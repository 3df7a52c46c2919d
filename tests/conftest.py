"""Shared fakes and fixtures for the sweetconnect test-suite."""

from __future__ import annotations

from typing import Any

import pytest
import pytest_asyncio

from sweetconnect.app import build_app
from sweetconnect.comms.message import Message
from sweetconnect.comms.store import InMemoryMessageStore
from sweetconnect.config.schema import AppConfig, StoreConfig
from sweetconnect.engine.errors import NotificationFailure, PersistenceError
from sweetconnect.identity.roles import Actor
from sweetconnect.notify.transport import MailTransport


class FakeConnection:
    """Records every event pushed to it."""

    def __init__(self, connection_id: str) -> None:
        self._connection_id = connection_id
        self.events: list[tuple[str, dict[str, Any]]] = []

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))

    def received(self, event: str = "newMessage") -> list[dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]


class BrokenConnection(FakeConnection):
    async def send(self, event: str, payload: dict[str, Any]) -> None:
        raise ConnectionResetError("peer went away")


class RecordingTransport(MailTransport):
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def send(self, to: str, subject: str, text: str, html: str | None = None) -> None:
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})

    def addresses(self) -> list[str]:
        return [m["to"] for m in self.sent]


class FailingTransport(MailTransport):
    def __init__(self) -> None:
        self.attempts = 0

    async def send(self, to: str, subject: str, text: str, html: str | None = None) -> None:
        self.attempts += 1
        raise NotificationFailure("relay unreachable", to)


class UnavailableStore(InMemoryMessageStore):
    async def append(self, message: Message) -> str:
        raise PersistenceError("disk full")


class ActorlessStore(InMemoryMessageStore):
    async def save_actor(self, actor: Actor) -> None:
        raise PersistenceError("actors table is read-only")


# ======================================================================
# Fixtures
# ======================================================================


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def memory_config() -> AppConfig:
    return AppConfig(store=StoreConfig(backend="memory"))


@pytest_asyncio.fixture
async def app(memory_config: AppConfig, transport: RecordingTransport):
    """Seeded with ``admin`` (admin) and ``shrreya`` (correspondent)."""
    app = build_app(memory_config, transport=transport)
    yield app
    await app.shutdown()
