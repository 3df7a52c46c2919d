"""Presence and delivery hub -- live connections grouped into per-actor rooms."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Protocol

from sweetconnect.comms.message import Message
from sweetconnect.identity.roles import PARTY_ROLES, Role

logger = logging.getLogger(__name__)

NEW_MESSAGE_EVENT = "newMessage"


class Connection(Protocol):
    """A live push-channel session."""

    @property
    def connection_id(self) -> str: ...

    async def send(self, event: str, payload: dict[str, Any]) -> None: ...


class DeliveryMode(str, Enum):
    """How :meth:`PresenceHub.publish` picks its audience."""

    BROADCAST = "broadcast"  # every party-role connection plus the sender's
    TARGETED = "targeted"  # only the receiver's and the sender's rooms


def can_receive(actor_id: str, role: Role | None, message: Message) -> bool:
    """Visibility rule for broadcast delivery.

    The sender always sees its own message; otherwise only the two party
    roles do.  Admin connections get nothing they did not send.
    """
    if actor_id == message.sender_id:
        return True
    return role in PARTY_ROLES


class PresenceHub:
    """Tracks which connections are bound to which actor and fans out events.

    Parameters
    ----------
    role_of:
        Lookup from actor id to role.  The join handshake is trusted, so an
        unknown actor simply has no role.
    mode:
        Audience selection for :meth:`publish`.
    """

    def __init__(
        self,
        role_of: Callable[[str], Role | None] | None = None,
        mode: DeliveryMode | str = DeliveryMode.BROADCAST,
    ) -> None:
        self._role_of = role_of or (lambda _actor_id: None)
        self.mode = DeliveryMode(mode)
        self._rooms: dict[str, dict[str, Connection]] = {}
        self._bindings: dict[str, str] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    async def join(self, connection: Connection, actor_id: str) -> None:
        """Bind *connection* to *actor_id*'s room, moving it if already bound."""
        async with self._lock:
            self._unbind(connection.connection_id)
            self._rooms.setdefault(actor_id, {})[connection.connection_id] = connection
            self._bindings[connection.connection_id] = actor_id
        logger.info("Connection %s joined room %s", connection.connection_id, actor_id)

    async def leave(self, connection: Connection) -> str | None:
        """Remove *connection* from its room.  Returns the actor id it was bound to."""
        async with self._lock:
            actor_id = self._unbind(connection.connection_id)
        if actor_id is not None:
            logger.info("Connection %s left room %s", connection.connection_id, actor_id)
        return actor_id

    def _unbind(self, connection_id: str) -> str | None:
        # Caller holds the lock.
        actor_id = self._bindings.pop(connection_id, None)
        if actor_id is None:
            return None
        room = self._rooms.get(actor_id)
        if room is not None:
            room.pop(connection_id, None)
            if not room:
                del self._rooms[actor_id]
        return actor_id

    def bound_actor(self, connection: Connection) -> str | None:
        return self._bindings.get(connection.connection_id)

    def online(self, actor_id: str) -> int:
        return len(self._rooms.get(actor_id, {}))

    def rooms(self) -> dict[str, int]:
        """Snapshot of room sizes keyed by actor id."""
        return {actor_id: len(room) for actor_id, room in self._rooms.items()}

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def _audience(self, message: Message) -> list[Connection]:
        # Caller holds the lock.  Dict keyed by connection id so nobody gets
        # the same publish twice.
        targets: dict[str, Connection] = {}
        if self.mode is DeliveryMode.TARGETED:
            for actor_id in (message.receiver_id, message.sender_id):
                targets.update(self._rooms.get(actor_id, {}))
        else:
            for actor_id, room in self._rooms.items():
                if can_receive(actor_id, self._role_of(actor_id), message):
                    targets.update(room)
        return list(targets.values())

    async def publish(self, message: Message, sender_name: str) -> int:
        """Push *message* to its audience.  Returns how many connections got it."""
        async with self._lock:
            audience = self._audience(message)
        if not audience:
            logger.debug("No live connections for message %s", message.message_id)
            return 0
        return await self._deliver(audience, NEW_MESSAGE_EVENT, message.to_event(sender_name))

    async def send_to(self, actor_id: str, event: str, payload: dict[str, Any]) -> int:
        """Push one event to every connection in *actor_id*'s room."""
        async with self._lock:
            audience = list(self._rooms.get(actor_id, {}).values())
        if not audience:
            return 0
        return await self._deliver(audience, event, payload)

    async def _deliver(
        self, audience: list[Connection], event: str, payload: dict[str, Any]
    ) -> int:
        results = await asyncio.gather(
            *(conn.send(event, payload) for conn in audience),
            return_exceptions=True,
        )
        delivered = 0
        for conn, result in zip(audience, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Dropping connection %s after failed %s push: %s",
                    conn.connection_id,
                    event,
                    result,
                )
                await self.leave(conn)
            else:
                delivered += 1
        logger.debug("Pushed %s to %d/%d connection(s)", event, delivered, len(audience))
        return delivered
