"""WebSocket push gateway -- the live transport in front of the hub and router."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Awaitable, Callable

from websockets.asyncio.server import serve as ws_serve
from websockets.exceptions import ConnectionClosed

from sweetconnect.app import App
from sweetconnect.engine.errors import BadRequest, SweetConnectError, UnauthenticatedSender
from sweetconnect.identity.roles import Role

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """Adapts a websocket to the hub's ``Connection`` protocol.

    Frames on the wire are ``{"event": <name>, "data": {...}}``.
    """

    def __init__(self, websocket: Any, connection_id: str | None = None) -> None:
        self.websocket = websocket
        self._connection_id = connection_id or uuid.uuid4().hex

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send(self, event: str, payload: dict[str, Any]) -> None:
        await self.websocket.send(json.dumps({"event": event, "data": payload}))


Handler = Callable[[WebSocketConnection, dict[str, Any]], Awaitable[None]]


class PushGateway:
    """Turns client frames into hub and router calls.

    Client events: ``register {email, name?, role?}``, ``login {actorId}``,
    ``join {actorId}``, ``sendMessage {content, kind?}`` and
    ``logActivity {activityType, details?}``.  ``register`` and ``login``
    run the account mails and then bind the connection the same way
    ``join`` does.  Domain errors are reported back as
    ``error {code, message}``; the connection stays open.
    """

    def __init__(self, app: App) -> None:
        self.app = app
        self._handlers: dict[str, Handler] = {
            "register": self._on_register,
            "login": self._on_login,
            "join": self._on_join,
            "sendMessage": self._on_send_message,
            "logActivity": self._on_log_activity,
        }

    async def handle(self, websocket: Any) -> None:
        """Serve one client until it disconnects."""
        conn = WebSocketConnection(websocket)
        logger.info("Client connected: %s", conn.connection_id)
        try:
            async for raw in websocket:
                await self.dispatch(conn, raw)
        except ConnectionClosed as exc:
            logger.info("Client %s closed abnormally: %s", conn.connection_id, exc)
        finally:
            await self.app.hub.leave(conn)
            logger.info("Client disconnected: %s", conn.connection_id)

    async def dispatch(self, conn: WebSocketConnection, raw: str | bytes) -> None:
        try:
            event, data = _parse_frame(raw)
            handler = self._handlers.get(event)
            if handler is None:
                raise BadRequest(f"Unknown event: {event!r}")
            await handler(conn, data)
        except SweetConnectError as exc:
            logger.debug("Rejected frame from %s: %s", conn.connection_id, exc.code)
            await conn.send("error", {"code": exc.code, "message": exc.message})

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _on_join(self, conn: WebSocketConnection, data: dict[str, Any]) -> None:
        await self._bind(conn, _required_str(data, "actorId", "join"))

    async def _on_register(self, conn: WebSocketConnection, data: dict[str, Any]) -> None:
        email = _required_str(data, "email", "register")
        name = data.get("name") or ""
        role = data.get("role") or Role.SHARED.value
        if not isinstance(name, str) or not isinstance(role, str):
            raise BadRequest("name and role must be strings")
        try:
            role = Role(role)
        except ValueError as exc:
            raise BadRequest(f"Unknown role: {role!r}") from exc
        actor = await self.app.accounts.register(email, name, role)
        await conn.send(
            "registered",
            {
                "actorId": actor.actor_id,
                "name": actor.display_name,
                "email": actor.email,
                "role": actor.role.value,
            },
        )
        await self._bind(conn, actor.actor_id)

    async def _on_login(self, conn: WebSocketConnection, data: dict[str, Any]) -> None:
        actor_id = _required_str(data, "actorId", "login")
        await self.app.accounts.logged_in(actor_id)
        await self._bind(conn, actor_id)

    async def _bind(self, conn: WebSocketConnection, actor_id: str) -> None:
        hub = self.app.hub
        await hub.join(conn, actor_id)
        self.app.directory.touch(actor_id)
        await conn.send("joined", {"actorId": actor_id, "online": hub.online(actor_id)})
        messages = await self.app.router.history(actor_id, self.app.config.store.history_limit)
        await conn.send("history", {"messages": messages})

    async def _on_send_message(self, conn: WebSocketConnection, data: dict[str, Any]) -> None:
        actor_id = self._require_actor(conn)
        content = data.get("content", "")
        kind = data.get("kind") or "message"
        if not isinstance(content, str) or not isinstance(kind, str):
            raise BadRequest("content and kind must be strings")
        message_id = await self.app.router.submit(actor_id, content, kind)
        await conn.send("messageAck", {"id": message_id})

    async def _on_log_activity(self, conn: WebSocketConnection, data: dict[str, Any]) -> None:
        actor_id = self._require_actor(conn)
        activity_type = data.get("activityType", "")
        details = data.get("details") or ""
        if not isinstance(activity_type, str) or not isinstance(details, str):
            raise BadRequest("activityType and details must be strings")
        activity_id = await self.app.activities.record(actor_id, activity_type, details)
        await conn.send("activityAck", {"id": activity_id})

    def _require_actor(self, conn: WebSocketConnection) -> str:
        actor_id = self.app.hub.bound_actor(conn)
        if actor_id is None:
            raise UnauthenticatedSender()
        return actor_id


def _required_str(data: dict[str, Any], key: str, event: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise BadRequest(f"{event} requires {key}")
    return value.strip()


def _parse_frame(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    try:
        frame = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BadRequest(f"Malformed frame: {exc}") from exc
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        raise BadRequest("Frame must be an object with an 'event' name")
    data = frame.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise BadRequest("Frame 'data' must be an object")
    return frame["event"], data


async def run_server(app: App, host: str | None = None, port: int | None = None) -> None:
    """Open the store and serve WebSocket clients forever."""
    host = host or app.config.server.host
    port = port or app.config.server.port
    gateway = PushGateway(app)
    await app.start()
    try:
        async with ws_serve(gateway.handle, host, port) as server:
            logger.info("WebSocket server on ws://%s:%d", host, port)
            await server.serve_forever()
    finally:
        await app.shutdown()
