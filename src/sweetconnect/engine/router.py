"""Message router -- the orchestrator for every inbound message."""

from __future__ import annotations

import logging
from typing import Any

from sweetconnect.comms.hub import PresenceHub
from sweetconnect.comms.message import Message
from sweetconnect.comms.store import HISTORY_CAP, MessageStore
from sweetconnect.engine.errors import EmptyContent, UnauthenticatedSender
from sweetconnect.engine.tasks import BackgroundTasks
from sweetconnect.identity.directory import ActorDirectory
from sweetconnect.identity.resolver import IdentityResolver
from sweetconnect.identity.roles import Actor
from sweetconnect.notify.notifier import Notifier
from sweetconnect.notify.templates import TemplateKind

logger = logging.getLogger(__name__)


class MessageRouter:
    """Resolves, persists, notifies and pushes one message at a time.

    Only persistence gates the reply to the sender.  Notifications and the
    live push are spawned on *tasks* after the record is committed, so a
    slow or broken mail relay or a dead socket never fails a submission.

    Parameters
    ----------
    directory:
        Registered actors, used to authenticate the sender id.
    resolver:
        Addressing policy.
    store:
        Durable message record.
    notifier:
        Background e-mail dispatch.
    hub:
        Live connection fan-out.
    tasks:
        Scheduler for detached work.
    """

    def __init__(
        self,
        directory: ActorDirectory,
        resolver: IdentityResolver,
        store: MessageStore,
        notifier: Notifier,
        hub: PresenceHub,
        tasks: BackgroundTasks,
    ) -> None:
        self.directory = directory
        self.resolver = resolver
        self.store = store
        self.notifier = notifier
        self.hub = hub
        self.tasks = tasks

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, sender_id: str, content: str, kind: str = "message") -> str:
        """Record a message from *sender_id* and return its id.

        Raises
        ------
        EmptyContent
            *content* is blank after trimming.
        UnauthenticatedSender
            *sender_id* is not a registered actor.
        NoCounterpartyFound
            Nobody holds the role the sender addresses.
        PersistenceError
            The store rejected the record.
        """
        text = (content or "").strip()
        if not text:
            raise EmptyContent()

        sender = self.directory.get(sender_id)
        if sender is None:
            raise UnauthenticatedSender(sender_id)

        receiver = self.resolver.resolve_counterparty(sender)
        message = Message(
            sender_id=sender.actor_id,
            receiver_id=receiver.actor_id,
            content=text,
            kind=kind or "message",
        )
        message_id = await self.store.append(message)
        self.directory.touch(sender.actor_id)
        logger.info(
            "Message %s stored: %s -> %s (%s)",
            message_id,
            sender.actor_id,
            receiver.actor_id,
            message.kind,
        )

        self._notify(sender, receiver, message)
        self.tasks.spawn(
            self.hub.publish(message, sender.display_name),
            name=f"publish:{message_id}",
        )
        return message_id

    def _notify(self, sender: Actor, receiver: Actor, message: Message) -> None:
        context = {
            "recipient_name": receiver.display_name,
            "sender_name": sender.display_name,
            "sender_email": sender.email,
            "content": message.content,
            "timestamp": message.created_at.isoformat(),
        }
        self.notifier.notify(receiver.email, TemplateKind.MESSAGE_RECEIVED, context)
        self.notifier.notify(sender.email, TemplateKind.MESSAGE_SENT_CONFIRMATION, context)

    # ------------------------------------------------------------------
    # Resynchronisation
    # ------------------------------------------------------------------

    async def history(self, actor_id: str, limit: int = HISTORY_CAP) -> list[dict[str, Any]]:
        """Stored messages for *actor_id* as push payloads, oldest first."""
        messages = await self.store.history(actor_id, limit)
        events = []
        for message in reversed(messages):
            sender = self.directory.get(message.sender_id)
            name = sender.display_name if sender else message.sender_id
            events.append(message.to_event(name))
        return events
