"""Registration and login side effects."""

from __future__ import annotations

import logging

from sweetconnect.comms.message import Activity
from sweetconnect.comms.store import MessageStore
from sweetconnect.engine.activities import LOGIN_ACTIVITY
from sweetconnect.engine.errors import BadRequest, PersistenceError, UnauthenticatedSender
from sweetconnect.identity.directory import ActorDirectory
from sweetconnect.identity.resolver import IdentityResolver
from sweetconnect.identity.roles import Actor, Role, utcnow
from sweetconnect.notify.notifier import Notifier
from sweetconnect.notify.templates import TemplateKind

logger = logging.getLogger(__name__)


class AccountNotifications:
    """Welcomes new actors and raises login alerts.

    Credential checks happen before these calls; the actor handed in is
    already authenticated.
    """

    def __init__(
        self,
        directory: ActorDirectory,
        resolver: IdentityResolver,
        store: MessageStore,
        notifier: Notifier,
    ) -> None:
        self.directory = directory
        self.resolver = resolver
        self.store = store
        self.notifier = notifier

    async def register(self, email: str, name: str = "", role: Role | str = Role.SHARED) -> Actor:
        """Create and persist an actor, then send the registration mails.

        The directory entry is withdrawn again if the store rejects it, so
        a failed registration leaves no half-created account behind.
        """
        email = email.strip()
        if not email:
            raise BadRequest("Email is required")
        actor = self.directory.register(email=email, name=name, role=role)
        try:
            await self.store.save_actor(actor)
        except PersistenceError:
            self.directory.remove(actor.actor_id)
            raise
        self.registered(actor)
        return actor

    def registered(self, actor: Actor) -> None:
        context = {
            "name": actor.display_name,
            "email": actor.email,
            "role": actor.role.value,
            "timestamp": actor.created_at.isoformat(),
        }
        self.notifier.notify(actor.email, TemplateKind.WELCOME, context)
        self._alert_correspondent(actor, TemplateKind.COUNTERPARTY_NEW_REGISTRATION, context)

    async def logged_in(self, actor_id: str) -> None:
        """Record the login and send the login alerts."""
        actor = self.directory.get(actor_id)
        if actor is None:
            raise UnauthenticatedSender(actor_id)
        now = utcnow()
        self.directory.touch(actor.actor_id, now)

        activity = Activity(
            actor_id=actor.actor_id,
            activity_type=LOGIN_ACTIVITY,
            details=f"User logged in at {now.isoformat()}",
            created_at=now,
        )
        try:
            await self.store.append_activity(activity)
        except PersistenceError as exc:
            logger.warning("Could not record login for %s: %s", actor.actor_id, exc)

        context = {
            "name": actor.display_name,
            "email": actor.email,
            "timestamp": now.isoformat(),
        }
        self.notifier.notify(actor.email, TemplateKind.LOGIN_ALERT, context)
        self._alert_correspondent(actor, TemplateKind.COUNTERPARTY_LOGIN_ALERT, context)

    def _alert_correspondent(self, actor: Actor, kind: TemplateKind, context: dict[str, str]) -> None:
        if actor.role is Role.CORRESPONDENT:
            return
        correspondent = self.resolver.correspondent()
        if correspondent is None:
            logger.debug("No correspondent registered; %s alert dropped", kind.value)
            return
        self.notifier.notify(correspondent.email, kind, context)
