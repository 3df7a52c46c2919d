"""Activity logging with notification side effects."""

from __future__ import annotations

import logging

from sweetconnect.comms.message import Activity
from sweetconnect.comms.store import MessageStore
from sweetconnect.engine.errors import MissingActivityType, UnauthenticatedSender
from sweetconnect.identity.directory import ActorDirectory
from sweetconnect.identity.resolver import IdentityResolver
from sweetconnect.identity.roles import Role
from sweetconnect.notify.notifier import Notifier
from sweetconnect.notify.templates import TemplateKind

logger = logging.getLogger(__name__)

LOGIN_ACTIVITY = "login"


class ActivityRecorder:
    """Persists activities and tells the actor (and the correspondent) about them."""

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

    async def record(self, actor_id: str, activity_type: str, details: str = "") -> str:
        """Store an activity for *actor_id* and schedule its notifications."""
        activity_type = (activity_type or "").strip()
        if not activity_type:
            raise MissingActivityType()
        actor = self.directory.get(actor_id)
        if actor is None:
            raise UnauthenticatedSender(actor_id)

        activity = Activity(actor_id=actor.actor_id, activity_type=activity_type, details=details or "")
        activity_id = await self.store.append_activity(activity)
        logger.info("Activity %s (%s) logged for %s", activity_id, activity_type, actor_id)

        context = {
            "name": actor.display_name,
            "email": actor.email,
            "activity_type": activity_type,
            "details": activity.details,
            "timestamp": activity.created_at.isoformat(),
        }
        self.notifier.notify(actor.email, TemplateKind.ACTIVITY_COMPLETED, context)

        if activity_type != LOGIN_ACTIVITY and actor.role is not Role.CORRESPONDENT:
            correspondent = self.resolver.correspondent()
            if correspondent is not None:
                self.notifier.notify(
                    correspondent.email, TemplateKind.COUNTERPARTY_ACTIVITY_ALERT, context
                )
        return activity_id
