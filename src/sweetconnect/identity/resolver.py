"""Two-party addressing policy."""

from __future__ import annotations

import logging

from sweetconnect.engine.errors import NoCounterpartyFound
from sweetconnect.identity.directory import ActorDirectory
from sweetconnect.identity.roles import Actor, Role

logger = logging.getLogger(__name__)


def counterparty_role(role: Role | str) -> Role:
    """Return the role a sender of *role* addresses.

    Shared accounts write to the correspondent; everyone else, admin
    included, writes to the shared collective.
    """
    if Role(role) is Role.SHARED:
        return Role.CORRESPONDENT
    return Role.SHARED


class IdentityResolver:
    """Resolves the live counterparty for a sender."""

    def __init__(self, directory: ActorDirectory) -> None:
        self.directory = directory

    def counterparty_role(self, role: Role | str) -> Role:
        return counterparty_role(role)

    def resolve_counterparty(self, sender: Actor) -> Actor:
        """Return the actor *sender*'s message is addressed to.

        Raises :class:`NoCounterpartyFound` if nobody holds the target role.
        """
        target = counterparty_role(sender.role)
        receiver = self.directory.primary_holder(target)
        if receiver is None:
            raise NoCounterpartyFound(target.value)
        logger.debug(
            "Resolved %s (%s) -> %s (%s)",
            sender.actor_id,
            sender.role.value,
            receiver.actor_id,
            target.value,
        )
        return receiver

    def correspondent(self) -> Actor | None:
        """The privileged correspondent, if one is registered."""
        return self.directory.primary_holder(Role.CORRESPONDENT)
