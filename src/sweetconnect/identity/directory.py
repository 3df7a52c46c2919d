"""In-memory directory of registered actors, restored from the store at startup."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sweetconnect.engine.errors import AccountExists, RoleConflict
from sweetconnect.identity.roles import SINGLETON_ROLES, Actor, Role, utcnow

logger = logging.getLogger(__name__)


class ActorDirectory:
    """Registry of actors keyed by id.

    Shared accounts are all presented under *collective_name*.  Singleton
    roles reject a second live holder at registration time.  When a role has
    several holders, :meth:`primary_holder` picks the most recently active
    one, falling back to registration order.
    """

    def __init__(self, collective_name: str = "Tharun") -> None:
        self.collective_name = collective_name
        self._actors: dict[str, Actor] = {}
        self._order: dict[str, int] = {}
        self._last_active: dict[str, datetime] = {}
        self._seq = 0

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        email: str,
        name: str = "",
        role: Role | str = Role.SHARED,
        actor_id: str | None = None,
    ) -> Actor:
        """Create and store a new actor.

        Raises :class:`RoleConflict` if *role* is a singleton role that
        already has a holder, :class:`AccountExists` if *email* is in use,
        or :class:`ValueError` if *actor_id* is taken.
        """
        role = Role(role)
        actor_id = actor_id or uuid.uuid4().hex
        if role is Role.SHARED:
            name = self.collective_name
        elif not name:
            name = email.split("@")[0] if email else actor_id

        actor = self.add(Actor(actor_id=actor_id, name=name, role=role, email=email))
        logger.info("Registered actor %s (%s) as %s", actor_id, name, role.value)
        return actor

    def add(self, actor: Actor) -> Actor:
        """Insert a fully built actor, such as one loaded from the store."""
        if actor.role in SINGLETON_ROLES:
            existing = self.holders(actor.role)
            if existing:
                raise RoleConflict(actor.role.value, existing[0].actor_id)
        if actor.actor_id in self._actors:
            raise ValueError(f"Actor id already registered: {actor.actor_id!r}")
        if actor.email and self.find_by_email(actor.email) is not None:
            raise AccountExists(actor.email)

        self._actors[actor.actor_id] = actor
        self._order[actor.actor_id] = self._seq
        self._seq += 1
        return actor

    def remove(self, actor_id: str) -> Actor | None:
        actor = self._actors.pop(actor_id, None)
        self._order.pop(actor_id, None)
        self._last_active.pop(actor_id, None)
        return actor

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, actor_id: str) -> Actor | None:
        return self._actors.get(actor_id)

    def find_by_email(self, email: str) -> Actor | None:
        wanted = email.strip().lower()
        for actor in self._actors.values():
            if actor.email.lower() == wanted:
                return actor
        return None

    def role_of(self, actor_id: str) -> Role | None:
        actor = self._actors.get(actor_id)
        return actor.role if actor else None

    def all(self) -> list[Actor]:
        """Every actor in registration order."""
        return sorted(self._actors.values(), key=lambda a: self._order[a.actor_id])

    def holders(self, role: Role | str) -> list[Actor]:
        role = Role(role)
        return [a for a in self.all() if a.role is role]

    def primary_holder(self, role: Role | str) -> Actor | None:
        """Return the holder of *role* that addressing should target."""
        holders = self.holders(role)
        if not holders:
            return None
        # Most recently active first; never-active holders sort last in
        # registration order.
        return min(
            holders,
            key=lambda a: (
                -self._last_active[a.actor_id].timestamp()
                if a.actor_id in self._last_active
                else float("inf"),
                self._order[a.actor_id],
            ),
        )

    # ------------------------------------------------------------------
    # Activity tracking
    # ------------------------------------------------------------------

    def touch(self, actor_id: str, when: datetime | None = None) -> None:
        """Mark *actor_id* as active now (or at *when*)."""
        if actor_id in self._actors:
            self._last_active[actor_id] = when or utcnow()

    def last_active(self, actor_id: str) -> datetime | None:
        return self._last_active.get(actor_id)

    def __len__(self) -> int:
        return len(self._actors)

    def __contains__(self, actor_id: object) -> bool:
        return actor_id in self._actors
