"""Roles and the Actor record."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Role(str, Enum):
    """Closed set of roles an actor can hold."""

    ADMIN = "admin"
    CORRESPONDENT = "correspondent"  # the singular privileged correspondent
    SHARED = "shared"  # many accounts, one collective identity


# Roles that take part in the two-party message channel.
PARTY_ROLES: frozenset[Role] = frozenset({Role.CORRESPONDENT, Role.SHARED})

# Roles that may have at most one live holder.
SINGLETON_ROLES: frozenset[Role] = frozenset({Role.CORRESPONDENT})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Actor:
    """An authenticated identity with a fixed role."""

    actor_id: str
    name: str
    role: Role
    email: str = ""
    created_at: datetime = field(default_factory=utcnow)

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.actor_id
