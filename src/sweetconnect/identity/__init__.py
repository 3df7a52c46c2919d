"""Identity layer: roles, actor directory and addressing policy."""

from sweetconnect.identity.directory import ActorDirectory
from sweetconnect.identity.resolver import IdentityResolver, counterparty_role
from sweetconnect.identity.roles import PARTY_ROLES, SINGLETON_ROLES, Actor, Role

__all__ = [
    "PARTY_ROLES",
    "SINGLETON_ROLES",
    "Actor",
    "ActorDirectory",
    "IdentityResolver",
    "Role",
    "counterparty_role",
]
