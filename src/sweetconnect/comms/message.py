"""Message and activity records."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sweetconnect.identity.roles import utcnow


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Message:
    """An immutable chat message between two actors."""

    sender_id: str
    receiver_id: str
    content: str
    kind: str = "message"
    message_id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def to_event(self, sender_name: str) -> dict[str, Any]:
        """Payload pushed to live connections."""
        return {
            "id": self.message_id,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "content": self.content,
            "kind": self.kind,
            "createdAt": self.created_at.isoformat(),
            "senderDisplayName": sender_name,
        }


@dataclass(frozen=True)
class Activity:
    """A logged side-channel event.  Never pushed on the live channel."""

    actor_id: str
    activity_type: str
    details: str = ""
    activity_id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
