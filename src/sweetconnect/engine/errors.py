"""Error types raised by the message core.

Every error carries a stable ``code`` that the push transport forwards to
clients verbatim.
"""

from __future__ import annotations

from typing import Any, Optional


class SweetConnectError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class EmptyContent(SweetConnectError):
    def __init__(self, message: str = "Message content is required"):
        super().__init__("empty_content", message)


class UnauthenticatedSender(SweetConnectError):
    def __init__(self, actor_id: Optional[str] = None):
        message = f"Unknown actor: {actor_id!r}" if actor_id else "Actor is not authenticated"
        super().__init__("unauthenticated_sender", message, {"actor_id": actor_id})


class NoCounterpartyFound(SweetConnectError):
    def __init__(self, role: str):
        super().__init__("no_counterparty", f"No actor currently holds role {role!r}", {"role": role})


class BadRequest(SweetConnectError):
    def __init__(self, message: str):
        super().__init__("bad_request", message)


class PersistenceError(SweetConnectError):
    def __init__(self, message: str):
        super().__init__("persistence_error", message)


class RoleConflict(SweetConnectError):
    def __init__(self, role: str, holder_id: str):
        super().__init__(
            "role_conflict",
            f"Role {role!r} is already held by {holder_id!r}",
            {"role": role, "holder_id": holder_id},
        )


class MissingActivityType(SweetConnectError):
    def __init__(self) -> None:
        super().__init__("missing_activity_type", "Activity type is required")


class AccountExists(SweetConnectError):
    def __init__(self, email: str):
        super().__init__("account_exists", f"An account already uses {email!r}", {"email": email})


class NotificationFailure(SweetConnectError):
    """Raised by mail transports. The notifier logs it and never re-raises."""

    def __init__(self, message: str, address: str = ""):
        super().__init__("notification_failure", message, {"address": address})


class TemplateError(NotificationFailure):
    def __init__(self, message: str):
        super().__init__(message)
        self.code = "template_error"
