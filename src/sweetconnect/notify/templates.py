"""Notification templates.

Each :class:`TemplateKind` declares the context fields it consumes and
renders a plain-text body plus a minimal HTML alternative.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sweetconnect.engine.errors import TemplateError

EXCERPT_LIMIT = 280


class TemplateKind(str, Enum):
    WELCOME = "welcome"
    LOGIN_ALERT = "login_alert"
    COUNTERPARTY_NEW_REGISTRATION = "counterparty_new_registration"
    COUNTERPARTY_LOGIN_ALERT = "counterparty_login_alert"
    MESSAGE_RECEIVED = "message_received"
    MESSAGE_SENT_CONFIRMATION = "message_sent_confirmation"
    ACTIVITY_COMPLETED = "activity_completed"
    COUNTERPARTY_ACTIVITY_ALERT = "counterparty_activity_alert"


@dataclass(frozen=True)
class RenderedMail:
    subject: str
    text: str
    html: str


@dataclass(frozen=True)
class _Template:
    fields: tuple[str, ...]
    subject: str
    body: str


_TEMPLATES: dict[TemplateKind, _Template] = {
    TemplateKind.WELCOME: _Template(
        fields=("name", "email", "role"),
        subject="Welcome to {brand}!",
        body=(
            "Hello {name}!\n\n"
            "Welcome to {brand}! Your account has been successfully created.\n\n"
            "Account Details:\n"
            "- Name: {name}\n"
            "- Email: {email}\n"
            "- Role: {role}\n\n"
            "You can now log in and start using all the features.\n\n"
            "Best regards,\n{brand} Team"
        ),
    ),
    TemplateKind.LOGIN_ALERT: _Template(
        fields=("name", "email", "timestamp"),
        subject="Login Alert - {brand}",
        body=(
            "Hello {name}!\n\n"
            "You have successfully logged into your {brand} account.\n\n"
            "Login Details:\n"
            "- Time: {timestamp}\n"
            "- Email: {email}\n\n"
            "If this wasn't you, please contact support immediately.\n\n"
            "Best regards,\n{brand} Team"
        ),
    ),
    TemplateKind.COUNTERPARTY_NEW_REGISTRATION: _Template(
        fields=("name", "email", "role", "timestamp"),
        subject="New User Registration on {brand}",
        body=(
            "A new user has registered on {brand}:\n\n"
            "User Details:\n"
            "- Name: {name}\n"
            "- Email: {email}\n"
            "- Role: {role}\n"
            "- Registered at: {timestamp}\n\n"
            "Please welcome them to the platform!"
        ),
    ),
    TemplateKind.COUNTERPARTY_LOGIN_ALERT: _Template(
        fields=("name", "email", "timestamp"),
        subject="User Login Activity - {brand}",
        body="User {name} ({email}) has logged into {brand}.\n\nLogin Time: {timestamp}",
    ),
    TemplateKind.MESSAGE_RECEIVED: _Template(
        fields=("recipient_name", "sender_name", "sender_email", "content"),
        subject="New Message from {sender_name} - {brand}",
        body=(
            "Hello {recipient_name}!\n\n"
            "You have received a new message from {sender_name} ({sender_email}):\n\n"
            "\"{content}\"\n\n"
            "Please log in to {brand} to view and respond to this message.\n\n"
            "Best regards,\n{brand} Team"
        ),
    ),
    TemplateKind.MESSAGE_SENT_CONFIRMATION: _Template(
        fields=("recipient_name", "sender_name", "content"),
        subject="Message Sent to {recipient_name} - {brand}",
        body=(
            "Hello {sender_name}!\n\n"
            "Your message has been successfully delivered to {recipient_name}.\n\n"
            "Your message:\n\"{content}\"\n\n"
            "{recipient_name} will be notified and can respond to you on {brand}.\n\n"
            "Best regards,\n{brand} Team"
        ),
    ),
    TemplateKind.ACTIVITY_COMPLETED: _Template(
        fields=("name", "activity_type", "details", "timestamp"),
        subject="Activity Completed - {activity_type} - {brand}",
        body=(
            "Hello {name}!\n\n"
            "Your activity \"{activity_type}\" has been recorded on {brand}.\n\n"
            "Details: {details}\n\n"
            "Activity completed at: {timestamp}\n\n"
            "Thank you for using {brand}!\n\n"
            "Best regards,\n{brand} Team"
        ),
    ),
    TemplateKind.COUNTERPARTY_ACTIVITY_ALERT: _Template(
        fields=("name", "email", "activity_type", "details", "timestamp"),
        subject="User Activity - {activity_type} - {brand}",
        body=(
            "User {name} ({email}) performed activity: {activity_type}\n\n"
            "Details: {details}\n\n"
            "Activity time: {timestamp}"
        ),
    ),
}


def required_fields(kind: TemplateKind | str) -> tuple[str, ...]:
    return _TEMPLATES[TemplateKind(kind)].fields


def excerpt(content: str, limit: int = EXCERPT_LIMIT) -> str:
    if len(content) <= limit:
        return content
    return content[: limit - 3].rstrip() + "..."


def render(kind: TemplateKind | str, context: dict[str, Any], brand: str = "SweetConnect") -> RenderedMail:
    """Render *kind* with *context*.

    Raises :class:`TemplateError` if a field the template consumes is
    missing from *context*.
    """
    try:
        template = _TEMPLATES[TemplateKind(kind)]
    except (KeyError, ValueError) as exc:
        raise TemplateError(f"Unknown template kind: {kind!r}") from exc

    missing = [f for f in template.fields if f not in context]
    if missing:
        raise TemplateError(f"Template {TemplateKind(kind).value} missing fields: {', '.join(missing)}")

    values = {f: str(context[f]) for f in template.fields}
    if "content" in values:
        values["content"] = excerpt(values["content"])
    if "details" in values and not values["details"]:
        values["details"] = "No additional details provided"
    values["brand"] = brand

    subject = template.subject.format(**values)
    text = template.body.format(**values)
    escaped = {k: html.escape(v) for k, v in values.items()}
    body_html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        + template.body.format(**escaped).replace("\n", "<br>")
        + "</div>"
    )
    return RenderedMail(subject=subject, text=text, html=body_html)
