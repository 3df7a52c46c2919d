"""Notification layer: templates, mail transports and the dispatcher."""

from sweetconnect.notify.notifier import Notifier, NotifierStats
from sweetconnect.notify.templates import RenderedMail, TemplateKind, render
from sweetconnect.notify.transport import (
    HttpMailTransport,
    LogTransport,
    MailTransport,
    SmtpTransport,
    build_transport,
)

__all__ = [
    "HttpMailTransport",
    "LogTransport",
    "MailTransport",
    "Notifier",
    "NotifierStats",
    "RenderedMail",
    "SmtpTransport",
    "TemplateKind",
    "build_transport",
    "render",
]
