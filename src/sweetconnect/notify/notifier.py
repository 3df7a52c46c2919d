"""Best-effort notification dispatch."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from sweetconnect.engine.errors import NotificationFailure
from sweetconnect.engine.tasks import BackgroundTasks
from sweetconnect.notify.templates import TemplateKind, render
from sweetconnect.notify.transport import MailTransport

logger = logging.getLogger(__name__)


@dataclass
class NotifierStats:
    sent: int = 0
    failed: int = 0
    skipped: int = 0


class Notifier:
    """Fire-and-forget templated notifications.

    :meth:`notify` schedules a single delivery attempt on the shared
    :class:`BackgroundTasks` and returns at once.  Failures end up in the log
    and in :attr:`stats`; they never reach the caller.
    """

    def __init__(
        self,
        transport: MailTransport,
        tasks: BackgroundTasks,
        brand: str = "SweetConnect",
    ) -> None:
        self.transport = transport
        self.tasks = tasks
        self.brand = brand
        self.stats = NotifierStats()

    def notify(
        self, address: str, kind: TemplateKind | str, context: dict[str, Any]
    ) -> asyncio.Task[None] | None:
        if not address:
            self.stats.skipped += 1
            logger.debug("No address for %s notification, skipping", kind)
            return None
        try:
            kind = TemplateKind(kind)
        except ValueError:
            self.stats.failed += 1
            logger.warning("Unknown notification kind %r for %s", kind, address)
            return None
        return self.tasks.spawn(
            self._deliver(address, kind, dict(context)),
            name=f"notify:{kind.value}",
        )

    async def _deliver(self, address: str, kind: TemplateKind, context: dict[str, Any]) -> None:
        try:
            mail = render(kind, context, brand=self.brand)
            await self.transport.send(address, mail.subject, mail.text, mail.html)
        except NotificationFailure as exc:
            self.stats.failed += 1
            logger.warning("Notification %s to %s failed: %s", kind.value, address, exc)
            return
        except Exception:
            self.stats.failed += 1
            logger.exception("Notification %s to %s crashed", kind.value, address)
            return
        self.stats.sent += 1
        logger.debug("Notification %s sent to %s", kind.value, address)
