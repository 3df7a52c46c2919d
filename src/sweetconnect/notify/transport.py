"""Mail transports: the boundary that actually delivers a notification."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import TYPE_CHECKING

import httpx

from sweetconnect.engine.errors import NotificationFailure

if TYPE_CHECKING:
    from sweetconnect.config.schema import MailConfig

logger = logging.getLogger(__name__)


class MailTransport(ABC):
    """Accepts (address, subject, body) and delivers it somewhere."""

    @abstractmethod
    async def send(self, to: str, subject: str, text: str, html: str | None = None) -> None:
        """Deliver one mail.  Raises :class:`NotificationFailure` on failure."""
        ...

    async def close(self) -> None:
        """Release resources.  No-op by default."""


class LogTransport(MailTransport):
    """Development transport: logs the mail instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, text: str, html: str | None = None) -> None:
        self.sent.append((to, subject, text))
        logger.info("EMAIL NOTIFICATION to=%s subject=%r", to, subject)
        logger.debug("EMAIL BODY:\n%s", text)


class SmtpTransport(MailTransport):
    """Sends through an SMTP relay.

    :mod:`smtplib` is blocking, so each send runs in a worker thread and the
    event loop is never held up by a slow relay.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        from_address: str = "",
        from_name: str = "SweetConnect",
        use_tls: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_address = from_address or user
        self.from_name = from_name
        self.use_tls = use_tls
        self.timeout = timeout

    def _build(self, to: str, subject: str, text: str, html: str | None) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f'"{self.from_name}" <{self.from_address}>'
        msg["To"] = to
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")
        return msg

    def _send_blocking(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.user:
                server.login(self.user, self.password)
            server.send_message(msg)

    async def send(self, to: str, subject: str, text: str, html: str | None = None) -> None:
        if not self.host:
            raise NotificationFailure("SMTP host is not configured", to)
        msg = self._build(to, subject, text, html)
        try:
            await asyncio.to_thread(self._send_blocking, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationFailure(f"SMTP delivery failed: {exc}", to) from exc


class HttpMailTransport(MailTransport):
    """Posts mails as JSON to an HTTP mail relay API."""

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        from_address: str = "",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_url = api_url
        self.from_address = from_address
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout), headers=headers
        )
        self._owns_client = client is None

    async def send(self, to: str, subject: str, text: str, html: str | None = None) -> None:
        payload = {
            "from": self.from_address,
            "to": to,
            "subject": subject,
            "text": text,
            "html": html or text.replace("\n", "<br>"),
        }
        try:
            response = await self._client.post(self.api_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationFailure(f"Mail API request failed: {exc}", to) from exc

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def build_transport(config: MailConfig) -> MailTransport:
    """Create the transport named by ``config.transport``."""
    if config.transport == "smtp":
        return SmtpTransport(
            host=config.smtp_host,
            port=config.smtp_port,
            user=config.smtp_user,
            password=config.smtp_password,
            from_address=config.from_address,
            from_name=config.brand,
            use_tls=config.use_tls,
            timeout=config.timeout,
        )
    if config.transport == "http":
        return HttpMailTransport(
            api_url=config.api_url,
            api_key=config.api_key,
            from_address=config.from_address,
            timeout=config.timeout,
        )
    return LogTransport()
