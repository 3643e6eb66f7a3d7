"""Outbound email.

Used only by the worker's ``enrollment_email`` handler.  SMTP when
SMTP_HOST is configured; otherwise messages land in an in-memory outbox
that tests and local dev can inspect.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

from app.core.config import SETTINGS, Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OutgoingMail:
    to: str
    subject: str
    html: str


class MailSender(Protocol):
    async def send(self, to: str, subject: str, html: str) -> None: ...


class InMemoryMailSender:
    def __init__(self) -> None:
        self.outbox: list[OutgoingMail] = []

    async def send(self, to: str, subject: str, html: str) -> None:
        self.outbox.append(OutgoingMail(to=to, subject=subject, html=html))
        logger.info("Mail captured in memory to=%s subject=%r", to, subject)


class SmtpMailSender:
    """Sends multipart (plain + HTML) mail over SMTP.

    Port 465 uses implicit TLS; any other port upgrades with STARTTLS.
    Login happens only when a username is configured.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._timeout = timeout

    def _build(self, to: str, subject: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._sender
        msg["To"] = to
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        context = ssl.create_default_context()
        if self._port == 465:
            with smtplib.SMTP_SSL(
                self._host, self._port, context=context, timeout=self._timeout
            ) as s:
                if self._username:
                    s.login(self._username, self._password or "")
                s.send_message(msg)
        else:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as s:
                s.starttls(context=context)
                if self._username:
                    s.login(self._username, self._password or "")
                s.send_message(msg)

    async def send(self, to: str, subject: str, html: str) -> None:
        msg = self._build(to, subject, html)
        await asyncio.to_thread(self._send_sync, msg)
        logger.info("Mail sent via SMTP to=%s subject=%r", to, subject)


def build_mail_sender(settings: Settings) -> MailSender:
    if settings.smtp_host:
        return SmtpMailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
        )
    return InMemoryMailSender()


mail_sender: MailSender = build_mail_sender(SETTINGS)
