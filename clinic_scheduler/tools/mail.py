"""
Outbound mail transports.

``MockMailTransport`` keeps an in-memory outbox and is used in development
and tests. ``SmtpMailTransport`` delivers through an SMTP relay. Both raise
``SendFailed`` when a message cannot be delivered; the reminder scheduler
treats that as retriable.

Usage:
    transport = build_mail_transport(settings.mail)
    transport.send("hanako.yamada@example.com", "Reminder", "See you tomorrow.")
"""

import logging
import smtplib
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Optional, Protocol

from clinic_scheduler.config import MailConfig
from clinic_scheduler.errors import SendFailed

logger = logging.getLogger(__name__)


class MailTransport(Protocol):
    """Delivers one plain-text message."""

    def send(self, to: str, subject: str, body: str) -> None:
        ...


@dataclass(frozen=True)
class OutgoingMessage:
    to: str
    subject: str
    body: str


class MockMailTransport:
    """Records messages instead of sending them.

    Addresses in ``fail_for`` raise ``SendFailed``, which lets tests exercise
    delivery failures.
    """

    def __init__(self, fail_for: Optional[set[str]] = None) -> None:
        self.outbox: list[OutgoingMessage] = []
        self.fail_for = set(fail_for or ())

    def send(self, to: str, subject: str, body: str) -> None:
        if not to:
            raise SendFailed("Recipient has no email address")
        if to in self.fail_for:
            raise SendFailed(f"Mock delivery to {to} failed")
        self.outbox.append(OutgoingMessage(to=to, subject=subject, body=body))
        logger.info("[mock mail] to=%s subject=%s", to, subject)

    def reset(self) -> None:
        self.outbox.clear()


class SmtpMailTransport:
    """Sends mail through the configured SMTP relay, one connection per message."""

    def __init__(self, config: MailConfig) -> None:
        self._config = config

    def send(self, to: str, subject: str, body: str) -> None:
        if not to:
            raise SendFailed("Recipient has no email address")

        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self._config.from_address
        msg["To"] = to

        try:
            with smtplib.SMTP(self._config.smtp_host, self._config.smtp_port) as server:
                if self._config.use_tls:
                    server.starttls()
                if self._config.smtp_username and self._config.smtp_password:
                    server.login(self._config.smtp_username, self._config.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            raise SendFailed(f"SMTP delivery to {to} failed: {e}") from e

        logger.info("Email sent to %s", to)


def build_mail_transport(config: MailConfig) -> MailTransport:
    """Pick the transport named by ``MAIL_MODE``."""
    if config.mode == "smtp":
        return SmtpMailTransport(config)
    return MockMailTransport()
