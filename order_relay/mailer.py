"""SMTP delivery for customer notification emails."""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from typing import Callable

import structlog


class MailDeliveryError(Exception):
    """Raised when the mail relay refuses or cannot accept a message."""


class SmtpMailer:
    """Send plain-text emails through an authenticated SMTP relay.

    A new connection is opened per message. STARTTLS is negotiated whenever the
    relay advertises it.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        timeout: float = 5.0,
        smtp_factory: Callable[..., smtplib.SMTP] | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._sender = sender
        self._timeout = timeout
        self._smtp_factory = smtp_factory or smtplib.SMTP

    def build_message(self, *, recipient: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        return message

    def send(self, *, recipient: str, subject: str, body: str) -> None:
        """Deliver one message, raising MailDeliveryError on any relay failure."""

        log = structlog.get_logger().bind(recipient=recipient, smtp_host=self._host)
        message = self.build_message(recipient=recipient, subject=subject, body=body)

        try:
            with self._smtp_factory(self._host, self._port, timeout=self._timeout) as smtp:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls()
                    smtp.ehlo()
                smtp.login(self._username, self._password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            log.error("email_failed", error=str(exc), error_type=type(exc).__name__)
            raise MailDeliveryError(f"Failed to deliver email to {recipient}: {exc}") from exc

        log.info("email_sent")
