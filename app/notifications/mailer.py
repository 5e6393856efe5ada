"""Outbound mail for one-time codes."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from socket import gaierror, timeout
from typing import Protocol

from app.config import Settings
from app.errors import InternalError

logger = logging.getLogger(__name__)


class MailDeliveryError(InternalError):
    """Raised when a message could not be handed to the mail server."""

    category = "mail_delivery_error"
    retryable = True

    @classmethod
    def default_message(cls) -> str:
        return "Could not send email, please retry"


class Mailer(Protocol):
    def send(self, recipient: str, subject: str, body: str) -> None:
        ...


class SmtpMailer:
    """Send plain-text messages through an SMTP relay."""

    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        sender: str = "",
        use_tls: bool = True,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._sender = sender or user
        self._use_tls = use_tls
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpMailer":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            sender=settings.mail_from,
            use_tls=settings.smtp_use_tls,
        )

    def send(self, recipient: str, subject: str, body: str) -> None:
        if not self._host:
            raise MailDeliveryError("Mail delivery is not configured")

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = f"No-Reply <{self._sender}>"
        message["To"] = recipient
        message.set_content(body)

        try:
            logger.info("Sending email", extra={"recipient": recipient, "subject": subject})
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                if self._use_tls:
                    server.starttls()
                if self._user:
                    server.login(self._user, self._password)
                server.send_message(message)
        except smtplib.SMTPAuthenticationError as exc:
            logger.error("SMTP authentication failed", extra={"error": str(exc)})
            raise MailDeliveryError() from exc
        except smtplib.SMTPException as exc:
            logger.error("SMTP error", extra={"error": str(exc)})
            raise MailDeliveryError() from exc
        except (gaierror, timeout, OSError) as exc:
            logger.error("Network error while sending email", extra={"error": str(exc)})
            raise MailDeliveryError() from exc


def send_otp(mailer: Mailer, recipient: str, subject: str, code: str, ttl_minutes: int) -> None:
    mailer.send(recipient, subject, f"Your code is {code}. It expires in {ttl_minutes} minutes.")
