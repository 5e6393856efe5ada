"""Notification transports."""

from .mailer import MailDeliveryError, Mailer, SmtpMailer, send_otp

__all__ = ["MailDeliveryError", "Mailer", "SmtpMailer", "send_otp"]
