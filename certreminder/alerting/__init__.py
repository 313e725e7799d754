"""Delivery of expiry reminders."""

from .dispatcher import NotificationDispatcher
from .email import LoggingTransport, MailTransport, SendmailTransport, SmtpTransport, build_message, create_transport
from .webhook import send_webhook_notification

__all__ = [
    "NotificationDispatcher",
    "LoggingTransport",
    "MailTransport",
    "SendmailTransport",
    "SmtpTransport",
    "build_message",
    "create_transport",
    "send_webhook_notification",
]
