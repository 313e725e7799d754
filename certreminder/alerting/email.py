"""Email reminders and the mail transports that deliver them."""

import logging
import smtplib
import ssl
import subprocess
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Protocol

from ..config import MailConfig
from ..errors import DispatchFailure

logger = logging.getLogger(__name__)


def _days(count: int) -> str:
    return f"{count} day" if count == 1 else f"{count} days"


def format_subject(entity_id: str) -> str:
    return f"SSL Certificate Expiry Warning for {entity_id}"


def format_body(entity_id: str, days_remaining: int) -> str:
    """Reminder text for one certificate."""
    if days_remaining < 0:
        return (
            f"The SSL certificate for {entity_id} expired {_days(abs(days_remaining))} ago.\n\n"
            "Renew it as soon as possible to restore service…"
        )
    return (
        f"The SSL certificate for {entity_id} expires in {_days(days_remaining)}.\n\n"
        "Consider renewing it soon to avoid downtime…"
    )


def build_message(
    sender: str,
    recipient: str,
    entity_id: str,
    days_remaining: int,
) -> EmailMessage:
    """Build a single reminder addressed to one recipient.

    Args:
        sender: From address.
        recipient: To address.
        entity_id: Domain the certificate belongs to.
        days_remaining: Whole days until expiry (negative if expired).

    Returns:
        A complete message ready for a transport.
    """
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = recipient
    msg["Subject"] = format_subject(entity_id)
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid(domain="certreminder")
    msg.set_content(format_body(entity_id, days_remaining))
    return msg


class MailTransport(Protocol):
    """Anything that can deliver a fully formed message."""

    def send(self, message: EmailMessage) -> None:
        """Deliver one message, raising DispatchFailure if it was not accepted."""
        ...


class SendmailTransport:
    """Pipe messages to a local ``sendmail -t``."""

    def __init__(self, sendmail_path: str = "/usr/sbin/sendmail", timeout: float = 30.0):
        self.sendmail_path = sendmail_path
        self.timeout = timeout

    def send(self, message: EmailMessage) -> None:
        try:
            proc = subprocess.run(
                [self.sendmail_path, "-t", "-i"],
                input=message.as_bytes(),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise DispatchFailure(f"sendmail failed: {e}") from e

        if proc.returncode != 0:
            stderr = proc.stderr.decode(errors="replace").strip()
            raise DispatchFailure(f"sendmail exited with {proc.returncode}: {stderr}")


class SmtpTransport:
    """Deliver messages through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 25,
        starttls: bool = False,
        username: str = "",
        password: str = "",
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.starttls = starttls
        self.username = username
        self.password = password
        self.timeout = timeout

    def send(self, message: EmailMessage) -> None:
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.starttls:
                    server.starttls(context=ssl.create_default_context())
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise DispatchFailure(f"SMTP delivery via {self.host}:{self.port} failed: {e}") from e


class LoggingTransport:
    """Log messages instead of sending them (dry runs)."""

    def __init__(self):
        self.messages: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        logger.info("[dry-run] Would send \"%s\" to %s", message["Subject"], message["To"])
        self.messages.append(message)


def create_transport(config: MailConfig) -> MailTransport:
    """Create the mail transport selected in the configuration."""
    if config.transport == "smtp":
        return SmtpTransport(
            host=config.smtp_host,
            port=config.smtp_port,
            starttls=config.starttls,
            username=config.username,
            password=config.password,
            timeout=config.timeout,
        )
    return SendmailTransport(config.sendmail_path, timeout=config.timeout)
