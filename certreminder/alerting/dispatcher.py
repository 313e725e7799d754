"""Notification dispatcher: one message per recipient per expiring certificate."""

import logging
from concurrent.futures import ThreadPoolExecutor

from ..config import WebhookConfig
from ..errors import DispatchFailure
from ..models import DispatchResult, NotificationDecision
from .email import MailTransport, build_message
from .webhook import send_webhook_notification

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Send reminders for notified entities.

    Recipient failures are independent: a rejected message is logged and
    recorded, and the remaining recipients are still tried.

    Args:
        sender: From address for every reminder.
        transport: Mail transport used for delivery.
        webhook: Optional webhook configuration for a per-domain summary post.
        max_concurrent_sends: Upper bound on messages handed to the transport at once.
    """

    def __init__(
        self,
        sender: str,
        transport: MailTransport,
        webhook: WebhookConfig | None = None,
        max_concurrent_sends: int = 1,
    ):
        self.sender = sender
        self.transport = transport
        self.webhook = webhook
        self.max_concurrent_sends = max(1, max_concurrent_sends)

    def _send_one(self, recipient: str, decision: NotificationDecision) -> str | None:
        try:
            message = build_message(self.sender, recipient, decision.entity_id, decision.days_remaining)
            self.transport.send(message)
        except DispatchFailure as e:
            logger.error("Reminder for %s to %s failed: %s", decision.entity_id, recipient, e)
            return str(e)
        except ValueError as e:
            # Malformed address, e.g. one with an embedded line break
            logger.error("Reminder for %s to %r not sent: %s", decision.entity_id, recipient, e)
            return f"invalid message: {e}"
        except Exception as e:
            logger.exception("Unexpected error sending reminder for %s to %s", decision.entity_id, recipient)
            return f"{type(e).__name__}: {e}"

        logger.info("Sent reminder for %s to %s", decision.entity_id, recipient)
        return None

    def dispatch(self, entity_id: str, decision: NotificationDecision) -> DispatchResult:
        """Send one reminder to each recipient of the entity's policy.

        Args:
            entity_id: Entity being reported.
            decision: The entity's decision for this run.

        Returns:
            DispatchResult listing delivered and failed recipients.
        """
        result = DispatchResult(entity_id=entity_id)
        if not decision.should_notify:
            return result

        recipients = decision.policy.recipients
        if self.max_concurrent_sends > 1 and len(recipients) > 1:
            workers = min(self.max_concurrent_sends, len(recipients))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                errors = list(pool.map(lambda r: self._send_one(r, decision), recipients))
        else:
            errors = [self._send_one(r, decision) for r in recipients]

        for recipient, error in zip(recipients, errors):
            if error is None:
                result.sent.append(recipient)
            else:
                result.failed[recipient] = error

        if self.webhook is not None and self.webhook.enabled:
            result.webhook_sent = send_webhook_notification(decision, self.webhook)

        return result
