"""Webhook notifications for Slack, Discord, and other services."""

import logging
from datetime import datetime, timezone

import httpx

from ..config import WebhookConfig
from ..models import ExpiryStatus, NotificationDecision
from .email import format_body

logger = logging.getLogger(__name__)


def build_webhook_payload(decision: NotificationDecision) -> dict:
    """Build a Slack-compatible payload for one expiring certificate."""
    status = decision.status
    return {
        "text": f"🔐 CertReminder: {decision.entity_id}",
        "attachments": [
            {
                "color": _status_to_color(status),
                "title": decision.entity_id,
                "fields": [
                    {
                        "title": "Status",
                        "value": status.value.upper(),
                        "short": True,
                    },
                    {
                        "title": "Days Remaining",
                        "value": str(decision.days_remaining),
                        "short": True,
                    },
                ],
                "text": format_body(decision.entity_id, decision.days_remaining),
            }
        ],
        # Include raw payload for non-Slack webhooks
        "certreminder": {
            "domain": decision.entity_id,
            "status": status.value,
            "days_remaining": decision.days_remaining,
            "warning_days": decision.policy.warning_days,
            "sent_at": datetime.now(timezone.utc).isoformat(),
        },
    }


def send_webhook_notification(
    decision: NotificationDecision,
    config: WebhookConfig,
) -> bool:
    """Post a notification for one certificate to the configured webhook.

    Args:
        decision: Decision for the certificate being reported.
        config: Webhook configuration.

    Returns:
        True if the webhook accepted the notification, False otherwise.
    """
    if not config.enabled or not config.url:
        return False

    try:
        with httpx.Client() as client:
            response = client.post(
                config.url,
                json=build_webhook_payload(decision),
                headers=config.headers,
                timeout=config.timeout,
            )
            response.raise_for_status()
            return True

    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.error("Webhook notification for %s failed: %s", decision.entity_id, e)
        return False


def _status_to_color(status: ExpiryStatus) -> str:
    """Convert status to Slack attachment color."""
    return {
        ExpiryStatus.EXPIRED: "danger",
        ExpiryStatus.EXPIRING: "warning",
        ExpiryStatus.OK: "good",
    }.get(status, "#808080")
