"""Certificate expiry evaluation."""

from datetime import datetime, timedelta

from .models import Entity, NotificationDecision, Policy

ONE_DAY = timedelta(days=1)


def days_remaining(expiry: datetime, now: datetime) -> int:
    """Whole days until expiry, floored. Negative once the certificate has expired."""
    return (expiry - now) // ONE_DAY


def evaluate(entity: Entity, policy: Policy, now: datetime) -> NotificationDecision:
    """Decide whether an entity is inside its warning window.

    The boundary is inclusive: a certificate expiring in exactly
    ``warning_days`` days is notified. Expired certificates are notified too.

    Args:
        entity: Entity to evaluate.
        policy: Effective policy for the entity.
        now: Reference time (timezone-aware).

    Returns:
        NotificationDecision for this run.
    """
    days = days_remaining(entity.expiry, now)
    return NotificationDecision(
        entity_id=entity.id,
        days_remaining=days,
        policy=policy,
        should_notify=days <= policy.warning_days,
    )
