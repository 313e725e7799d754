"""Console presentation helpers for expiry statuses."""

from .models import ExpiryStatus, RunState


def get_status_emoji(status: ExpiryStatus) -> str:
    return {
        ExpiryStatus.EXPIRED: "🔴",
        ExpiryStatus.EXPIRING: "🟡",
        ExpiryStatus.OK: "🟢",
    }.get(status, "⚪")


def get_status_color(status: ExpiryStatus) -> str:
    """Get a Rich color name for an expiry status."""
    return {
        ExpiryStatus.EXPIRED: "red",
        ExpiryStatus.EXPIRING: "yellow",
        ExpiryStatus.OK: "green",
    }.get(status, "white")


def get_state_label(state: RunState) -> str:
    """Human-readable label for the final state of a run."""
    return {
        RunState.NO_FOLLOW_UP: "No follow-up",
        RunState.FOLLOW_UP_SCHEDULED: "Follow-up scheduled",
        RunState.EVALUATING: "Evaluating",
        RunState.IDLE: "Idle",
    }[state]


def format_days(days_remaining: int) -> str:
    if days_remaining < 0:
        return f"EXPIRED {abs(days_remaining)} days ago"
    if days_remaining == 0:
        return "Expires TODAY"
    return f"Expires in {days_remaining} days"
