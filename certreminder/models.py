"""Pydantic models for CertReminder runs."""

from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator


class ExpiryStatus(str, Enum):
    """Display status of an evaluated certificate."""
    EXPIRED = "expired"
    EXPIRING = "expiring"
    OK = "ok"


class RunState(str, Enum):
    """States a single run moves through."""
    IDLE = "idle"
    EVALUATING = "evaluating"
    NO_FOLLOW_UP = "no_follow_up"
    FOLLOW_UP_SCHEDULED = "follow_up_scheduled"


class Entity(BaseModel):
    """One monitored subject and the expiry of its certificate."""
    id: str = Field(description="Entity identifier (certificate directory name)")
    certificate_path: Path = Field(description="Path of the PEM chain file")
    expiry: datetime = Field(description="notAfter of the leaf certificate (UTC)")


class Policy(BaseModel):
    """Effective settings for one entity after resolving overrides."""
    warning_days: int = Field(ge=0)
    recipients: list[str] = Field(default_factory=list)
    follow_up_interval: timedelta | None = None


class NotificationDecision(BaseModel):
    """Whether an entity should be notified in this run."""
    entity_id: str
    days_remaining: int
    policy: Policy
    should_notify: bool

    @model_validator(mode="after")
    def _check_threshold(self) -> "NotificationDecision":
        expected = self.days_remaining <= self.policy.warning_days
        if self.should_notify != expected:
            raise ValueError(
                f"should_notify={self.should_notify} contradicts "
                f"days_remaining={self.days_remaining}, warning_days={self.policy.warning_days}"
            )
        return self

    @property
    def status(self) -> ExpiryStatus:
        if self.days_remaining < 0:
            return ExpiryStatus.EXPIRED
        if self.should_notify:
            return ExpiryStatus.EXPIRING
        return ExpiryStatus.OK


class DispatchResult(BaseModel):
    """Per-recipient outcome of notifying one entity."""
    entity_id: str
    sent: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict, description="Recipient -> error")
    webhook_sent: bool | None = Field(default=None, description="None when no webhook is configured")

    @property
    def ok(self) -> bool:
        return not self.failed


class RunOutcome(BaseModel):
    """Aggregate of one evaluation cycle."""
    started_at: datetime
    state: RunState = RunState.IDLE
    decisions: list[NotificationDecision] = Field(default_factory=list)
    dispatches: list[DispatchResult] = Field(default_factory=list)
    skipped: dict[str, str] = Field(default_factory=dict, description="Entity -> reason")
    next_run_delay: timedelta | None = None
    scheduling_error: str | None = None

    @property
    def notified(self) -> list[str]:
        """Ids of entities that triggered a notification."""
        return [d.entity_id for d in self.decisions if d.should_notify]

    def to_summary(self) -> dict[str, Any]:
        """Convert the outcome to a JSON-friendly summary."""
        return {
            "started_at": self.started_at.isoformat(),
            "state": self.state.value,
            "evaluated": len(self.decisions),
            "notified": self.notified,
            "skipped": self.skipped,
            "failed_recipients": {
                d.entity_id: d.failed for d in self.dispatches if d.failed
            },
            "next_run_delay_seconds": (
                int(self.next_run_delay.total_seconds()) if self.next_run_delay else None
            ),
            "scheduling_error": self.scheduling_error,
        }
