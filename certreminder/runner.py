"""One complete evaluation cycle: load, evaluate, notify, schedule."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from .alerting import LoggingTransport, NotificationDispatcher, create_transport
from .config import Config
from .evaluator import evaluate
from .models import RunOutcome, RunState
from .policy import resolve
from .scheduling import FollowUpScheduler, create_scheduler, decide_follow_up
from .source import CertificateSource

logger = logging.getLogger(__name__)


def default_command(config_path: Path | None = None) -> list[str]:
    """Command line that re-runs CertReminder with the same configuration."""
    command = [sys.executable, "-m", "certreminder", "run"]
    if config_path is not None:
        command += ["--config", str(Path(config_path).resolve())]
    return command


def evaluate_all(
    config: Config,
    source: CertificateSource,
    now: datetime | None = None,
) -> RunOutcome:
    """Evaluate every certificate without notifying or scheduling.

    Raises:
        FatalSourceError: If the certificate directory is inaccessible.
    """
    now = now or datetime.now(timezone.utc)
    outcome = RunOutcome(started_at=now, state=RunState.EVALUATING)

    entities, outcome.skipped = source.load_entities()
    for entity in entities:
        policy = resolve(entity.id, config.master, config.domains)
        decision = evaluate(entity, policy, now)
        logger.debug(
            "%s: %d day(s) remaining, warning at %d",
            entity.id, decision.days_remaining, policy.warning_days,
        )
        outcome.decisions.append(decision)

    return outcome


def run_once(
    config: Config,
    source: CertificateSource,
    dispatcher: NotificationDispatcher,
    follow_up: FollowUpScheduler,
    now: datetime | None = None,
) -> RunOutcome:
    """Run a full cycle and request at most one follow-up.

    Every reminder is dispatched before the follow-up decision is made.

    Args:
        config: Loaded configuration.
        source: Certificate source.
        dispatcher: Notification dispatcher.
        follow_up: Follow-up scheduler.
        now: Reference time, defaults to the current UTC time.

    Returns:
        The outcome of the run.

    Raises:
        FatalSourceError: If the certificate directory is inaccessible.
    """
    outcome = evaluate_all(config, source, now)

    for decision in outcome.decisions:
        if not decision.should_notify:
            continue
        logger.warning(
            "Certificate for %s expires in %d day(s) (warning at %d)",
            decision.entity_id, decision.days_remaining, decision.policy.warning_days,
        )
        outcome.dispatches.append(dispatcher.dispatch(decision.entity_id, decision))

    outcome.next_run_delay = decide_follow_up(
        outcome.decisions,
        config.master,
        config.scheduler.follow_up_mode,
    )
    follow_up.finish(outcome)

    logger.info(
        "Run complete: %d evaluated, %d notified, %d skipped",
        len(outcome.decisions), len(outcome.notified), len(outcome.skipped),
    )
    return outcome


def build_components(
    config: Config,
    config_path: Path | None = None,
    dry_run: bool = False,
) -> tuple[CertificateSource, NotificationDispatcher, FollowUpScheduler]:
    """Wire up the source, dispatcher and follow-up scheduler from configuration."""
    source = CertificateSource(config.certificates.directory, config.certificates.filename)

    if dry_run:
        transport = LoggingTransport()
    else:
        transport = create_transport(config.mail)

    dispatcher = NotificationDispatcher(
        sender=config.master.sender_email,
        transport=transport,
        webhook=None if dry_run else config.webhook,
        max_concurrent_sends=config.mail.max_concurrent_sends,
    )
    follow_up = FollowUpScheduler(
        create_scheduler(config.scheduler, dry_run=dry_run),
        unit_name=config.scheduler.unit_name,
        command=config.scheduler.command or default_command(config_path),
    )
    return source, dispatcher, follow_up
