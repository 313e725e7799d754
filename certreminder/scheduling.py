"""Follow-up scheduling: re-run the whole check after a delay while certificates stay due."""

import logging
import subprocess
from collections.abc import Iterable, Sequence
from datetime import timedelta
from pathlib import Path
from typing import Literal, Protocol

from .config import GlobalPolicy, SchedulerConfig, parse_interval
from .errors import SchedulingFailure
from .models import NotificationDecision, RunOutcome, RunState

logger = logging.getLogger(__name__)

FollowUpMode = Literal["global", "per_entity"]


class SchedulerPort(Protocol):
    """External mechanism able to re-invoke the process once, later."""

    def schedule_once(self, name: str, delay: timedelta, payload: Sequence[str]) -> None:
        """Run ``payload`` after ``delay``, replacing any pending job called ``name``.

        Raises:
            SchedulingFailure: If the request was not accepted.
        """
        ...


class SystemdRunScheduler:
    """Schedule follow-ups as transient systemd timers via ``systemd-run``.

    A follow-up run executes inside the transient ``<name>.service`` it was
    scheduled as, so that unit cannot be re-created from within itself. The
    scheduler alternates between ``<name>`` and ``<name>-alt`` and cancels both
    timers first, which leaves at most one follow-up pending.
    """

    def __init__(
        self,
        systemd_run_path: str = "systemd-run",
        systemctl_path: str = "systemctl",
        timeout: float = 30.0,
        cgroup_path: Path = Path("/proc/self/cgroup"),
    ):
        self.systemd_run_path = systemd_run_path
        self.systemctl_path = systemctl_path
        self.timeout = timeout
        self.cgroup_path = cgroup_path

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        return subprocess.run(args, capture_output=True, text=True, timeout=self.timeout, check=False)

    def current_unit(self) -> str | None:
        """Name of the systemd service this process runs in, if any."""
        try:
            lines = self.cgroup_path.read_text().splitlines()
        except OSError:
            return None
        for line in lines:
            leaf = line.rsplit(":", 1)[-1].rstrip("/").rsplit("/", 1)[-1]
            if leaf.endswith(".service"):
                return leaf
        return None

    def unit_names(self, name: str) -> tuple[str, str]:
        """Return ``(target, other)`` unit names for the next follow-up."""
        alt = f"{name}-alt"
        if self.current_unit() == f"{name}.service":
            return alt, name
        return name, alt

    def cancel(self, *names: str) -> None:
        """Stop pending timers so the new request replaces them."""
        timers = [f"{name}.timer" for name in names]
        try:
            proc = self._run([self.systemctl_path, "stop", *timers])
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("Could not stop pending %s: %s", ", ".join(timers), e)
            return
        # Exit status 5 means the units were not loaded, i.e. nothing to replace
        if proc.returncode not in (0, 5):
            logger.debug("systemctl stop exited with %d: %s", proc.returncode, proc.stderr.strip())

    def schedule_once(self, name: str, delay: timedelta, payload: Sequence[str]) -> None:
        seconds = max(1, int(delay.total_seconds()))
        target, other = self.unit_names(name)
        self.cancel(name, f"{name}-alt")
        args = [
            self.systemd_run_path,
            f"--on-active={seconds}s",
            f"--unit={target}",
            "--collect",
            *payload,
        ]
        try:
            proc = self._run(args)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise SchedulingFailure(f"systemd-run failed: {e}") from e

        if proc.returncode != 0:
            raise SchedulingFailure(f"systemd-run exited with {proc.returncode}: {proc.stderr.strip()}")
        logger.debug("Scheduled %s.timer (replacing %s)", target, other)


class DryRunScheduler:
    """Log follow-up requests without scheduling anything."""

    def __init__(self):
        self.requests: list[tuple[str, timedelta, list[str]]] = []

    def schedule_once(self, name: str, delay: timedelta, payload: Sequence[str]) -> None:
        logger.info("[dry-run] Would schedule %s in %s: %s", name, delay, " ".join(payload))
        self.requests.append((name, delay, list(payload)))


def create_scheduler(config: SchedulerConfig, dry_run: bool = False) -> SchedulerPort:
    """Create the scheduler backend selected in the configuration."""
    if dry_run or config.backend == "none":
        return DryRunScheduler()
    return SystemdRunScheduler(config.systemd_run_path, config.systemctl_path)


def decide_follow_up(
    decisions: Iterable[NotificationDecision],
    master: GlobalPolicy,
    mode: FollowUpMode = "global",
) -> timedelta | None:
    """Decide the delay before the next run, or None for no follow-up.

    In ``global`` mode the master interval is used whenever any entity
    notified, even if a notifying entity overrides its own interval. In
    ``per_entity`` mode the shortest interval among the notifying entities'
    resolved policies is used, and entities with follow-ups disabled do not
    contribute.

    Args:
        decisions: All decisions of this run.
        master: Global policy.
        mode: "global" or "per_entity".

    Returns:
        Delay before the follow-up run, or None.
    """
    notified = [d for d in decisions if d.should_notify]
    if not notified:
        return None

    if mode == "per_entity":
        intervals = [d.policy.follow_up_interval for d in notified if d.policy.follow_up_interval]
        return min(intervals) if intervals else None

    return parse_interval(master.follow_up_interval)


class FollowUpScheduler:
    """Turn a run outcome into at most one follow-up request."""

    def __init__(self, port: SchedulerPort, unit_name: str, command: Sequence[str]):
        self.port = port
        self.unit_name = unit_name
        self.command = list(command)

    def finish(self, outcome: RunOutcome) -> RunOutcome:
        """Request the follow-up for ``outcome.next_run_delay``, if any.

        Scheduling failures are logged and recorded on the outcome. They are
        not retried, so the next periodic run has to restore coverage.
        """
        delay = outcome.next_run_delay
        if delay is None:
            if outcome.notified:
                logger.info("Follow-ups disabled; sent a single reminder only")
            outcome.state = RunState.NO_FOLLOW_UP
            return outcome

        try:
            self.port.schedule_once(self.unit_name, delay, self.command)
        except SchedulingFailure as e:
            logger.critical("Could not schedule follow-up %s, the reminder chain is broken: %s", self.unit_name, e)
            outcome.scheduling_error = str(e)
            outcome.state = RunState.NO_FOLLOW_UP
            return outcome

        logger.info("Follow-up %s scheduled in %s", self.unit_name, delay)
        outcome.state = RunState.FOLLOW_UP_SCHEDULED
        return outcome
