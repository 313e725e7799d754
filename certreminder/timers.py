"""systemd units for the daily periodic check."""

import logging
import shlex
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_UNIT_NAME = "certreminder"


def render_service_unit(command: Sequence[str]) -> str:
    """Render the oneshot service that performs a single run."""
    return f"""[Unit]
Description=SSL certificate expiry reminder
After=network-online.target
Wants=network-online.target

[Service]
Type=oneshot
ExecStart={shlex.join(command)}
"""


def render_timer_unit(on_calendar: str = "daily", unit_name: str = DEFAULT_UNIT_NAME) -> str:
    """Render the timer that triggers the service on a fixed schedule."""
    return f"""[Unit]
Description=Daily SSL certificate expiry check

[Timer]
OnCalendar={on_calendar}
Persistent=true
RandomizedDelaySec=1h
Unit={unit_name}.service

[Install]
WantedBy=timers.target
"""


def install_units(
    output_dir: Path,
    command: Sequence[str],
    on_calendar: str = "daily",
    unit_name: str = DEFAULT_UNIT_NAME,
    force: bool = False,
) -> list[Path]:
    """Write the service and timer unit files.

    Args:
        output_dir: Directory to write to (e.g. /etc/systemd/system).
        command: Command line the service runs.
        on_calendar: systemd calendar expression for the periodic check.
        unit_name: Base name of the units.
        force: Overwrite existing files.

    Returns:
        Paths of the written files.

    Raises:
        FileExistsError: If a unit exists and ``force`` is False.
    """
    units = {
        output_dir / f"{unit_name}.service": render_service_unit(command),
        output_dir / f"{unit_name}.timer": render_timer_unit(on_calendar, unit_name),
    }
    if not force:
        for path in units:
            if path.exists():
                raise FileExistsError(f"Unit already exists: {path}")

    output_dir.mkdir(parents=True, exist_ok=True)
    for path, content in units.items():
        path.write_text(content)
        logger.info("Wrote %s", path)
    return list(units)
