"""Typer CLI for CertReminder."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import __version__
from .config import Config, format_interval, generate_example_config, load_config
from .display import format_days, get_state_label, get_status_color, get_status_emoji
from .errors import AlreadyRunning, ConfigError, FatalSourceError
from .lock import RunLock
from .log import configure_logging
from .models import RunOutcome
from .runner import build_components, default_command, evaluate_all, run_once
from .source import CertificateSource
from .timers import install_units

app = typer.Typer(
    name="certreminder",
    help="SSL Certificate Expiry Reminder - Email reminders with automatic follow-ups until renewal",
    add_completion=False,
)

config_app = typer.Typer(help="Configuration management commands")
app.add_typer(config_app, name="config")

timer_app = typer.Typer(help="Periodic timer management commands")
app.add_typer(timer_app, name="timer")

console = Console()
logger = logging.getLogger("certreminder.cli")

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to configuration file"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output results as JSON"),
]
LogLevelOption = Annotated[
    Optional[str],
    typer.Option("--log-level", "-l", help="Override the configured log level"),
]


def _load_config_or_exit(config_path: Path | None) -> Config:
    try:
        return load_config(config_path)
    except FileNotFoundError:
        console.print(f"[red]Error:[/red] Config file not found: {config_path}")
        raise typer.Exit(1)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] Failed to load config: {e}")
        raise typer.Exit(1)


def print_outcome(outcome: RunOutcome, json_output: bool = False) -> None:
    """Print the decisions of a run to the console.

    Args:
        outcome: Run outcome to display.
        json_output: If True, output a JSON summary.
    """
    if json_output:
        console.print_json(data=outcome.to_summary())
        return

    table = Table(expand=True)
    table.add_column("", width=3)
    table.add_column("Domain")
    table.add_column("Status")
    table.add_column("Warn at", justify="right")
    table.add_column("Recipients", justify="right")

    for decision in outcome.decisions:
        status = decision.status
        color = get_status_color(status)
        table.add_row(
            get_status_emoji(status),
            decision.entity_id,
            f"[{color}]{format_days(decision.days_remaining)}[/{color}]",
            str(decision.policy.warning_days),
            str(len(decision.policy.recipients)) if decision.should_notify else "-",
        )

    for entity_id, reason in outcome.skipped.items():
        table.add_row("⚪", entity_id, f"[dim]Skipped: {reason}[/dim]", "", "")

    header = Text()
    header.append(f"{len(outcome.decisions)} certificate(s), ", style="bold white")
    header.append(f"{len(outcome.notified)} due", style="bold yellow" if outcome.notified else "bold green")

    console.print()
    console.print(Panel(table, title=header, border_style="yellow" if outcome.notified else "green"))


def print_run_summary(outcome: RunOutcome) -> None:
    for dispatch in outcome.dispatches:
        for recipient, error in dispatch.failed.items():
            console.print(f"[red]✗[/red] {dispatch.entity_id} → {recipient}: {error}")

    label = get_state_label(outcome.state)
    if outcome.next_run_delay and not outcome.scheduling_error:
        console.print(f"[dim]{label} in {format_interval(outcome.next_run_delay)}[/dim]")
    elif outcome.scheduling_error:
        console.print(f"[red bold]Follow-up not scheduled:[/red bold] {outcome.scheduling_error}")
    else:
        console.print(f"[dim]{label}[/dim]")


@app.command("run")
def run_command(
    config_path: ConfigOption = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Log reminders and follow-ups instead of sending them"),
    ] = False,
    json_output: JsonOption = False,
    log_level: LogLevelOption = None,
) -> None:
    """Check all certificates once, send reminders, and schedule a follow-up."""
    config = _load_config_or_exit(config_path)
    configure_logging(log_level or config.log_level)

    source, dispatcher, follow_up = build_components(config, config_path, dry_run=dry_run)
    lock = RunLock(config.lock_file)

    if not dry_run:
        try:
            lock.acquire()
        except AlreadyRunning as e:
            logger.warning("%s; skipping this run", e)
            return
        except OSError as e:
            logger.critical("Cannot create lock file %s: %s", config.lock_file, e)
            raise typer.Exit(1)

    try:
        outcome = run_once(config, source, dispatcher, follow_up)
    except FatalSourceError as e:
        logger.critical("%s", e)
        raise typer.Exit(2)
    finally:
        lock.release()

    print_outcome(outcome, json_output)
    if not json_output:
        print_run_summary(outcome)


@app.command("check")
def check_command(
    config_path: ConfigOption = None,
    json_output: JsonOption = False,
    log_level: LogLevelOption = None,
) -> None:
    """Show certificate expiry status without sending anything."""
    config = _load_config_or_exit(config_path)
    configure_logging(log_level or config.log_level)

    source = CertificateSource(config.certificates.directory, config.certificates.filename)
    try:
        outcome = evaluate_all(config, source, datetime.now(timezone.utc))
    except FatalSourceError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    print_outcome(outcome, json_output)


@config_app.command("init")
def config_init_command(
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output file path"),
    ] = Path("config.yaml"),
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing file"),
    ] = False,
) -> None:
    """Generate an example configuration file."""
    if output.exists() and not force:
        console.print(f"[red]Error:[/red] File already exists: {output}")
        console.print("[dim]Use --force to overwrite[/dim]")
        raise typer.Exit(1)

    content = generate_example_config()
    with open(output, "w") as f:
        f.write(content)

    console.print(f"[green]✓[/green] Created configuration file: {output}")


@config_app.command("validate")
def config_validate_command(
    config_file: Annotated[
        Path,
        typer.Argument(help="Configuration file to validate"),
    ],
) -> None:
    """Validate a configuration file."""
    if not config_file.exists():
        console.print(f"[red]Error:[/red] File not found: {config_file}")
        raise typer.Exit(1)

    try:
        config = load_config(config_file)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] Invalid configuration: {e}")
        raise typer.Exit(1)

    console.print("[green]✓[/green] Configuration is valid")

    # Show summary
    master = config.master
    console.print()
    console.print("[bold]Master Settings:[/bold]")
    console.print(f"  Recipient: {master.master_email}")
    console.print(f"  Warning: {master.warning_days} days")
    console.print(f"  Follow-up: {master.follow_up_interval or 'disabled'}")
    console.print(f"  Certificates: {config.certificates.directory}/*/{config.certificates.filename}")

    if config.domains:
        console.print()
        console.print(f"[bold]Domain Overrides:[/bold] {len(config.domains)}")
        for domain in list(config.domains)[:5]:
            console.print(f"  • {domain}")
        if len(config.domains) > 5:
            console.print(f"  [dim]... and {len(config.domains) - 5} more[/dim]")

    console.print()
    console.print(f"[bold]Mail:[/bold] {config.mail.transport}")
    console.print(f"[bold]Follow-ups:[/bold] {config.scheduler.backend} ({config.scheduler.follow_up_mode})")
    if config.webhook.enabled:
        console.print("[bold]Webhook:[/bold] Configured")


@timer_app.command("install")
def timer_install_command(
    config_path: ConfigOption = None,
    output_dir: Annotated[
        Path,
        typer.Option("--output-dir", "-o", help="Directory for the unit files"),
    ] = Path("/etc/systemd/system"),
    on_calendar: Annotated[
        str,
        typer.Option("--on-calendar", help="systemd calendar expression for the periodic check"),
    ] = "daily",
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing units"),
    ] = False,
) -> None:
    """Write the systemd service and timer for the daily check."""
    try:
        written = install_units(output_dir, default_command(config_path), on_calendar, force=force)
    except FileExistsError as e:
        console.print(f"[red]Error:[/red] {e}")
        console.print("[dim]Use --force to overwrite[/dim]")
        raise typer.Exit(1)
    except OSError as e:
        console.print(f"[red]Error:[/red] Cannot write units: {e}")
        raise typer.Exit(1)

    for path in written:
        console.print(f"[green]✓[/green] Created {path}")
    console.print("[dim]Enable with: systemctl daemon-reload && systemctl enable --now certreminder.timer[/dim]")


@app.command("version")
def version_command() -> None:
    """Show version information."""
    console.print(f"[bold]CertReminder[/bold] v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
