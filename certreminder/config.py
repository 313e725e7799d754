"""Configuration loader for CertReminder."""

import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Annotated, Any, Literal

import httpx
import yaml
from pydantic import AfterValidator, BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

DEFAULT_CERT_DIR = Path("/etc/letsencrypt/live")
DEFAULT_LOCK_FILE = Path("/run/lock/certreminder.lock")

_INTERVAL_UNITS = {
    "w": 7 * 86400,
    "d": 86400,
    "h": 3600,
    "m": 60,
    "s": 1,
}
_INTERVAL_PART = re.compile(r"(\d+)([wdhms])")


def parse_interval(value: str | None) -> timedelta | None:
    """Parse a follow-up interval such as ``24h``, ``1h30m`` or ``2d3h``.

    Args:
        value: Interval string. Empty string or None means "disabled".

    Returns:
        The interval as a timedelta, or None when disabled.

    Raises:
        ValueError: If the string is not a valid interval.
    """
    if value is None:
        return None
    text = value.strip().lower().replace(" ", "")
    if not text:
        return None

    seconds = 0
    pos = 0
    for match in _INTERVAL_PART.finditer(text):
        if match.start() != pos:
            break
        seconds += int(match.group(1)) * _INTERVAL_UNITS[match.group(2)]
        pos = match.end()

    if pos != len(text):
        raise ValueError(f"Invalid interval {value!r} (expected e.g. '24h', '1h30m', '7d')")
    if seconds == 0:
        raise ValueError(f"Interval {value!r} must be longer than zero")
    return timedelta(seconds=seconds)


def format_interval(interval: timedelta | None) -> str:
    """Format a timedelta back into the compact interval notation."""
    if interval is None:
        return ""
    remaining = int(interval.total_seconds())
    parts = []
    for unit in ("d", "h", "m", "s"):
        size = _INTERVAL_UNITS[unit]
        if remaining >= size:
            parts.append(f"{remaining // size}{unit}")
            remaining %= size
    return "".join(parts) or "0s"


def _validate_interval(value: str) -> str:
    parse_interval(value)
    return value.strip()


IntervalStr = Annotated[str, AfterValidator(_validate_interval)]


class GlobalPolicy(BaseModel):
    """Defaults applied to every certificate."""
    master_email: str = "root@localhost"
    sender_email: str = "SSL Expiry Service <certreminder@localhost>"
    warning_days: int = Field(default=14, ge=0)
    follow_up_interval: IntervalStr = "24h"


class EntityOverride(BaseModel):
    """Sparse per-domain settings. Unset fields inherit from the master policy."""
    recipients: list[str] = Field(default_factory=list)
    warning_days: int | None = Field(default=None, ge=0)
    # None inherits the master interval, "" disables follow-ups for this domain
    follow_up_interval: IntervalStr | None = None

    @field_validator("recipients", mode="before")
    @classmethod
    def _single_recipient(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return value


class CertificatesConfig(BaseModel):
    """Where to find certificates."""
    directory: Path = DEFAULT_CERT_DIR
    filename: str = "fullchain.pem"


class MailConfig(BaseModel):
    """Mail transport configuration."""
    transport: Literal["sendmail", "smtp"] = "sendmail"
    sendmail_path: str = "/usr/sbin/sendmail"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    starttls: bool = False
    username: str = ""
    password: str = ""
    timeout: float = 30.0
    max_concurrent_sends: int = Field(default=1, ge=1, le=32)


class WebhookConfig(BaseModel):
    """Webhook notification configuration."""
    enabled: bool = False
    url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: float = 30.0

    @field_validator("url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        if v:
            try:
                httpx.URL(v)
            except httpx.InvalidURL as e:
                raise ValueError(f"invalid webhook url: {e}") from e
        return v


class SchedulerConfig(BaseModel):
    """Follow-up scheduling configuration."""
    backend: Literal["systemd", "none"] = "systemd"
    unit_name: str = "ssl-expiry-followup"
    systemd_run_path: str = "systemd-run"
    systemctl_path: str = "systemctl"
    # Command re-run by the follow-up timer; defaults to this interpreter running `certreminder run`
    command: list[str] | None = None
    follow_up_mode: Literal["global", "per_entity"] = "global"


class Config(BaseModel):
    """Complete CertReminder configuration."""
    master: GlobalPolicy = Field(default_factory=GlobalPolicy)
    domains: dict[str, EntityOverride] = Field(default_factory=dict)
    certificates: CertificatesConfig = Field(default_factory=CertificatesConfig)
    mail: MailConfig = Field(default_factory=MailConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    lock_file: Path = DEFAULT_LOCK_FILE
    log_level: str = "INFO"

    @field_validator("domains", mode="before")
    @classmethod
    def _empty_domains(cls, value: Any) -> Any:
        # A `domains:` key with only comments beneath it loads as None
        return {} if value is None else value


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR} patterns with environment variables."""
    if isinstance(value, str):
        pattern = r'\$\{(\w+)\}'
        matches = re.findall(pattern, value)
        for match in matches:
            env_val = os.environ.get(match, "")
            value = value.replace(f"${{{match}}}", env_val)
        return value
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(item) for item in value]
    return value


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    Args:
        path: Path to configuration file. If None, returns default config.

    Returns:
        Loaded configuration object.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the file is not valid YAML or fails validation.
    """
    if path is None:
        return Config()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path, "r") as f:
            raw_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Top level of {path} must be a mapping")

    # Substitute environment variables
    raw_config = substitute_env_vars(raw_config)

    try:
        return Config.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigError(str(e)) from e


def generate_example_config() -> str:
    """Generate example configuration YAML content."""
    return """# CertReminder Configuration
# Reminds you about expiring certificates and re-runs itself until they are renewed

master:
  # Receives every reminder, always first in the recipient list
  master_email: "Domain Admin <admin@example.com>"
  sender_email: "SSL Expiry Service <noreply@example.com>"
  # Days before expiry at which reminders start
  warning_days: 14
  # Delay before the follow-up run: "24h", "12h", "7d", "1h30m", "2d3h", "10m".
  # "" sends a single warning with no follow-up.
  follow_up_interval: "24h"

# Per-domain settings (optional). Unset fields fall back to the master settings.
domains:
  yourdomain1.com:
    recipients: "Domain Admin <user1@example.com>"
    warning_days: 10
    follow_up_interval: "11h"
  yourdomain2.com:
    recipients:
      - "Domain Admin <user2@example.com>"
    warning_days: 2
    # "" disables follow-ups for this domain only
    follow_up_interval: ""

certificates:
  directory: /etc/letsencrypt/live
  filename: fullchain.pem

mail:
  transport: sendmail        # sendmail | smtp
  sendmail_path: /usr/sbin/sendmail
  # smtp_host: smtp.example.com
  # smtp_port: 587
  # starttls: true
  # username: "${SMTP_USER}"
  # password: "${SMTP_PASSWORD}"
  max_concurrent_sends: 1

webhook:
  enabled: false
  url: "https://hooks.slack.com/services/YOUR/WEBHOOK/URL"
  # headers:
  #   Authorization: "Bearer your-token"

scheduler:
  backend: systemd           # systemd | none
  unit_name: ssl-expiry-followup
  # global: follow-ups always use master.follow_up_interval
  # per_entity: shortest interval among the domains that triggered a reminder
  follow_up_mode: global

lock_file: /run/lock/certreminder.lock
log_level: INFO
"""
