"""Exception types for CertReminder."""


class CertReminderError(Exception):
    """Base class for all CertReminder errors."""


class ConfigError(CertReminderError):
    """Configuration could not be loaded or is invalid."""


class EntitySkipped(CertReminderError):
    """An entity has no readable certificate and is left out of this run."""

    def __init__(self, entity_id: str, reason: str):
        super().__init__(f"{entity_id}: {reason}")
        self.entity_id = entity_id
        self.reason = reason


class ExpiryParseError(EntitySkipped):
    """A certificate exists but its expiry date could not be parsed."""


class DispatchFailure(CertReminderError):
    """The mail transport failed to accept one message."""


class SchedulingFailure(CertReminderError):
    """The re-invocation mechanism refused a follow-up request."""


class FatalSourceError(CertReminderError):
    """The certificate store itself is inaccessible."""


class AlreadyRunning(CertReminderError):
    """Another run holds the single-instance lock."""
