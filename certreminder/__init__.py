"""CertReminder - SSL certificate expiry reminders with self-scheduling follow-ups."""

__version__ = "0.1.0"
