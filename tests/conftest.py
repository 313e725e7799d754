"""Shared fixtures: real certificates on disk plus fake mail and scheduler backends."""

from datetime import datetime, timedelta, timezone
from email.message import EmailMessage
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from certreminder.errors import DispatchFailure, SchedulingFailure

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def make_certificate_pem(common_name: str, not_after: datetime) -> bytes:
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_after - timedelta(days=90))
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM)


class CertStore:
    """A Let's Encrypt style ``live`` directory built inside tmp_path."""

    def __init__(self, root: Path, now: datetime = NOW):
        self.root = root
        self.now = now
        self.root.mkdir(parents=True, exist_ok=True)

    def add(self, domain: str, days: float, chain_days: float | None = None) -> Path:
        """Add a certificate expiring ``days`` days after ``now``.

        With ``chain_days`` an issuer certificate with a different expiry is
        appended after the leaf.
        """
        directory = self.root / domain
        directory.mkdir(exist_ok=True)
        pem = make_certificate_pem(domain, self.now + timedelta(days=days))
        if chain_days is not None:
            pem += make_certificate_pem("Test Intermediate", self.now + timedelta(days=chain_days))
        path = directory / "fullchain.pem"
        path.write_bytes(pem)
        return path

    def add_malformed(self, domain: str) -> Path:
        directory = self.root / domain
        directory.mkdir(exist_ok=True)
        path = directory / "fullchain.pem"
        path.write_text("-----BEGIN CERTIFICATE-----\nnot a certificate\n-----END CERTIFICATE-----\n")
        return path

    def add_empty_dir(self, domain: str) -> Path:
        directory = self.root / domain
        directory.mkdir(exist_ok=True)
        return directory


class FakeTransport:
    """Mail transport that records messages and can reject chosen recipients."""

    def __init__(self, fail_for: set[str] | None = None):
        self.fail_for = fail_for or set()
        self.messages: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        if message["To"] in self.fail_for:
            raise DispatchFailure(f"relay rejected {message['To']}")
        self.messages.append(message)

    @property
    def recipients(self) -> list[str]:
        return [m["To"] for m in self.messages]


class FakeScheduler:
    """Scheduler port that records follow-up requests."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.requests: list[tuple[str, timedelta, list[str]]] = []

    def schedule_once(self, name, delay, payload):
        if self.fail:
            raise SchedulingFailure("systemd-run exited with 1: Failed to start transient timer unit")
        self.requests.append((name, delay, list(payload)))


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def certs(tmp_path):
    """Empty certificate store under tmp_path/live."""
    return CertStore(tmp_path / "live")


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def scheduler():
    return FakeScheduler()
