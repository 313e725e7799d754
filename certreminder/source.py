"""Certificate source: reads expiry dates from a directory of certificates."""

import logging
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from cryptography import x509

from .errors import EntitySkipped, ExpiryParseError, FatalSourceError
from .models import Entity

logger = logging.getLogger(__name__)


def read_expiry(certificate_path: Path, entity_id: str | None = None) -> datetime:
    """Read the expiry date of the first certificate in a PEM chain.

    Args:
        certificate_path: Path to the PEM file.
        entity_id: Entity the file belongs to, used in error messages.

    Returns:
        The timezone-aware ``notAfter`` of the leaf certificate.

    Raises:
        EntitySkipped: If the file cannot be read.
        ExpiryParseError: If the file does not hold a parsable certificate.
    """
    entity_id = entity_id or certificate_path.parent.name
    try:
        data = certificate_path.read_bytes()
    except OSError as e:
        raise EntitySkipped(entity_id, f"cannot read {certificate_path}: {e.strerror or e}") from e

    try:
        # load_pem_x509_certificate only reads the first block of a chain
        cert = x509.load_pem_x509_certificate(data)
    except ValueError as e:
        raise ExpiryParseError(entity_id, f"cannot parse {certificate_path}: {e}") from e

    return cert.not_valid_after_utc


class CertificateSource:
    """A directory of per-domain subdirectories, each holding a PEM chain.

    This is the layout of Let's Encrypt's ``/etc/letsencrypt/live``.
    """

    def __init__(self, root: Path, filename: str = "fullchain.pem"):
        self.root = Path(root)
        self.filename = filename

    def list_entities(self, skipped: dict[str, str] | None = None) -> Iterator[tuple[str, Path]]:
        """Yield ``(entity_id, certificate_path)`` for each domain directory.

        Directories without a certificate file are logged and skipped, and
        recorded in ``skipped`` when a mapping is passed.

        Raises:
            FatalSourceError: If the root directory cannot be listed.
        """
        try:
            children = sorted(self.root.iterdir())
        except OSError as e:
            raise FatalSourceError(f"Cannot read certificate directory {self.root}: {e}") from e

        for child in children:
            if not child.is_dir():
                continue
            cert_path = child / self.filename
            if not cert_path.is_file():
                logger.info("Skipping %s: no %s", child.name, self.filename)
                if skipped is not None:
                    skipped[child.name] = f"no {self.filename}"
                continue
            yield child.name, cert_path

    def read_expiry(self, certificate_path: Path) -> datetime:
        return read_expiry(certificate_path)

    def load_entities(self) -> tuple[list[Entity], dict[str, str]]:
        """Load every entity with a parsable certificate.

        Returns:
            Tuple of (entities, skipped) where skipped maps entity id to reason.

        Raises:
            FatalSourceError: If the root directory cannot be listed.
        """
        entities: list[Entity] = []
        skipped: dict[str, str] = {}

        for entity_id, cert_path in self.list_entities(skipped):
            try:
                expiry = read_expiry(cert_path, entity_id)
            except EntitySkipped as e:
                logger.warning("Skipping %s: %s", entity_id, e.reason)
                skipped[entity_id] = e.reason
                continue
            entities.append(Entity(id=entity_id, certificate_path=cert_path, expiry=expiry))

        logger.debug("Loaded %d certificate(s) from %s", len(entities), self.root)
        return entities, skipped
