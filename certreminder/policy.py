"""Resolve per-domain overrides against the master policy."""

from collections.abc import Mapping

from .config import EntityOverride, GlobalPolicy, parse_interval
from .models import Policy


def resolve(
    entity_id: str,
    master: GlobalPolicy,
    overrides: Mapping[str, EntityOverride],
) -> Policy:
    """Build the effective policy for one entity.

    Each override field that is set wins over the master value. Recipients are
    additive: the master address always comes first.

    Args:
        entity_id: Entity to resolve.
        master: Global defaults.
        overrides: Sparse per-entity overrides.

    Returns:
        The effective Policy.
    """
    override = overrides.get(entity_id) or EntityOverride()

    warning_days = master.warning_days
    if override.warning_days is not None:
        warning_days = override.warning_days

    interval = master.follow_up_interval
    if override.follow_up_interval is not None:
        interval = override.follow_up_interval

    return Policy(
        warning_days=warning_days,
        recipients=[master.master_email, *override.recipients],
        follow_up_interval=parse_interval(interval),
    )
