"""Stateless tier matching.

Pure functions deciding which tiers a value falls into. No I/O, no state;
the per-message fired markers live in ``ThresholdEvaluator``.
"""

from collections.abc import Iterable

from src.alerts.schemas import AlertState, Tier


def tier_matches(tier: Tier, value: int) -> bool:
    """Check whether ``value`` lies strictly inside the tier's bounds.

    Args:
        tier: Tier with optional exclusive bounds.
        value: Representative heart count.

    Returns:
        True if the value is inside the band.
    """
    if tier.lower_bound is not None and value <= tier.lower_bound:
        return False
    if tier.upper_bound is not None and value >= tier.upper_bound:
        return False
    return True


def matching_tiers(value: int, tiers: Iterable[Tier]) -> list[Tier]:
    """Return every tier matching ``value``, in declaration order.

    Tiers may overlap, so a value can match several at once.
    """
    return [tier for tier in tiers if tier_matches(tier, value)]


def unfired_matches(
    value: int,
    tiers: Iterable[Tier],
    state: AlertState,
) -> tuple[list[Tier], list[Tier]]:
    """Split the tiers matching ``value`` by whether they already fired.

    Args:
        value: Representative heart count.
        tiers: Configured tier table.
        state: Alert state of the message being evaluated.

    Returns:
        Tuple of (tiers to fire now, matching tiers suppressed because they
        already fired for this message).
    """
    to_fire: list[Tier] = []
    suppressed: list[Tier] = []
    for tier in matching_tiers(value, tiers):
        if state.has_fired(tier.name):
            suppressed.append(tier)
        else:
            to_fire.append(tier)
    return to_fire, suppressed
