"""
Reward tier resolution.

A campaign's tiers are donation thresholds; a donation earns the tier with the
largest threshold not exceeding the donated amount. Input order is whatever the
campaign owner configured, not necessarily ascending.

When two tiers share a threshold the one defined last wins.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from shopfund.utils.money import to_decimal

Tier = Dict[str, Any]


def _best_index(amount: Decimal, tiers: Sequence[Tier]) -> Optional[int]:
    best = None
    best_amount = None
    for i, tier in enumerate(tiers):
        threshold = to_decimal(tier.get("amount"))
        if threshold is None or threshold > amount:
            continue
        # >= so a later tier with an equal threshold replaces the earlier one
        if best_amount is None or threshold >= best_amount:
            best, best_amount = i, threshold
    return best


def resolve_tier(
    amount: Any, tiers: Sequence[Tier], fallback_to_first: bool = True
) -> Optional[Tier]:
    """
    Return the tier a donation of `amount` resolves to.

    Falls back to the first configured tier when nothing qualifies (this is what
    the donation page previews), or None when `fallback_to_first` is off or there
    are no tiers at all. Pure: never mutates `tiers`.
    """
    if not tiers:
        return None
    value = to_decimal(amount)
    idx = _best_index(value, tiers) if value is not None else None
    if idx is not None:
        return tiers[idx]
    return tiers[0] if fallback_to_first else None


def qualifying_tier(amount: Any, tiers: Sequence[Tier]) -> Optional[Tier]:
    """Strict variant used when awarding: below every threshold earns nothing."""
    return resolve_tier(amount, tiers, fallback_to_first=False)


def available_tiers(tiers: Sequence[Tier]) -> List[Tier]:
    """Drop sold-out tiers (quantity_available == 0); None means unlimited."""
    return [t for t in tiers if t.get("quantity_available") is None or t["quantity_available"] > 0]


def sort_tiers(tiers: Sequence[Tier]) -> List[Tier]:
    """Ascending by threshold, stable for equal thresholds."""
    return sorted(tiers, key=lambda t: to_decimal(t.get("amount")) or Decimal("0"))
