"""
Campaign submission rules.

One pure function shared by every path that puts a campaign in front of admins
(create-and-submit, submit, edits of a live campaign). Each failing rule yields
exactly one message so a form can show them all at once.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from shopfund.utils.dates import parse_date
from shopfund.utils.money import to_decimal


def _blank(value: Any) -> bool:
    return not (value or "").strip() if isinstance(value, str) or value is None else False


def validate_tier(tier: Dict[str, Any], index: int) -> List[str]:
    errors = []
    amount = to_decimal(tier.get("amount"))
    if amount is None or amount <= 0:
        errors.append(f"reward tier {index + 1}: amount must be greater than 0")
    if _blank(tier.get("title")):
        errors.append(f"reward tier {index + 1}: title is required")
    qty = tier.get("quantity_available")
    if qty is not None and (isinstance(qty, bool) or not isinstance(qty, int) or qty < 0):
        errors.append(f"reward tier {index + 1}: quantity must be a whole number of 0 or more")
    return errors


def validate_campaign(
    fields: Dict[str, Any],
    tiers: Sequence[Dict[str, Any]],
    today: Optional[date] = None,
) -> List[str]:
    """
    Returns a list of error strings; empty means the campaign may be submitted.

    fields: name, description, goal, end_date, image_url
    tiers:  [{amount, title, description?}, ...]
    """
    today = today or date.today()
    errors: List[str] = []

    if _blank(fields.get("name")):
        errors.append("name is required")
    if _blank(fields.get("description")):
        errors.append("description is required")

    goal = to_decimal(fields.get("goal"))
    if goal is None or goal <= 0:
        errors.append("goal must be greater than 0")

    end = parse_date(fields.get("end_date"))
    if end is None:
        errors.append("end date is required")
    elif end <= today:
        errors.append("end date must be in the future")

    if _blank(fields.get("image_url")):
        errors.append("image is required")

    if not tiers:
        errors.append("at least one reward tier is required")
    for i, tier in enumerate(tiers or []):
        errors.extend(validate_tier(tier, i))

    return errors
