from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Tuple

from shopfund.models.campaign import (
    create_campaign,
    get_campaign,
    list_campaigns,
    update_campaign,
    set_campaign_status,
    delete_campaign,
)
from shopfund.models.donation import count_and_last_completed
from shopfund.models.reward_tier import create_tiers, list_tiers, replace_tiers
from shopfund.models.shop import get_shop_by_owner
from shopfund.realtime import campaign_room, user_room
from shopfund.realtime.events import Event, publish
from shopfund.utils.authz import can_manage_campaign, is_admin, owns_campaign
from shopfund.utils.campaign_validation import validate_campaign, validate_tier
from shopfund.utils.dates import days_left, iso, parse_date
from shopfund.utils.money import percent_of, to_decimal, to_float
from shopfund.utils.status import (
    CAMPAIGN_APPROVED,
    CAMPAIGN_DRAFT,
    CAMPAIGN_PENDING,
    InvalidTransition,
    admin_campaign_transition,
    owner_campaign_transition,
)

log = logging.getLogger(__name__)

# live campaigns must stay valid through edits
_REVALIDATE_ON_EDIT = (CAMPAIGN_PENDING, CAMPAIGN_APPROVED)


def serialize_tier(t: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "rewardId": t["id"],
        "campaignId": t.get("campaign_id"),
        "amount": to_float(t["amount"]),
        "title": t["title"],
        "description": t.get("description"),
        "quantityAvailable": t.get("quantity_available"),
    }


def serialize_campaign(c: Dict[str, Any], tiers: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    out = {
        "id": c["id"],
        "shopId": c["shop_id"],
        "shopName": c.get("shop_name"),
        "ownerUserId": c.get("owner_user_id"),
        "name": c["name"],
        "description": c.get("description"),
        "story": c.get("story"),
        "goal": to_float(c.get("goal")),
        "amtRaised": to_float(c.get("amt_raised")) or 0.0,
        "endDate": iso(c.get("end_date")),
        "daysLeft": days_left(c.get("end_date")),
        "status": c["status"],
        "imageUrl": c.get("image_url"),
        "createdAt": iso(c.get("created_at")),
    }
    if tiers is not None:
        out["rewardTiers"] = [serialize_tier(t) for t in tiers]
    return out


def campaign_fields(body: Dict[str, Any]) -> Dict[str, Any]:
    """Accepts both the form's camelCase names and snake_case."""

    def pick(*keys):
        for k in keys:
            if k in body:
                return body[k]
        return None

    name = pick("name", "campaignName")
    description = pick("description")
    story = pick("story")
    image_url = pick("image_url", "imageUrl", "image")
    return {
        "name": name.strip() if isinstance(name, str) else name,
        "description": description.strip() if isinstance(description, str) else description,
        "story": story,
        "goal": pick("goal"),
        "end_date": pick("end_date", "endDate"),
        "image_url": image_url.strip() if isinstance(image_url, str) else image_url,
    }


def _quantity(raw: Any) -> Any:
    """Whole numbers (or their string form) become ints; anything else is left for validation to reject."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    return raw


def tiers_from_body(raw: Any) -> List[Dict[str, Any]]:
    tiers = []
    if not isinstance(raw, list):
        return tiers
    for t in raw:
        if not isinstance(t, dict):
            continue
        title = t.get("title") or t.get("rewardName")
        description = t.get("description", t.get("rewardDescription"))
        tiers.append(
            {
                "amount": t.get("amount", t.get("donationAmount")),
                "title": title.strip() if isinstance(title, str) else "",
                "description": description if isinstance(description, str) else None,
                "quantity_available": _quantity(t.get("quantity_available", t.get("quantityAvailable"))),
            }
        )
    return tiers


def tier_errors(tiers: List[Dict[str, Any]]) -> List[str]:
    errors: List[str] = []
    for i, tier in enumerate(tiers):
        errors.extend(validate_tier(tier, i))
    return errors


def _db_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": fields.get("name"),
        "description": fields.get("description"),
        "story": fields.get("story"),
        "goal": to_decimal(fields.get("goal")),
        "end_date": parse_date(fields.get("end_date")),
        "image_url": fields.get("image_url"),
    }


def _db_tiers(tiers: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{**t, "amount": to_decimal(t["amount"])} for t in tiers]


def _announce_status(campaign: Dict[str, Any]) -> None:
    publish(
        Event.CAMPAIGN_STATUS_CHANGED,
        {"campaign_id": str(campaign["id"]), "status": campaign["status"]},
        rooms=[campaign_room(campaign["id"]), user_room(campaign["owner_user_id"])],
    )


def list_visible(user, status: Optional[str] = None, mine: bool = False) -> List[Dict[str, Any]]:
    """
    Anonymous users and supporters see approved campaigns only; admins may filter
    by any status; `mine` lists the caller's own campaigns in every state.
    """
    if mine and user:
        rows = list_campaigns(owner_user_id=user["id"], status=status)
    elif is_admin(user):
        rows = list_campaigns(status=status)
    else:
        rows = list_campaigns(status=CAMPAIGN_APPROVED)
    return [serialize_campaign(c) for c in rows]


def get_detail(user, campaign_id: str) -> Tuple[int, Dict[str, Any]]:
    camp = get_campaign(campaign_id)
    if not camp:
        return 404, {"error": "campaign not found"}
    if camp["status"] != CAMPAIGN_APPROVED and not can_manage_campaign(user, camp):
        return 404, {"error": "campaign not found"}
    return 200, serialize_campaign(camp, list_tiers(campaign_id))


def create_for_owner(user, body: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
    shop = get_shop_by_owner(user["id"])
    if not shop:
        return 404, {"error": "register your shop before creating a campaign"}

    fields = campaign_fields(body)
    tiers = tiers_from_body(body.get("rewards") or body.get("rewardTiers"))
    submit = bool(body.get("submit"))

    if submit:
        errors = validate_campaign(fields, tiers)
        if errors:
            return 400, {"error": "campaign is incomplete", "errors": errors}
    elif not fields.get("name"):
        return 400, {"error": "name is required", "errors": ["name is required"]}

    bad_tiers = tier_errors(tiers)
    if bad_tiers:
        return 400, {"error": "every reward tier needs an amount above 0 and a title", "errors": bad_tiers}

    status = CAMPAIGN_PENDING if submit else CAMPAIGN_DRAFT
    camp = create_campaign(shop["id"], status=status, **_db_fields(fields))
    saved = create_tiers(camp["id"], _db_tiers(tiers)) if tiers else []
    log.info("[campaign] created %s status=%s by %s", camp["id"], status, user["id"])
    return 201, serialize_campaign(camp, saved)


def edit(user, campaign_id: str, body: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
    camp = get_campaign(campaign_id)
    if not camp:
        return 404, {"error": "campaign not found"}
    if not owns_campaign(user, camp):
        return 403, {"error": "forbidden"}

    raw_fields = body.get("fields") if isinstance(body.get("fields"), dict) else body
    fields = campaign_fields(raw_fields)
    new_tiers = tiers_from_body(body.get("newRewards") or body.get("rewards"))
    raw_deleted = body.get("deletedRewardIds")
    deleted_ids = [str(i) for i in raw_deleted] if isinstance(raw_deleted, list) else []

    bad_tiers = tier_errors(new_tiers)
    if bad_tiers:
        return 400, {"error": "every reward tier needs an amount above 0 and a title", "errors": bad_tiers}

    current_tiers = list_tiers(campaign_id)
    if camp["status"] in _REVALIDATE_ON_EDIT:
        merged = {k: (fields[k] if fields.get(k) is not None else camp.get(k)) for k in fields}
        remaining = [t for t in current_tiers if str(t["id"]) not in deleted_ids]
        errors = validate_campaign(merged, remaining + new_tiers)
        if errors:
            return 400, {"error": "campaign is incomplete", "errors": errors}

    updated = update_campaign(campaign_id, **_db_fields(fields))
    tiers = current_tiers
    if new_tiers or deleted_ids:
        tiers = replace_tiers(campaign_id, _db_tiers(new_tiers), deleted_ids)
    return 200, serialize_campaign(updated, tiers)


def submit_for_review(user, campaign_id: str) -> Tuple[int, Dict[str, Any]]:
    camp = get_campaign(campaign_id)
    if not camp:
        return 404, {"error": "campaign not found"}
    if not owns_campaign(user, camp):
        return 403, {"error": "forbidden"}
    try:
        owner_campaign_transition(camp["status"], CAMPAIGN_PENDING)
    except InvalidTransition as e:
        return 409, {"error": str(e)}

    tiers = list_tiers(campaign_id)
    errors = validate_campaign(camp, tiers)
    if errors:
        return 400, {"error": "campaign is incomplete", "errors": errors}

    updated = set_campaign_status(campaign_id, CAMPAIGN_PENDING, expected=CAMPAIGN_DRAFT)
    if not updated:
        return 409, {"error": "campaign changed while submitting"}
    _announce_status(updated)
    return 200, serialize_campaign(updated, tiers)


def admin_set_status(campaign_id: str, status: str) -> Tuple[int, Dict[str, Any]]:
    camp = get_campaign(campaign_id)
    if not camp:
        return 404, {"error": "campaign not found"}
    try:
        admin_campaign_transition(camp["status"], status)
    except ValueError as e:
        return 400, {"error": str(e)}
    except InvalidTransition:
        return 400, {"error": "status unchanged"}
    updated = set_campaign_status(campaign_id, status)
    if not updated:
        return 404, {"error": "campaign not found"}
    log.info("[campaign] %s %s -> %s", campaign_id, camp["status"], status)
    _announce_status(updated)
    return 200, serialize_campaign(updated)


def remove(campaign_id: str) -> bool:
    return delete_campaign(campaign_id)


def progress(campaign_id: str) -> Tuple[int, Dict[str, Any]]:
    camp = get_campaign(campaign_id)
    if not camp:
        return 404, {"error": "campaign not found"}
    count, last_dt = count_and_last_completed(campaign_id)
    goal = to_decimal(camp.get("goal")) or to_decimal(0)
    raised = to_decimal(camp.get("amt_raised")) or to_decimal(0)
    return 200, {
        "campaign_id": camp["id"],
        "goal": float(goal),
        "amt_raised": float(raised),
        "percent": percent_of(raised, goal),
        "donations_count": count,
        "last_donation_at": last_dt,
        "days_left": days_left(camp.get("end_date")),
    }
