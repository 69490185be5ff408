import logging
from datetime import date
from typing import Any, Dict, Optional, Tuple

from shopfund.models.campaign import get_campaign, recompute_amt_raised
from shopfund.models.donation import (
    create_donation,
    get_donation,
    get_donation_by_order,
    list_for_campaign,
    list_for_user,
    mark_completed,
    mark_refunded,
    set_reward,
)
from shopfund.models.reward_tier import claim_tier_unit, list_tiers, release_tier_unit
from shopfund.models.user_reward import create_user_reward, revoke_for_donation
from shopfund.realtime import campaign_room, user_room
from shopfund.realtime.events import Event, publish
from shopfund.services.campaign_service import serialize_tier
from shopfund.utils import paypal
from shopfund.utils.authz import can_manage_campaign
from shopfund.utils.db import transaction
from shopfund.utils.dates import iso, parse_date
from shopfund.utils.money import to_decimal, to_float
from shopfund.utils.reward_tiers import available_tiers, qualifying_tier, resolve_tier
from shopfund.utils.status import CAMPAIGN_APPROVED, DONATION_COMPLETED, REWARD_REVOKED

log = logging.getLogger(__name__)


def serialize_donation(d: Dict[str, Any]) -> Dict[str, Any]:
    out = {
        "id": d["id"],
        "campaignId": d["campaign_id"],
        "userId": d.get("user_id"),
        "amount": to_float(d["amount"]),
        "currency": d.get("currency") or paypal.CURRENCY,
        "paymentStatus": d["status"],
        "rewardId": d.get("reward_id"),
        "donationDate": iso(d.get("donation_date")),
    }
    if "campaign_name" in d:
        out["campaignName"] = d["campaign_name"]
    return out


def _accepts_donations(camp: Optional[Dict[str, Any]]) -> Optional[str]:
    if not camp or camp["status"] != CAMPAIGN_APPROVED:
        return "campaign is not accepting donations"
    end = parse_date(camp.get("end_date"))
    if end is not None and end < date.today():
        return "campaign has ended"
    return None


def start_order(
    *, campaign_id: str, amount: Any, user_id: Optional[str] = None
) -> Tuple[int, Dict[str, Any]]:
    value = to_decimal(amount)
    if value is None or value <= 0:
        return 400, {"error": "amount must be > 0"}
    camp = get_campaign(campaign_id)
    if not camp:
        return 404, {"error": "campaign not found"}
    reason = _accepts_donations(camp)
    if reason:
        return 400, {"error": reason}

    try:
        order_id = paypal.create_order(
            value, reference_id=str(campaign_id), description=camp["name"]
        )
    except paypal.PayPalError as e:
        log.error("[paypal] create_order failed for campaign %s: %s", campaign_id, e)
        return 502, {"error": "payment provider unavailable"}

    donation = create_donation(
        campaign_id=campaign_id,
        user_id=user_id,
        amount=value,
        currency=paypal.CURRENCY,
        paypal_order_id=order_id,
    )
    tier = resolve_tier(value, list_tiers(campaign_id))
    return 200, {
        "orderId": order_id,
        "donationId": donation["id"],
        "reward": serialize_tier(tier) if tier else None,
        "dev_mode": paypal.dev_mode(),
    }


def _award_reward(donation: Dict[str, Any], cur=None) -> Optional[Dict[str, Any]]:
    """
    Give the donor the best tier their amount reaches, skipping sold-out tiers.
    Anonymous donations and amounts below every threshold earn nothing.
    """
    if not donation.get("user_id"):
        return None
    candidates = available_tiers(list_tiers(donation["campaign_id"]))
    while candidates:
        tier = qualifying_tier(donation["amount"], candidates)
        if tier is None:
            return None
        if claim_tier_unit(tier["id"], cur=cur):
            reward = create_user_reward(
                user_id=donation["user_id"],
                reward_id=tier["id"],
                campaign_id=donation["campaign_id"],
                donation_id=donation["id"],
                cur=cur,
            )
            set_reward(donation["id"], tier["id"], cur=cur)
            return {"userRewardId": reward["id"], "status": reward["status"], **serialize_tier(tier)}
        # sold out between read and claim
        candidates = [t for t in candidates if t["id"] != tier["id"]]
    return None


def capture(order_id: str) -> Tuple[int, Dict[str, Any]]:
    if not order_id:
        return 400, {"error": "orderId is required"}
    donation = get_donation_by_order(order_id)
    if not donation:
        return 404, {"error": "order not found"}
    if donation["status"] == DONATION_COMPLETED:
        return 200, {"paid": True, "duplicate": True, "donation": serialize_donation(donation)}
    if donation["status"] != "pending":
        return 409, {"paid": False, "error": f"donation is {donation['status']}"}

    try:
        result = paypal.capture_order(order_id)
    except paypal.PayPalError as e:
        log.error("[paypal] capture failed for order %s: %s", order_id, e)
        return 502, {"paid": False, "error": "payment provider unavailable"}
    if not result["completed"]:
        return 200, {"paid": False}

    # completion, reward and campaign total commit together; on failure the
    # donation stays pending and the capture can be retried
    with transaction() as cur:
        completed = mark_completed(donation["id"], result.get("capture_id"), cur=cur)
        if completed:
            reward = _award_reward(completed, cur=cur)
            totals = recompute_amt_raised(completed["campaign_id"], cur=cur)
    if not completed:
        # a concurrent capture got there first
        return 200, {"paid": True, "duplicate": True,
                     "donation": serialize_donation(get_donation(donation["id"]))}

    log.info("[donation] %s captured amount=%s reward=%s", completed["id"], completed["amount"],
             (reward or {}).get("rewardId"))

    rooms = [campaign_room(completed["campaign_id"])]
    if completed.get("user_id"):
        rooms.append(user_room(completed["user_id"]))
    publish(
        Event.DONATION_COMPLETED,
        {
            "campaign_id": str(completed["campaign_id"]),
            "donation_id": str(completed["id"]),
            "amount": to_float(completed["amount"]),
            "amt_raised": to_float(totals["amt_raised"]),
        },
        rooms=rooms,
    )
    return 200, {"paid": True, "donation": serialize_donation(completed), "reward": reward}


def refund(donation_id: str) -> Tuple[int, Dict[str, Any]]:
    """
    completed -> refunded. A reward the donation earned is revoked unless it was
    already redeemed, and its tier unit goes back on offer.
    """
    donation = get_donation(donation_id)
    if not donation:
        return 404, {"error": "donation not found"}
    if donation["status"] != DONATION_COMPLETED:
        return 409, {"error": f"donation is {donation['status']}"}
    try:
        paypal.refund_capture(donation.get("paypal_capture_id"))
    except paypal.PayPalError as e:
        log.error("[paypal] refund failed for donation %s: %s", donation_id, e)
        return 502, {"error": "payment provider unavailable"}

    with transaction() as cur:
        refunded = mark_refunded(donation_id, cur=cur)
        revoked = None
        if refunded:
            revoked = revoke_for_donation(donation_id, cur=cur)
            if revoked:
                release_tier_unit(revoked["reward_id"], cur=cur)
            recompute_amt_raised(refunded["campaign_id"], cur=cur)
    if not refunded:
        return 409, {"error": "donation is no longer completed"}

    log.info("[donation] %s refunded; reward revoked=%s", donation_id, bool(revoked))
    if revoked:
        publish(
            Event.REWARD_STATUS_CHANGED,
            {
                "user_reward_id": str(revoked["id"]),
                "campaign_id": str(revoked["campaign_id"]),
                "user_id": str(revoked["user_id"]),
                "status": REWARD_REVOKED,
            },
            rooms=[user_room(revoked["user_id"]), campaign_room(revoked["campaign_id"])],
        )
    return 200, serialize_donation(refunded)


def donations_for(user_id: str):
    return [serialize_donation(d) for d in list_for_user(user_id)]


def donations_for_campaign(user, campaign_id: str) -> Tuple[int, Any]:
    """Analytics feed for the campaign's owner or an admin."""
    camp = get_campaign(campaign_id)
    if not camp:
        return 404, {"error": "campaign not found"}
    if not can_manage_campaign(user, camp):
        return 403, {"error": "forbidden"}
    out = []
    for d in list_for_campaign(campaign_id):
        row = serialize_donation(d)
        row["donor"] = d.get("donor_username")
        out.append(row)
    return 200, out
