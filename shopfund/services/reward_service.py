"""
Reward tiers and the lifecycle of claimed rewards.

Viewing a reward's proof never changes it. Redemption is its own call, needs an
explicit confirmation, and only succeeds while the reward is `completed`; the
guard lives in the UPDATE so two scanners racing on one QR code redeem it once.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, Tuple

from shopfund.models.campaign import get_campaign
from shopfund.models.reward_tier import get_tier, list_tiers, tier_stats
from shopfund.models.user_reward import (
    get_user_reward,
    list_for_user,
    list_supporters,
    mark_completed,
    mark_redeemed,
)
from shopfund.realtime import campaign_room, user_room
from shopfund.realtime.events import Event, publish
from shopfund.services.campaign_service import serialize_tier
from shopfund.utils.authz import can_manage_campaign, is_admin
from shopfund.utils.dates import iso
from shopfund.utils.money import to_decimal
from shopfund.utils.reward_tiers import resolve_tier
from shopfund.utils.status import (
    CAMPAIGN_APPROVED,
    REWARD_COMPLETED,
    REWARD_PENDING,
    REWARD_REDEEMED,
    REWARD_REVOKED,
    REWARD_STATUSES,
    InvalidTransition,
    advance_reward,
    proof_notice,
)

log = logging.getLogger(__name__)


def serialize_user_reward(r: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "userRewardId": r["id"],
        "rewardId": r["reward_id"],
        "campaignId": r["campaign_id"],
        "donationId": r.get("donation_id"),
        "status": r["status"],
        "rewardName": r.get("reward_name"),
        "rewardDescription": r.get("reward_description"),
        "campaignName": r.get("campaign_name"),
        "campaignImage": r.get("campaign_image"),
        "shopName": r.get("shop_name"),
        "userId": r["user_id"],
        "username": r.get("username"),
        "email": r.get("email"),
        "claimedAt": iso(r.get("claimed_at")),
        "approvedAt": iso(r.get("approved_at")),
        "redeemedAt": iso(r.get("redeemed_at")),
    }


def _can_view(user, reward: Dict[str, Any]) -> bool:
    if str(reward["user_id"]) == str(user["id"]) or is_admin(user):
        return True
    return str(reward.get("owner_user_id")) == str(user["id"])


def _announce(reward: Dict[str, Any], status: str) -> None:
    publish(
        Event.REWARD_STATUS_CHANGED,
        {
            "user_reward_id": str(reward["id"]),
            "campaign_id": str(reward["campaign_id"]),
            "user_id": str(reward["user_id"]),
            "status": status,
        },
        rooms=[user_room(reward["user_id"]), campaign_room(reward["campaign_id"])],
    )


def tiers_for_campaign(campaign_id: str) -> Tuple[int, Any]:
    camp = get_campaign(campaign_id)
    if not camp:
        return 404, {"error": "campaign not found"}
    return 200, [serialize_tier(t) for t in list_tiers(campaign_id)]


def preview(campaign_id: str, amount: Any) -> Tuple[int, Dict[str, Any]]:
    """What the donation page shows as the amount changes; pure apart from the read."""
    value = to_decimal(amount)
    if value is None or value <= 0:
        return 400, {"error": "amount must be a positive number"}
    camp = get_campaign(campaign_id)
    if not camp or camp["status"] != CAMPAIGN_APPROVED:
        return 404, {"error": "campaign not found"}
    tier = resolve_tier(value, list_tiers(campaign_id))
    return 200, {"amount": float(value), "reward": serialize_tier(tier) if tier else None}


def _tier_for_manager(user, tier_id: str):
    tier = get_tier(tier_id)
    if not tier:
        return None, (404, {"error": "reward not found"})
    camp = get_campaign(tier["campaign_id"])
    if not can_manage_campaign(user, camp):
        return None, (403, {"error": "forbidden"})
    return tier, None


def stats(user, tier_id: str) -> Tuple[int, Dict[str, Any]]:
    tier, err = _tier_for_manager(user, tier_id)
    if err:
        return err
    return 200, {"rewardId": tier["id"], "title": tier["title"], **tier_stats(tier_id)}


def supporters(user, tier_id: str) -> Tuple[int, Any]:
    tier, err = _tier_for_manager(user, tier_id)
    if err:
        return err
    return 200, {
        "rewardId": tier["id"],
        "title": tier["title"],
        "supporters": [serialize_user_reward(r) for r in list_supporters(tier_id)],
    }


def approve(user, user_reward_id: str) -> Tuple[int, Dict[str, Any]]:
    """pending -> completed; only the campaign's owner or an admin."""
    reward = get_user_reward(user_reward_id)
    if not reward:
        return 404, {"error": "reward not found"}
    if not (is_admin(user) or str(reward.get("owner_user_id")) == str(user["id"])):
        return 403, {"error": "forbidden"}
    try:
        advance_reward(reward["status"], REWARD_COMPLETED)
    except InvalidTransition as e:
        return 409, {"error": str(e)}
    if not mark_completed(user_reward_id):
        return 409, {"error": "reward is no longer pending"}
    log.info("[reward] %s approved by %s", user_reward_id, user["id"])
    _announce(reward, REWARD_COMPLETED)
    return 200, {"success": True, "reward": serialize_user_reward(get_user_reward(user_reward_id))}


def proof(user, user_reward_id: str) -> Tuple[int, Dict[str, Any]]:
    """Read-only view behind the reward's QR code."""
    reward = get_user_reward(user_reward_id)
    if not reward:
        return 404, {"error": "reward not found"}
    if not _can_view(user, reward):
        return 403, {"error": "forbidden"}
    return 200, {
        "success": True,
        "reward": serialize_user_reward(reward),
        "notice": proof_notice(reward["status"]),
        "redeemable": reward["status"] == REWARD_COMPLETED,
    }


def redeem(user, user_reward_id: str, confirm: bool) -> Tuple[int, Dict[str, Any]]:
    """completed -> redeemed; replays on a redeemed reward are a no-op read."""
    if not confirm:
        return 400, {"error": "redemption must be confirmed"}
    reward = get_user_reward(user_reward_id)
    if not reward:
        return 404, {"error": "reward not found"}
    if not _can_view(user, reward):
        return 403, {"error": "forbidden"}
    if reward["status"] == REWARD_REDEEMED:
        return 200, {"success": True, "redeemed": False, "already_redeemed": True,
                     "reward": serialize_user_reward(reward)}
    if reward["status"] == REWARD_PENDING:
        return 409, {"error": "reward has not been approved yet"}
    if reward["status"] == REWARD_REVOKED:
        return 409, {"error": "reward was revoked after a refund"}

    if not mark_redeemed(user_reward_id):
        # lost a race with another redeem; report what is there now
        current = get_user_reward(user_reward_id)
        if current and current["status"] == REWARD_REDEEMED:
            return 200, {"success": True, "redeemed": False, "already_redeemed": True,
                         "reward": serialize_user_reward(current)}
        return 409, {"error": "reward cannot be redeemed"}

    log.info("[reward] %s redeemed by %s", user_reward_id, user["id"])
    _announce(reward, REWARD_REDEEMED)
    return 200, {"success": True, "redeemed": True, "already_redeemed": False,
                 "reward": serialize_user_reward(get_user_reward(user_reward_id))}


def buckets_for(user) -> Dict[str, Any]:
    """A supporter's rewards grouped by status."""
    out: Dict[str, list] = {s: [] for s in REWARD_STATUSES}
    for r in list_for_user(user["id"]):
        out.setdefault(r["status"], []).append(serialize_user_reward(r))
    return out
