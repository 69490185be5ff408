from flask import Blueprint, jsonify, request

from shopfund.services import reward_service
from shopfund.utils.authz import current_user, require_role

rewards = Blueprint("rewards", __name__)


# GET /rewards?campaignId=...
@rewards.get("/rewards")
def list_for_campaign():
    campaign_id = request.args.get("campaignId") or request.args.get("campaign_id")
    if not campaign_id:
        return jsonify({"error": "campaignId is required"}), 400
    status, payload = reward_service.tiers_for_campaign(campaign_id)
    return jsonify(payload), status


# GET /rewards/preview?campaignId=...&amount=...
@rewards.get("/rewards/preview")
def preview():
    campaign_id = request.args.get("campaignId") or request.args.get("campaign_id")
    if not campaign_id:
        return jsonify({"error": "campaignId is required"}), 400
    status, payload = reward_service.preview(campaign_id, request.args.get("amount"))
    return jsonify(payload), status


@rewards.get("/rewards/<reward_id>/stats")
@require_role()
def stats(reward_id):
    status, payload = reward_service.stats(current_user(), reward_id)
    return jsonify(payload), status


@rewards.get("/rewards/<reward_id>/supporters")
@require_role()
def supporters(reward_id):
    status, payload = reward_service.supporters(current_user(), reward_id)
    return jsonify(payload), status


@rewards.put("/user-rewards/<user_reward_id>/approve")
@require_role()
def approve(user_reward_id):
    status, payload = reward_service.approve(current_user(), user_reward_id)
    return jsonify(payload), status


@rewards.get("/user-rewards/<user_reward_id>/proof")
@require_role()
def proof(user_reward_id):
    status, payload = reward_service.proof(current_user(), user_reward_id)
    return jsonify(payload), status


# POST|PUT /user-rewards/<id>/redeem  { confirm: true }
@rewards.route("/user-rewards/<user_reward_id>/redeem", methods=["POST", "PUT"])
@require_role()
def redeem(user_reward_id):
    body = request.get_json(force=True, silent=True) or {}
    status, payload = reward_service.redeem(
        current_user(), user_reward_id, body.get("confirm") is True
    )
    return jsonify(payload), status


@rewards.get("/me/rewards")
@require_role()
def my_rewards():
    return jsonify(reward_service.buckets_for(current_user())), 200
