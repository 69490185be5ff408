from flask import Blueprint, jsonify, request

from shopfund.services.donation_service import capture, donations_for, donations_for_campaign, start_order
from shopfund.utils.authz import current_user, optional_user, require_role

donations_bp = Blueprint("donations", __name__)


def _start(campaign_id, amount):
    if not campaign_id or amount is None:
        return jsonify({"error": "campaignId and amount are required"}), 400
    user = optional_user()
    status, payload = start_order(
        campaign_id=campaign_id, amount=amount, user_id=user["id"] if user else None
    )
    return jsonify(payload), status


# POST /donations/paypal/create-order  { campaignId, amount }
@donations_bp.post("/donations/paypal/create-order")
def create_order():
    body = request.get_json(force=True, silent=True) or {}
    return _start(body.get("campaignId") or body.get("campaign_id"), body.get("amount"))


# POST /campaign/<id>/donation  { amount }
@donations_bp.post("/campaign/<campaign_id>/donation")
def donate_to_campaign(campaign_id):
    body = request.get_json(force=True, silent=True) or {}
    return _start(campaign_id, body.get("amount"))


# POST /donations/paypal/capture-order  { orderId }
@donations_bp.post("/donations/paypal/capture-order")
def capture_order():
    body = request.get_json(force=True, silent=True) or {}
    status, payload = capture(body.get("orderId") or body.get("order_id"))
    return jsonify(payload), status


@donations_bp.get("/me/donations")
@require_role()
def my_donations():
    return jsonify(donations_for(current_user()["id"])), 200


# GET /donations/campaign/<id>  (campaign owner or admin)
@donations_bp.get("/donations/campaign/<campaign_id>")
@require_role()
def campaign_donations(campaign_id):
    status, payload = donations_for_campaign(current_user(), campaign_id)
    return jsonify(payload), status
