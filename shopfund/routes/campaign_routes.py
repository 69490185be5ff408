from flask import Blueprint, jsonify, request

from shopfund.services import campaign_service, update_service
from shopfund.utils.authz import current_user, optional_user, require_role
from shopfund.utils.status import BUSINESS_REPRESENTATIVE

campaigns = Blueprint("campaigns", __name__)


# GET /campaigns?status=...&mine=1
@campaigns.get("/campaigns")
def list_campaigns():
    user = optional_user()
    mine = request.args.get("mine") in ("1", "true")
    items = campaign_service.list_visible(user, status=request.args.get("status"), mine=mine)
    return jsonify(items), 200


# POST /campaigns  { name, description, story?, goal, endDate, imageUrl, rewards[], submit? }
@campaigns.post("/campaigns")
@require_role(BUSINESS_REPRESENTATIVE)
def create():
    body = request.get_json(force=True, silent=True) or {}
    status, payload = campaign_service.create_for_owner(current_user(), body)
    return jsonify(payload), status


@campaigns.get("/campaigns/<campaign_id>")
def detail(campaign_id):
    status, payload = campaign_service.get_detail(optional_user(), campaign_id)
    return jsonify(payload), status


# PUT /campaigns/<id>  { fields..., rewards?/newRewards?, deletedRewardIds? }
@campaigns.put("/campaigns/<campaign_id>")
@require_role(BUSINESS_REPRESENTATIVE)
def edit(campaign_id):
    body = request.get_json(force=True, silent=True) or {}
    status, payload = campaign_service.edit(current_user(), campaign_id, body)
    return jsonify(payload), status


@campaigns.post("/campaigns/<campaign_id>/submit")
@require_role(BUSINESS_REPRESENTATIVE)
def submit(campaign_id):
    status, payload = campaign_service.submit_for_review(current_user(), campaign_id)
    return jsonify(payload), status


@campaigns.get("/campaigns/<campaign_id>/progress")
def progress(campaign_id):
    status, payload = campaign_service.progress(campaign_id)
    return jsonify(payload), status


# --- updates, likes and comments ---

# GET /campaigns/<id>/updates?includeScheduled=true  (scheduled ones for the owner or an admin)
@campaigns.get("/campaigns/<campaign_id>/updates")
def list_updates(campaign_id):
    include = request.args.get("includeScheduled") in ("1", "true")
    status, payload = update_service.updates_for(optional_user(), campaign_id, include_scheduled=include)
    return jsonify(payload), status


@campaigns.post("/campaigns/<campaign_id>/updates")
@require_role(BUSINESS_REPRESENTATIVE)
def post_update(campaign_id):
    body = request.get_json(force=True, silent=True) or {}
    status, payload = update_service.post_update(current_user(), campaign_id, body)
    return jsonify(payload), status


# PUT /updates/<id>  { title?, body?, imageUrl?, scheduledFor? }
@campaigns.put("/updates/<update_id>")
@require_role(BUSINESS_REPRESENTATIVE)
def edit_update(update_id):
    body = request.get_json(force=True, silent=True) or {}
    status, payload = update_service.edit_update(current_user(), update_id, body)
    return jsonify(payload), status


@campaigns.delete("/updates/<update_id>")
@require_role()
def delete_update(update_id):
    status, payload = update_service.remove_update(current_user(), update_id)
    return jsonify(payload), status


@campaigns.post("/updates/<update_id>/like")
@require_role()
def like(update_id):
    status, payload = update_service.like(current_user(), update_id)
    return jsonify(payload), status


@campaigns.get("/updates/<update_id>/comments")
def list_comments(update_id):
    status, payload = update_service.comments_for(optional_user(), update_id)
    return jsonify(payload), status


@campaigns.post("/updates/<update_id>/comments")
@require_role()
def post_comment(update_id):
    body = request.get_json(force=True, silent=True) or {}
    status, payload = update_service.post_comment(current_user(), update_id, body)
    return jsonify(payload), status


# PUT /comments/<id>  { body }
@campaigns.put("/comments/<comment_id>")
@require_role()
def edit_comment(comment_id):
    body = request.get_json(force=True, silent=True) or {}
    status, payload = update_service.edit_comment(current_user(), comment_id, body)
    return jsonify(payload), status


@campaigns.delete("/comments/<comment_id>")
@require_role()
def delete_comment(comment_id):
    status, payload = update_service.remove_comment(current_user(), comment_id)
    return jsonify(payload), status
