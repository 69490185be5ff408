from flask import Blueprint, Response, jsonify, request
from prometheus_client import REGISTRY, generate_latest, CONTENT_TYPE_LATEST

from shopfund.services import admin_service, campaign_service, shop_service
from shopfund.services.donation_service import refund
from shopfund.utils.authz import current_user, require_admin

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


# --- users ---

@admin_bp.get("/users")
@require_admin
def users():
    return jsonify(admin_service.users()), 200


@admin_bp.put("/users/<user_id>/role")
@require_admin
def change_role(user_id):
    body = request.get_json(force=True, silent=True) or {}
    status, payload = admin_service.change_role(current_user(), user_id, body.get("role"))
    return jsonify(payload), status


@admin_bp.delete("/users/<user_id>")
@require_admin
def delete_user(user_id):
    status, payload = admin_service.remove_user(current_user(), user_id)
    return jsonify(payload), status


# --- shops ---

@admin_bp.get("/shops")
@require_admin
def shops():
    return jsonify(shop_service.shops_by_status(request.args.get("status"))), 200


@admin_bp.put("/shops/<shop_id>/status")
@require_admin
def shop_status(shop_id):
    body = request.get_json(force=True, silent=True) or {}
    status, payload = shop_service.admin_set_status(shop_id, body.get("status"))
    return jsonify(payload), status


@admin_bp.delete("/shops/<shop_id>")
@require_admin
def delete_shop(shop_id):
    if not shop_service.remove(shop_id):
        return jsonify({"error": "shop not found"}), 404
    return jsonify({"success": True}), 200


# --- campaigns ---

@admin_bp.get("/campaigns")
@require_admin
def campaigns():
    items = campaign_service.list_visible(current_user(), status=request.args.get("status"))
    return jsonify(items), 200


@admin_bp.put("/campaigns/<campaign_id>/status")
@require_admin
def campaign_status(campaign_id):
    body = request.get_json(force=True, silent=True) or {}
    status, payload = campaign_service.admin_set_status(campaign_id, body.get("status"))
    return jsonify(payload), status


@admin_bp.delete("/campaigns/<campaign_id>")
@require_admin
def delete_campaign(campaign_id):
    if not campaign_service.remove(campaign_id):
        return jsonify({"error": "campaign not found"}), 404
    return jsonify({"success": True}), 200


# --- comments ---

@admin_bp.get("/comments")
@require_admin
def comments():
    return jsonify(admin_service.comments(request.args.get("limit", 200, type=int))), 200


@admin_bp.delete("/comments/<comment_id>")
@require_admin
def delete_comment(comment_id):
    if not admin_service.remove_comment(comment_id):
        return jsonify({"error": "comment not found"}), 404
    return jsonify({"success": True}), 200


# --- donations and stats ---

@admin_bp.post("/donations/<donation_id>/refund")
@require_admin
def refund_donation(donation_id):
    status, payload = refund(donation_id)
    return jsonify(payload), status


@admin_bp.get("/stats")
@require_admin
def stats():
    return jsonify(admin_service.platform_stats(request.args.get("days", 30, type=int))), 200


# --- datasets ---

@admin_bp.get("/dataset")
@require_admin
def list_datasets():
    status, payload = admin_service.datasets()
    return jsonify(payload), status


@admin_bp.post("/dataset")
@require_admin
def upload_dataset():
    overwrite = request.form.get("overwrite", "").lower() in ("1", "true", "yes")
    status, payload = admin_service.upload_dataset(request.files.get("dataset"), overwrite)
    return jsonify(payload), status


@admin_bp.get("/dataset/<path:filename>")
@require_admin
def get_dataset(filename):
    status, payload = admin_service.fetch_dataset(filename)
    if status != 200:
        return jsonify(payload), status
    return Response(
        payload["body"],
        mimetype=payload["content_type"],
        headers={"Content-Disposition": f'attachment; filename="{payload["filename"]}"'},
    )


@admin_bp.delete("/dataset/<path:filename>")
@require_admin
def delete_dataset(filename):
    status, payload = admin_service.remove_dataset(filename)
    return jsonify(payload), status


@admin_bp.get("/metrics")
@require_admin
def metrics():
    """Prometheus exposition for the platform's counters."""
    return Response(generate_latest(REGISTRY), mimetype=CONTENT_TYPE_LATEST)
