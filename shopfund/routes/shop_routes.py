from flask import Blueprint, jsonify, request

from shopfund.services import shop_service
from shopfund.utils.authz import current_user, require_role
from shopfund.utils.status import BUSINESS_REPRESENTATIVE

shops = Blueprint("shops", __name__)


# GET /shops?limit=&page=&category=  (verified shops, public)
@shops.get("/shops")
def directory():
    status, payload = shop_service.public_page(
        request.args.get("limit"), request.args.get("page"), request.args.get("category")
    )
    return jsonify(payload), status


@shops.post("/shops")
@require_role(BUSINESS_REPRESENTATIVE)
def create():
    body = request.get_json(force=True, silent=True) or {}
    status, payload = shop_service.register_shop(current_user(), body)
    return jsonify(payload), status


@shops.get("/shops/me")
@require_role(BUSINESS_REPRESENTATIVE)
def mine():
    status, payload = shop_service.my_shop(current_user())
    return jsonify(payload), status


@shops.get("/shops/<shop_id>")
def detail(shop_id):
    status, payload = shop_service.shop_detail(shop_id)
    return jsonify(payload), status
