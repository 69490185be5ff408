from flask import Blueprint, jsonify

core = Blueprint("core", __name__)


@core.get("/")
def root():
    return jsonify({"service": "shopfund-api", "ok": True})


@core.get("/__ping")
def ping():
    return jsonify({"ok": True})


@core.get("/api")
def api_index():
    return jsonify(
        {
            "endpoints": {
                "auth": [
                    "/register (POST)",
                    "/login (POST)",
                    "/logout (POST)",
                    "/auth/me",
                    "/auth/role (POST)",
                    "/login/google",
                    "/login/azure",
                    "/profile (PUT)",
                    "/auth/forgot-password (POST)",
                    "/auth/reset-password (POST)",
                    "/users/password?token= (PUT)",
                ],
                "shops": ["/shops?limit=&page=&category=", "/shops (POST)", "/shops/me", "/shops/<id>"],
                "campaigns": [
                    "/campaigns",
                    "/campaigns/<id>",
                    "/campaigns/<id>/submit (POST)",
                    "/campaigns/<id>/progress",
                    "/campaigns/<id>/updates?includeScheduled=true",
                    "/updates/<id> (PUT, DELETE)",
                    "/updates/<id>/like (POST)",
                    "/updates/<id>/comments",
                    "/comments/<id> (PUT, DELETE)",
                ],
                "rewards": [
                    "/rewards?campaignId=",
                    "/rewards/preview?campaignId=&amount=",
                    "/rewards/<id>/stats",
                    "/rewards/<id>/supporters",
                    "/user-rewards/<id>/approve (PUT)",
                    "/user-rewards/<id>/proof",
                    "/user-rewards/<id>/redeem (POST)",
                    "/me/rewards",
                ],
                "donations": [
                    "/donations/paypal/create-order (POST)",
                    "/donations/paypal/capture-order (POST)",
                    "/campaign/<id>/donation (POST)",
                    "/me/donations",
                    "/donations/campaign/<id>",
                ],
                "admin": ["/admin/users", "/admin/shops", "/admin/campaigns", "/admin/stats"],
            }
        }
    )
