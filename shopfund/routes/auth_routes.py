import json
import logging
from urllib.parse import urlencode

from flask import Blueprint, current_app, jsonify, redirect, request
from flask_jwt_extended import set_access_cookies, unset_jwt_cookies

from shopfund.services import auth_service, oauth_service
from shopfund.utils.authz import current_user, require_role
from shopfund.utils.rate_limit import auth_limit, rate_limit_decorator
from shopfund.utils.status import PENDING_ROLE_SELECTION

log = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)

USER_COOKIE = "user"


def _with_session(resp, payload):
    """Attach the httpOnly token cookie and the readable user cookie."""
    user = payload["user"]
    set_access_cookies(resp, payload["token"])
    resp.set_cookie(
        USER_COOKIE,
        json.dumps({"id": user["id"], "username": user["username"], "role": user["role"]}),
        max_age=int(current_app.config["JWT_ACCESS_TOKEN_EXPIRES"].total_seconds()),
        secure=current_app.config["JWT_COOKIE_SECURE"],
        samesite=current_app.config.get("JWT_COOKIE_SAMESITE") or "Lax",
    )
    return resp


@auth_bp.post("/register")
@rate_limit_decorator(auth_limit, key_prefix="register")
def register():
    data = request.get_json(force=True, silent=True) or {}
    status, payload = auth_service.register(data)
    if status != 201:
        return jsonify(payload), status
    return _with_session(jsonify(payload), payload), 201


@auth_bp.post("/login")
@rate_limit_decorator(auth_limit, key_prefix="login")
def login():
    data = request.get_json(force=True, silent=True) or {}
    status, payload = auth_service.login(data)
    if status != 200:
        return jsonify(payload), status
    return _with_session(jsonify(payload), payload), 200


@auth_bp.post("/logout")
def logout():
    resp = jsonify({"success": True})
    unset_jwt_cookies(resp)
    resp.delete_cookie(USER_COOKIE)
    return resp, 200


@auth_bp.get("/auth/check")
@auth_bp.get("/auth/me")
@require_role()
def me():
    return jsonify({"authenticated": True, "user": auth_service.public_user(current_user())}), 200


@auth_bp.post("/auth/role")
@require_role(PENDING_ROLE_SELECTION)
def select_role():
    data = request.get_json(force=True, silent=True) or {}
    status, payload = auth_service.select_role(current_user(), data.get("role"))
    if status != 200:
        return jsonify(payload), status
    return _with_session(jsonify(payload), payload), 200


@auth_bp.put("/profile")
@require_role()
def update_profile():
    data = request.get_json(force=True, silent=True) or {}
    status, payload = auth_service.update_profile(current_user(), data)
    if status != 200:
        return jsonify(payload), status
    return _with_session(jsonify(payload), payload), 200


# --- password reset ---

# POST /auth/forgot-password  { identifier | email | username }
@auth_bp.post("/auth/forgot-password")
@rate_limit_decorator(auth_limit, key_prefix="forgot")
def forgot_password():
    data = request.get_json(force=True, silent=True) or {}
    status, payload = auth_service.forgot_password(data, current_app.config["FRONTEND_URL"])
    return jsonify(payload), status


# POST /auth/reset-password  { token, newPassword }
@auth_bp.post("/auth/reset-password")
@rate_limit_decorator(auth_limit, key_prefix="reset")
def reset_password():
    data = request.get_json(force=True, silent=True) or {}
    status, payload = auth_service.reset_password(
        data.get("token"), data.get("newPassword", data.get("new_password"))
    )
    return jsonify(payload), status


# PUT /users/password?token=...  { password }
@auth_bp.put("/users/password")
@rate_limit_decorator(auth_limit, key_prefix="reset")
def update_password():
    data = request.get_json(force=True, silent=True) or {}
    status, payload = auth_service.reset_password(request.args.get("token"), data.get("password"))
    return jsonify(payload), status


# --- OAuth ---

def _frontend(path: str, **params) -> str:
    base = current_app.config["FRONTEND_URL"].rstrip("/")
    query = f"?{urlencode(params)}" if params else ""
    return f"{base}{path}{query}"


def _start(provider: str):
    try:
        return redirect(oauth_service.authorize_url(provider))
    except oauth_service.OAuthError as e:
        log.warning("[oauth] cannot start %s: %s", provider, e)
        return redirect(_frontend("/login", error="oauth_unavailable"))


def _finish(provider: str):
    if request.args.get("error"):
        return redirect(_frontend("/login", error=request.args["error"]))
    try:
        user = oauth_service.complete_login(
            provider, request.args.get("code"), request.args.get("state")
        )
    except oauth_service.OAuthError as e:
        log.warning("[oauth] %s callback failed: %s", provider, e)
        return redirect(_frontend("/login", error="oauth_failed"))

    payload = {"user": auth_service.public_user(user), "token": auth_service.make_token(user)}
    target = "/role-selection" if user["role"] == PENDING_ROLE_SELECTION else "/auth/callback"
    return _with_session(redirect(_frontend(target)), payload)


@auth_bp.get("/login/google")
def google_login():
    return _start("google")


@auth_bp.get("/login/google/callback")
def google_callback():
    return _finish("google")


@auth_bp.get("/login/azure")
def azure_login():
    return _start("azure")


@auth_bp.get("/login/azure/callback")
def azure_callback():
    return _finish("azure")
