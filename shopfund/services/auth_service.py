import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import bcrypt
from flask_jwt_extended import create_access_token
from psycopg2.errors import UniqueViolation

from shopfund.models.password_reset import create_reset_token, get_valid_token, mark_token_used
from shopfund.models.user import (
    create_user,
    email_taken,
    get_user,
    get_user_for_login,
    set_password,
    set_user_role,
    update_profile as update_profile_row,
    username_taken,
)
from shopfund.realtime import user_room
from shopfund.realtime.events import Event, publish
from shopfund.utils.db import transaction
from shopfund.utils.mailer import send_email
from shopfund.utils.status import PENDING_ROLE_SELECTION, SELECTABLE_ROLES, SUPPORTER
from shopfund.utils.validators import (
    is_email_valid,
    is_strong_password,
    is_username_valid,
    normalize_email,
)

log = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash in the row
        return False


def make_token(user: Dict[str, Any]) -> str:
    return create_access_token(
        identity=str(user["id"]),
        additional_claims={"role": user["role"], "username": user["username"]},
    )


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """What the readable `user` cookie and /auth/me carry."""
    return {
        "id": str(user["id"]),
        "username": user["username"],
        "email": user.get("email"),
        "role": user["role"],
        "profilePicture": user.get("profile_picture"),
    }


def register(data: dict) -> Tuple[int, Dict[str, Any]]:
    username = (data.get("username") or "").strip()
    email = normalize_email(data.get("email", ""))
    password = data.get("password") or ""
    role = data.get("user_type") or data.get("role") or SUPPORTER

    if not is_username_valid(username):
        return 400, {"error": "Username must contain at least 5 letters", "field": "username"}
    if not is_email_valid(email):
        return 400, {"error": "Invalid email format", "field": "email"}
    if not is_strong_password(password):
        return 400, {
            "error": "Password needs 8+ characters with upper and lower case letters, a digit and a symbol",
            "field": "password",
        }
    if role not in SELECTABLE_ROLES:
        return 400, {"error": "Invalid user type", "field": "user_type"}
    if username_taken(username):
        return 400, {"error": "Username already taken", "field": "username"}
    if email_taken(email):
        return 400, {"error": "Email already registered", "field": "email"}

    try:
        user = create_user(username, email, hash_password(password), role)
    except UniqueViolation:
        return 400, {"error": "Username or email already registered", "field": "username"}
    log.info("[auth] registered %s role=%s", user["id"], role)
    return 201, {"user": public_user(user), "token": make_token(user)}


def login(data: dict) -> Tuple[int, Dict[str, Any]]:
    login_name = (data.get("username") or data.get("email") or "").strip()
    password = data.get("password") or ""
    if not login_name or not password:
        return 400, {"error": "username and password are required"}

    user = get_user_for_login(login_name)
    if not user or not verify_password(password, user.get("password_hash")):
        return 401, {"error": "Invalid credentials"}
    user.pop("password_hash", None)
    return 200, {"user": public_user(user), "token": make_token(user)}


def select_role(user: Dict[str, Any], role: str) -> Tuple[int, Dict[str, Any]]:
    """First-time OAuth users pick their role once."""
    if user["role"] != PENDING_ROLE_SELECTION:
        return 409, {"error": "role already selected"}
    if role not in SELECTABLE_ROLES:
        return 400, {"error": "invalid role", "allowed": list(SELECTABLE_ROLES)}
    updated = set_user_role(user["id"], role)
    if not updated:
        return 404, {"error": "user not found"}
    return 200, {"user": public_user(updated), "token": make_token(updated)}


def update_profile(user: Dict[str, Any], data: dict) -> Tuple[int, Dict[str, Any]]:
    username = data.get("username")
    picture = data.get("profile_picture", data.get("profilePicture"))

    if username is not None:
        username = username.strip()
        if not is_username_valid(username):
            return 400, {"error": "Username must contain at least 5 letters", "field": "username"}
        if username != user["username"] and username_taken(username):
            return 400, {"error": "Username already taken", "field": "username"}

    try:
        updated = update_profile_row(user["id"], username=username, profile_picture=picture)
    except UniqueViolation:
        return 400, {"error": "Username already taken", "field": "username"}
    if not updated:
        return 404, {"error": "user not found"}

    out = public_user(updated)
    publish(Event.PROFILE_UPDATED, out, rooms=[user_room(updated["id"])])
    return 200, {"user": out, "token": make_token(updated)}


def me(user_id: str) -> Optional[Dict[str, Any]]:
    user = get_user(user_id)
    return public_user(user) if user else None


RESET_PATH = "/reset-password"
_RESET_SENT = {"success": True, "message": "If that account exists, a reset link is on its way."}
_BAD_TOKEN = "invalid or expired token"
_WEAK_PASSWORD = "Password needs 8+ characters with upper and lower case letters, a digit and a symbol"


def forgot_password(data: dict, frontend_url: str) -> Tuple[int, Dict[str, Any]]:
    """
    Email a one-hour reset link. The reply is the same whether or not the
    account exists, so the endpoint does not reveal who is registered.
    """
    identifier = (data.get("identifier") or data.get("email") or data.get("username") or "").strip()
    if not identifier:
        return 400, {"error": "email or username is required"}

    user = get_user_for_login(identifier)
    if not user or not user.get("email"):
        log.info("[auth] reset requested for an unknown account")
        return 200, _RESET_SENT

    token = create_reset_token(user["id"])
    link = f"{frontend_url.rstrip('/')}{RESET_PATH}?{urlencode({'token': token})}"
    provider, detail = send_email(
        to_email=user["email"],
        subject="Reset your shopfund password",
        body_text=(
            f"Hi {user['username']},\n\n"
            f"Use this link within the next hour to choose a new password:\n{link}\n\n"
            "If you did not ask for this, you can ignore this email."
        ),
    )
    if provider is None:
        log.warning("[auth] reset email for %s not sent: %s", user["id"], detail)
    return 200, _RESET_SENT


def reset_password(token: Optional[str], new_password: Optional[str]) -> Tuple[int, Dict[str, Any]]:
    """Spend a reset token on a new password. A token works once."""
    if not token:
        return 400, {"error": "reset token is required", "message": "reset token is required"}
    if not isinstance(new_password, str) or not is_strong_password(new_password):
        return 400, {"error": _WEAK_PASSWORD, "message": _WEAK_PASSWORD, "field": "password"}

    row = get_valid_token(token)
    if not row:
        return 400, {"error": _BAD_TOKEN, "message": _BAD_TOKEN}

    with transaction() as cur:
        # token and password change commit together
        if mark_token_used(row["id"], cur=cur):
            set_password(row["user_id"], hash_password(new_password), cur=cur)
            spent = True
        else:
            spent = False
    if not spent:
        return 400, {"error": _BAD_TOKEN, "message": _BAD_TOKEN}
    log.info("[auth] password reset for %s", row["user_id"])
    return 200, {"success": True, "message": "Password reset successfully"}
