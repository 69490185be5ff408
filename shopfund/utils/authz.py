from functools import wraps
from flask import g, jsonify
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity

from shopfund.models.user import get_user
from shopfund.utils.status import ADMIN_ROLES


def current_user():
    """The authenticated user row, loaded once per request (None if anonymous)."""
    if "current_user" not in g:
        identity = get_jwt_identity()
        g.current_user = get_user(identity) if identity else None
    return g.current_user


def optional_user():
    """For public routes that behave differently for signed-in callers."""
    verify_jwt_in_request(optional=True)
    return current_user()


def is_admin(user) -> bool:
    return bool(user) and user.get("role") in ADMIN_ROLES


def require_role(*allowed):
    """
    Require a valid JWT whose user still exists. With `allowed`, the user's role
    as stored now (not as minted into the token) must be one of them.
    """

    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            user = current_user()
            if user is None:
                return jsonify({"error": "user not found"}), 401
            if allowed and user["role"] not in allowed:
                return (
                    jsonify(
                        {"error": "forbidden", "required": list(allowed), "have": user["role"]}
                    ),
                    403,
                )
            return fn(*args, **kwargs)

        return wrapper

    return deco


def require_admin(fn):
    return require_role(*ADMIN_ROLES)(fn)


def owns_campaign(user, campaign) -> bool:
    return bool(user and campaign) and str(campaign.get("owner_user_id")) == str(user["id"])


def can_manage_campaign(user, campaign) -> bool:
    return is_admin(user) or owns_campaign(user, campaign)
