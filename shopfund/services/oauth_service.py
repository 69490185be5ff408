"""
Google and Microsoft (Azure AD) sign-in using the authorization-code flow.

The browser is sent to the provider with a random `state` kept in the Flask
session; the callback checks it, trades the code for tokens, reads the profile and
finds or creates the local user. New users land in PENDING_ROLE_SELECTION until
they pick a role through POST /auth/role.

A provider identity is linked to an existing local account only when the
provider vouches for the email address: Google's `email_verified`, or for Azure
the `xms_edov` claim or a single-tenant directory set through AZURE_TENANT.
"""

import logging
import os
import re
import secrets
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests
from flask import session, url_for

from shopfund.models.user import (
    create_user,
    get_user_by_email,
    get_user_by_provider,
    link_provider,
    username_taken,
)
from shopfund.utils.status import PENDING_ROLE_SELECTION
from shopfund.utils.validators import normalize_email

log = logging.getLogger(__name__)

TIMEOUT = 10


class OAuthError(Exception):
    pass


def _azure_tenant() -> str:
    return os.getenv("AZURE_TENANT", "common")


# multi-tenant endpoints accept any directory, so their email claims are unchecked
_SHARED_TENANTS = ("common", "organizations", "consumers")


PROVIDERS: Dict[str, Dict[str, Any]] = {
    "google": {
        "authorize_url": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "userinfo_url": "https://openidconnect.googleapis.com/v1/userinfo",
        "scope": "openid email profile",
        "client_id_env": "GOOGLE_CLIENT_ID",
        "client_secret_env": "GOOGLE_CLIENT_SECRET",
    },
    "azure": {
        "authorize_url": "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/authorize",
        "token_url": "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token",
        "userinfo_url": "https://graph.microsoft.com/oidc/userinfo",
        "scope": "openid email profile User.Read",
        "client_id_env": "AZURE_CLIENT_ID",
        "client_secret_env": "AZURE_CLIENT_SECRET",
    },
}


def _provider(name: str) -> Dict[str, Any]:
    if name not in PROVIDERS:
        raise OAuthError(f"unknown provider: {name}")
    cfg = PROVIDERS[name]
    client_id = os.getenv(cfg["client_id_env"])
    client_secret = os.getenv(cfg["client_secret_env"])
    if not client_id or not client_secret:
        raise OAuthError(f"{name} sign-in is not configured")
    tenant = _azure_tenant()
    return {
        **cfg,
        "authorize_url": cfg["authorize_url"].format(tenant=tenant),
        "token_url": cfg["token_url"].format(tenant=tenant),
        "client_id": client_id,
        "client_secret": client_secret,
    }


def _redirect_uri(name: str) -> str:
    return url_for(f"auth.{name}_callback", _external=True)


def authorize_url(name: str) -> str:
    cfg = _provider(name)
    state = secrets.token_urlsafe(24)
    session[f"oauth_state_{name}"] = state
    params = {
        "client_id": cfg["client_id"],
        "redirect_uri": _redirect_uri(name),
        "response_type": "code",
        "scope": cfg["scope"],
        "state": state,
    }
    if name == "google":
        params["prompt"] = "select_account"
    return f"{cfg['authorize_url']}?{urlencode(params)}"


def _exchange_code(name: str, cfg: Dict[str, Any], code: str) -> str:
    resp = requests.post(
        cfg["token_url"],
        data={
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": _redirect_uri(name),
            "client_id": cfg["client_id"],
            "client_secret": cfg["client_secret"],
        },
        timeout=TIMEOUT,
    )
    if resp.status_code != 200:
        log.warning("[oauth] %s token exchange failed: %s", name, resp.status_code)
        raise OAuthError("token exchange failed")
    try:
        token = resp.json().get("access_token")
    except ValueError as e:
        raise OAuthError("token exchange failed") from e
    if not token:
        raise OAuthError("provider returned no access token")
    return token


def _profile(name: str, cfg: Dict[str, Any], access_token: str) -> Dict[str, Any]:
    resp = requests.get(
        cfg["userinfo_url"],
        headers={"Authorization": f"Bearer {access_token}"},
        timeout=TIMEOUT,
    )
    if resp.status_code != 200:
        raise OAuthError("could not read profile")
    try:
        info = resp.json()
    except ValueError as e:
        raise OAuthError("could not read profile") from e
    return profile_from_claims(name, info)


def _truthy(claim: Any) -> bool:
    return claim is True or (isinstance(claim, str) and claim.lower() == "true")


def profile_from_claims(name: str, info: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize a userinfo payload. `email_verified` is True only when the provider
    asserts ownership of the address; `preferred_username` never counts as proof.
    """
    email = normalize_email(info.get("email") or "")
    if name == "google":
        verified = bool(email) and _truthy(info.get("email_verified"))
    else:
        verified = bool(email) and (
            _truthy(info.get("xms_edov")) or _azure_tenant().lower() not in _SHARED_TENANTS
        )
    if not email:
        # Azure work accounts often carry only a UPN; usable for a new account, never for linking
        upn = normalize_email(info.get("preferred_username") or "")
        email = upn if "@" in upn else ""
    subject = info.get("sub")
    if not subject or not email:
        raise OAuthError("profile is missing an id or email")
    return {
        "subject": subject,
        "email": email,
        "email_verified": verified,
        "name": info.get("name") or email.split("@", 1)[0],
        "picture": info.get("picture"),
    }


def unique_username(seed: str) -> str:
    """Letters and digits from the display name, padded to 5 letters, suffixed if taken."""
    base = re.sub(r"[^A-Za-z0-9]", "", seed or "")[:24]
    if sum(c.isalpha() for c in base) < 5:
        base = f"{base}supporter"
    candidate = base
    n = 1
    while username_taken(candidate):
        n += 1
        candidate = f"{base}{n}"
    return candidate


def upsert_user(name: str, profile: Dict[str, Any]) -> Dict[str, Any]:
    user = get_user_by_provider(name, profile["subject"])
    if user:
        return user
    user = get_user_by_email(profile["email"])
    if user:
        if not profile.get("email_verified"):
            log.warning("[oauth] refused to link unverified %s identity to %s", name, user["id"])
            raise OAuthError("email is already registered; sign in with your password first")
        link_provider(user["id"], name, profile["subject"])
        log.info("[oauth] linked %s to %s on a verified email", name, user["id"])
        return user
    user = create_user(
        unique_username(profile["name"]),
        profile["email"],
        None,
        PENDING_ROLE_SELECTION,
        profile_picture=profile.get("picture"),
        auth_provider=name,
        provider_subject=profile["subject"],
    )
    log.info("[oauth] created %s via %s", user["id"], name)
    return user


def complete_login(name: str, code: Optional[str], state: Optional[str]) -> Dict[str, Any]:
    expected = session.pop(f"oauth_state_{name}", None)
    if not expected or not state or not secrets.compare_digest(expected, state):
        raise OAuthError("invalid state")
    if not code:
        raise OAuthError("missing authorization code")
    cfg = _provider(name)
    try:
        token = _exchange_code(name, cfg, code)
        profile = _profile(name, cfg, token)
    except requests.RequestException as e:
        log.error("[oauth] %s request failed: %s", name, e)
        raise OAuthError("provider unavailable") from e
    return upsert_user(name, profile)
