import pytest
from prometheus_client import REGISTRY

from shopfund.realtime import events
from shopfund.realtime.events import Event, publish, subscribe, unsubscribe
from shopfund.services import oauth_service
from shopfund.utils.metrics import register_metric_subscribers


@pytest.fixture
def no_emit(monkeypatch):
    emitted = []
    monkeypatch.setattr(events.socketio, "emit", lambda name, payload, to=None: emitted.append((name, to)))
    return emitted


def test_publish_reaches_subscribers_and_rooms(no_emit):
    seen = []
    handler = seen.append
    subscribe(Event.DONATION_COMPLETED, handler)
    try:
        publish(Event.DONATION_COMPLETED, {"amount": 5}, rooms=["campaign:c1", "user:u1"])
    finally:
        unsubscribe(Event.DONATION_COMPLETED, handler)
    assert seen == [{"amount": 5}]
    assert no_emit == [("donation_completed", "campaign:c1"), ("donation_completed", "user:u1")]


def test_failing_subscriber_does_not_break_publish(no_emit):
    def broken(_payload):
        raise RuntimeError("boom")

    seen = []
    subscribe(Event.PROFILE_UPDATED, broken)
    subscribe(Event.PROFILE_UPDATED, seen.append)
    try:
        publish(Event.PROFILE_UPDATED, {"id": "u1"}, rooms=["user:u1"])
    finally:
        unsubscribe(Event.PROFILE_UPDATED, broken)
        unsubscribe(Event.PROFILE_UPDATED, seen.append)
    assert seen == [{"id": "u1"}]
    assert no_emit == [("profile_updated", "user:u1")]


def test_subscribe_is_idempotent(no_emit):
    seen = []
    handler = seen.append
    subscribe(Event.CAMPAIGN_STATUS_CHANGED, handler)
    subscribe(Event.CAMPAIGN_STATUS_CHANGED, handler)
    try:
        publish(Event.CAMPAIGN_STATUS_CHANGED, {"status": "approved"})
    finally:
        unsubscribe(Event.CAMPAIGN_STATUS_CHANGED, handler)
    assert len(seen) == 1


def test_donation_events_feed_metrics(no_emit):
    register_metric_subscribers()
    before = REGISTRY.get_sample_value("shopfund_donations_captured_total") or 0
    amount_before = REGISTRY.get_sample_value("shopfund_donation_amount_total") or 0
    publish(Event.DONATION_COMPLETED, {"amount": 12.5})
    assert REGISTRY.get_sample_value("shopfund_donations_captured_total") == before + 1
    assert REGISTRY.get_sample_value("shopfund_donation_amount_total") == amount_before + 12.5


def test_unique_username(monkeypatch):
    taken = {"JaneDoe", "JaneDoe2"}
    monkeypatch.setattr(oauth_service, "username_taken", lambda name: name in taken)
    assert oauth_service.unique_username("Jane Doe") == "JaneDoe3"
    assert oauth_service.unique_username("Al") == "Alsupporter"


def test_new_oauth_user_awaits_role_selection(monkeypatch):
    created = {}

    def fake_create(username, email, password_hash, role, **kwargs):
        created.update(username=username, email=email, password_hash=password_hash, role=role, **kwargs)
        return {"id": "u-9", "username": username, "email": email, "role": role}

    monkeypatch.setattr(oauth_service, "get_user_by_provider", lambda p, s: None)
    monkeypatch.setattr(oauth_service, "get_user_by_email", lambda e: None)
    monkeypatch.setattr(oauth_service, "username_taken", lambda n: False)
    monkeypatch.setattr(oauth_service, "create_user", fake_create)

    user = oauth_service.upsert_user(
        "google", {"subject": "g-123", "email": "jane@example.com", "name": "Jane Doe", "picture": None}
    )
    assert user["role"] == "PENDING_ROLE_SELECTION"
    assert created["password_hash"] is None
    assert created["provider_subject"] == "g-123"


def _existing_account(monkeypatch, links):
    monkeypatch.setattr(oauth_service, "get_user_by_provider", lambda p, s: None)
    monkeypatch.setattr(
        oauth_service, "get_user_by_email",
        lambda e: {"id": "adm-1", "role": "ADMIN"} if e == "a@example.com" else None,
    )
    monkeypatch.setattr(oauth_service, "link_provider", lambda uid, p, s: links.append((uid, p, s)))
    monkeypatch.setattr(
        oauth_service, "create_user",
        lambda *a, **kw: pytest.fail("must not create a second account for a registered email"),
    )


def test_upn_matching_an_admin_email_is_not_linked(monkeypatch):
    monkeypatch.setenv("AZURE_TENANT", "common")
    links = []
    _existing_account(monkeypatch, links)
    profile = oauth_service.profile_from_claims(
        "azure", {"sub": "attacker-1", "preferred_username": "A@example.com", "name": "Mallory"}
    )
    assert profile["email_verified"] is False
    with pytest.raises(oauth_service.OAuthError):
        oauth_service.upsert_user("azure", profile)
    assert links == []


def test_unverified_google_email_is_not_linked(monkeypatch):
    links = []
    _existing_account(monkeypatch, links)
    profile = oauth_service.profile_from_claims(
        "google", {"sub": "g-9", "email": "a@example.com", "email_verified": False}
    )
    with pytest.raises(oauth_service.OAuthError):
        oauth_service.upsert_user("google", profile)
    assert links == []


def test_verified_google_email_is_linked(monkeypatch):
    links = []
    _existing_account(monkeypatch, links)
    profile = oauth_service.profile_from_claims(
        "google", {"sub": "g-1", "email": "a@example.com", "email_verified": True}
    )
    user = oauth_service.upsert_user("google", profile)
    assert user["id"] == "adm-1"
    assert links == [("adm-1", "google", "g-1")]


@pytest.mark.parametrize(
    "tenant,claims,verified",
    [
        ("common", {"email": "x@corp.com"}, False),
        ("common", {"email": "x@corp.com", "xms_edov": True}, True),
        ("contoso.onmicrosoft.com", {"email": "x@corp.com"}, True),
        ("contoso.onmicrosoft.com", {"preferred_username": "x@corp.com"}, False),
    ],
)
def test_azure_email_verification(monkeypatch, tenant, claims, verified):
    monkeypatch.setenv("AZURE_TENANT", tenant)
    profile = oauth_service.profile_from_claims("azure", {"sub": "a-1", **claims})
    assert profile["email"] == "x@corp.com"
    assert profile["email_verified"] is verified


def test_linking_refusal_redirects_with_error(client, monkeypatch):
    def refuse(name, code, state):
        raise oauth_service.OAuthError("email is already registered")

    monkeypatch.setattr(oauth_service, "complete_login", refuse)
    resp = client.get("/login/azure/callback?code=abc&state=s")
    assert resp.status_code == 302
    assert "error=oauth_failed" in resp.headers["Location"]
    assert not any(c.startswith("token=") for c in resp.headers.getlist("Set-Cookie"))


def test_login_redirects_to_provider_with_state(client, monkeypatch):
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "cid")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "secret")
    resp = client.get("/login/google")
    assert resp.status_code == 302
    assert resp.headers["Location"].startswith("https://accounts.google.com/")
    with client.session_transaction() as sess:
        state = sess["oauth_state_google"]
    assert f"state={state}" in resp.headers["Location"]


def test_unconfigured_provider_redirects_to_frontend(client, monkeypatch):
    monkeypatch.delenv("AZURE_CLIENT_ID", raising=False)
    monkeypatch.delenv("AZURE_CLIENT_SECRET", raising=False)
    resp = client.get("/login/azure")
    assert resp.status_code == 302
    assert "error=oauth_unavailable" in resp.headers["Location"]


def test_callback_with_bad_state_is_rejected(client, monkeypatch):
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "cid")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "secret")
    resp = client.get("/login/google/callback?code=abc&state=forged")
    assert resp.status_code == 302
    assert "error=oauth_failed" in resp.headers["Location"]


def test_callback_sends_new_users_to_role_selection(client, monkeypatch):
    monkeypatch.setattr(
        oauth_service, "complete_login",
        lambda name, code, state: {"id": "new-1", "username": "freshuser", "role": "PENDING_ROLE_SELECTION"},
    )
    resp = client.get("/login/google/callback?code=abc&state=s")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/role-selection")
    assert any(c.startswith("token=") for c in resp.headers.getlist("Set-Cookie"))
