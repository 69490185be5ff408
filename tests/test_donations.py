from contextlib import contextmanager
from datetime import date, timedelta
from decimal import Decimal

import pytest

from shopfund.services import donation_service
from shopfund.utils import paypal


def _live_campaign(**overrides):
    row = {"id": "camp-1", "name": "New Oven Fund", "status": "approved",
           "end_date": date.today() + timedelta(days=10)}
    row.update(overrides)
    return row


class FakeDonations:
    def __init__(self, monkeypatch):
        self.campaign = _live_campaign()
        self.tiers = [
            {"id": "a", "campaign_id": "camp-1", "amount": Decimal("10"), "title": "A", "quantity_available": None},
            {"id": "b", "campaign_id": "camp-1", "amount": Decimal("25"), "title": "B", "quantity_available": 5},
            {"id": "c", "campaign_id": "camp-1", "amount": Decimal("50"), "title": "C", "quantity_available": None},
        ]
        self.donations = {}
        self.user_rewards = []
        self.claimed = []
        self.sold_out = set()
        self.released = []
        self.cursors = []

        monkeypatch.setattr(donation_service, "get_campaign", lambda cid: self.campaign if cid == "camp-1" else None)
        monkeypatch.setattr(donation_service, "list_tiers", lambda cid: [dict(t) for t in self.tiers])
        monkeypatch.setattr(donation_service, "create_donation", self.create_donation)
        monkeypatch.setattr(donation_service, "get_donation", lambda did: self.donations.get(did))
        monkeypatch.setattr(donation_service, "get_donation_by_order", self.by_order)
        monkeypatch.setattr(donation_service, "mark_completed", self.mark_completed)
        monkeypatch.setattr(donation_service, "mark_refunded", self.mark_refunded)
        monkeypatch.setattr(donation_service, "set_reward", self.set_reward)
        monkeypatch.setattr(donation_service, "claim_tier_unit", self.claim)
        monkeypatch.setattr(donation_service, "create_user_reward", self.create_user_reward)
        monkeypatch.setattr(donation_service, "recompute_amt_raised", self.recompute)
        monkeypatch.setattr(donation_service, "revoke_for_donation", self.revoke_for_donation)
        monkeypatch.setattr(donation_service, "release_tier_unit", self.release)
        monkeypatch.setattr(donation_service, "transaction", self.transaction)
        monkeypatch.setattr(paypal, "DEV_MODE", True)

    @contextmanager
    def transaction(self):
        cur = object()
        self.cursors.append(cur)
        yield cur

    def create_donation(self, *, campaign_id, user_id, amount, currency, paypal_order_id):
        did = f"don-{len(self.donations) + 1}"
        self.donations[did] = {
            "id": did, "campaign_id": campaign_id, "user_id": user_id, "amount": amount,
            "currency": currency, "status": "pending", "reward_id": None,
            "paypal_order_id": paypal_order_id, "paypal_capture_id": None, "donation_date": None,
        }
        return dict(self.donations[did])

    def by_order(self, order_id):
        for d in self.donations.values():
            if d["paypal_order_id"] == order_id:
                return dict(d)
        return None

    def mark_completed(self, did, capture_id, cur=None):
        assert cur is self.cursors[-1]
        d = self.donations[did]
        if d["status"] != "pending":
            return None
        d.update(status="completed", paypal_capture_id=capture_id)
        return dict(d)

    def mark_refunded(self, did, cur=None):
        assert cur is self.cursors[-1]
        d = self.donations[did]
        if d["status"] != "completed":
            return None
        d.update(status="refunded")
        return dict(d)

    def claim(self, tier_id, cur=None):
        assert cur is self.cursors[-1]
        if tier_id in self.sold_out:
            return False
        self.claimed.append(tier_id)
        return True

    def create_user_reward(self, *, user_id, reward_id, campaign_id, donation_id, cur=None):
        assert cur is self.cursors[-1]
        row = {"id": f"ur-{len(self.user_rewards) + 1}", "user_id": user_id, "reward_id": reward_id,
               "campaign_id": campaign_id, "donation_id": donation_id, "status": "pending"}
        self.user_rewards.append(row)
        return row

    def recompute(self, cid, cur=None):
        assert cur is self.cursors[-1]
        total = sum(d["amount"] for d in self.donations.values() if d["status"] == "completed")
        return {"amt_raised": total}

    def set_reward(self, did, rid, cur=None):
        assert cur is self.cursors[-1]
        self.donations[did].update(reward_id=rid)

    def revoke_for_donation(self, did, cur=None):
        assert cur is self.cursors[-1]
        for row in self.user_rewards:
            if row["donation_id"] == did and row["status"] in ("pending", "completed"):
                row["status"] = "revoked"
                return dict(row)
        return None

    def release(self, tier_id, cur=None):
        assert cur is self.cursors[-1]
        self.released.append(tier_id)


@pytest.fixture
def store(monkeypatch):
    return FakeDonations(monkeypatch)


def _order(client, amount, headers=None):
    resp = client.post(
        "/donations/paypal/create-order", json={"campaignId": "camp-1", "amount": amount}, headers=headers or {}
    )
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def test_create_order_previews_reward(client, store, auth_header):
    body = _order(client, 30, auth_header("sup-1"))
    assert body["orderId"].startswith("DEV-")
    assert body["reward"]["title"] == "B"
    assert store.donations[body["donationId"]]["user_id"] == "sup-1"


def test_campaign_path_variant(client, store):
    resp = client.post("/campaign/camp-1/donation", json={"amount": "12.50"})
    assert resp.status_code == 200
    assert store.donations[resp.get_json()["donationId"]]["amount"] == Decimal("12.50")


@pytest.mark.parametrize("amount", [0, -5, "abc", None])
def test_invalid_amounts_are_rejected(client, store, amount):
    resp = client.post("/donations/paypal/create-order", json={"campaignId": "camp-1", "amount": amount})
    assert resp.status_code == 400
    assert store.donations == {}


def test_only_live_campaigns_accept_donations(client, store):
    store.campaign = _live_campaign(status="pending")
    assert client.post("/campaign/camp-1/donation", json={"amount": 10}).status_code == 400
    store.campaign = _live_campaign(end_date=date.today() - timedelta(days=1))
    resp = client.post("/campaign/camp-1/donation", json={"amount": 10})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "campaign has ended"


def test_capture_awards_best_tier_and_updates_total(client, store, auth_header, published):
    order = _order(client, 30, auth_header("sup-1"))
    resp = client.post("/donations/paypal/capture-order", json={"orderId": order["orderId"]})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["paid"] is True
    assert body["donation"]["paymentStatus"] == "completed"
    assert body["reward"]["title"] == "B"
    assert body["reward"]["status"] == "pending"
    assert store.claimed == ["b"]
    assert store.donations[order["donationId"]]["reward_id"] == "b"

    event, payload, rooms = published[-1]
    assert event.value == "donation_completed"
    assert payload["amt_raised"] == 30.0
    assert rooms == ["campaign:camp-1", "user:sup-1"]


def test_capture_twice_is_a_duplicate(client, store, auth_header):
    order = _order(client, 30, auth_header("sup-1"))
    client.post("/donations/paypal/capture-order", json={"orderId": order["orderId"]})
    resp = client.post("/donations/paypal/capture-order", json={"orderId": order["orderId"]})
    assert resp.get_json()["duplicate"] is True
    assert len(store.user_rewards) == 1


def test_sold_out_tier_falls_to_next_best(client, store, auth_header):
    store.sold_out.add("b")
    order = _order(client, 30, auth_header("sup-1"))
    body = client.post("/donations/paypal/capture-order", json={"orderId": order["orderId"]}).get_json()
    assert body["reward"]["title"] == "A"


def test_below_every_threshold_earns_nothing(client, store, auth_header):
    order = _order(client, 5, auth_header("sup-1"))
    # preview still shows the first tier
    assert order["reward"]["title"] == "A"
    body = client.post("/donations/paypal/capture-order", json={"orderId": order["orderId"]}).get_json()
    assert body["paid"] is True
    assert body["reward"] is None
    assert store.user_rewards == []


def test_anonymous_donation_earns_no_reward(client, store):
    order = _order(client, 100)
    body = client.post("/donations/paypal/capture-order", json={"orderId": order["orderId"]}).get_json()
    assert body["paid"] is True
    assert body["reward"] is None


def test_unknown_order(client, store):
    resp = client.post("/donations/paypal/capture-order", json={"orderId": "nope"})
    assert resp.status_code == 404


def test_paypal_failure_maps_to_502(client, store, monkeypatch):
    def boom(*args, **kwargs):
        raise paypal.PayPalError("down")

    monkeypatch.setattr(paypal, "create_order", boom)
    resp = client.post("/campaign/camp-1/donation", json={"amount": 10})
    assert resp.status_code == 502
    assert store.donations == {}


def test_admin_refund(client, store, auth_header):
    order = _order(client, 30, auth_header("sup-1"))
    client.post("/donations/paypal/capture-order", json={"orderId": order["orderId"]})
    resp = client.post(f"/admin/donations/{order['donationId']}/refund", headers=auth_header("adm-1"))
    assert resp.status_code == 200
    assert resp.get_json()["paymentStatus"] == "refunded"
    again = client.post(f"/admin/donations/{order['donationId']}/refund", headers=auth_header("adm-1"))
    assert again.status_code == 409


def test_refund_needs_admin(client, store, auth_header):
    assert client.post("/admin/donations/don-1/refund", headers=auth_header("sup-1")).status_code == 403


def test_capture_writes_share_one_transaction(client, store, auth_header):
    order = _order(client, 30, auth_header("sup-1"))
    client.post("/donations/paypal/capture-order", json={"orderId": order["orderId"]})
    # mark_completed, claim, create_user_reward, set_reward and recompute all
    # assert they ran on the cursor of the latest transaction
    assert len(store.cursors) == 1


def test_failed_award_aborts_capture_without_event(store, monkeypatch, published):
    status, order = donation_service.start_order(campaign_id="camp-1", amount=30, user_id="sup-1")
    assert status == 200

    def broken(**kwargs):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(donation_service, "create_user_reward", broken)
    with pytest.raises(RuntimeError):
        donation_service.capture(order["orderId"])
    assert published == []


def test_refund_revokes_reward_and_returns_the_unit(client, store, auth_header, published):
    order = _order(client, 30, auth_header("sup-1"))
    client.post("/donations/paypal/capture-order", json={"orderId": order["orderId"]})
    resp = client.post(f"/admin/donations/{order['donationId']}/refund", headers=auth_header("adm-1"))
    assert resp.status_code == 200
    assert store.user_rewards[0]["status"] == "revoked"
    assert store.released == ["b"]
    assert len(store.cursors) == 2

    event, payload, rooms = published[-1]
    assert event.value == "reward_status_changed"
    assert payload["status"] == "revoked"
    assert "user:sup-1" in rooms


def test_refund_keeps_an_already_redeemed_reward(client, store, auth_header):
    order = _order(client, 30, auth_header("sup-1"))
    client.post("/donations/paypal/capture-order", json={"orderId": order["orderId"]})
    store.user_rewards[0]["status"] = "redeemed"
    resp = client.post(f"/admin/donations/{order['donationId']}/refund", headers=auth_header("adm-1"))
    assert resp.status_code == 200
    assert store.user_rewards[0]["status"] == "redeemed"
    assert store.released == []


def test_missing_credentials_without_dev_mode_fail_closed(client, store, monkeypatch):
    monkeypatch.setattr(paypal, "DEV_MODE", False)
    monkeypatch.setattr(paypal, "PAYPAL_CLIENT_ID", "cid")
    monkeypatch.setattr(paypal, "PAYPAL_CLIENT_SECRET", "")
    resp = client.post("/campaign/camp-1/donation", json={"amount": 10})
    assert resp.status_code == 502
    assert store.donations == {}


def test_token_network_error_is_a_paypal_error(client, store, monkeypatch):
    import requests

    def unreachable(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(paypal, "DEV_MODE", False)
    monkeypatch.setattr(paypal, "PAYPAL_CLIENT_ID", "cid")
    monkeypatch.setattr(paypal, "PAYPAL_CLIENT_SECRET", "secret")
    monkeypatch.setattr(paypal.requests, "post", unreachable)
    with pytest.raises(paypal.PayPalError):
        paypal.create_order(Decimal("10"), reference_id="camp-1")
    assert client.post("/campaign/camp-1/donation", json={"amount": 10}).status_code == 502


def test_token_response_without_access_token(monkeypatch):
    class Reply:
        status_code = 200

        def json(self):
            return {"error": "invalid_client"}

    monkeypatch.setattr(paypal, "PAYPAL_CLIENT_ID", "cid")
    monkeypatch.setattr(paypal, "PAYPAL_CLIENT_SECRET", "secret")
    monkeypatch.setattr(paypal.requests, "post", lambda *a, **kw: Reply())
    with pytest.raises(paypal.PayPalError):
        paypal._access_token()


def test_campaign_donations_for_owner(client, store, auth_header, monkeypatch):
    store.campaign = _live_campaign(owner_user_id="biz-1")
    order = _order(client, 30, auth_header("sup-1"))
    client.post("/donations/paypal/capture-order", json={"orderId": order["orderId"]})
    monkeypatch.setattr(
        donation_service, "list_for_campaign",
        lambda cid: [dict(d, donor_username="kindsupporter") for d in store.donations.values()
                     if d["status"] != "pending"],
    )
    resp = client.get("/donations/campaign/camp-1", headers=auth_header("biz-1"))
    assert resp.status_code == 200
    rows = resp.get_json()
    assert [r["donor"] for r in rows] == ["kindsupporter"]
    assert rows[0]["amount"] == 30.0
    assert client.get("/donations/campaign/camp-1", headers=auth_header("biz-2")).status_code == 403
    assert client.get("/donations/campaign/nope", headers=auth_header("biz-1")).status_code == 404
