from datetime import datetime, timezone

import pytest

from shopfund.services import reward_service


class FakeRewards:
    """user_rewards rows with the same guarded updates the SQL performs."""

    def __init__(self, monkeypatch):
        self.rows = {}
        self.writes = []
        monkeypatch.setattr(reward_service, "get_user_reward", lambda rid: dict(self.rows[rid]) if rid in self.rows else None)
        monkeypatch.setattr(reward_service, "mark_completed", self.mark_completed)
        monkeypatch.setattr(reward_service, "mark_redeemed", self.mark_redeemed)
        monkeypatch.setattr(reward_service, "list_for_user", lambda uid: [r for r in self.rows.values() if r["user_id"] == uid])

    def add(self, rid="ur-1", status="pending", user_id="sup-1", owner_user_id="biz-1"):
        self.rows[rid] = {
            "id": rid,
            "user_id": user_id,
            "reward_id": "tier-1",
            "campaign_id": "camp-1",
            "donation_id": "don-1",
            "status": status,
            "claimed_at": datetime(2025, 6, 1, tzinfo=timezone.utc),
            "approved_at": None,
            "redeemed_at": None,
            "reward_name": "Pastry Box",
            "owner_user_id": owner_user_id,
        }
        return self.rows[rid]

    def mark_completed(self, rid):
        self.writes.append(("completed", rid))
        row = self.rows[rid]
        if row["status"] != "pending":
            return False
        row.update(status="completed", approved_at=datetime.now(timezone.utc))
        return True

    def mark_redeemed(self, rid):
        self.writes.append(("redeemed", rid))
        row = self.rows[rid]
        if row["status"] != "completed":
            return False
        row.update(status="redeemed", redeemed_at=datetime.now(timezone.utc))
        return True


@pytest.fixture
def store(monkeypatch):
    return FakeRewards(monkeypatch)


def test_owner_approves_and_approved_at_is_stamped(client, store, auth_header, published):
    store.add()
    resp = client.put("/user-rewards/ur-1/approve", headers=auth_header("biz-1"))
    assert resp.status_code == 200
    reward = resp.get_json()["reward"]
    assert reward["status"] == "completed"
    assert reward["approvedAt"] is not None
    event, payload, rooms = published[0]
    assert event.value == "reward_status_changed"
    assert payload["status"] == "completed"
    assert "user:sup-1" in rooms


def test_admin_may_approve(client, store, auth_header):
    store.add()
    assert client.put("/user-rewards/ur-1/approve", headers=auth_header("adm-1")).status_code == 200


def test_other_shop_owner_cannot_approve(client, store, auth_header):
    store.add()
    assert client.put("/user-rewards/ur-1/approve", headers=auth_header("biz-2")).status_code == 403
    assert store.rows["ur-1"]["status"] == "pending"


def test_approving_twice_conflicts(client, store, auth_header):
    store.add(status="completed")
    assert client.put("/user-rewards/ur-1/approve", headers=auth_header("biz-1")).status_code == 409


def test_proof_is_read_only(client, store, auth_header):
    store.add(status="completed")
    for _ in range(3):
        resp = client.get("/user-rewards/ur-1/proof", headers=auth_header("biz-1"))
        assert resp.status_code == 200
        assert resp.get_json()["notice"] == "ready to redeem"
    assert store.rows["ur-1"]["status"] == "completed"
    assert store.writes == []


def test_proof_notice_for_pending(client, store, auth_header):
    store.add(status="pending")
    body = client.get("/user-rewards/ur-1/proof", headers=auth_header("sup-1")).get_json()
    assert body["notice"] == "awaiting approval"
    assert body["redeemable"] is False


def test_proof_hidden_from_other_supporters(client, store, auth_header):
    store.add()
    assert client.get("/user-rewards/ur-1/proof", headers=auth_header("sup-2")).status_code == 403


def test_redeem_requires_confirmation(client, store, auth_header):
    store.add(status="completed")
    resp = client.post("/user-rewards/ur-1/redeem", json={}, headers=auth_header("biz-1"))
    assert resp.status_code == 400
    assert store.rows["ur-1"]["status"] == "completed"


def test_redeem_once_then_no_op(client, store, auth_header, published):
    store.add(status="completed")
    first = client.post("/user-rewards/ur-1/redeem", json={"confirm": True}, headers=auth_header("biz-1"))
    assert first.status_code == 200
    assert first.get_json()["redeemed"] is True
    redeemed_at = first.get_json()["reward"]["redeemedAt"]

    second = client.put("/user-rewards/ur-1/redeem", json={"confirm": True}, headers=auth_header("biz-1"))
    assert second.status_code == 200
    body = second.get_json()
    assert body["redeemed"] is False
    assert body["already_redeemed"] is True
    assert body["reward"]["redeemedAt"] == redeemed_at
    assert [p["status"] for _, p, _ in published] == ["redeemed"]


def test_pending_reward_cannot_be_redeemed(client, store, auth_header):
    store.add(status="pending")
    resp = client.post("/user-rewards/ur-1/redeem", json={"confirm": True}, headers=auth_header("biz-1"))
    assert resp.status_code == 409
    assert store.rows["ur-1"]["status"] == "pending"


def test_redeemed_is_terminal(client, store, auth_header):
    store.add(status="redeemed")
    assert client.put("/user-rewards/ur-1/approve", headers=auth_header("biz-1")).status_code == 409
    assert store.rows["ur-1"]["status"] == "redeemed"


def test_revoked_reward_cannot_be_redeemed_or_approved(client, store, auth_header):
    store.add(status="revoked")
    resp = client.post("/user-rewards/ur-1/redeem", json={"confirm": True}, headers=auth_header("biz-1"))
    assert resp.status_code == 409
    assert "refund" in resp.get_json()["error"]
    assert client.put("/user-rewards/ur-1/approve", headers=auth_header("biz-1")).status_code == 409
    assert store.rows["ur-1"]["status"] == "revoked"
    assert store.writes == []


def test_my_rewards_are_bucketed(client, store, auth_header):
    store.add("ur-1", status="pending")
    store.add("ur-2", status="completed")
    store.add("ur-3", status="redeemed")
    store.add("ur-4", status="pending", user_id="sup-2")
    body = client.get("/me/rewards", headers=auth_header("sup-1")).get_json()
    assert {k: [r["userRewardId"] for r in v] for k, v in body.items()} == {
        "pending": ["ur-1"],
        "completed": ["ur-2"],
        "redeemed": ["ur-3"],
        "revoked": [],
    }


def test_preview_resolves_tier(client, monkeypatch):
    monkeypatch.setattr(reward_service, "get_campaign", lambda cid: {"id": cid, "status": "approved"})
    monkeypatch.setattr(
        reward_service,
        "list_tiers",
        lambda cid: [
            {"id": "a", "campaign_id": cid, "amount": 10, "title": "A"},
            {"id": "b", "campaign_id": cid, "amount": 25, "title": "B"},
            {"id": "c", "campaign_id": cid, "amount": 50, "title": "C"},
        ],
    )
    body = client.get("/rewards/preview?campaignId=camp-1&amount=30").get_json()
    assert body["reward"]["title"] == "B"
    assert client.get("/rewards/preview?campaignId=camp-1&amount=-5").status_code == 400
    assert client.get("/rewards/preview?amount=5").status_code == 400


def test_stats_for_owner_only(client, auth_header, monkeypatch):
    monkeypatch.setattr(reward_service, "get_tier", lambda tid: {"id": tid, "campaign_id": "camp-1", "title": "A"})
    monkeypatch.setattr(reward_service, "get_campaign", lambda cid: {"id": cid, "owner_user_id": "biz-1"})
    monkeypatch.setattr(
        reward_service, "tier_stats", lambda tid: {"pending": 2, "completed": 1, "redeemed": 4, "total": 7}
    )
    resp = client.get("/rewards/tier-1/stats", headers=auth_header("biz-1"))
    assert resp.status_code == 200
    assert resp.get_json()["total"] == 7
    assert client.get("/rewards/tier-1/stats", headers=auth_header("sup-1")).status_code == 403
