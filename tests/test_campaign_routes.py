from datetime import date, timedelta

import pytest

from shopfund.services import campaign_service


def _campaign(**overrides):
    row = {
        "id": "camp-1",
        "shop_id": "shop-1",
        "name": "New Oven Fund",
        "description": "Help us replace our oven",
        "story": None,
        "goal": 5000,
        "amt_raised": 0,
        "end_date": date.today() + timedelta(days=30),
        "status": "draft",
        "image_url": "https://example.com/oven.jpg",
        "created_at": None,
        "updated_at": None,
        "owner_user_id": "biz-1",
        "shop_name": "Corner Bakery",
    }
    row.update(overrides)
    return row


class FakeCampaigns:
    """In-memory stand-in for the campaign and tier tables."""

    def __init__(self, monkeypatch):
        self.rows = {}
        self.tiers = {}
        monkeypatch.setattr(campaign_service, "get_campaign", lambda cid: self.rows.get(cid))
        monkeypatch.setattr(campaign_service, "list_tiers", lambda cid: list(self.tiers.get(cid, [])))
        monkeypatch.setattr(campaign_service, "list_campaigns", self.list_campaigns)
        monkeypatch.setattr(campaign_service, "set_campaign_status", self.set_status)
        monkeypatch.setattr(campaign_service, "get_shop_by_owner", self.shop_for)
        monkeypatch.setattr(campaign_service, "create_campaign", self.create)
        monkeypatch.setattr(campaign_service, "create_tiers", self.create_tiers)

    def add(self, **overrides):
        row = _campaign(**overrides)
        self.rows[row["id"]] = row
        return row

    def list_campaigns(self, *, status=None, owner_user_id=None):
        return [
            r for r in self.rows.values()
            if (status is None or r["status"] == status)
            and (owner_user_id is None or r["owner_user_id"] == owner_user_id)
        ]

    def set_status(self, cid, status, expected=None):
        row = self.rows.get(cid)
        if not row or (expected is not None and row["status"] != expected):
            return None
        row["status"] = status
        return row

    def shop_for(self, user_id):
        return {"id": "shop-1", "owner_user_id": user_id} if user_id == "biz-1" else None

    def create(self, shop_id, *, status, **fields):
        row = _campaign(id=f"camp-{len(self.rows) + 1}", shop_id=shop_id, status=status, **fields)
        self.rows[row["id"]] = row
        return row

    def create_tiers(self, cid, tiers):
        saved = [{"id": f"tier-{i}", "campaign_id": cid, **t} for i, t in enumerate(tiers)]
        self.tiers[cid] = saved
        return saved


@pytest.fixture
def store(monkeypatch):
    return FakeCampaigns(monkeypatch)


def test_public_list_shows_only_approved(client, store):
    store.add(id="camp-1", status="approved")
    store.add(id="camp-2", status="pending")
    resp = client.get("/campaigns?status=pending")
    assert [c["id"] for c in resp.get_json()] == ["camp-1"]


def test_admin_can_filter_by_status(client, store, auth_header):
    store.add(id="camp-1", status="approved")
    store.add(id="camp-2", status="pending")
    resp = client.get("/admin/campaigns?status=pending", headers=auth_header("adm-1"))
    assert [c["id"] for c in resp.get_json()] == ["camp-2"]


def test_owner_lists_own_campaigns_in_every_state(client, store, auth_header):
    store.add(id="camp-1", status="draft")
    store.add(id="camp-2", status="approved", owner_user_id="biz-2")
    resp = client.get("/campaigns?mine=1", headers=auth_header("biz-1"))
    assert [c["id"] for c in resp.get_json()] == ["camp-1"]


def test_detail_hides_unapproved_from_strangers(client, store, auth_header):
    store.add(id="camp-1", status="draft")
    assert client.get("/campaigns/camp-1").status_code == 404
    assert client.get("/campaigns/camp-1", headers=auth_header("sup-1")).status_code == 404
    resp = client.get("/campaigns/camp-1", headers=auth_header("biz-1"))
    assert resp.status_code == 200
    assert resp.get_json()["rewardTiers"] == []


def test_detail_includes_tiers_and_days_left(client, store):
    store.add(id="camp-1", status="approved")
    store.tiers["camp-1"] = [{"id": "t1", "campaign_id": "camp-1", "amount": 10, "title": "Coffee"}]
    body = client.get("/campaigns/camp-1").get_json()
    assert body["rewardTiers"][0]["title"] == "Coffee"
    assert body["daysLeft"] > 0


def test_create_draft_needs_only_a_name(client, store, auth_header):
    resp = client.post("/campaigns", json={"name": "Patio Seating"}, headers=auth_header("biz-1"))
    assert resp.status_code == 201
    assert resp.get_json()["status"] == "draft"


def test_create_requires_a_shop(client, store, auth_header):
    resp = client.post("/campaigns", json={"name": "Patio Seating"}, headers=auth_header("biz-2"))
    assert resp.status_code == 404


def test_supporters_cannot_create(client, store, auth_header):
    resp = client.post("/campaigns", json={"name": "Patio Seating"}, headers=auth_header("sup-1"))
    assert resp.status_code == 403


def test_create_and_submit_validates_everything(client, store, auth_header):
    resp = client.post("/campaigns", json={"name": "Patio", "submit": True}, headers=auth_header("biz-1"))
    assert resp.status_code == 400
    errors = resp.get_json()["errors"]
    assert "description is required" in errors
    assert "at least one reward tier is required" in errors


def test_create_and_submit_goes_straight_to_pending(client, store, auth_header):
    body = {
        "campaignName": "Patio Seating",
        "description": "Outdoor tables",
        "goal": 2000,
        "endDate": (date.today() + timedelta(days=60)).isoformat(),
        "imageUrl": "https://example.com/patio.jpg",
        "rewards": [{"donationAmount": 15, "rewardName": "Lemonade"}],
        "submit": True,
    }
    resp = client.post("/campaigns", json=body, headers=auth_header("biz-1"))
    assert resp.status_code == 201
    out = resp.get_json()
    assert out["status"] == "pending"
    assert out["rewardTiers"][0]["title"] == "Lemonade"


def test_submit_incomplete_draft_returns_errors(client, store, auth_header):
    store.add(id="camp-1", status="draft", description="", image_url=None)
    resp = client.post("/campaigns/camp-1/submit", headers=auth_header("biz-1"))
    assert resp.status_code == 400
    assert resp.get_json()["errors"] == [
        "description is required",
        "image is required",
        "at least one reward tier is required",
    ]
    assert store.rows["camp-1"]["status"] == "draft"


def test_submit_then_admin_approves(client, store, auth_header, published):
    store.add(id="camp-1", status="draft")
    store.tiers["camp-1"] = [{"id": "t1", "campaign_id": "camp-1", "amount": 10, "title": "Coffee"}]

    resp = client.post("/campaigns/camp-1/submit", headers=auth_header("biz-1"))
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "pending"

    resp = client.put("/admin/campaigns/camp-1/status", json={"status": "approved"}, headers=auth_header("adm-1"))
    assert resp.status_code == 200

    approved = client.get("/admin/campaigns?status=approved", headers=auth_header("adm-1")).get_json()
    pending = client.get("/admin/campaigns?status=pending", headers=auth_header("adm-1")).get_json()
    assert [c["id"] for c in approved] == ["camp-1"]
    assert pending == []
    assert [p["status"] for _, p, _ in published] == ["pending", "approved"]


def test_only_the_owner_submits(client, store, auth_header):
    store.add(id="camp-1", status="draft")
    assert client.post("/campaigns/camp-1/submit", headers=auth_header("biz-2")).status_code == 403


def test_owner_cannot_resubmit_a_pending_campaign(client, store, auth_header):
    store.add(id="camp-1", status="pending")
    assert client.post("/campaigns/camp-1/submit", headers=auth_header("biz-1")).status_code == 409


def test_admin_same_status_is_rejected(client, store, auth_header):
    store.add(id="camp-1", status="approved")
    resp = client.put("/admin/campaigns/camp-1/status", json={"status": "approved"}, headers=auth_header("adm-1"))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "status unchanged"


def test_admin_unknown_status_is_rejected(client, store, auth_header):
    store.add(id="camp-1", status="pending")
    resp = client.put("/admin/campaigns/camp-1/status", json={"status": "live"}, headers=auth_header("adm-1"))
    assert resp.status_code == 400


def test_non_admin_cannot_change_status(client, store, auth_header):
    store.add(id="camp-1", status="pending")
    resp = client.put("/admin/campaigns/camp-1/status", json={"status": "approved"}, headers=auth_header("biz-1"))
    assert resp.status_code == 403
    assert resp.get_json()["have"] == "BUSINESS_REPRESENTATIVE"


def test_edit_of_live_campaign_is_revalidated(client, store, auth_header, monkeypatch):
    store.add(id="camp-1", status="approved")
    store.tiers["camp-1"] = [{"id": "t1", "campaign_id": "camp-1", "amount": 10, "title": "Coffee"}]
    monkeypatch.setattr(campaign_service, "update_campaign", lambda cid, **f: store.rows[cid])

    resp = client.put("/campaigns/camp-1", json={"deletedRewardIds": ["t1"]}, headers=auth_header("biz-1"))
    assert resp.status_code == 400
    assert "at least one reward tier is required" in resp.get_json()["errors"]


def test_edit_replaces_tiers(client, store, auth_header, monkeypatch):
    store.add(id="camp-1", status="draft")
    store.tiers["camp-1"] = [{"id": "t1", "campaign_id": "camp-1", "amount": 10, "title": "Coffee"}]
    calls = []

    def fake_replace(cid, new_tiers, deleted_ids):
        calls.append((cid, new_tiers, deleted_ids))
        return [{"id": "t2", "campaign_id": cid, **new_tiers[0]}]

    monkeypatch.setattr(campaign_service, "update_campaign", lambda cid, **f: {**store.rows[cid], **{k: v for k, v in f.items() if v is not None}})
    monkeypatch.setattr(campaign_service, "replace_tiers", fake_replace)

    resp = client.put(
        "/campaigns/camp-1",
        json={"name": "Bigger Oven", "rewards": [{"amount": 20, "title": "Muffins"}], "deletedRewardIds": ["t1"]},
        headers=auth_header("biz-1"),
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["name"] == "Bigger Oven"
    assert [t["title"] for t in body["rewardTiers"]] == ["Muffins"]
    assert calls[0][2] == ["t1"]


def _refuse_writes(monkeypatch):
    def no_write(*args, **kwargs):
        raise AssertionError("invalid tiers must not reach the database")

    monkeypatch.setattr(campaign_service, "update_campaign", no_write)
    monkeypatch.setattr(campaign_service, "replace_tiers", no_write)


@pytest.mark.parametrize(
    "tier",
    [
        {"amount": -5, "title": "Refund me"},
        {"amount": 0, "title": "Free"},
        {"amount": "lots", "title": "Cake"},
        {"amount": 10, "title": ""},
    ],
)
def test_draft_edit_rejects_bad_tiers(client, store, auth_header, monkeypatch, tier):
    store.add(id="camp-1", status="draft")
    _refuse_writes(monkeypatch)
    resp = client.put("/campaigns/camp-1", json={"rewards": [tier]}, headers=auth_header("biz-1"))
    assert resp.status_code == 400
    assert resp.get_json()["error"].startswith("every reward tier needs")


@pytest.mark.parametrize(
    "tier",
    [
        {"amount": 10, "title": "Cake", "quantityAvailable": "lots"},
        {"amount": 10, "title": "Cake", "quantityAvailable": -1},
        {"amount": 10, "title": "Cake", "quantityAvailable": 2.5},
        {"amount": 10, "title": ["Cake"]},
        {"amount": 10, "title": 42},
    ],
)
def test_malformed_tier_fields_are_a_400(client, store, auth_header, monkeypatch, tier):
    store.add(id="camp-1", status="draft")
    _refuse_writes(monkeypatch)
    resp = client.put("/campaigns/camp-1", json={"rewards": [tier]}, headers=auth_header("biz-1"))
    assert resp.status_code == 400
    create = client.post("/campaigns", json={"name": "Oven", "rewards": [tier]}, headers=auth_header("biz-1"))
    assert create.status_code == 400
    assert create.get_json()["error"].startswith("every reward tier needs")
    assert store.tiers == {}


def test_quantity_given_as_text_is_accepted(client, store, auth_header):
    resp = client.post(
        "/campaigns",
        json={"name": "Oven", "rewards": [{"amount": 10, "title": "Cake", "quantityAvailable": "12"}]},
        headers=auth_header("biz-1"),
    )
    assert resp.status_code == 201
    assert store.tiers["camp-1"][0]["quantity_available"] == 12


def test_progress(client, store, monkeypatch):
    store.add(id="camp-1", status="approved", goal=1000, amt_raised=250)
    monkeypatch.setattr(campaign_service, "count_and_last_completed", lambda cid: (3, "2025-06-01"))
    body = client.get("/campaigns/camp-1/progress").get_json()
    assert body["percent"] == 25.0
    assert body["donations_count"] == 3
