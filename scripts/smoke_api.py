#!/usr/bin/env python3
"""
Manual API smoke test for shopfund.

Usage:
  python scripts/smoke_api.py [--base URL]

  Ensure the server is running first:
    PORT=5050 python run.py

  And the DB is seeded:
    python scripts/seed.py --force  # if needed

Runs a full donation: login, preview, create order, capture (server started with PAYPAL_DEV_MODE=1),
owner approval, proof view, redemption and a replayed redemption.
"""
import argparse
import json
import sys
from urllib.request import Request, urlopen
from urllib.error import HTTPError, URLError

BASE = "http://127.0.0.1:5050"
PASSWORD = "Demo#12345"


def req(method: str, path: str, data=None, token=None) -> tuple[dict | list | None, int]:
    url = f"{BASE.rstrip('/')}{path}"
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    body = json.dumps(data).encode() if data is not None else None
    try:
        r = urlopen(Request(url, data=body, headers=headers, method=method), timeout=10)
        raw = r.read().decode()
        return (json.loads(raw) if raw else {}), r.status
    except HTTPError as e:
        body = e.read().decode() if e.fp else ""
        try:
            out = json.loads(body) if body else {}
        except json.JSONDecodeError:
            out = {"error": body or str(e)}
        return out, e.code
    except URLError as e:
        print(f"Connection error: {e}")
        return None, 0


class Run:
    def __init__(self):
        self.ok = 0
        self.fail = 0

    def check(self, label: str, cond: bool, detail=None) -> bool:
        if cond:
            print(f"   OK {label}")
            self.ok += 1
        else:
            print(f"   FAIL {label} {detail if detail is not None else ''}")
            self.fail += 1
        return cond


def login(username: str):
    resp, code = req("POST", "/login", {"username": username, "password": PASSWORD})
    if code != 200 or not resp or "token" not in resp:
        print(f"   cannot log in as {username}: {code} {resp}")
        sys.exit(1)
    return resp["token"]


def main():
    global BASE
    ap = argparse.ArgumentParser()
    ap.add_argument("--base", default=BASE, help="Base URL (default: http://127.0.0.1:5050)")
    BASE = ap.parse_args().base.rstrip("/")
    run = Run()

    print("1. Login as supporter and owner ...")
    supporter = login("kindsupporter")
    owner = login("bakeryowner")
    run.check("tokens obtained", True)

    print("2. List approved campaigns ...")
    resp, code = req("GET", "/campaigns")
    if not run.check("campaign list", code == 200 and isinstance(resp, list) and resp, resp):
        print("   No approved campaign; run: python scripts/seed.py --force")
        sys.exit(1)
    campaign_id = resp[0]["id"]

    print("3. Reward preview for $30 ...")
    resp, code = req("GET", f"/rewards/preview?campaignId={campaign_id}&amount=30")
    run.check(
        f"tier {((resp or {}).get('reward') or {}).get('title')!r}",
        code == 200 and resp.get("reward") is not None,
        resp,
    )

    print("4. Create and capture a $30 order ...")
    resp, code = req(
        "POST", "/donations/paypal/create-order",
        {"campaignId": campaign_id, "amount": 30}, token=supporter,
    )
    if not run.check("order created", code == 200 and "orderId" in resp, resp):
        sys.exit(1)
    order_id = resp["orderId"]
    resp, code = req("POST", "/donations/paypal/capture-order", {"orderId": order_id})
    run.check("captured", code == 200 and resp.get("paid") is True, resp)
    reward = resp.get("reward") or {}
    user_reward_id = reward.get("userRewardId")
    resp, code = req("POST", "/donations/paypal/capture-order", {"orderId": order_id})
    run.check("replayed capture is a duplicate", code == 200 and resp.get("duplicate") is True, resp)

    if not user_reward_id:
        print("   No reward was awarded; skipping reward lifecycle")
    else:
        print("5. Reward lifecycle ...")
        resp, code = req("GET", f"/user-rewards/{user_reward_id}/proof", token=supporter)
        run.check("proof says awaiting approval", code == 200 and resp.get("notice") == "awaiting approval", resp)
        resp, code = req("PUT", f"/user-rewards/{user_reward_id}/approve", token=owner)
        run.check("owner approved", code == 200, resp)
        resp, code = req("GET", f"/user-rewards/{user_reward_id}/proof", token=owner)
        run.check("proof view leaves status completed",
                  code == 200 and resp["reward"]["status"] == "completed", resp)
        resp, code = req("POST", f"/user-rewards/{user_reward_id}/redeem", {"confirm": True}, token=owner)
        run.check("redeemed", code == 200 and resp.get("redeemed") is True, resp)
        resp, code = req("POST", f"/user-rewards/{user_reward_id}/redeem", {"confirm": True}, token=owner)
        run.check("second redeem is a no-op", code == 200 and resp.get("already_redeemed") is True, resp)

    print("6. Progress ...")
    resp, code = req("GET", f"/campaigns/{campaign_id}/progress")
    run.check(f"raised {(resp or {}).get('amt_raised')}", code == 200, resp)

    print(f"\n--- {run.ok} passed, {run.fail} failed ---")
    sys.exit(1 if run.fail else 0)


if __name__ == "__main__":
    main()
