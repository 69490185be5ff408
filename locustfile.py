"""
Locust load tests for the shopfund API.

Install: pip install locust
Run: locust -f locustfile.py --host=http://127.0.0.1:5050

For headless: locust -f locustfile.py --host=http://127.0.0.1:5050 \
    --users 10 --spawn-rate 2 --run-time 1m --headless
"""

import os
import random
from locust import HttpUser, task, between

PLACEHOLDER_ID = "00000000-0000-0000-0000-000000000001"


class ShopfundAPIUser(HttpUser):
    wait_time = between(1, 3)

    def on_start(self):
        """Optional: login to get token for authenticated endpoints."""
        self.token = None
        if os.getenv("LOCUST_AUTH_USERNAME") and os.getenv("LOCUST_AUTH_PASSWORD"):
            r = self.client.post(
                "/login",
                json={
                    "username": os.getenv("LOCUST_AUTH_USERNAME"),
                    "password": os.getenv("LOCUST_AUTH_PASSWORD"),
                },
            )
            if r.status_code == 200 and "token" in r.json():
                self.token = r.json()["token"]

    def _headers(self):
        h = {"Content-Type": "application/json"}
        if self.token:
            h["Authorization"] = f"Bearer {self.token}"
        return h

    def _campaign_id(self):
        return os.getenv("LOCUST_CAMPAIGN_ID", PLACEHOLDER_ID)

    @task(10)
    def ping(self):
        self.client.get("/__ping")

    @task(8)
    def campaigns(self):
        self.client.get("/campaigns")

    @task(5)
    def campaign_detail(self):
        self.client.get(f"/campaigns/{self._campaign_id()}", name="/campaigns/[id]")

    @task(5)
    def reward_preview(self):
        amount = random.choice([5, 10, 25, 30, 50, 100])
        self.client.get(
            f"/rewards/preview?campaignId={self._campaign_id()}&amount={amount}",
            name="/rewards/preview",
        )

    @task(3)
    def campaign_progress(self):
        self.client.get(f"/campaigns/{self._campaign_id()}/progress", name="/campaigns/[id]/progress")

    @task(2)
    def my_rewards(self):
        if self.token:
            self.client.get("/me/rewards", headers=self._headers())
