"""Prometheus counters, fed by application events."""

from prometheus_client import Counter

from shopfund.realtime.events import Event, subscribe

DONATIONS_CAPTURED = Counter(
    "shopfund_donations_captured_total", "Donations captured through PayPal"
)
DONATION_AMOUNT = Counter(
    "shopfund_donation_amount_total", "Sum of captured donation amounts"
)
REWARD_TRANSITIONS = Counter(
    "shopfund_reward_transitions_total", "User reward status changes", ["status"]
)
CAMPAIGN_TRANSITIONS = Counter(
    "shopfund_campaign_transitions_total", "Campaign status changes", ["status"]
)


def _on_donation(payload):
    DONATIONS_CAPTURED.inc()
    DONATION_AMOUNT.inc(float(payload.get("amount") or 0))


def _on_reward(payload):
    REWARD_TRANSITIONS.labels(status=payload["status"]).inc()


def _on_campaign(payload):
    CAMPAIGN_TRANSITIONS.labels(status=payload["status"]).inc()


def register_metric_subscribers() -> None:
    subscribe(Event.DONATION_COMPLETED, _on_donation)
    subscribe(Event.REWARD_STATUS_CHANGED, _on_reward)
    subscribe(Event.CAMPAIGN_STATUS_CHANGED, _on_campaign)
