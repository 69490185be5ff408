"""
Thin PayPal Orders v2 client over requests.

Configure via PAYPAL_CLIENT_ID, PAYPAL_CLIENT_SECRET, PAYPAL_API_BASE (sandbox by
default) and PAYPAL_CURRENCY. PAYPAL_DEV_MODE=1 turns on dev mode for local work:
order ids are fabricated and captures always complete. Outside dev mode missing
credentials are an error, never a silent fallback.
"""

from __future__ import annotations
import logging
import os
import uuid
from decimal import Decimal
from typing import Any, Dict

import requests

log = logging.getLogger(__name__)

PAYPAL_CLIENT_ID = os.getenv("PAYPAL_CLIENT_ID", "")
PAYPAL_CLIENT_SECRET = os.getenv("PAYPAL_CLIENT_SECRET", "")
PAYPAL_API_BASE = os.getenv("PAYPAL_API_BASE", "https://api-m.sandbox.paypal.com")
CURRENCY = os.getenv("PAYPAL_CURRENCY", "USD")
DEV_MODE = os.getenv("PAYPAL_DEV_MODE", "0").lower() in ("1", "true", "yes")
TIMEOUT = 15


class PayPalError(Exception):
    pass


def dev_mode() -> bool:
    return DEV_MODE


def _access_token() -> str:
    if not PAYPAL_CLIENT_ID or not PAYPAL_CLIENT_SECRET:
        raise PayPalError("PayPal credentials are not configured")
    try:
        resp = requests.post(
            f"{PAYPAL_API_BASE}/v1/oauth2/token",
            auth=(PAYPAL_CLIENT_ID, PAYPAL_CLIENT_SECRET),
            data={"grant_type": "client_credentials"},
            timeout=TIMEOUT,
        )
    except requests.RequestException as e:
        raise PayPalError(f"network error: {e}") from e
    if resp.status_code != 200:
        raise PayPalError(f"token request failed ({resp.status_code})")
    try:
        token = resp.json()["access_token"]
    except (ValueError, KeyError, TypeError) as e:
        raise PayPalError("token response had no access_token") from e
    return token


def _call(method: str, path: str, body: Dict[str, Any] | None = None, request_id: str | None = None) -> Dict[str, Any]:
    headers = {
        "Authorization": f"Bearer {_access_token()}",
        "Content-Type": "application/json",
    }
    if request_id:
        headers["PayPal-Request-Id"] = request_id
    try:
        resp = requests.request(
            method, f"{PAYPAL_API_BASE}{path}", json=body or {}, headers=headers, timeout=TIMEOUT
        )
    except requests.RequestException as e:
        raise PayPalError(f"network error: {e}") from e
    if resp.status_code >= 400:
        try:
            detail = resp.json().get("message") or resp.text
        except ValueError:
            detail = resp.text
        raise PayPalError(f"{method} {path} failed ({resp.status_code}): {detail}")
    return resp.json() if resp.content else {}


def create_order(amount: Decimal, *, reference_id: str, description: str | None = None) -> str:
    """Create a CAPTURE-intent order and return its id."""
    if dev_mode():
        order_id = f"DEV-{uuid.uuid4().hex[:17].upper()}"
        log.info("[paypal][dev] create_order %s amount=%s", order_id, amount)
        return order_id
    unit = {
        "reference_id": reference_id,
        "amount": {"currency_code": CURRENCY, "value": f"{amount:.2f}"},
    }
    if description:
        unit["description"] = description[:127]
    data = _call(
        "POST",
        "/v2/checkout/orders",
        {"intent": "CAPTURE", "purchase_units": [unit]},
        request_id=f"order-{reference_id}-{uuid.uuid4().hex}",
    )
    return data["id"]


def capture_order(order_id: str) -> Dict[str, Any]:
    """
    Capture an approved order.
    Returns {"completed": bool, "capture_id": str | None}.
    """
    if dev_mode():
        log.info("[paypal][dev] capture_order %s", order_id)
        return {"completed": True, "capture_id": f"DEVCAP-{uuid.uuid4().hex[:12].upper()}"}
    data = _call("POST", f"/v2/checkout/orders/{order_id}/capture", request_id=f"capture-{order_id}")
    capture_id = None
    for unit in data.get("purchase_units") or []:
        for cap in (unit.get("payments") or {}).get("captures") or []:
            capture_id = cap.get("id")
    return {"completed": data.get("status") == "COMPLETED", "capture_id": capture_id}


def refund_capture(capture_id: str | None) -> Dict[str, Any]:
    if dev_mode():
        log.info("[paypal][dev] refund_capture %s", capture_id)
        return {"status": "COMPLETED"}
    if not capture_id:
        raise PayPalError("donation has no capture to refund")
    return _call("POST", f"/v2/payments/captures/{capture_id}/refund", request_id=f"refund-{capture_id}")
