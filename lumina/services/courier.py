# lumina/services/courier.py
"""
Steadfast courier API client.

The storefront only consumes this API: hand an approved order over, then
read its delivery status back by polling or through the webhook.
"""
from __future__ import annotations
import requests

from ..errors import CourierError

# courier status -> label shown in the back office
STEADFAST_STATUSES = {
    "pending": "Pending",
    "delivered_approval_pending": "Delivered (Pending Approval)",
    "partial_delivered_approval_pending": "Partial Delivery (Pending Approval)",
    "cancelled_approval_pending": "Cancelled (Pending Approval)",
    "unknown_approval_pending": "Unknown Status (Pending Approval)",
    "delivered": "Delivered",
    "partial_delivered": "Partial Delivered",
    "cancelled": "Cancelled",
    "hold": "On Hold",
    "in_review": "In Review",
    "unknown": "Unknown",
}


def status_label(status: str | None) -> str:
    if not status:
        return "Not Sent to Courier"
    return STEADFAST_STATUSES.get(status, status)


class SteadfastClient:
    def __init__(self, base_url: str, api_key: str, secret_key: str, timeout: float = 15, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()
        self.http.headers.update({
            "Api-Key": api_key,
            "Secret-Key": secret_key,
            "Content-Type": "application/json",
        })

    @classmethod
    def from_config(cls, config):
        return cls(
            base_url=config["STEADFAST_BASE_URL"],
            api_key=config["STEADFAST_API_KEY"],
            secret_key=config["STEADFAST_SECRET_KEY"],
            timeout=config.get("COURIER_TIMEOUT", 15),
        )

    def _call(self, method: str, path: str, **kwargs) -> dict:
        try:
            r = self.http.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise CourierError(f"Steadfast API unreachable: {e}")
        if not r.ok:
            raise CourierError(f"Steadfast API error: {r.text}")
        try:
            return r.json()
        except ValueError:
            raise CourierError("Steadfast API returned invalid JSON")

    def create_order(self, order: dict) -> dict:
        body = {k: v for k, v in order.items() if v is not None}
        return self._call("POST", "/create_order", json=body)

    def status_by_consignment_id(self, consignment_id: str) -> dict:
        return self._call("GET", f"/status_by_cid/{consignment_id}")

    def status_by_invoice(self, invoice: str) -> dict:
        return self._call("GET", f"/status_by_invoice/{invoice}")

    def status_by_tracking_code(self, tracking_code: str) -> dict:
        return self._call("GET", f"/status_by_trackingcode/{tracking_code}")

    def get_balance(self) -> dict:
        return self._call("GET", "/get_balance")


def init_courier(app):
    app.extensions["courier"] = SteadfastClient.from_config(app.config)


def get_courier(app):
    return app.extensions["courier"]
