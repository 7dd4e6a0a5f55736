"""Printful client: bearer-token REST API with a ``result`` envelope."""

from typing import Any

from bookmill.logging_config import get_logger
from bookmill.models import OrderCost, OrderStatus, PrintOrder, Recipient, TrackingInfo
from bookmill.providers.base import HttpProvider, OrderItem

logger = get_logger(__name__)

STATUS_MAP = {
    "draft": OrderStatus.DRAFT,
    "pending": OrderStatus.PENDING,
    "failed": OrderStatus.FAILED,
    "canceled": OrderStatus.CANCELLED,
    "inprocess": OrderStatus.PROCESSING,
    "onhold": OrderStatus.PENDING,
    "partial": OrderStatus.PROCESSING,
    "fulfilled": OrderStatus.SHIPPED,
}


def _money(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _variant_id(variant: str) -> int | str:
    return int(variant) if variant.isdigit() else variant


class PrintfulProvider(HttpProvider):
    """Printful print-on-demand API."""

    name = "printful"
    DEFAULT_BASE_URL = "https://api.printful.com"
    ITEM_PRODUCT_KEY = "variant_id"

    PHOTOBOOK_PRODUCTS = {
        "HARDCOVER_8X8": 254,
        "HARDCOVER_8X10": 255,
        "SOFTCOVER_8X8": 256,
        "SOFTCOVER_8X10": 257,
    }

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _unwrap(self, data: Any) -> Any:
        if isinstance(data, dict) and "result" in data:
            return data["result"]
        return data

    def list_products(self) -> list[dict[str, Any]]:
        return self._request("GET", "/products") or []

    def get_product(self, product_id: str) -> dict[str, Any]:
        return self._request("GET", f"/products/{product_id}")

    def create_order(
        self,
        recipient: Recipient,
        items: list[OrderItem],
        idempotency_key: str | None = None,
    ) -> PrintOrder:
        payload = {
            "recipient": self.recipient_payload(recipient),
            "items": [
                {
                    "variant_id": _variant_id(item.variant),
                    "quantity": item.quantity,
                    "files": [{"url": f.url, "type": f.type} for f in item.files],
                }
                for item in items
            ],
        }
        if idempotency_key:
            payload["external_id"] = idempotency_key

        raw = self._request("POST", "/orders", payload, idempotency_key=idempotency_key)
        order = self.to_print_order(raw, idempotency_key=idempotency_key)
        logger.info("Printful order %s created (%s)", order.id, order.status.value)
        return order

    def get_order(self, order_id: str) -> PrintOrder:
        return self.to_print_order(self._request("GET", f"/orders/{order_id}"))

    def confirm_order(self, order_id: str) -> PrintOrder:
        """Confirm a draft order for fulfilment (and payment)."""
        return self.to_print_order(self._request("POST", f"/orders/{order_id}/confirm"))

    def get_shipping_rates(self, order_id: str) -> Any:
        return self._request("GET", f"/orders/{order_id}/shipping")

    def cancel_order(self, order_id: str) -> None:
        self._request("DELETE", f"/orders/{order_id}")
        logger.info("Printful order %s cancelled", order_id)

    @staticmethod
    def map_status(vendor_status: str) -> OrderStatus:
        return STATUS_MAP.get(vendor_status, OrderStatus.PENDING)

    @staticmethod
    def recipient_payload(recipient: Recipient) -> dict[str, Any]:
        payload = {
            "name": recipient.name,
            "address1": recipient.address1,
            "city": recipient.city,
            "state_code": recipient.state_code,
            "country_code": recipient.country_code,
            "zip": recipient.zip,
        }
        if recipient.address2:
            payload["address2"] = recipient.address2
        if recipient.email:
            payload["email"] = recipient.email
        if recipient.phone:
            payload["phone"] = recipient.phone
        return payload

    def order_cost(self, raw: dict[str, Any]) -> OrderCost:
        costs = raw.get("costs") or {}
        return OrderCost(
            subtotal=_money(costs.get("subtotal")),
            shipping=_money(costs.get("shipping")),
            tax=_money(costs.get("tax")),
            total=_money(costs.get("total")),
            currency=costs.get("currency", "USD"),
        )

    def tracking_info(self, raw: dict[str, Any]) -> TrackingInfo | None:
        shipments = raw.get("shipments") or []
        if not shipments:
            return None
        shipment = shipments[0]
        return TrackingInfo(
            carrier=shipment.get("carrier", ""),
            tracking_number=str(shipment.get("tracking_number", "")),
            tracking_url=shipment.get("tracking_url", ""),
        )
