"""Gelato client: API-key REST API with a global production network."""

import uuid
from datetime import datetime
from typing import Any

from bookmill.logging_config import get_logger
from bookmill.models import OrderCost, OrderStatus, PrintOrder, Recipient, TrackingInfo
from bookmill.providers.base import HttpProvider, OrderItem

logger = get_logger(__name__)

STATUS_MAP = {
    "draft": OrderStatus.DRAFT,
    "created": OrderStatus.PENDING,
    "processing": OrderStatus.PROCESSING,
    "production": OrderStatus.PRINTING,
    "shipped": OrderStatus.SHIPPED,
    "delivered": OrderStatus.DELIVERED,
    "error": OrderStatus.FAILED,
    "cancelled": OrderStatus.CANCELLED,
}


def _parse_datetime(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Ignoring unparseable delivery estimate %r", value)
        return None


class GelatoProvider(HttpProvider):
    """Gelato print API."""

    name = "gelato"
    DEFAULT_BASE_URL = "https://api.gelato.com/v1"
    ITEM_PRODUCT_KEY = "productUid"
    PRINT_FILE_TYPE = "full"

    PHOTOBOOK_PRODUCTS = {
        "HARDCOVER_A4": "photobook_hardcover_a4_portrait",
        "HARDCOVER_SQUARE": "photobook_hardcover_square_210",
        "SOFTCOVER_A4": "photobook_softcover_a4_portrait",
        "SOFTCOVER_SQUARE": "photobook_softcover_square_210",
    }

    def _auth_headers(self) -> dict[str, str]:
        return {"X-API-KEY": self.api_key}

    def list_products(self) -> list[dict[str, Any]]:
        data = self._request("GET", "/products")
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            return data.get("products", [])
        return []

    def get_product(self, product_id: str) -> dict[str, Any]:
        return self._request("GET", f"/products/{product_id}")

    def create_order(
        self,
        recipient: Recipient,
        items: list[OrderItem],
        idempotency_key: str | None = None,
    ) -> PrintOrder:
        payload = {
            "orderReferenceId": idempotency_key or f"order-{uuid.uuid4().hex}",
            "items": [
                {
                    "productUid": item.variant,
                    "quantity": item.quantity,
                    "files": [{"url": f.url, "type": f.type} for f in item.files],
                }
                for item in items
            ],
            "shippingAddress": self.address_payload(recipient),
        }

        raw = self._request("POST", "/orders", payload, idempotency_key=idempotency_key)
        order = self.to_print_order(raw, idempotency_key=idempotency_key)
        logger.info("Gelato order %s created (%s)", order.id, order.status.value)
        return order

    def get_order(self, order_id: str) -> PrintOrder:
        return self.to_print_order(self._request("GET", f"/orders/{order_id}"))

    def cancel_order(self, order_id: str) -> None:
        self._request("POST", f"/orders/{order_id}/cancel")
        logger.info("Gelato order %s cancelled", order_id)

    def get_shipping_quote(self, product_uid: str, quantity: int, destination_country: str) -> Any:
        return self._request(
            "POST",
            "/shipping/quote",
            {
                "productUid": product_uid,
                "quantity": quantity,
                "destinationCountry": destination_country,
            },
        )

    @staticmethod
    def map_status(vendor_status: str) -> OrderStatus:
        return STATUS_MAP.get(vendor_status, OrderStatus.PENDING)

    @staticmethod
    def address_payload(recipient: Recipient) -> dict[str, Any]:
        first, _, last = recipient.name.partition(" ")
        payload = {
            "firstName": first,
            "lastName": last,
            "addressLine1": recipient.address1,
            "city": recipient.city,
            "postCode": recipient.zip,
            "country": recipient.country_code,
        }
        if recipient.address2:
            payload["addressLine2"] = recipient.address2
        if recipient.state_code:
            payload["state"] = recipient.state_code
        if recipient.email:
            payload["email"] = recipient.email
        if recipient.phone:
            payload["phone"] = recipient.phone
        return payload

    def order_cost(self, raw: dict[str, Any]) -> OrderCost:
        # Gelato reports a single amount; shipping and tax are folded into it
        cost = raw.get("cost") or {}
        amount = float(cost.get("amount") or 0)
        return OrderCost(
            subtotal=amount,
            shipping=0.0,
            tax=0.0,
            total=amount,
            currency=cost.get("currency", "USD"),
        )

    def tracking_info(self, raw: dict[str, Any]) -> TrackingInfo | None:
        shipment = raw.get("shipment")
        if not shipment:
            return None
        return TrackingInfo(
            carrier=shipment.get("carrier", ""),
            tracking_number=str(shipment.get("trackingNumber", "")),
            tracking_url=shipment.get("trackingUrl", ""),
            estimated_delivery=_parse_datetime(shipment.get("estimatedDelivery")),
        )
