"""Mock print provider for testing."""

from typing import Any

from bookmill.exceptions import ProviderValidationError
from bookmill.models import OrderCost, OrderStatus, PrintOrder, Recipient, TrackingInfo
from bookmill.providers.base import OrderItem, PrintProvider


class MockProvider(PrintProvider):
    """Mock provider for testing.

    Records all calls for verification in tests and keeps orders in memory.
    Vendor statuses are the internal status names; ``set_status`` simulates
    the provider progressing an order.

    Example:
        provider = MockProvider()
        order = provider.create_order(recipient, items, idempotency_key="k")
        provider.set_status(order.id, "shipped")
        assert provider.get_order(order.id).status == OrderStatus.SHIPPED
    """

    name = "mock"

    def __init__(
        self,
        products: list[dict[str, Any]] | None = None,
        fail_on_create: bool = False,
        unit_price: float = 25.0,
    ):
        """Initialize mock provider.

        Args:
            products: Catalogue returned by list_products()
            fail_on_create: If True, create_order() raises ProviderValidationError
            unit_price: Price per book used for order costs
        """
        self.products = products or [{"id": "mock-photobook", "name": "Mock Photobook"}]
        self.fail_on_create = fail_on_create
        self.unit_price = unit_price
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.orders: dict[str, dict[str, Any]] = {}
        self._keys: dict[str, str] = {}

    def list_products(self) -> list[dict[str, Any]]:
        self.calls.append(("list_products", {}))
        return self.products

    def get_product(self, product_id: str) -> dict[str, Any]:
        self.calls.append(("get_product", {"product_id": product_id}))
        for product in self.products:
            if str(product.get("id")) == product_id:
                return product
        raise ProviderValidationError(f"Unknown product {product_id}", self.name, 404, "Not found")

    def create_order(
        self,
        recipient: Recipient,
        items: list[OrderItem],
        idempotency_key: str | None = None,
    ) -> PrintOrder:
        self.calls.append((
            "create_order",
            {"recipient": recipient, "items": items, "idempotency_key": idempotency_key},
        ))
        if self.fail_on_create:
            raise ProviderValidationError("Order rejected", self.name, 400, "Order rejected")

        # Same key, same order
        if idempotency_key and idempotency_key in self._keys:
            return self.to_print_order(self.orders[self._keys[idempotency_key]], idempotency_key=idempotency_key)

        order_id = f"mock-{len(self.orders) + 1}"
        quantity = sum(item.quantity for item in items)
        self.orders[order_id] = {
            "id": order_id,
            "status": "pending",
            "items": [
                {
                    "variant": item.variant,
                    "quantity": item.quantity,
                    "files": [{"url": f.url, "type": f.type} for f in item.files],
                }
                for item in items
            ],
            "cost": {"subtotal": self.unit_price * quantity, "currency": "USD"},
        }
        if idempotency_key:
            self._keys[idempotency_key] = order_id
        return self.to_print_order(self.orders[order_id], idempotency_key=idempotency_key)

    def get_order(self, order_id: str) -> PrintOrder:
        self.calls.append(("get_order", {"order_id": order_id}))
        return self.to_print_order(self._raw(order_id))

    def cancel_order(self, order_id: str) -> None:
        self.calls.append(("cancel_order", {"order_id": order_id}))
        self._raw(order_id)["status"] = "cancelled"

    def set_status(self, order_id: str, status: str, tracking: dict[str, str] | None = None) -> None:
        raw = self._raw(order_id)
        raw["status"] = status
        if tracking is not None:
            raw["tracking"] = tracking

    @staticmethod
    def map_status(vendor_status: str) -> OrderStatus:
        try:
            return OrderStatus(vendor_status)
        except ValueError:
            return OrderStatus.PENDING

    def order_cost(self, raw: dict[str, Any]) -> OrderCost:
        cost = raw.get("cost") or {}
        subtotal = float(cost.get("subtotal", 0))
        return OrderCost(subtotal=subtotal, shipping=0.0, tax=0.0, total=subtotal, currency=cost.get("currency", "USD"))

    def tracking_info(self, raw: dict[str, Any]) -> TrackingInfo | None:
        tracking = raw.get("tracking")
        if not tracking:
            return None
        return TrackingInfo(
            carrier=tracking.get("carrier", ""),
            tracking_number=tracking.get("tracking_number", ""),
            tracking_url=tracking.get("tracking_url", ""),
        )

    def reset(self) -> None:
        """Clear recorded calls and orders."""
        self.calls.clear()
        self.orders.clear()
        self._keys.clear()

    def _raw(self, order_id: str) -> dict[str, Any]:
        if order_id not in self.orders:
            raise ProviderValidationError(f"Unknown order {order_id}", self.name, 404, "Not found")
        return self.orders[order_id]
