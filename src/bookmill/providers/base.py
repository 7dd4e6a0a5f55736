"""Abstract base class for print providers."""

import functools
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

import requests

from bookmill.config import ProviderSettings
from bookmill.exceptions import (
    ProviderError,
    ProviderNotConfiguredError,
    ProviderTransientError,
    ProviderValidationError,
)
from bookmill.logging_config import get_logger
from bookmill.models import OrderCost, OrderStatus, PrintOrder, PrintProduct, Recipient, TrackingInfo
from bookmill.providers.ratelimit import RateLimiter
from bookmill.providers.retry import with_retry

logger = get_logger(__name__)


@dataclass(frozen=True)
class PrintFile:
    """A print file reference as the provider downloads it."""

    url: str
    type: str = "default"


@dataclass(frozen=True)
class OrderItem:
    """One order line: a provider variant, a quantity and its print files."""

    variant: str
    quantity: int = 1
    files: tuple[PrintFile, ...] = field(default_factory=tuple)


class PrintProvider(ABC):
    """Abstract base class for print providers.

    Each provider (Printful, Gelato) implements this interface and translates
    its own vocabulary into PrintOrder, OrderCost and TrackingInfo. This keeps
    the orchestrator provider-agnostic and testable via MockProvider.

    Example:
        provider = get_provider("printful", settings)
        order = provider.create_order(recipient, items, idempotency_key="book-1-attempt-1")
        order = provider.get_order(order.id)
    """

    name: str = ""

    # Alias -> vendor product/variant id for common photobook products
    PHOTOBOOK_PRODUCTS: dict[str, Any] = {}

    # Key of the product/variant id inside a raw order item
    ITEM_PRODUCT_KEY = "variant"

    # File type used for the single print-ready PDF
    PRINT_FILE_TYPE = "default"

    @abstractmethod
    def list_products(self) -> list[dict[str, Any]]:
        """List the provider's catalogue."""

    @abstractmethod
    def get_product(self, product_id: str) -> dict[str, Any]:
        """Product details, including variants where the provider has them."""

    @abstractmethod
    def create_order(
        self,
        recipient: Recipient,
        items: list[OrderItem],
        idempotency_key: str | None = None,
    ) -> PrintOrder:
        """Submit an order.

        Args:
            recipient: Where to ship
            items: Order lines
            idempotency_key: Sent with the request; a retried submission with
                the same key never creates a second order

        Raises:
            ProviderValidationError: The provider rejected the order (4xx)
            ProviderTransientError: Retries exhausted on 5xx/timeouts
        """

    @abstractmethod
    def get_order(self, order_id: str) -> PrintOrder:
        """Fetch the current state of an order."""

    @abstractmethod
    def cancel_order(self, order_id: str) -> None:
        """Cancel an order that has not gone to production."""

    @staticmethod
    @abstractmethod
    def map_status(vendor_status: str) -> OrderStatus:
        """Translate a vendor status string; unknown strings map to PENDING."""

    @abstractmethod
    def order_cost(self, raw: dict[str, Any]) -> OrderCost:
        """Extract the cost block from a raw vendor order."""

    @abstractmethod
    def tracking_info(self, raw: dict[str, Any]) -> TrackingInfo | None:
        """Extract tracking from a raw vendor order, if it has shipped."""

    def resolve_variant(self, product: PrintProduct) -> str:
        """The vendor id for a product; known aliases are mapped, anything else is used as-is."""
        if product.variant in self.PHOTOBOOK_PRODUCTS:
            return str(self.PHOTOBOOK_PRODUCTS[product.variant])
        return product.variant

    def to_print_order(
        self,
        raw: dict[str, Any],
        pdf_url: str = "",
        idempotency_key: str | None = None,
    ) -> PrintOrder:
        """Translate a raw vendor order into the internal model."""
        if "id" not in raw:
            raise ProviderError(f"{self.name} returned an order without an id", self.name)

        items = raw.get("items") or [{}]
        item = items[0]
        if not pdf_url:
            files = item.get("files") or [{}]
            pdf_url = files[0].get("url", "")

        return PrintOrder(
            id=str(raw["id"]),
            provider=self.name,
            product_id=str(item.get(self.ITEM_PRODUCT_KEY, "")),
            quantity=int(item.get("quantity", 1)),
            pdf_url=pdf_url,
            status=self.map_status(str(raw.get("status", ""))),
            cost=self.order_cost(raw),
            tracking=self.tracking_info(raw),
            idempotency_key=idempotency_key,
        )


def _error_text(response: requests.Response) -> str:
    """The provider's own error message, falling back to the reason phrase."""
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason or ""
    if isinstance(data, dict):
        for key in ("error", "message", "result"):
            value = data.get(key)
            if isinstance(value, dict):
                value = value.get("message") or value.get("reason")
            if isinstance(value, str) and value:
                return value
    return response.reason or ""


class HttpProvider(PrintProvider):
    """Shared HTTP plumbing for REST providers.

    Every call goes through the rate limiter, carries an explicit timeout and
    is classified into ProviderValidationError (4xx, never retried) or
    ProviderTransientError (5xx, timeout, connection failure). GETs are
    retried with exponential backoff; writes are retried only when they carry
    an idempotency key.
    """

    DEFAULT_BASE_URL = ""

    def __init__(
        self,
        settings: ProviderSettings,
        session: requests.Session | None = None,
        rate_limiter: RateLimiter | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = settings.resolve_api_key()
        if not self.api_key:
            raise ProviderNotConfiguredError(self.name)
        self.settings = settings
        self.base_url = (settings.base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.rate_limiter = rate_limiter
        self._sleep = sleep

    @abstractmethod
    def _auth_headers(self) -> dict[str, str]:
        """Authentication headers for every request."""

    def _unwrap(self, data: Any) -> Any:
        """Strip the provider's response envelope."""
        return data

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
    ) -> Any:
        call = functools.partial(self._send, method, path, payload, idempotency_key)
        if method != "GET" and idempotency_key is None:
            return call()
        return with_retry(
            call,
            max_retries=self.settings.max_retries,
            base_delay=self.settings.backoff,
            label=f"{self.name} {method} {path}",
            sleep=self._sleep,
        )

    def _send(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None,
        idempotency_key: str | None,
    ) -> Any:
        if self.rate_limiter is not None:
            self.rate_limiter.acquire(self.name)

        headers = {"Content-Type": "application/json", **self._auth_headers()}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        logger.debug("%s %s %s", self.name, method, path)
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers=headers,
                timeout=self.settings.timeout,
            )
        except requests.Timeout as e:
            raise ProviderTransientError(f"{self.name} API timed out: {method} {path}", self.name) from e
        except requests.ConnectionError as e:
            raise ProviderTransientError(f"{self.name} API unreachable: {e}", self.name) from e
        except (requests.exceptions.ChunkedEncodingError, requests.exceptions.ContentDecodingError) as e:
            raise ProviderTransientError(f"{self.name} API response broken: {e}", self.name, raw_message=str(e)) from e
        except requests.RequestException as e:
            raise ProviderError(f"{self.name} API request failed: {e}", self.name, raw_message=str(e)) from e

        status = response.status_code
        if status >= 500:
            raw = _error_text(response)
            raise ProviderTransientError(f"{self.name} API error {status}: {raw}", self.name, status, raw)
        if status >= 400:
            raw = _error_text(response)
            raise ProviderValidationError(f"{self.name} API error {status}: {raw}", self.name, status, raw)

        if not response.content:
            return None
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"{self.name} API returned invalid JSON", self.name, status) from e
        return self._unwrap(data)
