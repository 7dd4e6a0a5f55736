"""Print provider clients."""

from bookmill.providers.base import HttpProvider, OrderItem, PrintFile, PrintProvider
from bookmill.providers.factory import build_providers, get_provider
from bookmill.providers.gelato import GelatoProvider
from bookmill.providers.mock import MockProvider
from bookmill.providers.printful import PrintfulProvider
from bookmill.providers.ratelimit import RateLimiter

__all__ = [
    "PrintProvider",
    "HttpProvider",
    "OrderItem",
    "PrintFile",
    "PrintfulProvider",
    "GelatoProvider",
    "MockProvider",
    "RateLimiter",
    "get_provider",
    "build_providers",
]
