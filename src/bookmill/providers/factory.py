"""Factory functions for print provider selection."""

from typing import TYPE_CHECKING

from bookmill.config import ProviderSettings
from bookmill.exceptions import ConfigError, ProviderNotConfiguredError
from bookmill.logging_config import get_logger
from bookmill.providers.ratelimit import RateLimiter

if TYPE_CHECKING:
    import requests

    from bookmill.providers.base import PrintProvider

logger = get_logger(__name__)


def get_provider(
    name: str,
    settings: ProviderSettings | None = None,
    session: "requests.Session | None" = None,
    rate_limiter: RateLimiter | None = None,
) -> "PrintProvider":
    """Get a provider client by name.

    Args:
        name: Provider name ('printful', 'gelato', 'mock')
        settings: Connection settings; defaults read the key from the environment
        session: HTTP session to share between calls
        rate_limiter: Limiter for outgoing calls; one is built from the
            settings when omitted

    Raises:
        ConfigError: If the provider name is not recognized
        ProviderNotConfiguredError: If the provider has no API key
    """
    providers = {
        "printful": _get_printful,
        "gelato": _get_gelato,
    }

    if name == "mock":
        from bookmill.providers.mock import MockProvider
        return MockProvider()

    if name not in providers:
        available = ", ".join(sorted([*providers, "mock"]))
        raise ConfigError(
            f"Unknown print provider: '{name}'",
            field="provider",
            suggestion=f"Available: {available}",
        )

    settings = settings or ProviderSettings(name=name)
    if rate_limiter is None:
        rate_limiter = RateLimiter(settings.rate_limit, settings.rate_window)
    return providers[name](settings, session, rate_limiter)


def build_providers(
    settings: dict[str, ProviderSettings],
    session: "requests.Session | None" = None,
    rate_limiter: RateLimiter | None = None,
) -> dict[str, "PrintProvider"]:
    """Build every provider that has credentials; others are skipped."""
    built = {}
    for name, provider_settings in settings.items():
        try:
            built[name] = get_provider(name, provider_settings, session, rate_limiter)
        except ProviderNotConfiguredError:
            logger.debug("Provider %s has no API key, skipping", name)
    return built


def _get_printful(settings, session, rate_limiter) -> "PrintProvider":
    from bookmill.providers.printful import PrintfulProvider
    return PrintfulProvider(settings, session=session, rate_limiter=rate_limiter)


def _get_gelato(settings, session, rate_limiter) -> "PrintProvider":
    from bookmill.providers.gelato import GelatoProvider
    return GelatoProvider(settings, session=session, rate_limiter=rate_limiter)
