"""Retry helper with exponential backoff."""

import time
from typing import Any, Callable, TypeVar

from bookmill.constants import DEFAULT_BACKOFF_SECONDS, DEFAULT_MAX_RETRIES, MAX_BACKOFF_SECONDS
from bookmill.exceptions import ProviderTransientError
from bookmill.logging_config import get_logger

logger = get_logger(__name__)

__all__ = ("with_retry", "backoff_delay")

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number ``attempt + 1`` (attempt counts from 0)."""
    return min(base_delay * (2 ** attempt), max_delay)


def with_retry(
    fn: Callable[..., T],
    *args: Any,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BACKOFF_SECONDS,
    max_delay: float = MAX_BACKOFF_SECONDS,
    retryable: tuple[type[BaseException], ...] = (ProviderTransientError,),
    label: str = "",
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """Call ``fn`` and retry on ``retryable`` exceptions.

    Args:
        fn: Callable to invoke
        max_retries: Number of retries (0 means call once)
        base_delay: Initial delay in seconds, doubled on each attempt
        max_delay: Ceiling for the delay
        retryable: Exception types that trigger a retry; anything else
            propagates immediately
        label: Name used in log messages
        sleep: Sleep function, replaceable in tests

    Raises:
        The last retryable exception once retries are exhausted.
    """
    tag = label or getattr(fn, "__name__", "call")
    last_exc: BaseException | None = None

    for attempt in range(max_retries + 1):
        try:
            return fn(*args, **kwargs)
        except retryable as exc:
            last_exc = exc
            if attempt == max_retries:
                break
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                "%s: attempt %d/%d failed (%s: %s), retrying in %.1fs",
                tag,
                attempt + 1,
                max_retries + 1,
                type(exc).__name__,
                exc,
                delay,
            )
            sleep(delay)

    logger.error("%s: giving up after %d attempt(s)", tag, max_retries + 1)
    raise last_exc  # type: ignore[misc]
