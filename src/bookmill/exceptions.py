"""Unified exception hierarchy for bookmill.

All bookmill exceptions inherit from BookmillError, enabling:
- Catching all bookmill errors with `except BookmillError`
- Error context preservation via the `context` attribute
- Causality chains via `raise ... from e` patterns

Quality problems found on pages are not exceptions; they are collected as
QualityWarning/QualityError records and only turned into a QualityCheckError
when they block PDF generation.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from bookmill.models import PrintQualityCheck


class BookmillError(Exception):
    """Base exception for all bookmill errors.

    Args:
        message: Human-readable error description
        context: Optional dict of contextual information (page, provider, etc.)
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}

    def __str__(self) -> str:
        base = super().__str__()
        if self.context:
            details = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} [{details}]"
        return base


class ConfigError(BookmillError):
    """Raised when a job or provider configuration is invalid or cannot be loaded."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        suggestion: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context)
        self.field = field
        self.suggestion = suggestion

    def __str__(self) -> str:
        parts = []
        if self.field:
            parts.append(f"In field '{self.field}'")
        parts.append(super().__str__())
        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")
        return "\n".join(parts)


class QualityCheckError(BookmillError):
    """Raised when blocking quality errors prevent PDF generation.

    Attributes:
        report: The full quality report, warnings included
    """

    def __init__(self, report: "PrintQualityCheck"):
        self.report = report
        details = "; ".join(
            f"page {e.page_number}: {e.message}" if e.page_number is not None else e.message
            for e in report.errors
        )
        pages = sorted({e.page_number for e in report.errors if e.page_number is not None})
        super().__init__(f"Quality check failed: {details}", {"pages": pages} if pages else None)


class RenderError(BookmillError):
    """Raised when a page cannot be rendered or the print file cannot be assembled."""


class JobCancelledError(BookmillError):
    """Raised when a caller cancels a job between pipeline stages."""


class ProviderError(BookmillError):
    """Raised when a print provider call fails.

    Attributes:
        provider: Provider name (e.g. 'printful')
        status_code: HTTP status code, if a response was received
        raw_message: The provider's own error text, passed through verbatim
    """

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        raw_message: str | None = None,
    ):
        context: dict[str, Any] = {"provider": provider}
        if status_code is not None:
            context["status"] = status_code
        super().__init__(message, context)
        self.provider = provider
        self.status_code = status_code
        self.raw_message = raw_message


class ProviderValidationError(ProviderError):
    """4xx response: the request itself is wrong and must not be retried."""


class ProviderTransientError(ProviderError):
    """5xx response, timeout or connection failure: safe to retry."""


class ProviderNotConfiguredError(ProviderError):
    """Raised when a job names a provider that has no client configured."""

    def __init__(self, provider: str):
        super().__init__(f"Provider {provider} not configured", provider)
