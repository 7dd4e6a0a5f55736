"""Print production orchestration.

One PrintOrchestrator drives one job through its stages::

    validating -> (fixing) -> previewing -> rendering -> rendered
        -> [submitting -> tracking]

Production (quality, fixes, preview, PDF) is a pure function of the job
config. Submission and tracking talk to providers and are the only stages
that can partially fail: a rejected order keeps the PDF and the report.
"""

import io
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from bookmill.autofix import AppliedFix, AutoFixer
from bookmill.config import default_provider_settings
from bookmill.constants import THUMBNAIL_DPI
from bookmill.exceptions import (
    BookmillError,
    ConfigError,
    JobCancelledError,
    ProviderError,
    ProviderNotConfiguredError,
    QualityCheckError,
)
from bookmill.geometry import format_file_size, mm_to_pixels
from bookmill.logging_config import get_logger, set_job_context
from bookmill.models import (
    OrderStatus,
    PrintJobConfig,
    PrintOrder,
    PrintPage,
    PrintPreview,
    PrintQualityCheck,
    Recipient,
)
from bookmill.pdf import PDFGenerator
from bookmill.providers import OrderItem, PrintFile, PrintProvider, build_providers
from bookmill.quality import QualityChecker
from bookmill.render import PillowSceneRenderer, SceneRenderer
from bookmill.simulator import PrintSimulator
from bookmill.validation import JobValidator

logger = get_logger(__name__)


class JobStage(str, Enum):
    VALIDATING = "validating"
    FIXING = "fixing"
    PREVIEWING = "previewing"
    RENDERING = "rendering"
    RENDERED = "rendered"
    SUBMITTING = "submitting"
    TRACKING = "tracking"
    FAILED = "failed"


@dataclass
class PrintJobResult:
    """Everything produced for one job.

    ``config`` is the job as rendered, i.e. after automatic fixes.
    """

    pdf_bytes: bytes
    quality_check: PrintQualityCheck
    preview: PrintPreview
    config: PrintJobConfig
    fixes: list[AppliedFix] = field(default_factory=list)
    stages: list[JobStage] = field(default_factory=list)
    order: PrintOrder | None = None
    submission_error: ProviderError | None = None


class PrintOrchestrator:
    """Coordinates quality checks, fixes, preview, rendering and ordering.

    Args:
        config: The job; never mutated
        providers: Provider clients by name. When None, clients are built for
            every provider with an API key in the environment.
        renderer: Scene rasteriser shared by preview and PDF rendering
        max_workers: Thread pool bound for page checks and spread rendering
        cancel_event: Set it (or call cancel()) to stop between stages
    """

    def __init__(
        self,
        config: PrintJobConfig,
        providers: dict[str, PrintProvider] | None = None,
        renderer: SceneRenderer | None = None,
        max_workers: int | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.config = config
        self.providers = providers if providers is not None else build_providers(default_provider_settings())
        self.renderer = renderer or PillowSceneRenderer()
        self.max_workers = max_workers
        self.cancel_event = cancel_event or threading.Event()
        self.simulator = PrintSimulator(config.color_profile)
        self.validator = JobValidator()
        self.stages: list[JobStage] = []
        self._orders: dict[str, PrintOrder] = {}

    @property
    def stage(self) -> JobStage | None:
        return self.stages[-1] if self.stages else None

    def cancel(self) -> None:
        self.cancel_event.set()

    # ------------------------------------------------------------------
    # Production
    # ------------------------------------------------------------------

    def produce_print_job(self) -> PrintJobResult:
        """Run quality checks, fixes, preview and rendering.

        Raises:
            ConfigError: The product cannot be printed (bleed, DPI or page list)
            QualityCheckError: Blocking quality errors remain
            JobCancelledError: The job was cancelled between stages
            RenderError: The print file could not be rendered
        """
        config = self.config
        set_job_context(config.project_id)
        logger.info("Starting print production for %s", config.project_id)

        try:
            self._check_cancelled()
            self._enter(JobStage.VALIDATING)
            self.validator.validate_printable(config)
            if config.quality_checks:
                report = self.run_quality_checks(config)
            else:
                logger.info("Quality checks disabled")
                report = PrintQualityCheck()

            fixes: list[AppliedFix] = []
            if config.auto_fix and report.fixable_warnings:
                self._check_cancelled()
                self._enter(JobStage.FIXING)
                fixer = AutoFixer(config.product.dimensions)
                config = fixer.fix_config(config, report)
                fixes = list(fixer.applied)
                if fixes and config.quality_checks:
                    report = self.run_quality_checks(config)

            if not report.passed:
                raise QualityCheckError(report)

            self._check_cancelled()
            self._enter(JobStage.PREVIEWING)
            preview = self.generate_preview(config)

            self._check_cancelled()
            self._enter(JobStage.RENDERING)
            generator = PDFGenerator(config, renderer=self.renderer, max_workers=self.max_workers)
            pdf_bytes = generator.generate_print_pdf()

            if config.output_path:
                output = Path(config.output_path)
                output.parent.mkdir(parents=True, exist_ok=True)
                output.write_bytes(pdf_bytes)
                logger.info("Saved: %s (%s)", output, format_file_size(len(pdf_bytes)))

            self._enter(JobStage.RENDERED)
        except BookmillError:
            self._enter(JobStage.FAILED)
            raise

        logger.info("Print production complete: %s", report.summary())
        return PrintJobResult(
            pdf_bytes=pdf_bytes,
            quality_check=report,
            preview=preview,
            config=config,
            fixes=fixes,
            stages=list(self.stages),
        )

    def run_quality_checks(self, config: PrintJobConfig | None = None) -> PrintQualityCheck:
        """Check the front and back cover and every interior page."""
        config = config or self.config
        checker = QualityChecker(config.product.dimensions)
        checker.check_page(config.cover.front)
        checker.check_page(config.cover.back)
        checker.check_pages(config.pages, max_workers=self.max_workers)

        report = checker.get_result()
        logger.info("Quality check of %d page(s): %s", checker.pages_checked, report.summary())
        for warning in report.warnings:
            logger.debug("Page %s: %s", warning.page_number, warning.message)
        for error in report.errors:
            logger.warning("Page %s: %s", error.page_number, error.message)
        return report

    def preview_pages(self, config: PrintJobConfig | None = None) -> list[PrintPage]:
        """Front cover, first interior page and middle interior page."""
        config = config or self.config
        pages = [config.cover.front]
        if config.pages:
            pages.append(config.pages[0])
            pages.append(config.pages[len(config.pages) // 2])
        return pages

    def generate_preview(self, config: PrintJobConfig | None = None) -> PrintPreview:
        config = config or self.config
        dims = config.product.dimensions
        size = (
            mm_to_pixels(dims.width + dims.bleed * 2, THUMBNAIL_DPI),
            mm_to_pixels(dims.height + dims.bleed * 2, THUMBNAIL_DPI),
        )
        origin = (mm_to_pixels(dims.bleed, THUMBNAIL_DPI),) * 2

        scenes = []
        thumbnails = []
        for page in self.preview_pages(config):
            scene = self.simulator.simulate_canvas(page.scene)
            image = self.renderer.render(scene, size, origin, THUMBNAIL_DPI)
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
            scenes.append(scene)
            thumbnails.append(buffer.getvalue())

        logger.debug("Generated %d preview thumbnail(s)", len(thumbnails))
        return PrintPreview(
            color_profile=config.color_profile,
            scenes=tuple(scenes),
            thumbnails=tuple(thumbnails),
        )

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def idempotency_key(self, attempt: int = 1) -> str:
        """Stable per job and attempt, so a retried submission is deduplicated."""
        return f"{self.config.project_id}-attempt-{attempt}"

    def submit_order(
        self,
        provider: str,
        recipient: Recipient | dict[str, Any],
        pdf_url: str,
        quantity: int = 1,
        attempt: int = 1,
    ) -> PrintOrder:
        """Submit the rendered book to a provider.

        Raises:
            ProviderNotConfiguredError: No client for ``provider``
            ProviderError: The provider rejected or could not take the order
        """
        client = self._provider(provider)
        if isinstance(recipient, dict):
            recipient = Recipient.from_dict(recipient)

        self._enter(JobStage.SUBMITTING)
        items = [OrderItem(
            variant=client.resolve_variant(self.config.product),
            quantity=quantity,
            files=(PrintFile(url=pdf_url, type=client.PRINT_FILE_TYPE),),
        )]
        logger.info("Submitting %s to %s (quantity %d)", self.config.project_id, provider, quantity)
        order = client.create_order(recipient, items, idempotency_key=self.idempotency_key(attempt))

        if self.config.product.id:
            order.product_id = self.config.product.id
        order.pdf_url = pdf_url
        self._orders[order.id] = order
        return order

    def track_order(self, order_id: str, provider: str) -> PrintOrder:
        """Refresh an order; status only moves forward."""
        client = self._provider(provider)
        self._enter(JobStage.TRACKING)
        latest = client.get_order(order_id)

        known = self._orders.get(order_id)
        if known is None:
            self._orders[order_id] = latest
            return latest

        if known.advance(latest.status):
            logger.info("Order %s is now %s", order_id, known.status.value)
        if latest.tracking is not None:
            known.tracking = latest.tracking
        known.cost = latest.cost
        return known

    def cancel_order(self, order_id: str, provider: str) -> PrintOrder | None:
        client = self._provider(provider)
        client.cancel_order(order_id)
        known = self._orders.get(order_id)
        if known is not None:
            known.advance(OrderStatus.CANCELLED)
        return known

    def run(
        self,
        provider: str | None = None,
        recipient: Recipient | dict[str, Any] | None = None,
        pdf_url: str = "",
        quantity: int = 1,
    ) -> PrintJobResult:
        """Produce the job and, if a provider is given, submit it.

        A failed submission does not discard the production result; the error
        is returned in ``submission_error``.
        """
        if provider and (recipient is None or not pdf_url):
            raise ConfigError(
                "Submitting an order needs a recipient and a PDF URL",
                field="provider",
                suggestion="Upload the PDF and pass its URL with the recipient",
            )
        if provider and isinstance(recipient, dict):
            recipient = Recipient.from_dict(recipient)

        result = self.produce_print_job()
        if provider:
            try:
                result.order = self.submit_order(provider, recipient, pdf_url, quantity)
            except ProviderError as e:
                logger.error("Order submission failed: %s", e)
                result.submission_error = e
                self._enter(JobStage.FAILED)
        result.stages = list(self.stages)
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _provider(self, name: str) -> PrintProvider:
        if name not in self.providers:
            raise ProviderNotConfiguredError(name)
        return self.providers[name]

    def _enter(self, stage: JobStage) -> None:
        if self.stage == stage:
            return
        self.stages.append(stage)
        logger.debug("Stage: %s", stage.value)

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise JobCancelledError(
                f"Job {self.config.project_id} cancelled",
                {"stage": self.stage.value if self.stage else "start"},
            )
