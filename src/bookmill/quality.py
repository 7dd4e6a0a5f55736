"""Print quality checks.

A QualityChecker is created per print job. Each page is evaluated by a set of
independent rules into a PageFindings record; findings are merged into the
checker in page order, and get_result() scores the accumulated report.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable

from bookmill.color import detect_print_problems, hex_to_rgb, is_in_cmyk_gamut
from bookmill.constants import (
    DIMENSION_TOLERANCE_MM,
    LOW_DPI_THRESHOLD,
    MM_TO_POINTS,
    SAFE_ZONE_MM,
    SCORE_PER_ERROR,
    SCORE_PER_SEVERITY,
    TARGET_DPI,
)
from bookmill.logging_config import get_logger
from bookmill.models import (
    ErrorType,
    PageKind,
    PrintDimensions,
    PrintMargins,
    PrintPage,
    PrintQualityCheck,
    QualityError,
    QualityWarning,
    Severity,
    WarningType,
)

logger = get_logger(__name__)

# Page kinds whose trim box must match the product trim size
_TRIM_CHECKED_KINDS = (PageKind.SINGLE, PageKind.COVER_FRONT, PageKind.COVER_BACK)


@dataclass
class PageFindings:
    """Findings for one page, before merging into the job report."""

    page_number: int
    warnings: list[QualityWarning] = field(default_factory=list)
    errors: list[QualityError] = field(default_factory=list)

    def warn(
        self,
        type: WarningType,
        severity: Severity,
        message: str,
        auto_fixable: bool = False,
    ) -> None:
        self.warnings.append(QualityWarning(
            type=type,
            severity=severity,
            message=message,
            page_number=self.page_number,
            auto_fixable=auto_fixable,
        ))

    def error(self, type: ErrorType, message: str) -> None:
        self.errors.append(QualityError(
            type=type,
            message=message,
            page_number=self.page_number,
        ))


def calculate_score(warnings: Iterable[QualityWarning], errors: Iterable[QualityError]) -> int:
    """100 minus deductions per finding, clamped to 0-100."""
    score = 100
    score -= sum(SCORE_PER_ERROR for e in errors if e.blocking)
    score -= sum(SCORE_PER_SEVERITY[w.severity.value] for w in warnings)
    return max(0, min(100, score))


class QualityChecker:
    """Accumulates quality findings across the pages of one print job."""

    def __init__(self, dimensions: PrintDimensions, margins: PrintMargins | None = None):
        self.dimensions = dimensions
        self.margins = margins
        self.warnings: list[QualityWarning] = []
        self.errors: list[QualityError] = []
        self.pages_checked = 0

    def check_page(self, page: PrintPage) -> None:
        self._merge(self.evaluate_page(page))

    def check_pages(self, pages: Iterable[PrintPage], max_workers: int | None = None) -> None:
        """Check many pages concurrently; findings are merged in input order."""
        pages = list(pages)
        workers = max(1, min(max_workers or os.cpu_count() or 1, len(pages) or 1))
        if workers == 1:
            for page in pages:
                self.check_page(page)
            return
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="quality") as pool:
            for findings in pool.map(self.evaluate_page, pages):
                self._merge(findings)

    def evaluate_page(self, page: PrintPage) -> PageFindings:
        """Run every rule against one page. Does not touch checker state."""
        findings = PageFindings(page_number=page.page_number)
        self._check_resolution(page, findings)
        self._check_bleed(page, findings)
        self._check_dimensions(page, findings)
        self._check_margins(page, findings)
        self._check_colors(page, findings)
        self._check_transparency(page, findings)
        return findings

    def get_result(self) -> PrintQualityCheck:
        blocking = [e for e in self.errors if e.blocking]
        return PrintQualityCheck(
            passed=not blocking,
            warnings=list(self.warnings),
            errors=list(self.errors),
            score=calculate_score(self.warnings, self.errors),
        )

    def _merge(self, findings: PageFindings) -> None:
        self.warnings.extend(findings.warnings)
        self.errors.extend(findings.errors)
        self.pages_checked += 1
        if findings.errors or findings.warnings:
            logger.debug(
                "Page %d: %d error(s), %d warning(s)",
                findings.page_number,
                len(findings.errors),
                len(findings.warnings),
            )

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _check_resolution(self, page: PrintPage, findings: PageFindings) -> None:
        for image in page.scene.images():
            if image.width <= 0 or image.height <= 0 or image.scale_x <= 0 or image.scale_y <= 0:
                findings.error(
                    ErrorType.CORRUPT_IMAGE,
                    f"Image {image.src or '(unnamed)'} on page {page.page_number} has no usable pixel size",
                )
                continue

            dpi = image.effective_dpi()
            if dpi < TARGET_DPI:
                findings.warn(
                    WarningType.LOW_RESOLUTION,
                    Severity.HIGH if dpi < LOW_DPI_THRESHOLD else Severity.MEDIUM,
                    f"Image resolution is {round(dpi)} DPI (should be {TARGET_DPI} DPI)",
                )

    def _check_bleed(self, page: PrintPage, findings: PageFindings) -> None:
        required = self.dimensions.bleed

        if page.bleed_box is None or page.bleed_box.width == 0:
            findings.error(
                ErrorType.MISSING_BLEED,
                f"Page {page.page_number} is missing bleed area",
            )
            return

        bleed_width = (page.bleed_box.width - page.trim_box.width) / 2
        bleed_height = (page.bleed_box.height - page.trim_box.height) / 2
        if bleed_width < required or bleed_height < required:
            findings.warn(
                WarningType.BLEED_MISSING,
                Severity.HIGH,
                f"Insufficient bleed: {bleed_width:g}mm x {bleed_height:g}mm (need {required:g}mm)",
                auto_fixable=True,
            )

    def _check_dimensions(self, page: PrintPage, findings: PageFindings) -> None:
        trim = page.trim_box
        if trim.width <= 0 or trim.height <= 0:
            findings.error(
                ErrorType.INVALID_DIMENSIONS,
                f"Page {page.page_number} has an empty trim box ({trim.width:g}mm x {trim.height:g}mm)",
            )
            return
        if page.kind not in _TRIM_CHECKED_KINDS:
            return
        if (
            abs(trim.width - self.dimensions.width) > DIMENSION_TOLERANCE_MM
            or abs(trim.height - self.dimensions.height) > DIMENSION_TOLERANCE_MM
        ):
            findings.error(
                ErrorType.INVALID_DIMENSIONS,
                f"Page {page.page_number} trim size {trim.width:g}mm x {trim.height:g}mm "
                f"doesn't match product {self.dimensions.width:g}mm x {self.dimensions.height:g}mm",
            )

    def _check_margins(self, page: PrintPage, findings: PageFindings) -> None:
        margins = self.margins or PrintMargins(SAFE_ZONE_MM, SAFE_ZONE_MM, SAFE_ZONE_MM, SAFE_ZONE_MM, SAFE_ZONE_MM)
        top, bottom = margins.top * MM_TO_POINTS, margins.bottom * MM_TO_POINTS
        left, right = margins.left * MM_TO_POINTS, margins.right * MM_TO_POINTS
        trim_width = page.trim_box.width * MM_TO_POINTS
        trim_height = page.trim_box.height * MM_TO_POINTS

        for text in page.scene.texts():
            too_close = text.left < left or text.top < top
            if text.display_width > 0:
                too_close = too_close or text.right > trim_width - right
            if text.display_height > 0:
                too_close = too_close or text.bottom > trim_height - bottom
            if too_close:
                findings.warn(
                    WarningType.MARGIN_VIOLATION,
                    Severity.MEDIUM,
                    f"Text too close to edge on page {page.page_number}",
                )

    def _check_colors(self, page: PrintPage, findings: PageFindings) -> None:
        for obj in page.scene.objects:
            fill = obj.hex_fill
            if fill is None:
                continue
            try:
                rgb = hex_to_rgb(fill)
            except ValueError:
                logger.debug("Page %d: skipping unparseable fill %r", page.page_number, fill)
                continue
            if not is_in_cmyk_gamut(rgb):
                problems = ", ".join(detect_print_problems(rgb))
                findings.warn(
                    WarningType.COLOR_GAMUT,
                    Severity.MEDIUM,
                    f"Color {fill} may shift when printed ({problems})",
                    auto_fixable=True,
                )

    def _check_transparency(self, page: PrintPage, findings: PageFindings) -> None:
        for obj in page.scene.objects:
            if obj.opacity < 1:
                findings.warn(
                    WarningType.TRANSPARENCY,
                    Severity.LOW,
                    f"{obj.type.capitalize()} on page {page.page_number} uses transparency "
                    f"({obj.opacity:.0%}); it will be flattened",
                )
