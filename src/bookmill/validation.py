"""Pre-flight validation of print jobs.

Catches structural problems with a PrintJobConfig before any page is checked
or rendered. This is separate from the quality checker: validation looks at
the job's shape (dimensions, page list, boxes), the checker at page content.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from bookmill.constants import MIN_PRINTABLE_DPI, PROVIDER_NAMES, TARGET_DPI
from bookmill.exceptions import ConfigError
from bookmill.geometry import validate_canvas_dimensions

if TYPE_CHECKING:
    from bookmill.models import PrintJobConfig, PrintPage


@dataclass
class ValidationResult:
    """Result of job validation.

    Attributes:
        valid: True if no errors were found
        errors: List of error messages (fatal issues)
        warnings: List of warning messages (non-fatal issues)
    """

    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        if not other.valid:
            self.valid = False


@dataclass
class ValidationContext:
    """Optional runtime information for operational validation."""

    canvas_sizes: dict[int, tuple[int, int]] | None = None
    """Design canvas size in pixels per page number."""

    configured_providers: list[str] | None = None
    """Providers that have credentials."""

    check_paths: bool = True
    """Whether to validate the output path."""


class JobValidator:
    """Print job validator.

    Performs three phases of validation:
    1. Structural: dimensions, DPI, page list
    2. Semantic: box nesting, page numbering, product consistency
    3. Operational: canvas sizes, output path, providers - optional

    Example:
        result = JobValidator().validate(job)
        if not result.valid:
            for error in result.errors:
                print(f"Error: {error}")
    """

    def validate(
        self,
        job: "PrintJobConfig",
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        result = ValidationResult()
        result.merge(self._validate_structure(job))
        result.merge(self._validate_semantics(job))
        if context:
            result.merge(self._validate_operational(job, context))
        return result

    def validate_or_raise(
        self,
        job: "PrintJobConfig",
        context: ValidationContext | None = None,
    ) -> None:
        """Validate a job and raise ConfigError if invalid."""
        result = self.validate(job, context)
        if not result.valid:
            error_text = "; ".join(result.errors)
            raise ConfigError(f"Job validation failed: {error_text}")

    def validate_printable(self, job: "PrintJobConfig") -> None:
        """Raise ConfigError if the product or page list cannot be printed at all.

        Only the structural checks run here. Box problems are left to the
        quality checker, which can repair them.
        """
        result = self._validate_structure(job)
        if not result.valid:
            error_text = "; ".join(result.errors)
            raise ConfigError(
                f"Job is not printable: {error_text}",
                field="product.dimensions",
                suggestion=f"Use a positive bleed and at least {MIN_PRINTABLE_DPI} DPI",
            )

    def _validate_structure(self, job: "PrintJobConfig") -> ValidationResult:
        result = ValidationResult()
        dims = job.product.dimensions

        if dims.width <= 0 or dims.height <= 0:
            result.add_error(f"Trim size must be positive, got {dims.width}mm x {dims.height}mm")
        if dims.bleed <= 0:
            result.add_error(f"Bleed must be positive, got {dims.bleed}mm")
        if dims.dpi < MIN_PRINTABLE_DPI:
            result.add_error(f"Resolution {dims.dpi} DPI is below the printable minimum of {MIN_PRINTABLE_DPI} DPI")
        elif dims.dpi < TARGET_DPI:
            result.add_warning(f"Resolution {dims.dpi} DPI is below the recommended {TARGET_DPI} DPI")

        if not job.pages:
            result.add_error("Job has no interior pages")
        if job.cover.spine_width < 0:
            result.add_error(f"Spine width must not be negative, got {job.cover.spine_width}mm")

        return result

    def _validate_semantics(self, job: "PrintJobConfig") -> ValidationResult:
        result = ValidationResult()

        for page in (job.cover.front, job.cover.back, *job.pages):
            self._validate_boxes(page, result)

        numbers = [page.page_number for page in job.pages]
        duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
        if duplicates:
            result.add_warning(f"Duplicate page numbers: {', '.join(str(n) for n in duplicates)}")

        if job.pages and len(job.pages) % 2:
            result.add_warning(f"Odd page count ({len(job.pages)}); the last spread gets a blank right page")

        if job.product.page_count and job.product.page_count != len(job.pages):
            result.add_warning(
                f"Product page count {job.product.page_count} differs from the "
                f"{len(job.pages)} page(s) in the job; spine width uses the product count"
            )

        if job.product.provider and job.product.provider not in PROVIDER_NAMES:
            result.add_error(
                f"Unknown provider '{job.product.provider}'. Valid providers: {', '.join(PROVIDER_NAMES)}"
            )

        return result

    def _validate_boxes(self, page: "PrintPage", result: ValidationResult) -> None:
        label = f"Page {page.page_number} ({page.kind.value})"
        if page.bleed_box is not None and page.bleed_box.width > 0:
            if not page.bleed_box.contains(page.trim_box):
                result.add_error(f"{label}: trim box extends outside the bleed box")
        if not page.trim_box.contains(page.art_box):
            result.add_warning(f"{label}: art box extends outside the trim box")

    def _validate_operational(
        self,
        job: "PrintJobConfig",
        context: ValidationContext,
    ) -> ValidationResult:
        result = ValidationResult()

        if context.canvas_sizes:
            for page_number, (width, height) in sorted(context.canvas_sizes.items()):
                for problem in validate_canvas_dimensions(width, height, job.product.dimensions):
                    result.add_error(f"Page {page_number}: {problem}")

        if context.check_paths and job.output_path:
            output = Path(job.output_path)
            if output.exists() and output.is_dir():
                result.add_error(f"Output path is a directory: {output}")
            elif output.parent.exists() and not output.parent.is_dir():
                result.add_error(f"Output directory is not a directory: {output.parent}")

        if context.configured_providers is not None and job.product.provider:
            if job.product.provider not in context.configured_providers:
                result.add_warning(
                    f"Provider '{job.product.provider}' has no API key configured; "
                    "the print file can be produced but not ordered"
                )

        return result


def validate_job(
    job: "PrintJobConfig",
    context: ValidationContext | None = None,
) -> ValidationResult:
    """Validate a print job.

    Convenience function that creates a JobValidator and validates.
    """
    return JobValidator().validate(job, context)
