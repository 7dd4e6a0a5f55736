"""Unit conversion and print box geometry.

Boxes follow the page from the outside in: the bleed box sits at the origin
and includes the bleed on every side, the trim box is the as-cut page offset
by the bleed, and the art box is the trim box inset by a safe margin.
"""

from bookmill.constants import (
    CANVAS_TOLERANCE_PX,
    DEFAULT_ART_MARGIN_MM,
    DEFAULT_AVG_IMAGE_BYTES,
    MM_PER_INCH,
    MM_TO_POINTS,
    PDF_BASE_SIZE,
    PDF_IMAGE_COMPRESSION,
)
from bookmill.models import Box, PageKind, PrintDimensions, PrintPage
from bookmill.scene import Scene


def mm_to_pixels(mm: float, dpi: float) -> int:
    """Convert millimetres to whole pixels at the given resolution."""
    return round(mm / MM_PER_INCH * dpi)


def pixels_to_mm(pixels: float, dpi: float) -> float:
    """Convert pixels to millimetres at the given resolution."""
    return pixels / dpi * MM_PER_INCH


def mm_to_points(mm: float) -> float:
    return mm * MM_TO_POINTS


def points_to_mm(points: float) -> float:
    return points / MM_TO_POINTS


def calculate_bleed_box(dimensions: PrintDimensions, include_bleed: bool = True) -> Box:
    """Full page including bleed on all four sides."""
    bleed = dimensions.bleed if include_bleed else 0
    return Box(
        x=0,
        y=0,
        width=dimensions.width + bleed * 2,
        height=dimensions.height + bleed * 2,
    )


def calculate_trim_box(dimensions: PrintDimensions) -> Box:
    """Final cut size, positioned inside the bleed."""
    return Box(
        x=dimensions.bleed,
        y=dimensions.bleed,
        width=dimensions.width,
        height=dimensions.height,
    )


def calculate_art_box(dimensions: PrintDimensions, margin_mm: float = DEFAULT_ART_MARGIN_MM) -> Box:
    """Safe area: the trim box inset by ``margin_mm``."""
    return Box(
        x=dimensions.bleed + margin_mm,
        y=dimensions.bleed + margin_mm,
        width=dimensions.width - margin_mm * 2,
        height=dimensions.height - margin_mm * 2,
    )


def validate_canvas_dimensions(
    canvas_width: int,
    canvas_height: int,
    dimensions: PrintDimensions,
) -> list[str]:
    """Compare a canvas size in pixels against the bleed-inclusive print size.

    Returns:
        Human-readable mismatches; empty if the canvas is within tolerance.
    """
    errors = []
    expected_width = mm_to_pixels(dimensions.width + dimensions.bleed * 2, dimensions.dpi)
    expected_height = mm_to_pixels(dimensions.height + dimensions.bleed * 2, dimensions.dpi)

    if abs(canvas_width - expected_width) > CANVAS_TOLERANCE_PX:
        errors.append(
            f"Canvas width {canvas_width}px doesn't match expected {expected_width}px "
            f"({dimensions.width}mm + bleed at {dimensions.dpi} DPI)"
        )
    if abs(canvas_height - expected_height) > CANVAS_TOLERANCE_PX:
        errors.append(
            f"Canvas height {canvas_height}px doesn't match expected {expected_height}px "
            f"({dimensions.height}mm + bleed at {dimensions.dpi} DPI)"
        )
    return errors


def create_blank_page(page_number: int, dimensions: PrintDimensions) -> PrintPage:
    """A white single page with all three boxes computed."""
    return PrintPage(
        page_number=page_number,
        kind=PageKind.SINGLE,
        scene=Scene.empty(),
        bleed_box=calculate_bleed_box(dimensions),
        trim_box=calculate_trim_box(dimensions),
        art_box=calculate_art_box(dimensions),
    )


def estimate_pdf_size(page_count: int, average_image_size: int = DEFAULT_AVG_IMAGE_BYTES) -> int:
    """Rough output size for progress display. Not a contract."""
    per_page = average_image_size * PDF_IMAGE_COMPRESSION
    return int(PDF_BASE_SIZE + page_count * per_page)


def format_file_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.2f} KB"
    return f"{size_bytes / (1024 * 1024):.2f} MB"
