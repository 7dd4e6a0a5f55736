"""Automatic fixes for auto-fixable quality warnings.

Two policies exist:

bleed-missing
    The page boxes are recomputed from the product dimensions. Image and shape
    objects lying flush with a trim edge (within EDGE_TOLERANCE_PT) are
    extended outward by the bleed on that edge, so artwork that was meant to
    run off the page still does after trimming.

color-gamut
    Each out-of-gamut hex fill is replaced by the colour the press would
    produce for it, i.e. the CMYK round trip of the channel-clamped RGB value.

Fixes never mutate their input; they return new pages and a config built
with ``dataclasses.replace``. Errors are never fixed automatically.
"""

from dataclasses import dataclass, replace

from bookmill.color import clamp_rgb, hex_to_rgb, is_in_cmyk_gamut, print_round_trip, rgb_to_hex
from bookmill.constants import MM_TO_POINTS
from bookmill.geometry import calculate_art_box, calculate_bleed_box, calculate_trim_box
from bookmill.logging_config import get_logger
from bookmill.models import (
    PrintDimensions,
    PrintJobConfig,
    PrintPage,
    PrintQualityCheck,
    WarningType,
)
from bookmill.scene import Drawable, ImageObject, TextObject

logger = get_logger(__name__)

EDGE_TOLERANCE_PT = 0.5

FIXABLE_WARNING_TYPES = frozenset({WarningType.BLEED_MISSING, WarningType.COLOR_GAMUT})
FIXABLE_ERROR_TYPES = frozenset()


@dataclass(frozen=True)
class AppliedFix:
    type: WarningType
    page_number: int
    description: str


def has_sufficient_bleed(page: PrintPage, dimensions: PrintDimensions) -> bool:
    if page.bleed_box is None or page.bleed_box.width == 0:
        return False
    bleed_width = (page.bleed_box.width - page.trim_box.width) / 2
    bleed_height = (page.bleed_box.height - page.trim_box.height) / 2
    return bleed_width >= dimensions.bleed and bleed_height >= dimensions.bleed


def _extend_to_bleed(obj: Drawable, trim_width: float, trim_height: float, bleed: float) -> Drawable:
    """Grow an object flush with trim edges out into the bleed."""
    if isinstance(obj, TextObject) or obj.angle:
        return obj

    left, top = obj.left, obj.top
    width, height = obj.display_width, obj.display_height
    if width <= 0 or height <= 0:
        return obj

    if abs(obj.left) <= EDGE_TOLERANCE_PT:
        left -= bleed
        width += bleed
    if abs(obj.top) <= EDGE_TOLERANCE_PT:
        top -= bleed
        height += bleed
    if abs(obj.right - trim_width) <= EDGE_TOLERANCE_PT:
        width += bleed
    if abs(obj.bottom - trim_height) <= EDGE_TOLERANCE_PT:
        height += bleed

    if (left, top, width, height) == (obj.left, obj.top, obj.display_width, obj.display_height):
        return obj

    if isinstance(obj, ImageObject):
        # Source pixels are fixed; stretch the placement scale instead
        return replace(
            obj,
            left=left,
            top=top,
            scale_x=width / obj.width,
            scale_y=height / obj.height,
        )
    return replace(
        obj,
        left=left,
        top=top,
        width=width / obj.scale_x,
        height=height / obj.scale_y,
    )


def fix_bleed(page: PrintPage, dimensions: PrintDimensions) -> PrintPage:
    """Recompute boxes from the product and extend edge artwork into the bleed."""
    if page.bleed_box is None:
        # A page with no bleed area at all is a blocking error, not a warning
        return page
    if has_sufficient_bleed(page, dimensions):
        return page

    trim_width = dimensions.width * MM_TO_POINTS
    trim_height = dimensions.height * MM_TO_POINTS
    bleed = dimensions.bleed * MM_TO_POINTS
    objects = [_extend_to_bleed(obj, trim_width, trim_height, bleed) for obj in page.scene.objects]

    return replace(
        page,
        scene=page.scene.with_objects(objects),
        bleed_box=calculate_bleed_box(dimensions),
        trim_box=calculate_trim_box(dimensions),
        art_box=calculate_art_box(dimensions),
    )


def fix_color_gamut(page: PrintPage) -> tuple[PrintPage, int]:
    """Replace out-of-gamut fills. Returns the page and the number of fills changed."""
    objects = []
    changed = 0
    for obj in page.scene.objects:
        fill = obj.hex_fill
        if fill is not None:
            try:
                rgb = hex_to_rgb(fill)
            except ValueError:
                rgb = None
            if rgb is not None and not is_in_cmyk_gamut(rgb):
                obj = replace(obj, fill=rgb_to_hex(print_round_trip(clamp_rgb(rgb))))
                changed += 1
        objects.append(obj)

    if not changed:
        return page, 0
    return replace(page, scene=page.scene.with_objects(objects)), changed


class AutoFixer:
    """Applies the fix policies for one job's quality report."""

    def __init__(self, dimensions: PrintDimensions):
        self.dimensions = dimensions
        self.applied: list[AppliedFix] = []

    def fix_page(self, page: PrintPage, warning_types: set[WarningType]) -> PrintPage:
        if WarningType.BLEED_MISSING in warning_types:
            fixed = fix_bleed(page, self.dimensions)
            if fixed is not page:
                page = fixed
                self._record(WarningType.BLEED_MISSING, page.page_number, "Recomputed print boxes and extended edge artwork into the bleed")

        if WarningType.COLOR_GAMUT in warning_types:
            page, changed = fix_color_gamut(page)
            if changed:
                self._record(WarningType.COLOR_GAMUT, page.page_number, f"Replaced {changed} out-of-gamut fill(s) with printable colours")
        return page

    def fix_config(self, config: PrintJobConfig, report: PrintQualityCheck) -> PrintJobConfig:
        """Return a new config with every auto-fixable warning addressed."""
        by_page: dict[int | None, set[WarningType]] = {}
        for warning in report.fixable_warnings:
            if warning.type in FIXABLE_WARNING_TYPES:
                by_page.setdefault(warning.page_number, set()).add(warning.type)
        if not by_page:
            return config

        def fix(page):
            if page is None:
                return None
            types = by_page.get(page.page_number)
            return self.fix_page(page, types) if types else page

        cover = config.cover
        cover = replace(
            cover,
            front=fix(cover.front),
            back=fix(cover.back),
            spine=fix(cover.spine),
            full_cover=fix(cover.full_cover),
        )
        pages = tuple(fix(page) for page in config.pages)
        logger.info("Applied %d automatic fix(es)", len(self.applied))
        return replace(config, cover=cover, pages=pages)

    def _record(self, type: WarningType, page_number: int, description: str) -> None:
        self.applied.append(AppliedFix(type=type, page_number=page_number, description=description))
        logger.debug("Page %d: %s", page_number, description)
