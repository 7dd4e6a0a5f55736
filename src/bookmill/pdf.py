"""Print-ready PDF generation.

Interior pages are imposed as two-page spreads, the cover as one wrap
(back, spine, front). Each unit is rasterised at the product DPI and becomes
one page of the print file: the MediaBox and BleedBox cover the whole canvas,
the TrimBox excludes the outer bleed.

Spread layout (mm, ``w``/``h`` trim size, ``b`` bleed)::

    |b| left page w |b|b| right page w |b|
    canvas (2w + 4b) x (h + 2b); left trim at b, right trim at w + 3b

Cover layout, ``s`` spine width::

    |b| back w |b| spine s |b| front w |b|
    canvas (2w + s + 4b) x (h + 2b); spine at w + 2b, front trim at w + s + 3b
"""

import io
import os
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from itertools import chain
from typing import Iterable, Iterator

from PIL import Image
from pypdf import PdfReader, PdfWriter
from pypdf.generic import RectangleObject
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from bookmill import __version__
from bookmill.constants import (
    DEFAULT_PAPER_THICKNESS_MM,
    MIN_SPINE_WIDTH_MM,
    MM_PER_INCH,
    MM_TO_POINTS,
    PAPER_THICKNESS_MM,
)
from bookmill.exceptions import RenderError
from bookmill.geometry import create_blank_page, mm_to_pixels
from bookmill.logging_config import get_logger
from bookmill.models import CoverDesign, PrintJobConfig, PrintPage, SpreadPage
from bookmill.render import PillowSceneRenderer, SceneRenderer

logger = get_logger(__name__)


@dataclass
class RenderedUnit:
    """One rasterised print-file page (the cover or a spread)."""

    label: str
    image: Image.Image
    width_mm: float
    height_mm: float
    bleed_mm: float

    @property
    def media_box(self) -> tuple[float, float, float, float]:
        return (0.0, 0.0, self.width_mm * MM_TO_POINTS, self.height_mm * MM_TO_POINTS)

    @property
    def trim_box(self) -> tuple[float, float, float, float]:
        b = self.bleed_mm * MM_TO_POINTS
        _, _, width, height = self.media_box
        return (b, b, width - b, height - b)


class PDFGenerator:
    """Builds the print file for one job.

    Pure function of its PrintJobConfig; never touches the network.

    Args:
        config: The job to render
        renderer: Scene rasteriser (defaults to PillowSceneRenderer)
        max_workers: Spreads rendered concurrently (defaults to CPU count)
    """

    def __init__(
        self,
        config: PrintJobConfig,
        renderer: SceneRenderer | None = None,
        max_workers: int | None = None,
    ):
        self.config = config
        self.renderer = renderer or PillowSceneRenderer()
        self.max_workers = max(1, max_workers or os.cpu_count() or 1)

    @property
    def dimensions(self):
        return self.config.product.dimensions

    def generate_print_pdf(self) -> bytes:
        """Render cover and spreads and combine them, cover first."""
        spreads = self.create_spreads(self.config.pages)
        logger.info(
            "Rendering cover and %d spread(s) at %d DPI",
            len(spreads),
            self.dimensions.dpi,
        )
        units = chain([self.render_cover(self.config.cover)], self._render_spreads(spreads))
        return self.combine_to_pdf(units)

    def create_spreads(self, pages: Iterable[PrintPage]) -> list[SpreadPage]:
        """Pair pages (0,1), (2,3), ...; an odd last page gets a blank partner."""
        pages = list(pages)
        spreads = []
        for i in range(0, len(pages), 2):
            if i + 1 < len(pages):
                right = pages[i + 1]
            else:
                right = create_blank_page(pages[i].page_number + 1, self.dimensions)
            spreads.append(SpreadPage(left_page=pages[i], right_page=right, spread_number=i // 2 + 1))
        return spreads

    def render_spread(self, spread: SpreadPage) -> RenderedUnit:
        dims = self.dimensions
        face = self._render_face(spread.left_page)
        right = self._render_face(spread.right_page)

        image = Image.new("RGB", (face.width * 2, face.height), "white")
        image.paste(face, (0, 0))
        image.paste(right, (face.width, 0))
        logger.debug("Rendered spread %d (%dx%d px)", spread.spread_number, image.width, image.height)

        return RenderedUnit(
            label=f"spread {spread.spread_number}",
            image=image,
            width_mm=dims.width * 2 + dims.bleed * 4,
            height_mm=dims.height + dims.bleed * 2,
            bleed_mm=dims.bleed,
        )

    def render_cover(self, cover: CoverDesign) -> RenderedUnit:
        dims = self.dimensions
        spine_width = cover.spine_width or self.calculate_spine_width(
            self.config.product.page_count, self.config.product.paper_type
        )
        width_mm = dims.width * 2 + spine_width + dims.bleed * 4
        height_mm = dims.height + dims.bleed * 2

        if cover.full_cover is not None:
            image = self._render_tile(cover.full_cover, width_mm, height_mm, (dims.bleed, dims.bleed))
        else:
            back = self._render_face(cover.back)
            front = self._render_face(cover.front)
            spine_px = mm_to_pixels(spine_width, dims.dpi)

            image = Image.new("RGB", (back.width + spine_px + front.width, back.height), "white")
            image.paste(back, (0, 0))
            if cover.spine is not None and spine_px > 0:
                spine = self._render_tile(cover.spine, spine_width, height_mm, (0, dims.bleed))
                image.paste(spine, (back.width, 0))
            image.paste(front, (back.width + spine_px, 0))

        logger.debug("Rendered cover (spine %.2fmm, %dx%d px)", spine_width, image.width, image.height)
        return RenderedUnit(
            label="cover",
            image=image,
            width_mm=width_mm,
            height_mm=height_mm,
            bleed_mm=dims.bleed,
        )

    def combine_to_pdf(self, units: Iterable[RenderedUnit]) -> bytes:
        """Combine rendered units into one multi-page PDF, preserving order.

        Images are embedded Flate-compressed (lossless) by reportlab; pypdf
        then writes the print boxes and document metadata.
        """
        raw = io.BytesIO()
        pdf = canvas.Canvas(raw, pageCompression=1)
        boxes = []
        try:
            for unit in units:
                _, _, width, height = unit.media_box
                pdf.setPageSize((width, height))
                pdf.drawImage(ImageReader(unit.image), 0, 0, width=width, height=height)
                pdf.showPage()
                boxes.append((unit.label, unit.media_box, unit.trim_box))
                unit.image.close()
            pdf.save()
        except (OSError, ValueError) as e:
            raise RenderError(f"Failed to assemble print file: {e}") from e

        if not boxes:
            raise RenderError("Nothing to render: no cover or pages")

        raw.seek(0)
        reader = PdfReader(raw)
        writer = PdfWriter()
        for page, (label, media, trim) in zip(reader.pages, boxes):
            added = writer.add_page(page)
            added.bleedbox = RectangleObject(media)
            added.trimbox = RectangleObject(trim)
            logger.debug("Added %s to print file", label)

        writer.add_metadata({
            "/Title": f"{self.config.project_id} print file",
            "/Producer": f"bookmill {__version__}",
        })

        output = io.BytesIO()
        writer.write(output)
        data = output.getvalue()
        logger.info("Print file assembled: %d page(s), %d bytes", len(boxes), len(data))
        return data

    @staticmethod
    def calculate_spine_width(page_count: int, paper_type: str) -> float:
        """Spine width in mm from page count and paper weight, 2mm minimum."""
        thickness = PAPER_THICKNESS_MM.get(paper_type, DEFAULT_PAPER_THICKNESS_MM)
        spine_width = (page_count / 2) * thickness
        return max(spine_width, MIN_SPINE_WIDTH_MM)

    def _render_spreads(self, spreads: list[SpreadPage]) -> Iterator[RenderedUnit]:
        """Yield rendered spreads in order, at most max_workers in flight."""
        if self.max_workers == 1 or len(spreads) <= 1:
            for spread in spreads:
                yield self.render_spread(spread)
            return

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="spread") as pool:
            pending = deque()
            for spread in spreads:
                pending.append(pool.submit(self.render_spread, spread))
                if len(pending) >= self.max_workers:
                    yield pending.popleft().result()
            while pending:
                yield pending.popleft().result()

    def _render_face(self, page: PrintPage) -> Image.Image:
        """A single page with its own bleed on every side."""
        dims = self.dimensions
        return self._render_tile(
            page,
            dims.width + dims.bleed * 2,
            dims.height + dims.bleed * 2,
            (dims.bleed, dims.bleed),
        )

    def _render_tile(
        self,
        page: PrintPage,
        width_mm: float,
        height_mm: float,
        origin_mm: tuple[float, float],
    ) -> Image.Image:
        dpi = self.dimensions.dpi
        size = (mm_to_pixels(width_mm, dpi), mm_to_pixels(height_mm, dpi))
        origin = (origin_mm[0] / MM_PER_INCH * dpi, origin_mm[1] / MM_PER_INCH * dpi)
        return self.renderer.render(page.scene, size, origin, dpi)
