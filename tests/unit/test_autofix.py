"""Tests for bookmill.autofix module."""

from dataclasses import replace
from unittest.mock import patch

import pytest

from bookmill.autofix import AutoFixer, fix_bleed, fix_color_gamut, has_sufficient_bleed
from bookmill.color import hex_to_rgb, print_round_trip, rgb_to_hex
from bookmill.geometry import calculate_bleed_box
from bookmill.models import (
    Box,
    PrintQualityCheck,
    QualityWarning,
    Severity,
    WarningType,
)
from bookmill.scene import ImageObject, ShapeObject, TextObject

BLEED_PT = 3 / 25.4 * 72
TRIM_PT = 203.2 / 25.4 * 72  # 576pt


@pytest.fixture
def short_bleed(dims):
    """A bleed box with only 1mm on each side."""
    return Box(0, 0, dims.width + 2, dims.height + 2)


def _warning(type, page_number):
    return QualityWarning(type=type, severity=Severity.HIGH, message="x", page_number=page_number, auto_fixable=True)


class TestFixBleed:
    """Test the bleed fix policy."""

    def test_recomputes_boxes(self, dims, make_page, short_bleed):
        fixed = fix_bleed(make_page(dims, bleed_box=short_bleed), dims)
        assert fixed.bleed_box == calculate_bleed_box(dims)
        assert has_sufficient_bleed(fixed, dims)

    def test_extends_image_on_top_left(self, dims, make_page, short_bleed):
        image = ImageObject(width=100, height=100, scale_x=1, scale_y=1)
        fixed = fix_bleed(make_page(dims, objects=[image], bleed_box=short_bleed), dims)
        [obj] = fixed.scene.objects
        assert obj.left == pytest.approx(-BLEED_PT)
        assert obj.top == pytest.approx(-BLEED_PT)
        assert obj.width == 100
        assert obj.display_width == pytest.approx(100 + BLEED_PT)

    def test_extends_shape_on_right_edge(self, dims, make_page, short_bleed):
        shape = ShapeObject(left=TRIM_PT - 100, top=50, width=100, height=20, fill="#000000")
        fixed = fix_bleed(make_page(dims, objects=[shape], bleed_box=short_bleed), dims)
        [obj] = fixed.scene.objects
        assert obj.left == pytest.approx(TRIM_PT - 100)
        assert obj.width == pytest.approx(100 + BLEED_PT)
        assert obj.height == 20

    def test_interior_and_text_objects_untouched(self, dims, make_page, short_bleed):
        objects = [
            ShapeObject(left=50, top=50, width=10, height=10),
            TextObject(text="edge", left=0, top=0, width=50, height=10),
            ShapeObject(left=0, top=0, width=10, height=10, angle=15),
        ]
        fixed = fix_bleed(make_page(dims, objects=objects, bleed_box=short_bleed), dims)
        assert fixed.scene.objects == tuple(objects)

    def test_missing_bleed_box_left_alone(self, dims, make_page):
        page = make_page(dims, bleed_box=None)
        assert fix_bleed(page, dims) is page

    def test_sufficient_bleed_left_alone(self, dims, make_page):
        page = make_page(dims)
        assert fix_bleed(page, dims) is page


class TestFixColorGamut:
    """Test the gamut fix policy."""

    def test_in_gamut_unchanged(self, dims, make_page):
        page = make_page(dims, objects=[ShapeObject(fill="#123456")])
        fixed, changed = fix_color_gamut(page)
        assert fixed is page
        assert changed == 0

    def test_out_of_gamut_replaced(self, dims, make_page):
        page = make_page(dims, objects=[ShapeObject(fill="#123456"), ShapeObject(fill="not-a-colour")])
        with patch("bookmill.autofix.is_in_cmyk_gamut", return_value=False):
            fixed, changed = fix_color_gamut(page)
        assert changed == 1
        assert fixed.scene.objects[0].fill == rgb_to_hex(print_round_trip(hex_to_rgb("#123456")))
        assert fixed.scene.objects[1].fill == "not-a-colour"
        assert page.scene.objects[0].fill == "#123456"


class TestAutoFixer:
    """Test report-driven fixing of a whole job."""

    def test_fixes_only_reported_pages(self, dims, make_page, make_job, short_bleed):
        pages = [make_page(dims, page_number=n, bleed_box=short_bleed) for n in (1, 2)]
        job = make_job(dims, pages=pages)
        report = PrintQualityCheck(warnings=[_warning(WarningType.BLEED_MISSING, 2)])

        fixer = AutoFixer(dims)
        fixed = fixer.fix_config(job, report)

        assert fixed.pages[0] is job.pages[0]
        assert has_sufficient_bleed(fixed.pages[1], dims)
        assert [(f.type, f.page_number) for f in fixer.applied] == [(WarningType.BLEED_MISSING, 2)]
        # input is never mutated
        assert job.pages[1].bleed_box == short_bleed

    def test_cover_pages_fixed(self, dims, make_page, make_job, short_bleed):
        job = make_job(dims)
        cover = replace(job.cover, front=replace(job.cover.front, bleed_box=short_bleed))
        job = replace(job, cover=cover)
        report = PrintQualityCheck(warnings=[_warning(WarningType.BLEED_MISSING, 0)])

        fixed = AutoFixer(dims).fix_config(job, report)
        assert has_sufficient_bleed(fixed.cover.front, dims)
        assert fixed.cover.spine is None

    def test_nothing_fixable_returns_same_config(self, dims, make_job):
        job = make_job(dims)
        report = PrintQualityCheck(warnings=[
            QualityWarning(type=WarningType.LOW_RESOLUTION, severity=Severity.HIGH, message="x", page_number=1),
        ])
        assert AutoFixer(dims).fix_config(job, report) is job

    def test_no_op_fix_not_recorded(self, dims, make_job):
        job = make_job(dims)
        fixer = AutoFixer(dims)
        fixer.fix_config(job, PrintQualityCheck(warnings=[_warning(WarningType.COLOR_GAMUT, 1)]))
        assert fixer.applied == []
