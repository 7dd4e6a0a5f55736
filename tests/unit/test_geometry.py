"""Tests for bookmill.geometry module."""

import pytest

from bookmill.geometry import (
    calculate_art_box,
    calculate_bleed_box,
    calculate_trim_box,
    create_blank_page,
    estimate_pdf_size,
    format_file_size,
    mm_to_pixels,
    mm_to_points,
    pixels_to_mm,
    points_to_mm,
    validate_canvas_dimensions,
)
from bookmill.models import PageKind, PrintDimensions


class TestUnitConversion:
    """Test mm/pixel/point conversion."""

    def test_one_inch_at_300_dpi(self):
        assert mm_to_pixels(25.4, 300) == 300

    def test_rounds_to_whole_pixels(self):
        # 8in + 2 x 3mm bleed at 300 DPI = 2470.87px
        assert mm_to_pixels(209.2, 300) == 2471

    def test_pixels_to_mm(self):
        assert pixels_to_mm(300, 300) == pytest.approx(25.4)

    @pytest.mark.parametrize("mm", [3, 25.4, 203.2, 297])
    def test_round_trip_within_one_pixel(self, mm):
        dpi = 300
        back = pixels_to_mm(mm_to_pixels(mm, dpi), dpi)
        assert abs(back - mm) <= 25.4 / dpi

    def test_points(self):
        assert mm_to_points(25.4) == pytest.approx(72)
        assert points_to_mm(72) == pytest.approx(25.4)


class TestBoxes:
    """Test bleed/trim/art box derivation."""

    def test_bleed_box(self, dims):
        box = calculate_bleed_box(dims)
        assert (box.x, box.y) == (0, 0)
        assert box.width == pytest.approx(209.2)
        assert box.height == pytest.approx(209.2)

    def test_bleed_box_without_bleed(self, dims):
        box = calculate_bleed_box(dims, include_bleed=False)
        assert box.width == dims.width

    def test_trim_box_offset_by_bleed(self, dims):
        box = calculate_trim_box(dims)
        assert (box.x, box.y) == (3, 3)
        assert (box.width, box.height) == (dims.width, dims.height)

    def test_art_box_inset(self, dims):
        box = calculate_art_box(dims)
        assert box.x == 13
        assert box.width == pytest.approx(dims.width - 20)

    def test_custom_art_margin(self, dims):
        assert calculate_art_box(dims, margin_mm=5).x == 8

    def test_nesting(self, dims):
        bleed = calculate_bleed_box(dims)
        trim = calculate_trim_box(dims)
        art = calculate_art_box(dims)
        assert bleed.contains(trim)
        assert trim.contains(art)
        assert not art.contains(trim)


class TestValidateCanvasDimensions:
    """Test canvas size comparison."""

    def test_exact_canvas(self, dims):
        assert validate_canvas_dimensions(2471, 2471, dims) == []

    def test_within_tolerance(self, dims):
        assert validate_canvas_dimensions(2481, 2461, dims) == []

    def test_width_mismatch(self, dims):
        errors = validate_canvas_dimensions(2400, 2471, dims)
        assert len(errors) == 1
        assert "width" in errors[0]

    def test_both_mismatch(self, dims):
        assert len(validate_canvas_dimensions(1000, 1000, dims)) == 2


class TestBlankPage:
    """Test blank page synthesis."""

    def test_blank_page(self, dims):
        page = create_blank_page(7, dims)
        assert page.page_number == 7
        assert page.kind == PageKind.SINGLE
        assert page.scene.objects == ()
        assert page.bleed_box == calculate_bleed_box(dims)
        assert page.trim_box == calculate_trim_box(dims)


class TestFileSize:
    """Test size estimate and formatting."""

    def test_estimate(self):
        assert estimate_pdf_size(0) == 50_000
        assert estimate_pdf_size(10) == 50_000 + 10 * 350_000

    def test_estimate_custom_image_size(self):
        assert estimate_pdf_size(2, average_image_size=1000) == 51_400

    @pytest.mark.parametrize("size,expected", [
        (512, "512 B"),
        (2048, "2.00 KB"),
        (3 * 1024 * 1024, "3.00 MB"),
    ])
    def test_format(self, size, expected):
        assert format_file_size(size) == expected

    def test_dimensions_are_frozen(self):
        d = PrintDimensions(width=10, height=10, bleed=1, dpi=300)
        with pytest.raises(AttributeError):
            d.width = 20
