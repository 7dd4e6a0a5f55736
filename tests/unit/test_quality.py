"""Tests for bookmill.quality module."""

from dataclasses import replace

import pytest

from bookmill.models import (
    STANDARD_MARGINS,
    Box,
    ErrorType,
    PageKind,
    QualityError,
    QualityWarning,
    Severity,
    WarningType,
)
from bookmill.quality import QualityChecker, calculate_score
from bookmill.scene import ImageObject, ShapeObject, TextObject


def _types(items):
    return [item.type for item in items]


class TestCalculateScore:
    """Test score arithmetic."""

    def test_perfect(self):
        assert calculate_score([], []) == 100

    def test_deductions(self):
        warnings = [
            QualityWarning(WarningType.LOW_RESOLUTION, Severity.HIGH, "a"),
            QualityWarning(WarningType.MARGIN_VIOLATION, Severity.MEDIUM, "b"),
            QualityWarning(WarningType.TRANSPARENCY, Severity.LOW, "c"),
        ]
        errors = [QualityError(ErrorType.MISSING_BLEED, "d")]
        assert calculate_score(warnings, errors) == 100 - 20 - 10 - 5 - 2

    def test_non_blocking_errors_are_free(self):
        assert calculate_score([], [QualityError(ErrorType.COLOR_MODE, "x", blocking=False)]) == 100

    def test_clamped_at_zero(self):
        errors = [QualityError(ErrorType.MISSING_BLEED, "x")] * 6
        assert calculate_score([], errors) == 0


class TestResolution:
    """Test the effective-DPI rule."""

    def test_high_res_image_passes(self, dims, make_page):
        image = ImageObject(width=3000, height=3000, scale_x=0.2, scale_y=0.2)
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, objects=[image]))
        assert checker.get_result().warnings == []

    def test_medium_resolution(self, dims, make_page):
        image = ImageObject(width=1000, height=1000, scale_x=0.3, scale_y=0.3)  # 240 DPI
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, objects=[image]))
        [warning] = checker.get_result().warnings
        assert warning.type == WarningType.LOW_RESOLUTION
        assert warning.severity == Severity.MEDIUM
        assert not warning.auto_fixable
        assert "240 DPI" in warning.message

    def test_low_resolution_is_high_severity(self, dims, make_page):
        image = ImageObject(width=1000, height=1000, scale_x=1, scale_y=1)  # 72 DPI
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, objects=[image]))
        assert checker.get_result().warnings[0].severity == Severity.HIGH

    def test_zero_size_image_is_corrupt(self, dims, make_page):
        image = ImageObject(width=0, height=100, src="broken.jpg")
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, objects=[image]))
        result = checker.get_result()
        assert _types(result.errors) == [ErrorType.CORRUPT_IMAGE]
        assert not result.passed


class TestBleed:
    """Test the bleed rule."""

    def test_missing_bleed_box(self, dims, make_page):
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, page_number=5, bleed_box=None))
        result = checker.get_result()
        assert _types(result.errors) == [ErrorType.MISSING_BLEED]
        assert result.errors[0].page_number == 5
        assert result.errors[0].blocking
        assert result.passed is False
        assert result.score == 80

    def test_zero_width_bleed_box(self, dims, make_page):
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, bleed_box=Box(0, 0, 0, 0)))
        assert _types(checker.get_result().errors) == [ErrorType.MISSING_BLEED]

    def test_insufficient_bleed(self, dims, make_page):
        short = Box(0, 0, dims.width + 2, dims.height + 2)  # 1mm each side
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, bleed_box=short))
        result = checker.get_result()
        [warning] = result.warnings
        assert warning.type == WarningType.BLEED_MISSING
        assert warning.severity == Severity.HIGH
        assert warning.auto_fixable
        assert result.passed
        assert result.score == 90


class TestDimensions:
    """Test the trim size rule."""

    def test_matching_trim(self, dims, make_page):
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims))
        assert checker.get_result().errors == []

    def test_mismatched_trim(self, dims, make_page):
        page = replace(make_page(dims), trim_box=Box(3, 3, 210, 297))
        checker = QualityChecker(dims)
        checker.check_page(page)
        assert ErrorType.INVALID_DIMENSIONS in _types(checker.get_result().errors)

    def test_spread_pages_skip_trim_comparison(self, dims, make_page):
        page = replace(make_page(dims, kind=PageKind.SPREAD), trim_box=Box(3, 3, dims.width * 2, dims.height))
        checker = QualityChecker(dims)
        checker.check_page(page)
        assert ErrorType.INVALID_DIMENSIONS not in _types(checker.get_result().errors)


class TestMargins:
    """Test the safe-zone rule for text."""

    def test_text_near_edge(self, dims, make_page):
        text = TextObject(text="Title", left=5, top=100, width=100, height=20)
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, objects=[text]))
        [warning] = checker.get_result().warnings
        assert warning.type == WarningType.MARGIN_VIOLATION
        assert warning.severity == Severity.MEDIUM

    def test_text_near_right_edge(self, dims, make_page):
        trim_width_pt = dims.width * 72 / 25.4
        text = TextObject(text="Title", left=trim_width_pt - 110, top=100, width=100, height=20)
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, objects=[text]))
        assert _types(checker.get_result().warnings) == [WarningType.MARGIN_VIOLATION]

    def test_text_in_safe_area(self, dims, make_page):
        text = TextObject(text="Title", left=50, top=50, width=100, height=20)
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, objects=[text]))
        assert checker.get_result().warnings == []

    def test_custom_margins(self, dims, make_page):
        text = TextObject(text="Title", left=20, top=100, width=100, height=20)
        page = make_page(dims, objects=[text])

        default = QualityChecker(dims)
        default.check_page(page)
        assert default.get_result().warnings == []

        wide = QualityChecker(dims, margins=STANDARD_MARGINS)
        wide.check_page(page)
        assert _types(wide.get_result().warnings) == [WarningType.MARGIN_VIOLATION]

    def test_shapes_may_touch_edges(self, dims, make_page):
        shape = ShapeObject(type="rect", left=0, top=0, width=50, height=50, fill="#336699")
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, objects=[shape]))
        assert checker.get_result().warnings == []


class TestColorsAndTransparency:
    """Test colour and transparency rules."""

    def test_in_gamut_fill(self, dims, make_page):
        shape = ShapeObject(left=50, top=50, width=10, height=10, fill="#ff0000")
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, objects=[shape]))
        assert checker.get_result().warnings == []

    def test_unparseable_fill_ignored(self, dims, make_page):
        shape = ShapeObject(left=50, top=50, width=10, height=10, fill="#zzz")
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, objects=[shape]))
        assert checker.get_result().warnings == []

    def test_transparency(self, dims, make_page):
        shape = ShapeObject(type="rect", left=50, top=50, width=10, height=10, opacity=0.5)
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, objects=[shape]))
        [warning] = checker.get_result().warnings
        assert warning.type == WarningType.TRANSPARENCY
        assert warning.severity == Severity.LOW
        assert "50%" in warning.message


class TestCheckPages:
    """Test multi-page accumulation."""

    def test_findings_merge_in_page_order(self, dims, make_page):
        pages = [make_page(dims, page_number=n, bleed_box=None) for n in range(1, 9)]
        checker = QualityChecker(dims)
        checker.check_pages(pages, max_workers=4)
        result = checker.get_result()
        assert [e.page_number for e in result.errors] == list(range(1, 9))
        assert checker.pages_checked == 8
        assert result.score == 0

    def test_sequential_and_parallel_agree(self, dims, make_page):
        pages = [make_page(dims, page_number=n, bleed_box=None if n % 3 == 0 else Box(0, 0, 205, 205)) for n in range(1, 7)]
        sequential = QualityChecker(dims)
        sequential.check_pages(pages, max_workers=1)
        parallel = QualityChecker(dims)
        parallel.check_pages(pages, max_workers=3)
        assert sequential.get_result() == parallel.get_result()

    def test_accumulates_across_calls(self, dims, make_page):
        checker = QualityChecker(dims)
        checker.check_page(make_page(dims, page_number=1, bleed_box=None))
        checker.check_page(make_page(dims, page_number=2))
        result = checker.get_result()
        assert len(result.errors) == 1
        assert checker.pages_checked == 2

    @pytest.mark.parametrize("count", [0, 1])
    def test_small_batches(self, dims, make_page, count):
        checker = QualityChecker(dims)
        checker.check_pages([make_page(dims) for _ in range(count)])
        assert checker.get_result().passed
