"""Tests for bookmill.color module."""

import pytest

from bookmill.color import (
    clamp_rgb,
    cmyk_to_rgb,
    detect_print_problems,
    hex_to_rgb,
    is_in_cmyk_gamut,
    print_round_trip,
    rgb_to_cmyk,
    rgb_to_hex,
)
from bookmill.models import CMYKColor, RGBColor


class TestRgbToCmyk:
    """Test the naive RGB -> CMYK conversion."""

    def test_red(self):
        assert rgb_to_cmyk(RGBColor(255, 0, 0)) == CMYKColor(0, 100, 100, 0)

    def test_black_short_circuit(self):
        assert rgb_to_cmyk(RGBColor(0, 0, 0)) == CMYKColor(0, 0, 0, 100)

    def test_white(self):
        assert rgb_to_cmyk(RGBColor(255, 255, 255)) == CMYKColor(0, 0, 0, 0)

    def test_mid_grey_rounds_half_up(self):
        # k = 1 - 128/255 = 49.8%
        assert rgb_to_cmyk(RGBColor(128, 128, 128)) == CMYKColor(0, 0, 0, 50)

    def test_extended_range_is_clamped(self):
        cmyk = rgb_to_cmyk(RGBColor(-60, 255, 255))
        assert cmyk.c == 100
        assert all(0 <= v <= 100 for v in (cmyk.c, cmyk.m, cmyk.y, cmyk.k))


class TestCmykToRgb:
    """Test CMYK -> RGB conversion."""

    def test_pure_black(self):
        assert cmyk_to_rgb(CMYKColor(0, 0, 0, 100)) == RGBColor(0, 0, 0)

    def test_cyan(self):
        assert cmyk_to_rgb(CMYKColor(100, 0, 0, 0)) == RGBColor(0, 255, 255)

    def test_round_trip_of_primary(self):
        assert print_round_trip(RGBColor(0, 0, 255)) == RGBColor(0, 0, 255)


class TestHex:
    """Test hex parsing and formatting."""

    def test_long_form(self):
        assert hex_to_rgb("#ff8000") == RGBColor(255, 128, 0)

    def test_short_form(self):
        assert hex_to_rgb("#f80") == RGBColor(255, 136, 0)

    def test_without_hash(self):
        assert hex_to_rgb("00FF00") == RGBColor(0, 255, 0)

    @pytest.mark.parametrize("bad", ["", "#12", "#gggggg", "red", "#1234567"])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            hex_to_rgb(bad)

    def test_rgb_to_hex(self):
        assert rgb_to_hex(RGBColor(255, 128, 0)) == "#ff8000"

    def test_rgb_to_hex_clamps(self):
        assert rgb_to_hex(RGBColor(-5, 300, 16)) == "#00ff10"

    def test_clamp_rgb(self):
        assert clamp_rgb(RGBColor(-1, 256, 7)) == RGBColor(0, 255, 7)


class TestGamut:
    """Test gamut check and problem detection."""

    @pytest.mark.parametrize("rgb", [
        RGBColor(255, 0, 0),
        RGBColor(0, 0, 0),
        RGBColor(255, 255, 255),
        RGBColor(12, 200, 99),
    ])
    def test_in_range_colours_are_in_gamut(self, rgb):
        assert is_in_cmyk_gamut(rgb)

    def test_extended_range_out_of_gamut(self):
        assert not is_in_cmyk_gamut(RGBColor(-60, 255, 255))

    def test_no_problems_for_red(self):
        assert detect_print_problems(RGBColor(255, 0, 0)) == []

    def test_out_of_gamut_reported(self):
        problems = detect_print_problems(RGBColor(-60, 255, 255))
        assert "Out of CMYK gamut" in problems

    def test_ink_coverage_never_exceeds_limit_for_naive_model(self):
        # k = 1 - max(r, g, b) keeps at least one of c/m/y at zero
        cmyk = rgb_to_cmyk(RGBColor(10, 20, 30))
        assert cmyk.total_ink <= 300
