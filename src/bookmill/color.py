"""RGB/CMYK conversion and gamut warnings.

This is the naive under-colour model (``k = 1 - max(r, g, b)``), not an ICC
transform. It is reversible up to integer-percent rounding, which is what the
gamut check relies on: a colour is "in gamut" when the round trip moves no
channel by more than GAMUT_TOLERANCE.

All functions are pure and safe to call from many threads.
"""

import math
import re

from bookmill.constants import GAMUT_TOLERANCE, MAX_INK_COVERAGE
from bookmill.models import CMYKColor, RGBColor

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def _round(value: float) -> int:
    """Round half up, matching how the design tool rounds."""
    return int(math.floor(value + 0.5))


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def rgb_to_cmyk(rgb: RGBColor) -> CMYKColor:
    """Convert RGB (0-255) to CMYK percent."""
    r = rgb.r / 255
    g = rgb.g / 255
    b = rgb.b / 255
    k = 1 - max(r, g, b)

    # Pure black; also avoids dividing by zero below
    if k >= 1:
        return CMYKColor(c=0, m=0, y=0, k=100)

    c = (1 - r - k) / (1 - k)
    m = (1 - g - k) / (1 - k)
    y = (1 - b - k) / (1 - k)

    return CMYKColor(
        c=_clamp(_round(c * 100), 0, 100),
        m=_clamp(_round(m * 100), 0, 100),
        y=_clamp(_round(y * 100), 0, 100),
        k=_clamp(_round(k * 100), 0, 100),
    )


def cmyk_to_rgb(cmyk: CMYKColor) -> RGBColor:
    """Convert CMYK percent back to RGB (0-255)."""
    c = cmyk.c / 100
    m = cmyk.m / 100
    y = cmyk.y / 100
    k = cmyk.k / 100
    return RGBColor(
        r=_round(255 * (1 - c) * (1 - k)),
        g=_round(255 * (1 - m) * (1 - k)),
        b=_round(255 * (1 - y) * (1 - k)),
    )


def hex_to_rgb(hex_color: str) -> RGBColor:
    """Parse ``#rrggbb`` or ``#rgb``.

    Raises:
        ValueError: If the string is not a hex colour
    """
    match = _HEX_RE.match(hex_color.strip())
    if not match:
        raise ValueError(f"Invalid hex colour: {hex_color!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return RGBColor(
        r=int(digits[0:2], 16),
        g=int(digits[2:4], 16),
        b=int(digits[4:6], 16),
    )


def rgb_to_hex(rgb: RGBColor) -> str:
    r, g, b = (_clamp(v, 0, 255) for v in (rgb.r, rgb.g, rgb.b))
    return f"#{r:02x}{g:02x}{b:02x}"


def clamp_rgb(rgb: RGBColor) -> RGBColor:
    return RGBColor(r=_clamp(rgb.r, 0, 255), g=_clamp(rgb.g, 0, 255), b=_clamp(rgb.b, 0, 255))


def print_round_trip(rgb: RGBColor) -> RGBColor:
    """The colour as it comes back off the press model."""
    return cmyk_to_rgb(rgb_to_cmyk(rgb))


def is_in_cmyk_gamut(rgb: RGBColor) -> bool:
    back = print_round_trip(rgb)
    return (
        abs(rgb.r - back.r) <= GAMUT_TOLERANCE
        and abs(rgb.g - back.g) <= GAMUT_TOLERANCE
        and abs(rgb.b - back.b) <= GAMUT_TOLERANCE
    )


def detect_print_problems(rgb: RGBColor) -> list[str]:
    """Advisory strings for a colour; consumed by the quality checker."""
    problems = []
    total_ink = rgb_to_cmyk(rgb).total_ink
    if total_ink > MAX_INK_COVERAGE:
        problems.append(f"High ink coverage ({total_ink}%)")
    if not is_in_cmyk_gamut(rgb):
        problems.append("Out of CMYK gamut")
    return problems
