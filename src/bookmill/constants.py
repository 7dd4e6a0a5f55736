"""Centralized constants for bookmill.

Units: lengths in millimetres unless the name says otherwise.
"""

from typing import Literal

# Unit conversion factors (72 points per inch, 25.4 mm per inch)
MM_PER_INCH = 25.4
POINTS_PER_INCH = 72.0
MM_TO_POINTS = POINTS_PER_INCH / MM_PER_INCH

UNIT_TO_POINTS = {
    "pt": 1.0,
    "in": POINTS_PER_INCH,
    "mm": MM_TO_POINTS,
    "cm": POINTS_PER_INCH / 2.54,
}

# Print resolution
TARGET_DPI = 300
LOW_DPI_THRESHOLD = 200
MIN_PRINTABLE_DPI = 150

# Geometry
DEFAULT_ART_MARGIN_MM = 10.0
SAFE_ZONE_MM = 5.0
CANVAS_TOLERANCE_PX = 10
DIMENSION_TOLERANCE_MM = 1.0
MIN_SPINE_WIDTH_MM = 2.0

# Colour
GAMUT_TOLERANCE = 5
MAX_INK_COVERAGE = 300

# Scoring deductions per finding
SCORE_PER_ERROR = 20
SCORE_PER_SEVERITY = {"high": 10, "medium": 5, "low": 2}

# Paper thickness in mm per sheet, keyed by paper weight
PAPER_THICKNESS_MM = {
    "80gsm": 0.10,
    "100gsm": 0.12,
    "115gsm": 0.14,
    "130gsm": 0.16,
    "170gsm": 0.19,
    "250gsm": 0.30,
}
DEFAULT_PAPER_THICKNESS_MM = 0.12

# PDF size heuristic (bytes)
PDF_BASE_SIZE = 50_000
PDF_IMAGE_COMPRESSION = 0.7
DEFAULT_AVG_IMAGE_BYTES = 500_000

# Preview thumbnails are rendered at this resolution
THUMBNAIL_DPI = 36

# Provider HTTP defaults
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_SECONDS = 1.0
MAX_BACKOFF_SECONDS = 30.0
DEFAULT_RATE_LIMIT = 60
DEFAULT_RATE_WINDOW_SECONDS = 60.0

PROVIDER_NAMES = ("printful", "gelato", "mock")
ProviderName = Literal["printful", "gelato", "mock"]

# Environment variables holding provider API keys
DEFAULT_API_KEY_ENV = {
    "printful": "PRINTFUL_API_KEY",
    "gelato": "GELATO_API_KEY",
}
