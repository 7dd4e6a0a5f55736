"""Data model for the print production pipeline.

Lengths are millimetres, resolutions are DPI. Value types are frozen: pages,
boxes and job configs are created once per export request and never mutated
by the pipeline; derived versions are made with ``dataclasses.replace``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from bookmill.exceptions import ConfigError
from bookmill.logging_config import get_logger
from bookmill.scene import Scene

logger = get_logger(__name__)


# ============================================================================
# Enums for constrained string values
# ============================================================================


class ColorSpace(str, Enum):
    CMYK = "CMYK"
    RGB = "RGB"


class RenderingIntent(str, Enum):
    PERCEPTUAL = "perceptual"
    RELATIVE = "relative"
    SATURATION = "saturation"
    ABSOLUTE = "absolute"


class PageKind(str, Enum):
    COVER_FRONT = "cover-front"
    COVER_BACK = "cover-back"
    SPREAD = "spread"
    SINGLE = "single"


class ProductType(str, Enum):
    PHOTOBOOK = "photobook"
    HARDCOVER = "hardcover"
    SOFTCOVER = "softcover"
    MAGAZINE = "magazine"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class WarningType(str, Enum):
    LOW_RESOLUTION = "low-resolution"
    COLOR_GAMUT = "color-gamut"
    BLEED_MISSING = "bleed-missing"
    MARGIN_VIOLATION = "margin-violation"
    TRANSPARENCY = "transparency"


class ErrorType(str, Enum):
    MISSING_BLEED = "missing-bleed"
    INVALID_DIMENSIONS = "invalid-dimensions"
    COLOR_MODE = "color-mode"
    FONT_MISSING = "font-missing"
    CORRUPT_IMAGE = "corrupt-image"


class OrderStatus(str, Enum):
    """Internal order lifecycle.

    Statuses only move forward along the fulfilment chain. FAILED and
    CANCELLED can be reached from any non-terminal status.
    """

    DRAFT = "draft"
    PENDING = "pending"
    PROCESSING = "processing"
    PRINTING = "printing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.FAILED, OrderStatus.CANCELLED)

    def can_transition_to(self, new: "OrderStatus") -> bool:
        if self.is_terminal:
            return False
        if new in (OrderStatus.FAILED, OrderStatus.CANCELLED):
            return True
        return _FORWARD_ORDER.index(new) > _FORWARD_ORDER.index(self)


_FORWARD_ORDER = [
    OrderStatus.DRAFT,
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.PRINTING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]


# ============================================================================
# Geometry and colour
# ============================================================================


@dataclass(frozen=True)
class PrintDimensions:
    """Trim size, bleed and target resolution of a product."""

    width: float
    height: float
    bleed: float
    dpi: int


@dataclass(frozen=True)
class PrintMargins:
    """Safe-zone margins. Used for checks only, never for box geometry."""

    top: float
    bottom: float
    left: float
    right: float
    spine: float


@dataclass(frozen=True)
class Box:
    """A rectangle in millimetres (bleed, trim or art box)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, other: "Box") -> bool:
        return (
            self.x <= other.x
            and self.y <= other.y
            and self.right >= other.right
            and self.bottom >= other.bottom
        )


@dataclass(frozen=True)
class RGBColor:
    """RGB colour, nominally 0-255 per channel.

    Values outside that range are allowed so extended-range input can be
    tested against the CMYK gamut.
    """

    r: int
    g: int
    b: int


@dataclass(frozen=True)
class CMYKColor:
    """CMYK colour in percent, 0-100 per channel."""

    c: int
    m: int
    y: int
    k: int

    @property
    def total_ink(self) -> int:
        return self.c + self.m + self.y + self.k


@dataclass(frozen=True)
class PrintColorProfile:
    """Selects simulation behaviour; no real ICC transform is applied."""

    name: str
    color_space: ColorSpace
    rendering_intent: RenderingIntent = RenderingIntent.RELATIVE
    icc_profile: str | None = None


# ============================================================================
# Pages
# ============================================================================


@dataclass(frozen=True)
class PrintPage:
    """One editable page as exported for print.

    ``bleed_box`` is None when the design has no bleed area at all.
    """

    page_number: int
    kind: PageKind
    scene: Scene
    bleed_box: Box | None
    trim_box: Box
    art_box: Box


@dataclass(frozen=True)
class SpreadPage:
    left_page: PrintPage
    right_page: PrintPage
    spread_number: int


@dataclass(frozen=True)
class CoverDesign:
    front: PrintPage
    back: PrintPage
    spine: PrintPage | None = None
    full_cover: PrintPage | None = None
    spine_width: float = 0.0


# ============================================================================
# Quality report
# ============================================================================


@dataclass(frozen=True)
class QualityWarning:
    """Non-blocking finding."""

    type: WarningType
    severity: Severity
    message: str
    page_number: int | None = None
    auto_fixable: bool = False


@dataclass(frozen=True)
class QualityError:
    """Blocking finding."""

    type: ErrorType
    message: str
    page_number: int | None = None
    blocking: bool = True


@dataclass
class PrintQualityCheck:
    passed: bool = True
    warnings: list[QualityWarning] = field(default_factory=list)
    errors: list[QualityError] = field(default_factory=list)
    score: int = 100

    @property
    def fixable_warnings(self) -> list[QualityWarning]:
        return [w for w in self.warnings if w.auto_fixable]

    def summary(self) -> str:
        return (
            f"score {self.score}/100, {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s), {'passed' if self.passed else 'failed'}"
        )


# ============================================================================
# Products, orders, jobs
# ============================================================================


@dataclass(frozen=True)
class PrintProduct:
    """The manufacturing contract for one book."""

    id: str
    provider: str
    product_type: ProductType
    variant: str
    dimensions: PrintDimensions
    page_count: int
    paper_type: str
    cover_type: str
    binding: str


REQUIRED_RECIPIENT_FIELDS = ("name", "address1", "city", "country_code", "zip")


@dataclass(frozen=True)
class Recipient:
    """Shipping recipient in the pipeline's own vocabulary."""

    name: str
    address1: str
    city: str
    country_code: str
    zip: str
    state_code: str = ""
    address2: str = ""
    email: str | None = None
    phone: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Recipient":
        missing = [k for k in REQUIRED_RECIPIENT_FIELDS if not data.get(k)]
        if missing:
            raise ConfigError(
                f"Recipient is missing: {', '.join(missing)}",
                field="recipient",
                suggestion=f"Provide {', '.join(REQUIRED_RECIPIENT_FIELDS)}",
            )
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass(frozen=True)
class TrackingInfo:
    carrier: str
    tracking_number: str
    tracking_url: str
    estimated_delivery: datetime | None = None


@dataclass(frozen=True)
class OrderCost:
    subtotal: float
    shipping: float
    tax: float
    total: float
    currency: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PrintOrder:
    """A provider order, translated into the internal model."""

    id: str
    provider: str
    product_id: str
    quantity: int
    pdf_url: str
    status: OrderStatus
    cost: OrderCost
    tracking: TrackingInfo | None = None
    idempotency_key: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def advance(self, new_status: OrderStatus) -> bool:
        """Apply a provider-reported status if it is a legal transition.

        Returns:
            True if the status changed. Backward or post-terminal reports are
            ignored and logged.
        """
        if new_status == self.status:
            return False
        if not self.status.can_transition_to(new_status):
            logger.warning(
                "Ignoring %s status '%s' for order %s (currently '%s')",
                self.provider,
                new_status.value,
                self.id,
                self.status.value,
            )
            return False
        self.status = new_status
        self.updated_at = _utcnow()
        return True


@dataclass(frozen=True)
class PrintPreview:
    color_profile: PrintColorProfile
    scenes: tuple[Scene, ...] = ()
    thumbnails: tuple[bytes, ...] = ()
    type: str = "print-simulation"


@dataclass(frozen=True)
class PrintJobConfig:
    """The single orchestration input. Built once per export request."""

    project_id: str
    product: PrintProduct
    pages: tuple[PrintPage, ...]
    cover: CoverDesign
    color_profile: PrintColorProfile
    quality_checks: bool = True
    auto_fix: bool = False
    output_path: str = ""


# ============================================================================
# Presets
# ============================================================================


STANDARD_DIMENSIONS: dict[str, PrintDimensions] = {
    "SQUARE_8X8": PrintDimensions(width=203.2, height=203.2, bleed=3, dpi=300),
    "SQUARE_10X10": PrintDimensions(width=254, height=254, bleed=3, dpi=300),
    "LANDSCAPE_8X10": PrintDimensions(width=254, height=203.2, bleed=3, dpi=300),
    "A4_PORTRAIT": PrintDimensions(width=210, height=297, bleed=3, dpi=300),
}

STANDARD_MARGINS = PrintMargins(top=10, bottom=10, left=10, right=10, spine=15)

PRINT_COLOR_PROFILES: dict[str, PrintColorProfile] = {
    "FOGRA39": PrintColorProfile(
        name="FOGRA39 (ISO Coated v2)",
        color_space=ColorSpace.CMYK,
        rendering_intent=RenderingIntent.RELATIVE,
        icc_profile="ISOcoated_v2_300_eci.icc",
    ),
    "sRGB": PrintColorProfile(
        name="sRGB (Digital Preview)",
        color_space=ColorSpace.RGB,
        rendering_intent=RenderingIntent.PERCEPTUAL,
    ),
}
