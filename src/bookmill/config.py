"""Job file loading for bookmill.

A job file is YAML describing one print job: the product, colour profile,
pages, cover and, optionally, provider settings. Page scenes are either inline
mappings or paths to canvas JSON files, resolved relative to the job file.
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import yaml

from bookmill.constants import (
    DEFAULT_API_KEY_ENV,
    DEFAULT_BACKOFF_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_LIMIT,
    DEFAULT_RATE_WINDOW_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    PROVIDER_NAMES,
)
from bookmill.exceptions import ConfigError
from bookmill.geometry import calculate_art_box, calculate_bleed_box, calculate_trim_box
from bookmill.logging_config import get_logger
from bookmill.models import (
    PRINT_COLOR_PROFILES,
    STANDARD_DIMENSIONS,
    Box,
    ColorSpace,
    CoverDesign,
    PageKind,
    PrintColorProfile,
    PrintDimensions,
    PrintJobConfig,
    PrintPage,
    PrintProduct,
    ProductType,
    RenderingIntent,
)
from bookmill.scene import Scene

logger = get_logger(__name__)

_MISSING = object()


@dataclass
class ProviderSettings:
    """Connection settings for one print provider."""

    name: str
    api_key: str = ""
    api_key_env: str = ""
    base_url: str = ""
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    backoff: float = DEFAULT_BACKOFF_SECONDS
    rate_limit: int = DEFAULT_RATE_LIMIT
    rate_window: float = DEFAULT_RATE_WINDOW_SECONDS

    def resolve_api_key(self, environ: Mapping[str, str] | None = None) -> str:
        """The literal key if set, else the value of the key's environment variable."""
        if self.api_key:
            return self.api_key
        env = os.environ if environ is None else environ
        var = self.api_key_env or DEFAULT_API_KEY_ENV.get(self.name, "")
        return env.get(var, "") if var else ""


@dataclass
class JobFile:
    """A loaded job file."""

    job: PrintJobConfig
    providers: dict[str, ProviderSettings] = field(default_factory=dict)
    path: Path | None = None


def _parse_enum(enum_class: type[Enum], value: Any, field: str | None = None) -> Enum:
    """Parse a string value into an enum with validation.

    Raises:
        ConfigError: If the value is not a valid enum member.
    """
    try:
        return enum_class(value)
    except ValueError:
        valid = ", ".join(e.value for e in enum_class)
        raise ConfigError(
            f"Invalid value '{value}'",
            field=field,
            suggestion=f"Valid values are: {valid}",
        )


def _number(data: Mapping[str, Any], key: str, default: Any, field: str, cast=float):
    value = data.get(key, default)
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Expected a number, got {value!r}", field=f"{field}.{key}")


def _require_mapping(value: Any, field: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"Expected a mapping, got {type(value).__name__}", field=field)
    return value


def parse_dimensions(value: Any, field: str = "product.dimensions") -> PrintDimensions:
    """A preset name (e.g. SQUARE_8X8) or a {width, height, bleed, dpi} mapping."""
    if isinstance(value, str):
        if value not in STANDARD_DIMENSIONS:
            raise ConfigError(
                f"Unknown dimension preset '{value}'",
                field=field,
                suggestion=f"Valid presets are: {', '.join(STANDARD_DIMENSIONS)}",
            )
        return STANDARD_DIMENSIONS[value]

    data = _require_mapping(value, field)
    for key in ("width", "height"):
        if key not in data:
            raise ConfigError(f"Missing required '{key}'", field=field)
    return PrintDimensions(
        width=_number(data, "width", None, field),
        height=_number(data, "height", None, field),
        bleed=_number(data, "bleed", 3, field),
        dpi=_number(data, "dpi", 300, field, cast=int),
    )


def parse_color_profile(value: Any, field: str = "color_profile") -> PrintColorProfile:
    """A preset name (FOGRA39, sRGB) or a mapping."""
    if isinstance(value, str):
        if value not in PRINT_COLOR_PROFILES:
            raise ConfigError(
                f"Unknown colour profile '{value}'",
                field=field,
                suggestion=f"Valid presets are: {', '.join(PRINT_COLOR_PROFILES)}",
            )
        return PRINT_COLOR_PROFILES[value]

    data = _require_mapping(value, field)
    return PrintColorProfile(
        name=str(data.get("name", "custom")),
        color_space=_parse_enum(ColorSpace, data.get("color_space", "CMYK"), f"{field}.color_space"),
        rendering_intent=_parse_enum(
            RenderingIntent, data.get("rendering_intent", "relative"), f"{field}.rendering_intent"
        ),
        icc_profile=data.get("icc_profile"),
    )


def parse_product(data: Any, page_count: int) -> PrintProduct:
    data = _require_mapping(data, "product")
    if "dimensions" not in data:
        raise ConfigError("Missing required 'dimensions'", field="product")
    return PrintProduct(
        id=str(data.get("id", "")),
        provider=str(data.get("provider", "")),
        product_type=_parse_enum(ProductType, data.get("type", "photobook"), "product.type"),
        variant=str(data.get("variant", "")),
        dimensions=parse_dimensions(data["dimensions"]),
        page_count=_number(data, "page_count", page_count, "product", cast=int),
        paper_type=str(data.get("paper_type", "170gsm")),
        cover_type=str(data.get("cover_type", "hardcover")),
        binding=str(data.get("binding", "perfect")),
    )


def _parse_box(value: Any, field: str) -> Box:
    data = _require_mapping(value, field)
    return Box(
        x=_number(data, "x", 0, field),
        y=_number(data, "y", 0, field),
        width=_number(data, "width", 0, field),
        height=_number(data, "height", 0, field),
    )


def _load_scene(value: Any, base_dir: Path | None, field: str) -> Scene:
    if value is None:
        return Scene.empty()
    if isinstance(value, dict):
        return Scene.from_dict(value)
    if isinstance(value, str):
        path = Path(value)
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        if not path.exists():
            raise ConfigError(f"Scene file not found: {path}", field=field)
        return Scene.from_json(path.read_text(encoding="utf-8"))
    raise ConfigError(f"Scene must be a mapping or a JSON file path, got {type(value).__name__}", field=field)


def parse_page(
    data: Any,
    dimensions: PrintDimensions,
    base_dir: Path | None = None,
    field: str = "pages",
    default_number: int = 1,
    default_kind: PageKind = PageKind.SINGLE,
) -> PrintPage:
    """Parse one page; boxes not given are computed from the product.

    An explicit ``bleed_box: null`` marks a page designed without bleed.
    """
    data = _require_mapping(data, field)

    bleed_value = data.get("bleed_box", _MISSING)
    if bleed_value is _MISSING:
        bleed_box = calculate_bleed_box(dimensions)
    elif bleed_value is None:
        bleed_box = None
    else:
        bleed_box = _parse_box(bleed_value, f"{field}.bleed_box")

    trim_box = (
        _parse_box(data["trim_box"], f"{field}.trim_box")
        if "trim_box" in data
        else calculate_trim_box(dimensions)
    )
    art_box = (
        _parse_box(data["art_box"], f"{field}.art_box")
        if "art_box" in data
        else calculate_art_box(dimensions)
    )

    return PrintPage(
        page_number=_number(data, "page_number", default_number, field, cast=int),
        kind=_parse_enum(PageKind, data.get("kind", default_kind.value), f"{field}.kind"),
        scene=_load_scene(data.get("scene"), base_dir, f"{field}.scene"),
        bleed_box=bleed_box,
        trim_box=trim_box,
        art_box=art_box,
    )


def parse_cover(data: Any, dimensions: PrintDimensions, base_dir: Path | None = None) -> CoverDesign:
    data = _require_mapping(data or {}, "cover")

    def page(key: str, kind: PageKind) -> PrintPage | None:
        if data.get(key) is None:
            return None
        return parse_page(data[key], dimensions, base_dir, f"cover.{key}", 0, kind)

    front = page("front", PageKind.COVER_FRONT)
    back = page("back", PageKind.COVER_BACK)
    full_cover = page("full_cover", PageKind.COVER_FRONT)
    blank = PrintPage(
        page_number=0,
        kind=PageKind.COVER_FRONT,
        scene=Scene.empty(),
        bleed_box=calculate_bleed_box(dimensions),
        trim_box=calculate_trim_box(dimensions),
        art_box=calculate_art_box(dimensions),
    )
    return CoverDesign(
        front=front or blank,
        back=back or replace(blank, kind=PageKind.COVER_BACK),
        spine=page("spine", PageKind.SINGLE),
        full_cover=full_cover,
        spine_width=_number(data, "spine_width", 0.0, "cover"),
    )


def parse_provider_settings(name: str, data: Any) -> ProviderSettings:
    if name not in PROVIDER_NAMES:
        raise ConfigError(
            f"Unknown provider '{name}'",
            field="providers",
            suggestion=f"Valid providers are: {', '.join(PROVIDER_NAMES)}",
        )
    field = f"providers.{name}"
    data = _require_mapping(data or {}, field)
    return ProviderSettings(
        name=name,
        api_key=str(data.get("api_key", "")),
        api_key_env=str(data.get("api_key_env", "")),
        base_url=str(data.get("base_url", "")),
        timeout=_number(data, "timeout", DEFAULT_TIMEOUT_SECONDS, field),
        max_retries=_number(data, "max_retries", DEFAULT_MAX_RETRIES, field, cast=int),
        backoff=_number(data, "backoff", DEFAULT_BACKOFF_SECONDS, field),
        rate_limit=_number(data, "rate_limit", DEFAULT_RATE_LIMIT, field, cast=int),
        rate_window=_number(data, "rate_window", DEFAULT_RATE_WINDOW_SECONDS, field),
    )


def default_provider_settings() -> dict[str, ProviderSettings]:
    """Settings for every HTTP provider, keys read from the environment."""
    return {name: ProviderSettings(name=name) for name in DEFAULT_API_KEY_ENV}


def parse_job(data: Any, base_dir: Path | None = None) -> JobFile:
    """Build a JobFile from already-parsed YAML data."""
    data = _require_mapping(data, "job")

    if not data.get("project_id"):
        raise ConfigError("Job must have a 'project_id'", field="project_id")
    if "product" not in data:
        raise ConfigError("Job must contain a 'product' section", field="product")

    raw_pages = data.get("pages") or []
    if not isinstance(raw_pages, list):
        raise ConfigError("'pages' must be a list", field="pages")

    product = parse_product(data["product"], page_count=len(raw_pages))
    dims = product.dimensions

    pages = tuple(
        parse_page(p, dims, base_dir, f"pages[{i}]", default_number=i + 1)
        for i, p in enumerate(raw_pages)
    )

    providers = default_provider_settings()
    for name, settings in (data.get("providers") or {}).items():
        providers[name] = parse_provider_settings(name, settings)

    job = PrintJobConfig(
        project_id=str(data["project_id"]),
        product=product,
        pages=pages,
        cover=parse_cover(data.get("cover"), dims, base_dir),
        color_profile=parse_color_profile(data.get("color_profile", "FOGRA39")),
        quality_checks=bool(data.get("quality_checks", True)),
        auto_fix=bool(data.get("auto_fix", False)),
        output_path=str(data.get("output_path", "")),
    )
    return JobFile(job=job, providers=providers)


def load_job(config_path: Path) -> JobFile:
    """Load and validate a job file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Job file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Job file is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Job file must be a YAML dictionary")

    job_file = parse_job(data, base_dir=config_path.parent)
    job_file.path = config_path
    logger.debug(
        "Loaded job %s: %d page(s), product %s",
        job_file.job.project_id,
        len(job_file.job.pages),
        job_file.job.product.id or "(unnamed)",
    )
    return job_file
