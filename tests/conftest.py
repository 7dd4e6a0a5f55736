"""Shared fixtures for bookmill tests."""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from bookmill.config import ProviderSettings
from bookmill.geometry import calculate_art_box, calculate_bleed_box, calculate_trim_box
from bookmill.models import (
    PRINT_COLOR_PROFILES,
    STANDARD_DIMENSIONS,
    CoverDesign,
    PageKind,
    PrintDimensions,
    PrintJobConfig,
    PrintPage,
    PrintProduct,
    ProductType,
    Recipient,
)
from bookmill.scene import Scene

_DEFAULT = object()


# === Path/Directory Fixtures ===

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


# === Dimension Fixtures ===

@pytest.fixture
def dims():
    """8x8in square photobook at 300 DPI with 3mm bleed."""
    return STANDARD_DIMENSIONS["SQUARE_8X8"]


@pytest.fixture
def small_dims():
    """Small, low-DPI product so rendering tests stay fast."""
    return PrintDimensions(width=50.8, height=25.4, bleed=3, dpi=72)


@pytest.fixture
def print_dims():
    """Smallest product that still passes the printable-DPI check."""
    return PrintDimensions(width=50.8, height=25.4, bleed=3, dpi=150)


# === Page/Job Factories ===

def build_page(
    dimensions: PrintDimensions,
    page_number: int = 1,
    objects=(),
    kind: PageKind = PageKind.SINGLE,
    bleed_box=_DEFAULT,
    background: str = "#FFFFFF",
) -> PrintPage:
    return PrintPage(
        page_number=page_number,
        kind=kind,
        scene=Scene(objects=tuple(objects), background=background),
        bleed_box=calculate_bleed_box(dimensions) if bleed_box is _DEFAULT else bleed_box,
        trim_box=calculate_trim_box(dimensions),
        art_box=calculate_art_box(dimensions),
    )


def build_job(
    dimensions: PrintDimensions,
    pages=None,
    page_count: int = 4,
    paper_type: str = "170gsm",
    **overrides,
) -> PrintJobConfig:
    if pages is None:
        pages = [build_page(dimensions, page_number=i + 1) for i in range(page_count)]
    product = PrintProduct(
        id="hardcover-8x8",
        provider="printful",
        product_type=ProductType.HARDCOVER,
        variant="HARDCOVER_8X8",
        dimensions=dimensions,
        page_count=len(pages),
        paper_type=paper_type,
        cover_type="hardcover",
        binding="perfect",
    )
    cover = CoverDesign(
        front=build_page(dimensions, page_number=0, kind=PageKind.COVER_FRONT),
        back=build_page(dimensions, page_number=0, kind=PageKind.COVER_BACK),
    )
    fields = dict(
        project_id="book-1",
        product=product,
        pages=tuple(pages),
        cover=cover,
        color_profile=PRINT_COLOR_PROFILES["FOGRA39"],
    )
    fields.update(overrides)
    return PrintJobConfig(**fields)


@pytest.fixture
def make_page():
    """Factory for pages with boxes computed from the given dimensions."""
    return build_page


@pytest.fixture
def make_job():
    """Factory for print jobs; pages default to blank single pages."""
    return build_job


@pytest.fixture
def job_config(small_dims):
    """A four-page job on the small product."""
    return build_job(small_dims)


@pytest.fixture
def print_job(print_dims):
    """A four-page job the orchestrator will accept for production."""
    return build_job(print_dims)


# === Provider Fixtures ===

@pytest.fixture
def recipient():
    return Recipient(
        name="Ada Lovelace",
        address1="12 St James's Square",
        city="London",
        country_code="GB",
        zip="SW1Y 4JH",
        email="ada@example.com",
    )


@pytest.fixture
def printful_settings():
    return ProviderSettings(name="printful", api_key="pf-test-key", max_retries=2, backoff=0.01)


@pytest.fixture
def gelato_settings():
    return ProviderSettings(name="gelato", api_key="gl-test-key", max_retries=2, backoff=0.01)


def build_response(status_code: int = 200, json_data=None, text: str = "", reason: str = "OK"):
    """A stand-in for requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.reason = reason
    response.text = text
    if json_data is None:
        response.content = text.encode()
        response.json.side_effect = ValueError("No JSON")
    else:
        response.content = b"{...}"
        response.json.return_value = json_data
    return response


@pytest.fixture
def make_response():
    """Factory for fake HTTP responses."""
    return build_response


@pytest.fixture
def mock_session():
    """A requests.Session whose request() is a MagicMock."""
    return MagicMock(spec=requests.Session)
