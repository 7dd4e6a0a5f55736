"""Tests for bookmill.config module."""

import json

import pytest
import yaml

from bookmill.config import (
    ProviderSettings,
    load_job,
    parse_color_profile,
    parse_cover,
    parse_dimensions,
    parse_job,
    parse_page,
    parse_product,
    parse_provider_settings,
)
from bookmill.exceptions import ConfigError
from bookmill.geometry import calculate_bleed_box
from bookmill.models import (
    STANDARD_DIMENSIONS,
    Box,
    ColorSpace,
    PageKind,
    ProductType,
    RenderingIntent,
)
from bookmill.scene import ImageObject


def _job_dict(**overrides):
    data = {
        "project_id": "holiday-2024",
        "product": {
            "id": "hardcover-8x8",
            "provider": "printful",
            "type": "hardcover",
            "variant": "HARDCOVER_8X8",
            "dimensions": "SQUARE_8X8",
        },
        "pages": [{}, {}],
    }
    data.update(overrides)
    return data


@pytest.fixture
def job_file(temp_dir):
    path = temp_dir / "job.yaml"
    path.write_text(yaml.dump(_job_dict()))
    return path


class TestLoadJob:
    """Test job file loading."""

    def test_load_minimal(self, job_file):
        loaded = load_job(job_file)
        job = loaded.job
        assert job.project_id == "holiday-2024"
        assert job.product.product_type == ProductType.HARDCOVER
        assert job.product.dimensions == STANDARD_DIMENSIONS["SQUARE_8X8"]
        assert job.product.page_count == 2
        assert [p.page_number for p in job.pages] == [1, 2]
        assert job.color_profile.color_space == ColorSpace.CMYK
        assert job.quality_checks is True
        assert job.auto_fix is False
        assert loaded.path == job_file

    def test_file_not_found(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_job(temp_dir / "missing.yaml")

    def test_invalid_yaml(self, temp_dir):
        path = temp_dir / "bad.yaml"
        path.write_text("{{invalid yaml: [")
        with pytest.raises(ConfigError, match="YAML"):
            load_job(path)

    def test_not_a_mapping(self, temp_dir):
        path = temp_dir / "list.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ConfigError, match="dictionary"):
            load_job(path)

    def test_scene_file_relative_to_job(self, temp_dir):
        scenes = temp_dir / "scenes"
        scenes.mkdir()
        (scenes / "p1.json").write_text(json.dumps({
            "objects": [{"type": "image", "src": "beach.jpg", "width": 3000, "height": 2000, "scaleX": 0.2, "scaleY": 0.2}],
        }))
        path = temp_dir / "job.yaml"
        path.write_text(yaml.dump(_job_dict(pages=[{"scene": "scenes/p1.json"}])))

        page = load_job(path).job.pages[0]
        [image] = page.scene.objects
        assert isinstance(image, ImageObject)
        assert image.src == "beach.jpg"

    def test_missing_scene_file(self, temp_dir):
        path = temp_dir / "job.yaml"
        path.write_text(yaml.dump(_job_dict(pages=[{"scene": "nope.json"}])))
        with pytest.raises(ConfigError, match="not found"):
            load_job(path)


class TestParseJob:
    """Test job parsing from dicts."""

    def test_missing_project_id(self):
        with pytest.raises(ConfigError, match="project_id"):
            parse_job(_job_dict(project_id=""))

    def test_missing_product(self):
        data = _job_dict()
        del data["product"]
        with pytest.raises(ConfigError, match="product"):
            parse_job(data)

    def test_pages_must_be_list(self):
        with pytest.raises(ConfigError, match="list"):
            parse_job(_job_dict(pages={"a": 1}))

    def test_flags_and_output(self):
        job = parse_job(_job_dict(quality_checks=False, auto_fix=True, output_path="out/book.pdf")).job
        assert job.quality_checks is False
        assert job.auto_fix is True
        assert job.output_path == "out/book.pdf"

    def test_default_providers_present(self):
        providers = parse_job(_job_dict()).providers
        assert set(providers) == {"printful", "gelato"}

    def test_provider_overrides(self):
        providers = parse_job(_job_dict(providers={"gelato": {"api_key": "k", "timeout": 5, "max_retries": 0}})).providers
        assert providers["gelato"].api_key == "k"
        assert providers["gelato"].timeout == 5.0
        assert providers["gelato"].max_retries == 0
        assert providers["printful"].api_key == ""


class TestParseDimensions:
    """Test dimension parsing."""

    def test_preset(self):
        assert parse_dimensions("A4_PORTRAIT").width == 210

    def test_unknown_preset(self):
        with pytest.raises(ConfigError) as exc_info:
            parse_dimensions("POSTER")
        assert "SQUARE_8X8" in exc_info.value.suggestion

    def test_mapping_with_defaults(self):
        dims = parse_dimensions({"width": 150, "height": 200})
        assert (dims.width, dims.height, dims.bleed, dims.dpi) == (150.0, 200.0, 3.0, 300)

    def test_missing_height(self):
        with pytest.raises(ConfigError, match="height"):
            parse_dimensions({"width": 150})

    def test_non_numeric(self):
        with pytest.raises(ConfigError):
            parse_dimensions({"width": "wide", "height": 200})


class TestParseProduct:
    """Test product parsing."""

    def test_defaults(self):
        product = parse_product({"dimensions": "SQUARE_8X8"}, page_count=24)
        assert product.product_type == ProductType.PHOTOBOOK
        assert product.page_count == 24
        assert product.paper_type == "170gsm"
        assert product.binding == "perfect"

    def test_invalid_type(self):
        with pytest.raises(ConfigError) as exc_info:
            parse_product({"dimensions": "SQUARE_8X8", "type": "poster"}, page_count=1)
        assert "hardcover" in exc_info.value.suggestion

    def test_missing_dimensions(self):
        with pytest.raises(ConfigError, match="dimensions"):
            parse_product({"id": "x"}, page_count=1)


class TestParsePage:
    """Test page parsing."""

    def test_boxes_computed_by_default(self, dims):
        page = parse_page({}, dims)
        assert page.bleed_box == calculate_bleed_box(dims)
        assert page.kind == PageKind.SINGLE

    def test_explicit_null_bleed(self, dims):
        assert parse_page({"bleed_box": None}, dims).bleed_box is None

    def test_explicit_box(self, dims):
        page = parse_page({"bleed_box": {"x": 0, "y": 0, "width": 205, "height": 205}}, dims)
        assert page.bleed_box == Box(0, 0, 205, 205)

    def test_inline_scene(self, dims):
        page = parse_page({"scene": {"objects": [{"type": "text", "text": "Hi"}]}, "page_number": 7}, dims)
        assert page.page_number == 7
        assert page.scene.texts()[0].text == "Hi"

    def test_invalid_kind(self, dims):
        with pytest.raises(ConfigError):
            parse_page({"kind": "gatefold"}, dims)


class TestParseCover:
    """Test cover parsing."""

    def test_missing_cover_gets_blank_pages(self, dims):
        cover = parse_cover(None, dims)
        assert cover.front.kind == PageKind.COVER_FRONT
        assert cover.back.kind == PageKind.COVER_BACK
        assert cover.front.page_number == 0
        assert cover.spine is None
        assert cover.spine_width == 0.0

    def test_explicit_cover(self, dims):
        cover = parse_cover({"front": {"scene": {"background": "#000000"}}, "spine_width": 12.5}, dims)
        assert cover.front.scene.background == "#000000"
        assert cover.spine_width == 12.5


class TestColorProfile:
    """Test colour profile parsing."""

    def test_preset(self):
        assert parse_color_profile("sRGB").color_space == ColorSpace.RGB

    def test_custom(self):
        profile = parse_color_profile({"name": "GRACoL", "rendering_intent": "perceptual"})
        assert profile.color_space == ColorSpace.CMYK
        assert profile.rendering_intent == RenderingIntent.PERCEPTUAL

    def test_unknown_preset(self):
        with pytest.raises(ConfigError):
            parse_color_profile("FOGRA51")


class TestProviderSettings:
    """Test provider settings."""

    def test_unknown_provider(self):
        with pytest.raises(ConfigError, match="lulu"):
            parse_provider_settings("lulu", {})

    def test_literal_key_wins(self):
        settings = ProviderSettings(name="printful", api_key="literal")
        assert settings.resolve_api_key({"PRINTFUL_API_KEY": "env"}) == "literal"

    def test_default_env_var(self):
        assert ProviderSettings(name="gelato").resolve_api_key({"GELATO_API_KEY": "env"}) == "env"

    def test_custom_env_var(self):
        settings = ProviderSettings(name="gelato", api_key_env="MY_GELATO")
        assert settings.resolve_api_key({"MY_GELATO": "mine", "GELATO_API_KEY": "other"}) == "mine"

    def test_mock_has_no_key(self):
        assert ProviderSettings(name="mock").resolve_api_key({}) == ""
