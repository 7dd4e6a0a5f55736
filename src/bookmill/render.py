"""Scene rasterisation.

Turning an arbitrary vector scene into pixels belongs to the design canvas,
so the pipeline talks to it through SceneRenderer. PillowSceneRenderer is a
low-fidelity implementation that draws the three drawable variants directly;
it is good enough for proofs, thumbnails and tests.
"""

from abc import ABC, abstractmethod
from typing import Callable

from PIL import Image, ImageColor, ImageDraw, ImageFont

from bookmill.constants import POINTS_PER_INCH
from bookmill.exceptions import RenderError
from bookmill.logging_config import get_logger
from bookmill.scene import Drawable, ImageObject, Scene, TextObject

logger = get_logger(__name__)

PLACEHOLDER_COLOR = (200, 200, 200)

AssetLoader = Callable[[str], Image.Image]


class SceneRenderer(ABC):
    """Rasterises one page scene into a tile.

    Example:
        renderer = PillowSceneRenderer()
        tile = renderer.render(page.scene, (2470, 2470), origin=(35, 35), dpi=300)
    """

    @abstractmethod
    def render(
        self,
        scene: Scene,
        size: tuple[int, int],
        origin: tuple[float, float],
        dpi: int,
    ) -> Image.Image:
        """Render a scene.

        Args:
            scene: Page content
            size: Tile size in pixels (width, height)
            origin: Pixel position of the scene's (0, 0), i.e. the trim corner
            dpi: Output resolution; scene points are scaled by dpi/72

        Returns:
            An RGB image of exactly ``size``

        Raises:
            RenderError: If the scene cannot be drawn
        """


def _parse_color(value, alpha: float = 1.0) -> tuple[int, int, int, int] | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        rgb = ImageColor.getrgb(value)
    except ValueError:
        logger.debug("Unsupported fill %r drawn without colour", value)
        return None
    a = round(255 * max(0.0, min(1.0, alpha)))
    return (rgb[0], rgb[1], rgb[2], a)


class PillowSceneRenderer(SceneRenderer):
    """Draws scenes with Pillow.

    Args:
        asset_loader: Resolves an image ``src`` to a PIL image. Without one,
            images are drawn as grey placeholders of their placed size.
    """

    def __init__(self, asset_loader: AssetLoader | None = None):
        self.asset_loader = asset_loader

    def render(
        self,
        scene: Scene,
        size: tuple[int, int],
        origin: tuple[float, float],
        dpi: int,
    ) -> Image.Image:
        width, height = size
        if width <= 0 or height <= 0:
            raise RenderError(f"Cannot render a {width}x{height} tile")

        background = _parse_color(scene.background) or (255, 255, 255, 255)
        tile = Image.new("RGB", (width, height), background[:3])
        draw = ImageDraw.Draw(tile, "RGBA")
        scale = dpi / POINTS_PER_INCH

        for obj in scene.objects:
            box = (
                origin[0] + obj.left * scale,
                origin[1] + obj.top * scale,
                origin[0] + obj.right * scale,
                origin[1] + obj.bottom * scale,
            )
            if isinstance(obj, ImageObject):
                self._draw_image(tile, draw, obj, box)
            elif isinstance(obj, TextObject):
                self._draw_text(draw, obj, box, scale)
            else:
                self._draw_shape(draw, obj, box)
        return tile

    def _draw_image(self, tile: Image.Image, draw: ImageDraw.ImageDraw, obj: ImageObject, box) -> None:
        w = round(box[2] - box[0])
        h = round(box[3] - box[1])
        if w <= 0 or h <= 0:
            return
        if self.asset_loader and obj.src:
            try:
                source = self.asset_loader(obj.src)
            except (OSError, ValueError) as e:
                raise RenderError(f"Cannot load image {obj.src}: {e}", {"src": obj.src}) from e
            placed = source.convert("RGBA").resize((w, h), Image.Resampling.LANCZOS)
            if obj.opacity < 1:
                alpha = placed.getchannel("A").point(lambda v: round(v * obj.opacity))
                placed.putalpha(alpha)
            tile.paste(placed, (round(box[0]), round(box[1])), placed)
            return
        fill = _parse_color(obj.fill, obj.opacity) or (*PLACEHOLDER_COLOR, round(255 * obj.opacity))
        draw.rectangle(box, fill=fill)

    def _draw_text(self, draw: ImageDraw.ImageDraw, obj: TextObject, box, scale: float) -> None:
        fill = _parse_color(obj.fill or "#000000", obj.opacity)
        text = str(obj.text)
        if not text or fill is None:
            return
        font = ImageFont.load_default(size=max(1, round(obj.font_size * obj.scale_y * scale)))
        draw.text((box[0], box[1]), text, fill=fill, font=font)

    def _draw_shape(self, draw: ImageDraw.ImageDraw, obj: Drawable, box) -> None:
        fill = _parse_color(obj.fill, obj.opacity)
        if fill is None or box[2] <= box[0] or box[3] <= box[1]:
            return
        if obj.type in ("circle", "ellipse"):
            draw.ellipse(box, fill=fill)
        else:
            draw.rectangle(box, fill=fill)
