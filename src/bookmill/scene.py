"""Typed drawable scene for page content.

Page content is produced by the design canvas as a JSON tree. The pipeline
only reads a handful of fields from it (fill colours, image pixel size and
scale, text position), so the tree is parsed into three drawable variants and
everything else is kept in ``extra`` and written back untouched.

Coordinates are PDF points measured from the top-left corner of the trim box;
negative values reach into the bleed. An object's displayed size is
``width * scale_x`` by ``height * scale_y`` points. For images ``width`` and
``height`` are the source pixel dimensions, so the effective resolution of a
placed image is ``72 / scale`` DPI.
"""

import json
from dataclasses import dataclass, field, replace
from typing import Any

from bookmill.exceptions import ConfigError

IMAGE_TYPES = ("image",)
TEXT_TYPES = ("text", "textbox", "i-text")

# Key aliases used by the canvas serializer -> field names
_GEOMETRY_KEYS = {
    "left": "left",
    "top": "top",
    "width": "width",
    "height": "height",
    "scaleX": "scale_x",
    "scale_x": "scale_x",
    "scaleY": "scale_y",
    "scale_y": "scale_y",
    "angle": "angle",
    "fill": "fill",
    "opacity": "opacity",
}
_TEXT_KEYS = {
    "text": "text",
    "fontSize": "font_size",
    "font_size": "font_size",
    "fontFamily": "font_family",
    "font_family": "font_family",
}
_IMAGE_KEYS = {"src": "src"}


@dataclass(frozen=True)
class Drawable:
    """Common geometry and style of every drawable object."""

    type: str = "rect"
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    angle: float = 0.0
    fill: Any = None
    opacity: float = 1.0
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def display_width(self) -> float:
        return self.width * self.scale_x

    @property
    def display_height(self) -> float:
        return self.height * self.scale_y

    @property
    def right(self) -> float:
        return self.left + self.display_width

    @property
    def bottom(self) -> float:
        return self.top + self.display_height

    @property
    def hex_fill(self) -> str | None:
        """The fill if it is a solid ``#rgb``/``#rrggbb`` colour, else None."""
        if isinstance(self.fill, str) and self.fill.startswith("#"):
            return self.fill
        return None


@dataclass(frozen=True)
class ImageObject(Drawable):
    """A placed raster image. ``width``/``height`` are source pixels."""

    type: str = "image"
    src: str = ""

    def effective_dpi(self) -> float:
        """Effective print resolution of the placed image (worst axis)."""
        dpi_x = (self.width / (self.width * self.scale_x)) * 72
        dpi_y = (self.height / (self.height * self.scale_y)) * 72
        return min(dpi_x, dpi_y)


@dataclass(frozen=True)
class TextObject(Drawable):
    type: str = "text"
    text: str = ""
    font_size: float = 12.0
    font_family: str = "Helvetica"


@dataclass(frozen=True)
class ShapeObject(Drawable):
    """Any other vector object: rect, circle, ellipse, path, ..."""


@dataclass(frozen=True)
class Scene:
    """Ordered list of drawables plus a page background colour."""

    objects: tuple[Drawable, ...] = ()
    background: str | None = "#FFFFFF"
    extra: dict[str, Any] = field(default_factory=dict)

    def images(self) -> list[ImageObject]:
        return [obj for obj in self.objects if isinstance(obj, ImageObject)]

    def texts(self) -> list[TextObject]:
        return [obj for obj in self.objects if isinstance(obj, TextObject)]

    def with_objects(self, objects) -> "Scene":
        return replace(self, objects=tuple(objects))

    @classmethod
    def empty(cls) -> "Scene":
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Scene":
        if not isinstance(data, dict):
            raise ConfigError("Scene must be a mapping", field="scene")
        objects = tuple(parse_object(obj) for obj in data.get("objects") or [])
        extra = {k: v for k, v in data.items() if k not in ("objects", "background")}
        return cls(objects=objects, background=data.get("background", "#FFFFFF"), extra=extra)

    @classmethod
    def from_json(cls, payload: str) -> "Scene":
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Scene is not valid JSON: {e}", field="scene") from e
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data["objects"] = [object_to_dict(obj) for obj in self.objects]
        if self.background is not None:
            data["background"] = self.background
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def parse_object(data: dict[str, Any]) -> Drawable:
    """Parse one serialized canvas object into its drawable variant."""
    if not isinstance(data, dict):
        raise ConfigError(f"Scene object must be a mapping, got {type(data).__name__}", field="scene.objects")

    obj_type = str(data.get("type", "rect")).lower()
    if obj_type in IMAGE_TYPES:
        cls, specific = ImageObject, _IMAGE_KEYS
    elif obj_type in TEXT_TYPES:
        cls, specific = TextObject, _TEXT_KEYS
    else:
        cls, specific = ShapeObject, {}

    kwargs: dict[str, Any] = {"type": obj_type}
    extra: dict[str, Any] = {}
    for key, value in data.items():
        if key == "type":
            continue
        name = _GEOMETRY_KEYS.get(key) or specific.get(key)
        if name is None:
            extra[key] = value
        elif value is not None:
            kwargs[name] = value

    for name in ("left", "top", "width", "height", "scale_x", "scale_y", "angle", "opacity", "font_size"):
        if name in kwargs:
            try:
                kwargs[name] = float(kwargs[name])
            except (TypeError, ValueError) as e:
                raise ConfigError(
                    f"Scene object field '{name}' must be numeric, got {kwargs[name]!r}",
                    field="scene.objects",
                ) from e
    for name in ("text", "src", "font_family"):
        if name in kwargs:
            kwargs[name] = str(kwargs[name])
    return cls(extra=extra, **kwargs)


def object_to_dict(obj: Drawable) -> dict[str, Any]:
    """Serialize a drawable back to canvas-style keys."""
    data = dict(obj.extra)
    data.update({
        "type": obj.type,
        "left": obj.left,
        "top": obj.top,
        "width": obj.width,
        "height": obj.height,
        "scaleX": obj.scale_x,
        "scaleY": obj.scale_y,
        "angle": obj.angle,
        "opacity": obj.opacity,
    })
    if obj.fill is not None:
        data["fill"] = obj.fill
    if isinstance(obj, ImageObject):
        data["src"] = obj.src
    elif isinstance(obj, TextObject):
        data["text"] = obj.text
        data["fontSize"] = obj.font_size
        data["fontFamily"] = obj.font_family
    return data
