"""On-screen print preview through the CMYK round trip."""

from dataclasses import replace

from bookmill.color import hex_to_rgb, print_round_trip, rgb_to_hex
from bookmill.logging_config import get_logger
from bookmill.models import ColorSpace, PrintColorProfile
from bookmill.scene import Scene

logger = get_logger(__name__)


class PrintSimulator:
    """Recolours a scene the way the press would reproduce it.

    Only used for low-fidelity preview thumbnails, never for the print file.
    """

    def __init__(self, profile: PrintColorProfile):
        self.profile = profile

    def simulate_canvas(self, scene: Scene) -> Scene:
        objects = []
        for obj in scene.objects:
            if obj.hex_fill is not None:
                obj = replace(obj, fill=self.simulate_color(obj.hex_fill))
            objects.append(obj)

        background = scene.background
        if isinstance(background, str) and background.startswith("#"):
            background = self.simulate_color(background)
        return replace(scene, objects=tuple(objects), background=background)

    def simulate_color(self, hex_color: str) -> str:
        if self.profile.color_space == ColorSpace.RGB:
            return hex_color
        try:
            rgb = hex_to_rgb(hex_color)
        except ValueError:
            logger.debug("Leaving unparseable colour %r unchanged in preview", hex_color)
            return hex_color
        return rgb_to_hex(print_round_trip(rgb))
