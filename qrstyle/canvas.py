"""Per-call render context threaded through the drawing stages."""

from dataclasses import dataclass

from PIL import Image, ImageDraw

from qrstyle.options import RGB, StyleOptions


@dataclass
class RenderContext:
    """A fresh canvas and the geometry needed to draw modules onto it.

    Each render owns its own context; nothing is pooled or shared between
    calls, so renders can run concurrently.
    """

    image: Image.Image
    draw: ImageDraw.ImageDraw
    pitch: float          # pixels per module
    origin: float         # pixel offset of module (0, 0) on both axes
    foreground: RGB
    background: RGB

    @classmethod
    def blank(cls, size: tuple[int, int], pitch: float, origin: float,
              options: StyleOptions) -> "RenderContext":
        image = Image.new("RGB", size, options.background_color)
        return cls(
            image=image,
            draw=ImageDraw.Draw(image),
            pitch=pitch,
            origin=origin,
            foreground=options.foreground_color,
            background=options.background_color,
        )

    @classmethod
    def for_grid(cls, module_count: int, quiet_zone: int, options: StyleOptions) -> "RenderContext":
        px = options.module_px
        side = (module_count + 2 * quiet_zone) * px
        return cls.blank((side, side), px, quiet_zone * px, options)

    def cell_origin(self, row: int, col: int) -> tuple[float, float]:
        return self.origin + col * self.pitch, self.origin + row * self.pitch

    def cell_center(self, row: int, col: int) -> tuple[float, float]:
        x, y = self.cell_origin(row, col)
        return x + self.pitch / 2, y + self.pitch / 2
