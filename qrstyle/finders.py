"""Finder patterns: where the three 7x7 locator squares are, and how they are redrawn.

Locator
    Structural mode reads positions straight from QR geometry. Raster
    estimation is the fallback for images that arrive without a grid.

Styler
    Each finder is cleared and redrawn as three concentric squares. Only the
    outer dark square may be rounded, and only on its one outward-facing
    corner; the inner light ring and the dark core stay perfectly square so
    the 1:1:3:1:1 run ratio scanners look for is untouched.
"""

from dataclasses import dataclass, replace
from enum import Enum

import numpy as np
from PIL import Image

from qrstyle.canvas import RenderContext
from qrstyle.grid import FINDER_MODULES
from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import CornerStyle, StyleOptions

log = get_logger("finders")

# Image width / this = guessed module pitch when no grid metadata exists
ESTIMATED_MODULES_ACROSS = 25
MAX_CORNER_RADIUS_PERCENT = 30
EXTRA_ROUNDED_FACTOR = 1.5


class Corner(Enum):
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_LEFT = "bottom_left"

    @property
    def rounded_corners(self) -> tuple[bool, bool, bool, bool]:
        """Pillow ``corners`` flags (tl, tr, br, bl) with only the outward corner set."""
        return {
            Corner.TOP_LEFT: (True, False, False, False),
            Corner.TOP_RIGHT: (False, True, False, False),
            Corner.BOTTOM_LEFT: (False, False, False, True),
        }[self]


@dataclass(frozen=True)
class FinderBox:
    """Axis-aligned square in pixel space covering one 7x7 finder."""

    corner: Corner
    x: float
    y: float
    size: float

    @property
    def module(self) -> float:
        return self.size / FINDER_MODULES

    def contains(self, px: float, py: float, pad: float = 0.0) -> bool:
        return (self.x - pad <= px < self.x + self.size + pad
                and self.y - pad <= py < self.y + self.size + pad)

    def shifted(self, dx: float, dy: float) -> "FinderBox":
        return replace(self, x=self.x + dx, y=self.y + dy)

    def inset(self, modules: int) -> tuple[int, int, int, int]:
        """Inclusive pixel rectangle shrunk by *modules* finder modules per side."""
        d = modules * self.module
        return (
            round(self.x + d),
            round(self.y + d),
            round(self.x + self.size - d) - 1,
            round(self.y + self.size - d) - 1,
        )


# ---------------------------------------------------------------------------
# Locator
# ---------------------------------------------------------------------------

def locate_structural(module_count: int, pitch: float, origin: float) -> list[FinderBox]:
    """Exact finder boxes from grid geometry: no detection involved.

    Args:
        module_count: Grid side N.
        pitch: Pixels per module.
        origin: Pixel offset of module (0, 0), i.e. the quiet zone.
    """
    size = FINDER_MODULES * pitch
    far = origin + (module_count - FINDER_MODULES) * pitch
    near = origin
    return [
        FinderBox(Corner.TOP_LEFT, near, near, size),
        FinderBox(Corner.TOP_RIGHT, far, near, size),
        FinderBox(Corner.BOTTOM_LEFT, near, far, size),
    ]


def estimate_module_px(width: int) -> int:
    return max(1, width // ESTIMATED_MODULES_ACROSS)


@trace
def locate_estimated(width: int, height: int) -> list[FinderBox]:
    """Guess finder boxes on a pre-rendered raster.

    Assumes roughly 25 modules across and places the boxes at fixed corners
    with half a module of padding. Wrong guesses only misplace decoration.
    """
    module = estimate_module_px(width)
    size = FINDER_MODULES * module
    pad = module / 2
    boxes = [
        FinderBox(Corner.TOP_LEFT, pad, pad, size),
        FinderBox(Corner.TOP_RIGHT, width - size - pad, pad, size),
        FinderBox(Corner.BOTTOM_LEFT, pad, height - size - pad, size),
    ]
    audit("finders.estimated", logger=log, image=f"{width}x{height}", module_px=module)
    return boxes


# ---------------------------------------------------------------------------
# Styler
# ---------------------------------------------------------------------------

def corner_radius_px(options: StyleOptions, module: float) -> int:
    """Outer-corner radius, relative to one module so rounding stays subtle."""
    if options.corner_style is CornerStyle.SQUARE:
        return 0
    percent = min(max(options.corner_radius_percent, 1), MAX_CORNER_RADIUS_PERCENT)
    radius = percent / 100 * module
    if options.corner_style is CornerStyle.EXTRA_ROUNDED:
        radius *= EXTRA_ROUNDED_FACTOR
    return round(radius)


def style_finder(ctx: RenderContext, box: FinderBox, options: StyleOptions):
    draw = ctx.draw
    draw.rectangle(box.inset(0), fill=ctx.background)

    radius = corner_radius_px(options, box.module)
    if radius > 0:
        draw.rounded_rectangle(box.inset(0), radius=radius, fill=ctx.foreground,
                               corners=box.corner.rounded_corners)
    else:
        draw.rectangle(box.inset(0), fill=ctx.foreground)

    draw.rectangle(box.inset(1), fill=ctx.background)
    draw.rectangle(box.inset(2), fill=ctx.foreground)


@trace
def style_finders(ctx: RenderContext, boxes: list[FinderBox], options: StyleOptions):
    for box in boxes:
        style_finder(ctx, box, options)
    audit("finders.styled", logger=log,
          corner_style=options.corner_style.value,
          radius_px=corner_radius_px(options, boxes[0].module) if boxes else 0,
          count=len(boxes))


# ---------------------------------------------------------------------------
# Structure check
# ---------------------------------------------------------------------------

def check_finder_structure(image: Image.Image, box: FinderBox, foreground) -> bool:
    """True if *box* holds a 7:5:3 nested-square finder in *foreground*.

    Checks the dark core, the whole light ring and the straight parts of the
    outer ring (the outward corner may be rounded).
    """
    arr = np.asarray(image.convert("RGB"))
    dark = np.all(arr == np.array(foreground[:3], dtype=arr.dtype), axis=-1)

    x0, y0, x1, y1 = box.inset(0)
    ix0, iy0, ix1, iy1 = box.inset(1)
    cx0, cy0, cx1, cy1 = box.inset(2)
    if x0 < 0 or y0 < 0 or y1 >= dark.shape[0] or x1 >= dark.shape[1]:
        return False

    core = dark[cy0:cy1 + 1, cx0:cx1 + 1]
    ring = dark[iy0:iy1 + 1, ix0:ix1 + 1].copy()
    ring[cy0 - iy0:cy1 - iy0 + 1, cx0 - ix0:cx1 - ix0 + 1] = False

    outer_edges = [
        dark[y0:iy0, ix0:ix1 + 1],      # top band
        dark[iy1 + 1:y1 + 1, ix0:ix1 + 1],  # bottom band
        dark[iy0:iy1 + 1, x0:ix0],      # left band
        dark[iy0:iy1 + 1, ix1 + 1:x1 + 1],  # right band
    ]
    return bool(core.all() and not ring.any() and all(edge.all() for edge in outer_edges))
