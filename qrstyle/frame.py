"""Frame compositor: wrap the styled code in an optional border."""

import math

from PIL import Image, ImageDraw

from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import FrameStyle, StyleOptions

log = get_logger("frame")

MIN_FRAME_WIDTH_PERCENT = 1
MAX_FRAME_WIDTH_PERCENT = 10


def frame_size_px(code_width: int, options: StyleOptions) -> int:
    """Border thickness in pixels; 0 when no frame is drawn."""
    if options.frame_style is FrameStyle.NONE:
        return 0
    percent = min(max(options.frame_width_percent, MIN_FRAME_WIDTH_PERCENT), MAX_FRAME_WIDTH_PERCENT)
    return math.floor(code_width * percent / 100)


@trace
def composite_frame(code: Image.Image, options: StyleOptions) -> tuple[Image.Image, int]:
    """Return (framed image, frame size in px).

    The code is pasted unscaled at (frame_size, frame_size); the canvas grows
    by exactly 2 x frame_size on both axes.

    double: an outer border of half the frame size, then a background gap and
    an inner border splitting the remaining half.
    """
    frame_size = frame_size_px(code.width, options)
    if frame_size == 0:
        return code, 0

    side_w = code.width + 2 * frame_size
    side_h = code.height + 2 * frame_size
    canvas = Image.new("RGB", (side_w, side_h), options.resolved_frame_color)
    draw = ImageDraw.Draw(canvas)
    frame_color = options.resolved_frame_color
    bg = options.background_color

    if options.frame_style is FrameStyle.DOUBLE:
        outer = max(1, frame_size // 2)
        gap = (frame_size - outer) // 2
        draw.rectangle([outer, outer, side_w - 1 - outer, side_h - 1 - outer], fill=bg)
        inner = outer + gap
        draw.rectangle([inner, inner, side_w - 1 - inner, side_h - 1 - inner], fill=frame_color)

    draw.rectangle([frame_size, frame_size, frame_size + code.width - 1, frame_size + code.height - 1], fill=bg)
    canvas.paste(code.convert("RGB"), (frame_size, frame_size))

    audit("frame.composited", logger=log,
          style=options.frame_style.value, frame_px=frame_size,
          image_px=f"{side_w}x{side_h}")
    return canvas, frame_size
