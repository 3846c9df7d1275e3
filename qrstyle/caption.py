"""Caption compositor: descriptive text in a strip appended below the code."""

from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont

from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import StyleOptions

log = get_logger("caption")

STRIP_HEIGHT = 40
MIN_FONT_PX = 12
MAX_FONT_PX = 16
MAX_CHARS = 50
KEEP_CHARS = 47
ELLIPSIS = "…"

_FONT_CANDIDATES = ("DejaVuSans.ttf", "Arial.ttf", "arial.ttf", "LiberationSans-Regular.ttf")


def truncate_caption(text: str) -> str:
    if len(text) > MAX_CHARS:
        return text[:KEEP_CHARS] + ELLIPSIS
    return text


def font_size_for(width: int) -> int:
    return max(MIN_FONT_PX, min(MAX_FONT_PX, width // 30))


@lru_cache(maxsize=8)
def load_font(size: int):
    for name in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    log.debug("No TrueType font found, using Pillow's default font at %dpx", size)
    return ImageFont.load_default(size=size)


@trace
def composite_caption(image: Image.Image, text: str | None, options: StyleOptions) -> Image.Image:
    """Append a background strip with *text* centered in it.

    The image above the strip is pasted unchanged, so the scannable area is
    never resized or overlapped. Empty captions return the image as is.
    """
    if not text or not text.strip():
        return image

    display = truncate_caption(text.strip())
    width, height = image.size
    canvas = Image.new("RGB", (width, height + STRIP_HEIGHT), options.background_color)
    canvas.paste(image.convert("RGB"), (0, 0))

    font = load_font(font_size_for(width))
    draw = ImageDraw.Draw(canvas)
    left, top, right, bottom = draw.textbbox((0, 0), display, font=font)
    x = (width - (right - left)) / 2 - left
    y = height + (STRIP_HEIGHT - (bottom - top)) / 2 - top
    draw.text((x, y), display, fill=options.foreground_color, font=font)

    audit("caption.composited", logger=log,
          chars=len(display), truncated=display != text.strip(),
          font_px=font_size_for(width), image_px=f"{width}x{height + STRIP_HEIGHT}")
    return canvas
