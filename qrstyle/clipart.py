"""Bundled clip-art icons, drawn procedurally so no image files ship with the package."""

import math

from PIL import Image, ImageDraw

from qrstyle.logging import audit, get_logger, trace

log = get_logger("clipart")

_SUPERSAMPLE = 4


def _cubic_bezier(p0, p1, p2, p3, n=30):
    """*n+1* points along a cubic Bezier curve."""
    pts = []
    for i in range(n + 1):
        t = i / n
        u = 1 - t
        x = u**3 * p0[0] + 3 * u**2 * t * p1[0] + 3 * u * t**2 * p2[0] + t**3 * p3[0]
        y = u**3 * p0[1] + 3 * u**2 * t * p1[1] + 3 * u * t**2 * p2[1] + t**3 * p3[1]
        pts.append((x, y))
    return pts


# Each painter draws white-on-black into a 1000x1000 coordinate space scaled by s.

def _heart(draw: ImageDraw.ImageDraw, s: float):
    segments = [
        ((500, 880), (380, 780), (120, 600), (120, 380)),
        ((120, 380), (120, 200), (260, 120), (370, 120)),
        ((370, 120), (440, 120), (480, 160), (500, 210)),
        ((500, 210), (520, 160), (560, 120), (630, 120)),
        ((630, 120), (740, 120), (880, 200), (880, 380)),
        ((880, 380), (880, 600), (620, 780), (500, 880)),
    ]
    outline = []
    for seg in segments:
        outline.extend(_cubic_bezier(*seg)[:-1])
    draw.polygon([(x * s, y * s) for x, y in outline], fill=255)


def _star(draw: ImageDraw.ImageDraw, s: float):
    pts = []
    for i in range(10):
        angle = -math.pi / 2 + i * math.pi / 5
        r = 420 if i % 2 == 0 else 170
        pts.append(((500 + r * math.cos(angle)) * s, (520 + r * math.sin(angle)) * s))
    draw.polygon(pts, fill=255)


def _check(draw: ImageDraw.ImageDraw, s: float):
    draw.ellipse([80 * s, 80 * s, 920 * s, 920 * s], fill=255)
    draw.line([(270 * s, 520 * s), (440 * s, 680 * s), (740 * s, 340 * s)], fill=0, width=int(90 * s),
              joint="curve")


def _pin(draw: ImageDraw.ImageDraw, s: float):
    draw.ellipse([220 * s, 80 * s, 780 * s, 640 * s], fill=255)
    draw.polygon([(262 * s, 480 * s), (738 * s, 480 * s), (500 * s, 930 * s)], fill=255)
    draw.ellipse([400 * s, 260 * s, 600 * s, 460 * s], fill=0)


CLIPART = {
    "heart": _heart,
    "star": _star,
    "check": _check,
    "pin": _pin,
}


@trace
def render_clipart(name: str, size: int = 512, color=(0, 0, 0)) -> Image.Image:
    """Render a bundled icon as an RGBA image: *color* on a transparent background.

    Raises:
        KeyError: unknown icon name.
    """
    painter = CLIPART[name.lower()]
    rs = size * _SUPERSAMPLE
    mask = Image.new("L", (rs, rs), 0)
    painter(ImageDraw.Draw(mask), rs / 1000.0)
    mask = mask.resize((size, size), Image.LANCZOS)

    icon = Image.new("RGBA", (size, size), tuple(color[:3]) + (0,))
    icon.putalpha(mask)
    audit("clipart.rendered", logger=log, name=name, size=size)
    return icon
