"""Center overlay compositor: a logo or clip-art icon on a background patch."""

from PIL import Image, ImageDraw

from qrstyle.assets import is_clipart_source, load_asset
from qrstyle.ecc import ECCLevel, fit_overlay_to_budget
from qrstyle.errors import AssetLoadError
from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import DEFAULT_CENTER_IMAGE_PERCENT, StyleOptions

log = get_logger("overlay")

# Hard ceiling, tighter than the 1-30 input range, so obscuration stays bounded
MIN_PERCENT = 1
MAX_PERCENT = 25
CIRCLE_BELOW_PERCENT = 15
CIRCLE_RADIUS = 0.6
RECT_PADDING = 0.10
RECT_RADIUS = 0.15
CUSTOM_IMAGE_SCALE = 0.95


def clamp_overlay_percent(percent) -> float:
    try:
        value = float(percent)
    except (TypeError, ValueError):
        value = DEFAULT_CENTER_IMAGE_PERCENT
    return min(max(value, MIN_PERCENT), MAX_PERCENT)


def uses_circular_background(percent: float, is_clip_art: bool) -> bool:
    return is_clip_art or percent < CIRCLE_BELOW_PERCENT


def _scale_preserving_aspect(original_size: tuple[int, int], target: int) -> tuple[int, int]:
    """Scale (w, h) so the larger side equals *target*."""
    w, h = original_size
    if w >= h:
        return target, max(1, round(target * h / w))
    return max(1, round(target * w / h)), target


def _draw_background(draw: ImageDraw.ImageDraw, center: tuple[float, float], size: float,
                     circular: bool, color):
    cx, cy = center
    if circular:
        r = CIRCLE_RADIUS * size
        draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=color)
    else:
        half = size / 2 + RECT_PADDING * size
        draw.rounded_rectangle(
            [round(cx - half), round(cy - half), round(cx + half) - 1, round(cy + half) - 1],
            radius=round(RECT_RADIUS * size), fill=color,
        )


@trace
def composite_center_image(
    image: Image.Image,
    options: StyleOptions,
    *,
    level: ECCLevel | None = None,
    symbol_fraction: float = 1.0,
    asset_loader=None,
) -> tuple[Image.Image, float | None]:
    """Overlay the configured center image.

    Returns (image, percent actually used). When no center image is set, or the
    asset cannot be loaded, the input image comes back untouched with ``None``.

    Args:
        level: Error-correction level of the symbol; when given, the overlay is
            shrunk to fit that level's recovery budget.
        symbol_fraction: Symbol width over image width, for the budget estimate.
        asset_loader: Callable(source) -> PIL image. Defaults to ``load_asset``.
    """
    if not options.has_center_image:
        return image, None

    source = options.center_image
    is_clip_art = options.is_clip_art or is_clipart_source(source)
    percent = clamp_overlay_percent(options.center_image_size_percent)
    if level is not None:
        percent = fit_overlay_to_budget(level, percent, is_clip_art, symbol_fraction)

    try:
        if asset_loader is None:
            asset = load_asset(source, color=options.foreground_color)
        else:
            asset = asset_loader(source)
    except AssetLoadError as exc:
        log.warning("Center image unavailable, leaving the code without overlay: %s", exc)
        audit("overlay.skipped", logger=log, reason=str(exc))
        return image, None

    width, height = image.size
    overlay_px = percent * width / 100
    draw_px = round(overlay_px if is_clip_art else overlay_px * CUSTOM_IMAGE_SCALE)
    if draw_px < 1:
        return image, None

    result = image.convert("RGB")  # always a new image
    center = (width / 2, height / 2)
    circular = uses_circular_background(percent, is_clip_art)
    _draw_background(ImageDraw.Draw(result), center, overlay_px, circular, options.background_color)

    logo = asset.convert("RGBA")
    new_w, new_h = _scale_preserving_aspect(logo.size, draw_px)
    logo = logo.resize((new_w, new_h), Image.LANCZOS)
    x_off = round(center[0] - new_w / 2)
    y_off = round(center[1] - new_h / 2)
    result.paste(logo, (x_off, y_off), logo)

    audit("overlay.composited", logger=log,
          percent=round(percent, 2), overlay_px=round(overlay_px, 1),
          logo_size=f"{new_w}x{new_h}", background="circle" if circular else "rounded_rect",
          clip_art=is_clip_art)
    return result, percent
