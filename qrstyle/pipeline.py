"""Pipeline orchestrator: text + style options -> finished image artifact.

Stage order is fixed:

    ecc policy -> encode -> modules + finders -> frame -> center overlay
    -> caption -> artifact encode

Only encoding may fail the call. Every later stage degrades: a failure is
logged, recorded as a ``StylingRenderError`` and the last good image moves on.
"""

import io
from dataclasses import dataclass, field

from PIL import Image

from qrstyle.caption import composite_caption
from qrstyle.ecc import ECCLevel, select_ecc_level
from qrstyle.errors import StylingRenderError
from qrstyle.finders import check_finder_structure, locate_structural
from qrstyle.frame import composite_frame
from qrstyle.grid import ModuleGrid, RasterEstimated, Structural, encode_grid
from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import StyleOptions
from qrstyle.overlay import composite_center_image
from qrstyle.render import render_plain, render_symbol

log = get_logger("pipeline")

MIME_TYPES = {"PNG": "image/png", "JPEG": "image/jpeg", "WEBP": "image/webp"}


@dataclass
class GeneratedCode:
    """A finished code plus what the pipeline did to get there."""

    image: Image.Image
    data: bytes
    mime_type: str
    ecc_level: ECCLevel | None
    grid: ModuleGrid | None = None
    frame_size: int = 0
    overlay_percent: float | None = None
    finders_ok: bool | None = None
    errors: list[StylingRenderError] = field(default_factory=list)
    scan_results: list = field(default_factory=list)
    scan_ok: bool | None = None

    @property
    def degraded(self) -> list[str]:
        return [err.stage for err in self.errors]

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size


class _Stages:
    """Runs optional stages, keeping the previous result when one fails."""

    def __init__(self):
        self.errors: list[StylingRenderError] = []

    def run(self, stage: str, fallback, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            err = StylingRenderError(stage, exc)
            self.errors.append(err)
            log.warning("Stage %s failed, continuing without it: %s", stage, exc, exc_info=True)
            audit("pipeline.stage_degraded", logger=log, stage=stage, error=str(exc))
            return fallback


def encode_artifact(image: Image.Image, options: StyleOptions) -> tuple[bytes, str]:
    fmt = options.pil_format
    buf = io.BytesIO()
    if fmt == "JPEG":
        image.convert("RGB").save(buf, format=fmt, quality=95)
    else:
        image.save(buf, format=fmt)
    return buf.getvalue(), MIME_TYPES[fmt]


def _png_artifact(image: Image.Image) -> tuple[bytes, str]:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue(), MIME_TYPES["PNG"]


def _finish(
    image: Image.Image,
    options: StyleOptions,
    stages: _Stages,
    *,
    level: ECCLevel | None,
    symbol_width: int,
    caption: str | None,
    asset_loader,
    expected_data: str | None,
) -> GeneratedCode:
    """Frame, overlay, caption, verify and encode a rendered symbol."""
    image, frame_size = stages.run("frame", (image, 0), composite_frame, image, options)

    image, overlay_percent = stages.run(
        "overlay", (image, None), composite_center_image, image, options,
        level=level, symbol_fraction=symbol_width / image.width, asset_loader=asset_loader,
    )

    caption_text = caption if caption is not None else options.caption
    image = stages.run("caption", image, composite_caption, image, caption_text, options)

    scan_results, scan_ok = [], None
    if options.verify_scan:
        from qrstyle.verify import verify

        scan_results = stages.run("verify", [], verify, image, expected_data=expected_data)
        scan_ok = any(r.success for r in scan_results) if scan_results else None

    data, mime = stages.run("artifact", None, encode_artifact, image, options) or _png_artifact(image)

    return GeneratedCode(
        image=image,
        data=data,
        mime_type=mime,
        ecc_level=level,
        frame_size=frame_size,
        overlay_percent=overlay_percent,
        errors=stages.errors,
        scan_results=scan_results,
        scan_ok=scan_ok,
    )


@trace
def generate(
    text: str,
    options: StyleOptions | None = None,
    caption: str | None = None,
    *,
    encoder=encode_grid,
    asset_loader=None,
) -> GeneratedCode:
    """Generate a styled code for *text*.

    Args:
        text: Payload to encode.
        options: Style options; defaults to a plain black-on-white code.
        caption: Caption text; overrides ``options.caption`` when given.
            With neither set, ``options.include_text`` captions the code with *text*.
        encoder: Callable(text, level, quiet_zone, max_version) -> ModuleGrid.
        asset_loader: Callable(source) -> PIL image for the center image.

    Raises:
        EncodingError: *text* does not fit at the selected level.
    """
    options = options or StyleOptions()
    level = select_ecc_level(options)
    grid = encoder(text, level, options.quiet_zone, options.max_version)
    if options.size is not None:
        options = options.with_overrides(module_px=options.module_px_for(grid.size + 2 * grid.quiet_zone))
    if caption is None and not options.caption and options.include_text:
        caption = text

    stages = _Stages()
    image = stages.run("render", None, render_symbol, Structural(grid), options)
    if image is None:
        image = render_plain(grid, options)

    boxes = locate_structural(grid.size, options.module_px, grid.quiet_zone * options.module_px)
    finders_ok = all(check_finder_structure(image, box, options.foreground_color) for box in boxes)
    if not finders_ok:
        log.warning("Rendered finder patterns failed the nested-square check")

    result = _finish(
        image, options, stages,
        level=level,
        symbol_width=grid.size * options.module_px,
        caption=caption,
        asset_loader=asset_loader,
        expected_data=text,
    )
    result.grid = grid
    result.finders_ok = finders_ok

    audit("pipeline.generated", logger=log,
          data=text[:80], ecc=level.letter, version=grid.version,
          image_px=f"{result.image.width}x{result.image.height}",
          frame_px=result.frame_size, overlay_pct=result.overlay_percent,
          degraded=",".join(result.degraded) or "none", scan_ok=result.scan_ok)
    return result


@trace
def restyle(
    image: Image.Image,
    options: StyleOptions | None = None,
    *,
    module_count: int | None = None,
    quiet_zone: int | None = None,
    caption: str | None = None,
    asset_loader=None,
) -> GeneratedCode:
    """Restyle an already rendered plain code image.

    With *module_count* (and *quiet_zone*) from the encoder the grid is
    recovered exactly; without them module positions are estimated from the
    image width and the result may be less accurate.
    A set ``options.size`` picks the module pitch when the grid is known and
    otherwise rescales the source raster to that width first.
    """
    options = options or StyleOptions()
    image = image.convert("RGB")
    if options.size is not None:
        if module_count:
            across = module_count + 2 * (quiet_zone or 0)
            options = options.with_overrides(module_px=options.module_px_for(across))
        elif image.size != (options.size, options.size):
            image = image.resize((options.size, options.size), Image.NEAREST)
    source = RasterEstimated(image, module_count, quiet_zone)

    stages = _Stages()
    styled = stages.run("render", None, render_symbol, source, options)
    if styled is None:
        styled = image

    if module_count:
        symbol_width = module_count * options.module_px
    else:
        symbol_width = styled.width

    result = _finish(
        styled, options, stages,
        level=None,
        symbol_width=symbol_width,
        caption=caption,
        asset_loader=asset_loader,
        expected_data=None,
    )
    audit("pipeline.restyled", logger=log,
          source_px=f"{image.width}x{image.height}",
          image_px=f"{result.image.width}x{result.image.height}",
          estimated=not module_count, degraded=",".join(result.degraded) or "none")
    return result
