"""Module renderer: paint a grid source as styled modules plus styled finders."""

import numpy as np
from PIL import Image

from qrstyle.canvas import RenderContext
from qrstyle.finders import (
    estimate_module_px,
    locate_estimated,
    locate_structural,
    style_finders,
)
from qrstyle.grid import GridSource, ModuleGrid, RasterEstimated, Structural
from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import DotStyle, StyleOptions

log = get_logger("render")

DOT_RADIUS = 0.45      # of module pitch; leaves a gutter between neighbours
ROUNDED_COVER = 0.80   # rounded dots cover the central 80% of the cell edge
MIN_SHAPED_PITCH = 2   # below this a shaped dot misses its own centre pixel
DARK_THRESHOLD = 128


def paint_module(ctx: RenderContext, x: float, y: float, style: DotStyle):
    """Draw one dark module whose cell starts at pixel (x, y)."""
    p = ctx.pitch
    if p < MIN_SHAPED_PITCH:
        style = DotStyle.SQUARE
    if style is DotStyle.CIRCULAR:
        cx, cy = x + p / 2, y + p / 2
        r = DOT_RADIUS * p
        ctx.draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=ctx.foreground)
    elif style is DotStyle.ROUNDED:
        inset = (1 - ROUNDED_COVER) / 2 * p
        box = [round(x + inset), round(y + inset), round(x + p - inset) - 1, round(y + p - inset) - 1]
        ctx.draw.rounded_rectangle(box, radius=max(1, round(p / 5)), fill=ctx.foreground)
    else:
        ctx.draw.rectangle([round(x), round(y), round(x + p) - 1, round(y + p) - 1], fill=ctx.foreground)


def paint_modules(ctx: RenderContext, dark_cells, boxes, style: DotStyle) -> int:
    """Paint every dark cell that lies outside the (one-module padded) finder boxes.

    Returns the number of modules painted.
    """
    painted = 0
    for row, col in dark_cells:
        cx, cy = ctx.cell_center(row, col)
        if any(box.contains(cx, cy, pad=ctx.pitch) for box in boxes):
            continue
        x, y = ctx.cell_origin(row, col)
        paint_module(ctx, x, y, style)
        painted += 1
    return painted


def _dark_cells(grid: ModuleGrid):
    for r, row in enumerate(grid.modules):
        for c, dark in enumerate(row):
            if dark:
                yield r, c


def _render_structural(grid: ModuleGrid, options: StyleOptions) -> Image.Image:
    ctx = RenderContext.for_grid(grid.size, grid.quiet_zone, options)
    boxes = locate_structural(grid.size, ctx.pitch, ctx.origin)
    painted = paint_modules(ctx, _dark_cells(grid), boxes, options.dot_style)
    style_finders(ctx, boxes, options)
    audit("render.structural", logger=log,
          size=f"{grid.size}x{grid.size}", module_px=options.module_px,
          dot_style=options.dot_style.value, painted=painted,
          image_px=f"{ctx.image.width}x{ctx.image.height}")
    return ctx.image


def _dark_mask(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("L")) < DARK_THRESHOLD


def sample_grid(image: Image.Image, module_count: int, quiet_zone: int) -> ModuleGrid:
    """Recover a module grid from a raster using known module count and quiet zone."""
    dark = _dark_mask(image)
    pitch = image.width / (module_count + 2 * quiet_zone)
    rows = []
    for r in range(module_count):
        sy = min(int((quiet_zone + r + 0.5) * pitch), dark.shape[0] - 1)
        row = []
        for c in range(module_count):
            sx = min(int((quiet_zone + c + 0.5) * pitch), dark.shape[1] - 1)
            row.append(bool(dark[sy, sx]))
        rows.append(row)
    return ModuleGrid.from_rows(rows, quiet_zone=quiet_zone)


def _render_estimated(image: Image.Image, options: StyleOptions) -> Image.Image:
    width, height = image.size
    pitch = estimate_module_px(width)
    ctx = RenderContext.blank(image.size, pitch, 0, options)

    dark = _dark_mask(image)
    cells = []
    for row in range(height // pitch):
        for col in range(width // pitch):
            sy, sx = int((row + 0.5) * pitch), int((col + 0.5) * pitch)
            if dark[sy, sx]:
                cells.append((row, col))

    boxes = locate_estimated(width, height)
    painted = paint_modules(ctx, cells, boxes, options.dot_style)
    style_finders(ctx, boxes, options)
    audit("render.estimated", logger=log,
          image_px=f"{width}x{height}", module_px=pitch, painted=painted)
    return ctx.image


@trace
def render_symbol(source: GridSource, options: StyleOptions) -> Image.Image:
    """Render modules and finders for a grid source.

    A raster that still carries encoder metadata is sampled back into a grid
    and rendered structurally; only a bare raster goes through estimation.
    """
    if isinstance(source, Structural):
        return _render_structural(source.grid, options)
    if isinstance(source, RasterEstimated):
        if source.module_count:
            grid = sample_grid(source.image, source.module_count, source.quiet_zone or 0)
            return _render_structural(grid, options)
        return _render_estimated(source.image, options)
    raise TypeError(f"Unsupported grid source {type(source).__name__}")


@trace
def render_plain(grid: ModuleGrid, options: StyleOptions) -> Image.Image:
    """Square modules, untouched finders. The fallback when styling fails."""
    ctx = RenderContext.for_grid(grid.size, grid.quiet_zone, options)
    for row, col in _dark_cells(grid):
        x, y = ctx.cell_origin(row, col)
        paint_module(ctx, x, y, DotStyle.SQUARE)
    return ctx.image
