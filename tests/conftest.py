"""
Shared pytest fixtures.

    def test_something(grid, plain):
        image = render_symbol(Structural(grid), plain)
"""

from __future__ import annotations

import io
import logging

import pytest
from PIL import Image

from qrstyle.ecc import ECCLevel
from qrstyle.grid import ModuleGrid, encode_grid
from qrstyle.options import CornerStyle, DotStyle, FrameStyle, StyleOptions


# ============================================================================
# Logging
# ============================================================================

@pytest.fixture(autouse=True)
def _detach_log_handlers():
    """setup_logging() binds handlers to the current stderr; drop them after each test."""
    yield
    root = logging.getLogger("qrstyle")
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


# ============================================================================
# Options
# ============================================================================

@pytest.fixture
def plain() -> StyleOptions:
    """Default black-on-white, square everything."""
    return StyleOptions()


@pytest.fixture
def styled() -> StyleOptions:
    """Circular dots plus rounded finders: two features."""
    return StyleOptions(dot_style=DotStyle.CIRCULAR, corner_style=CornerStyle.ROUNDED)


@pytest.fixture
def framed() -> StyleOptions:
    return StyleOptions(frame_style=FrameStyle.SIMPLE, frame_width_percent=5)


# ============================================================================
# Grids and images
# ============================================================================

@pytest.fixture(scope="session")
def grid() -> ModuleGrid:
    """Version 1 grid (21x21) for a short payload."""
    return encode_grid("HELLO", ECCLevel.MEDIUM)


@pytest.fixture(scope="session")
def big_grid() -> ModuleGrid:
    return encode_grid("https://example.com/" + "a" * 120, ECCLevel.HIGH)


def _blank_grid_rows(n: int = 21):
    return [[False] * n for _ in range(n)]


@pytest.fixture
def empty_grid() -> ModuleGrid:
    """All-light 21x21 grid, handy for checking what the finder styler draws alone."""
    return ModuleGrid.from_rows(_blank_grid_rows())


@pytest.fixture
def logo() -> Image.Image:
    """Opaque red 80x40 logo (wide aspect)."""
    return Image.new("RGBA", (80, 40), (220, 20, 20, 255))


@pytest.fixture
def logo_png(logo) -> bytes:
    buf = io.BytesIO()
    logo.save(buf, format="PNG")
    return buf.getvalue()
