"""Frame compositor."""

import pytest
from PIL import Image

from qrstyle.frame import composite_frame, frame_size_px
from qrstyle.options import FrameStyle, StyleOptions

RED = (255, 0, 0)
WHITE = (255, 255, 255)


@pytest.fixture
def code() -> Image.Image:
    img = Image.new("RGB", (300, 300), WHITE)
    img.putpixel((0, 0), (0, 0, 0))
    return img


class TestFrameSize:
    @pytest.mark.parametrize("percent,expected", [
        (3, 9),
        (5, 15),
        (0, 3),     # clamped up to 1%
        (25, 30),   # clamped down to 10%
        (3.5, 10),  # floor(10.5)
    ])
    def test_size(self, percent, expected):
        opts = StyleOptions(frame_style=FrameStyle.SIMPLE, frame_width_percent=percent)
        assert frame_size_px(300, opts) == expected

    def test_none_is_zero(self):
        assert frame_size_px(300, StyleOptions(frame_width_percent=10)) == 0


class TestComposite:
    def test_none_returns_input(self, code, plain):
        out, size = composite_frame(code, plain)
        assert out is code
        assert size == 0

    def test_simple(self, code, framed):
        out, size = composite_frame(code, framed)
        assert size == 15
        assert out.size == (330, 330)
        assert out.getpixel((0, 0)) == (0, 0, 0)        # frame in foreground
        assert out.getpixel((14, 14)) == (0, 0, 0)
        assert out.getpixel((15, 15)) == (0, 0, 0)      # code's own pixel (0, 0)
        assert out.getpixel((16, 16)) == WHITE

    def test_code_pasted_unscaled(self, code, framed):
        out, size = composite_frame(code, framed)
        assert out.crop((size, size, size + 300, size + 300)).tobytes() == code.tobytes()

    def test_frame_color(self, code):
        opts = StyleOptions(frame_style="simple", frame_color="red", frame_width_percent=5)
        out, _ = composite_frame(code, opts)
        assert out.getpixel((3, 160)) == RED

    def test_double_has_gap(self, code):
        opts = StyleOptions(frame_style=FrameStyle.DOUBLE, frame_color=RED, frame_width_percent=10)
        out, size = composite_frame(code, opts)
        assert size == 30
        outer = size // 2                # 15
        gap = (size - outer) // 2        # 7
        assert out.getpixel((0, 150)) == RED
        assert out.getpixel((outer, 150)) == WHITE
        assert out.getpixel((outer + gap - 1, 150)) == WHITE
        assert out.getpixel((outer + gap, 150)) == RED
        assert out.getpixel((size - 1, 150)) == RED
