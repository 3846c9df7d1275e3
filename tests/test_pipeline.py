"""End-to-end pipeline: generate() and restyle()."""

import io

import numpy as np
import pytest
from PIL import Image

from qrstyle import pipeline
from qrstyle.ecc import ECCLevel
from qrstyle.errors import AssetDecodeError, EncodingError
from qrstyle.finders import check_finder_structure, locate_structural
from qrstyle.options import CornerStyle, DotStyle, FrameStyle, StyleOptions
from qrstyle.overlay import uses_circular_background
from qrstyle.pipeline import generate, restyle
from qrstyle.render import render_plain

BLACK = (0, 0, 0)


class TestScenarios:
    def test_styled_and_framed(self):
        opts = StyleOptions(dot_style=DotStyle.CIRCULAR, corner_style=CornerStyle.ROUNDED,
                            frame_style=FrameStyle.SIMPLE)
        code = generate("https://example.com", opts)

        grid_px = (code.grid.size + 2 * code.grid.quiet_zone) * opts.module_px
        assert code.frame_size == grid_px * 3 // 100
        assert code.image.size == (grid_px + 2 * code.frame_size,) * 2
        assert code.ecc_level is ECCLevel.HIGH
        assert code.finders_ok is True
        assert code.errors == []

        f = code.frame_size
        for box in locate_structural(code.grid.size, opts.module_px, code.grid.quiet_zone * opts.module_px):
            assert check_finder_structure(code.image, box.shifted(f, f), BLACK)

    def test_clip_art_center(self):
        opts = StyleOptions(center_image="clipart:heart", is_clip_art=True, center_image_size_percent=20)
        code = generate("https://example.com", opts)
        assert code.ecc_level.rank >= ECCLevel.QUARTILE.rank
        assert code.overlay_percent is not None
        assert code.overlay_percent <= 25
        assert uses_circular_background(code.overlay_percent, opts.is_clip_art)

    def test_broken_asset_still_returns_code(self):
        def broken(_source):
            raise AssetDecodeError("corrupt PNG")

        opts = StyleOptions(center_image="logo.png")
        code = generate("https://example.com", opts, asset_loader=broken)
        assert code.overlay_percent is None
        assert code.errors == []
        assert code.finders_ok is True
        plain = generate("https://example.com", opts.with_overrides(center_image=""))
        assert code.image.size == plain.image.size


class TestProperties:
    @pytest.mark.parametrize("module_px", [1, 2, 3, 10])
    @pytest.mark.parametrize("style", list(DotStyle))
    def test_dark_cell_centres_stay_foreground(self, grid, style, module_px):
        opts = StyleOptions(dot_style=style, foreground_color="#222222", module_px=module_px)
        code = generate("HELLO", opts, encoder=lambda *_: grid)
        arr = np.asarray(code.image)
        px, qz = opts.module_px, grid.quiet_zone
        for r in range(grid.size):
            for c in range(grid.size):
                if grid.is_dark(r, c):
                    y = (qz + r) * px + px // 2
                    x = (qz + c) * px + px // 2
                    assert tuple(arr[y, x]) == (0x22, 0x22, 0x22), (r, c)

    @pytest.mark.parametrize("corner", list(CornerStyle))
    def test_finders_for_every_corner_style(self, corner):
        opts = StyleOptions(corner_style=corner, corner_radius_percent=30)
        code = generate("https://example.com/finders", opts)
        assert code.finders_ok is True

    def test_caption_argument_overrides_option(self):
        opts = StyleOptions(caption="from options")
        code = generate("abc", opts, caption="")
        uncaptioned = generate("abc")
        assert code.image.size == uncaptioned.image.size
        assert generate("abc", opts).image.height == uncaptioned.image.height + 40


class TestDegradation:
    def test_encoding_error_is_fatal(self):
        with pytest.raises(EncodingError):
            generate("x" * 5000)

    def test_custom_encoder_error(self):
        def encoder(text, level, quiet_zone, max_version):
            raise EncodingError("nope", length=len(text), level=level.letter)

        with pytest.raises(EncodingError):
            generate("abc", encoder=encoder)

    def test_render_failure_falls_back_to_plain(self, grid, monkeypatch):
        def boom(*_args, **_kwargs):
            raise RuntimeError("renderer exploded")

        monkeypatch.setattr(pipeline, "render_symbol", boom)
        code = generate("HELLO", StyleOptions(dot_style="dots"), encoder=lambda *_: grid)
        assert code.degraded == ["render"]
        assert code.errors[0].cause.args == ("renderer exploded",)
        assert code.image.tobytes() == render_plain(grid, StyleOptions()).tobytes()

    def test_frame_failure_keeps_image(self, monkeypatch):
        def boom(*_args, **_kwargs):
            raise RuntimeError("frame exploded")

        monkeypatch.setattr(pipeline, "composite_frame", boom)
        code = generate("abc", StyleOptions(frame_style="double"))
        assert code.degraded == ["frame"]
        assert code.frame_size == 0
        assert code.data

    def test_unexpected_loader_error_degrades_overlay(self):
        def loader(_source):
            raise RuntimeError("network down")

        code = generate("abc", StyleOptions(center_image="x"), asset_loader=loader)
        assert code.degraded == ["overlay"]
        assert code.overlay_percent is None


class TestArtifact:
    @pytest.mark.parametrize("fmt,mime,magic", [
        ("png", "image/png", b"\x89PNG"),
        ("jpeg", "image/jpeg", b"\xff\xd8"),
        ("webp", "image/webp", b"RIFF"),
    ])
    def test_formats(self, fmt, mime, magic):
        code = generate("abc", StyleOptions(output_format=fmt))
        assert code.mime_type == mime
        assert code.data.startswith(magic)
        assert Image.open(io.BytesIO(code.data)).size == code.image.size


class TestRestyle:
    def test_with_metadata_matches_generate(self, grid, styled):
        raster = render_plain(grid, StyleOptions())
        restyled = restyle(raster, styled, module_count=grid.size, quiet_zone=grid.quiet_zone)
        direct = generate("HELLO", styled, encoder=lambda *_: grid)
        assert restyled.image.tobytes() == direct.image.tobytes()
        assert restyled.ecc_level is None

    def test_without_metadata_keeps_size(self, grid, styled):
        raster = render_plain(grid, StyleOptions())
        restyled = restyle(raster, styled.with_overrides(frame_style="simple"))
        framed = raster.width + 2 * (raster.width * 3 // 100)
        assert restyled.image.size == (framed, framed)

    def test_without_metadata_rescales_to_size(self, grid):
        raster = render_plain(grid, StyleOptions())
        restyled = restyle(raster, StyleOptions(size=145))
        assert restyled.image.size == (145, 145)


class TestOutputSize:
    @pytest.mark.parametrize("size,width", [(300, 290), (100, 87), (29, 29), (10, 29)])
    def test_size_picks_module_pitch(self, size, width):
        code = generate("abc", StyleOptions(size=size, module_px=7))
        assert code.image.size == (width, width)

    def test_size_with_known_grid_on_restyle(self, grid):
        raster = render_plain(grid, StyleOptions())
        restyled = restyle(raster, StyleOptions(size=300), module_count=grid.size, quiet_zone=grid.quiet_zone)
        assert restyled.image.size == (290, 290)

    def test_include_text_captions_with_payload(self):
        uncaptioned = generate("abc")
        code = generate("abc", StyleOptions(include_text=True))
        assert code.image.height == uncaptioned.image.height + 40
        assert code.image.width == uncaptioned.image.width

    def test_explicit_caption_beats_include_text(self):
        opts = StyleOptions(include_text=True)
        assert generate("abc", opts, caption="").image.size == generate("abc").image.size
        assert generate("abc", opts.with_overrides(caption="Menu")).image.height == generate("abc").image.height + 40
