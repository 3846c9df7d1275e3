"""StyleOptions parsing, defaults and config loading."""

import dataclasses
import json

import pytest

from qrstyle.options import (
    CornerStyle,
    DotStyle,
    FrameStyle,
    StyleOptions,
    load_options,
    parse_color,
)


class TestDefaults:
    def test_defaults(self, plain):
        assert plain.dot_style is DotStyle.SQUARE
        assert plain.corner_style is CornerStyle.SQUARE
        assert plain.frame_style is FrameStyle.NONE
        assert plain.foreground_color == (0, 0, 0)
        assert plain.background_color == (255, 255, 255)
        assert plain.frame_width_percent == 3
        assert plain.center_image_size_percent == 20
        assert plain.module_px == 10
        assert plain.quiet_zone == 4
        assert plain.output_format == "png"
        assert not plain.has_center_image
        assert plain.size is None
        assert plain.include_text is False

    def test_frozen(self, plain):
        with pytest.raises(dataclasses.FrozenInstanceError):
            plain.module_px = 3

    def test_frame_color_falls_back_to_foreground(self):
        opts = StyleOptions(foreground_color="#112233")
        assert opts.resolved_frame_color == (0x11, 0x22, 0x33)
        assert StyleOptions(frame_color="red").resolved_frame_color == (255, 0, 0)

    @pytest.mark.parametrize("source", [None, "", b"", bytearray()])
    def test_empty_center_image_is_absent(self, source):
        assert not StyleOptions(center_image=source).has_center_image

    def test_center_image_bytes_present(self, logo_png):
        assert StyleOptions(center_image=logo_png).has_center_image


class TestEnumParsing:
    @pytest.mark.parametrize("raw,expected", [
        ("dots", DotStyle.CIRCULAR),
        ("Circular", DotStyle.CIRCULAR),
        ("rounded", DotStyle.ROUNDED),
        ("bogus", DotStyle.SQUARE),
        (None, DotStyle.SQUARE),
    ])
    def test_dot_style(self, raw, expected):
        assert DotStyle.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["extraRounded", "extra-rounded", "extra_rounded"])
    def test_extra_rounded_aliases(self, raw):
        assert CornerStyle.parse(raw) is CornerStyle.EXTRA_ROUNDED

    def test_unknown_frame_is_none(self):
        assert StyleOptions(frame_style="triple").frame_style is FrameStyle.NONE


class TestColors:
    @pytest.mark.parametrize("raw,expected", [
        ("#ff0000", (255, 0, 0)),
        ("00ff00", (0, 255, 0)),
        ("#00f", (0, 0, 255)),
        ("white", (255, 255, 255)),
        ((10, 20, 30, 255), (10, 20, 30)),
        ([300, -5, 7], (255, 0, 7)),
    ])
    def test_parse_color(self, raw, expected):
        assert parse_color(raw) == expected

    def test_bad_color(self):
        with pytest.raises(ValueError):
            parse_color("not-a-color")


class TestValidation:
    @pytest.mark.parametrize("kwargs", [
        {"output_format": "gif"},
        {"module_px": 0},
        {"quiet_zone": -1},
        {"max_version": 41},
        {"size": 0},
    ])
    def test_rejected(self, kwargs):
        with pytest.raises(ValueError):
            StyleOptions(**kwargs)

    def test_jpg_normalised(self):
        opts = StyleOptions(output_format="JPG")
        assert opts.output_format == "jpg"
        assert opts.pil_format == "JPEG"


class TestOverridesAndLoading:
    def test_with_overrides_skips_none(self, styled):
        out = styled.with_overrides(dot_style=None, frame_style="double")
        assert out.dot_style is DotStyle.CIRCULAR
        assert out.frame_style is FrameStyle.DOUBLE

    def test_from_dict_camel_case(self):
        opts = StyleOptions.from_dict({
            "dotStyle": "dots",
            "cornerStyle": "extraRounded",
            "frameWidth": 5,
            "foregroundColor": "#333333",
            "centerImageIsClipArt": True,
            "somethingElse": 1,
        })
        assert opts.dot_style is DotStyle.CIRCULAR
        assert opts.corner_style is CornerStyle.EXTRA_ROUNDED
        assert opts.frame_width_percent == 5
        assert opts.foreground_color == (0x33, 0x33, 0x33)
        assert opts.is_clip_art is True

    def test_from_dict_size_and_include_text(self):
        opts = StyleOptions.from_dict({"size": 300, "includeText": True, "margin": 2})
        assert opts.size == 300
        assert opts.include_text is True
        assert opts.module_px_for(25 + 2 * 2) == 300 // 29

    def test_module_px_without_size(self):
        assert StyleOptions(module_px=7).module_px_for(29) == 7

    def test_tiny_size_keeps_one_pixel_modules(self):
        assert StyleOptions(size=10).module_px_for(29) == 1

    def test_load_options(self, tmp_path):
        path = tmp_path / "style.json"
        path.write_text(json.dumps({"dot_style": "rounded", "frameStyle": "simple"}), encoding="utf-8")
        opts = load_options(path)
        assert opts.dot_style is DotStyle.ROUNDED
        assert opts.frame_style is FrameStyle.SIMPLE

    def test_load_options_rejects_list(self, tmp_path):
        path = tmp_path / "style.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError):
            load_options(path)
