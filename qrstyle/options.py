"""Style options for a rendered code, with defaults and config-file loading."""

import json
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path

from PIL import Image, ImageColor

from qrstyle.logging import get_logger

log = get_logger("options")

DEFAULT_MODULE_PX = 10
DEFAULT_QUIET_ZONE = 4
DEFAULT_CORNER_RADIUS_PERCENT = 10
DEFAULT_FRAME_WIDTH_PERCENT = 3  # largest border that needs no quiet-zone expansion
DEFAULT_CENTER_IMAGE_PERCENT = 20
DEFAULT_FOREGROUND = (0, 0, 0)
DEFAULT_BACKGROUND = (255, 255, 255)
OUTPUT_FORMATS = {"png": "PNG", "jpeg": "JPEG", "jpg": "JPEG", "webp": "WEBP"}

RGB = tuple[int, int, int]


class _StyleEnum(str, Enum):
    """String enum that tolerates aliases and falls back on unknown input."""

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {}

    @classmethod
    def _fallback(cls):
        raise NotImplementedError

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = str(value or "").strip()
        aliases = cls._aliases()
        key = aliases.get(key) or aliases.get(key.lower()) or key.lower()
        try:
            return cls(key)
        except ValueError:
            fallback = cls._fallback()
            log.warning("Unknown %s %r, using %s", cls.__name__, value, fallback.value)
            return fallback


class DotStyle(_StyleEnum):
    SQUARE = "square"
    CIRCULAR = "circular"
    ROUNDED = "rounded"

    @classmethod
    def _aliases(cls):
        return {"dots": "circular", "dot": "circular", "circle": "circular"}

    @classmethod
    def _fallback(cls):
        return cls.SQUARE


class CornerStyle(_StyleEnum):
    SQUARE = "square"
    ROUNDED = "rounded"
    EXTRA_ROUNDED = "extra_rounded"

    @classmethod
    def _aliases(cls):
        return {"extrarounded": "extra_rounded", "extra-rounded": "extra_rounded"}

    @classmethod
    def _fallback(cls):
        return cls.SQUARE


class FrameStyle(_StyleEnum):
    NONE = "none"
    SIMPLE = "simple"
    DOUBLE = "double"

    @classmethod
    def _fallback(cls):
        return cls.NONE


def parse_color(value) -> RGB:
    """Parse '#RRGGBB', '#RGB', a color name or an RGB(A) sequence into an RGB tuple."""
    if isinstance(value, (tuple, list)):
        if len(value) < 3:
            raise ValueError(f"Color needs 3 channels, got {value!r}")
        return tuple(max(0, min(255, int(ch))) for ch in value[:3])
    text = str(value).strip()
    if text and text[0] != "#" and len(text) in (3, 6) and all(c in "0123456789abcdefABCDEF" for c in text):
        text = "#" + text
    return ImageColor.getrgb(text)[:3]


@dataclass(frozen=True)
class StyleOptions:
    """Everything that decides how a module grid becomes an image.

    Percent fields keep the caller's value; each stage clamps to its own
    range when it uses them.

    ``size`` is the requested symbol width in pixels, quiet zone included;
    when set it overrides ``module_px``, rounded down to whole pixels per module.
    """

    dot_style: DotStyle = DotStyle.SQUARE
    corner_style: CornerStyle = CornerStyle.SQUARE
    corner_radius_percent: float = DEFAULT_CORNER_RADIUS_PERCENT
    frame_style: FrameStyle = FrameStyle.NONE
    frame_color: RGB | None = None
    frame_width_percent: float = DEFAULT_FRAME_WIDTH_PERCENT
    foreground_color: RGB = DEFAULT_FOREGROUND
    background_color: RGB = DEFAULT_BACKGROUND
    center_image: str | bytes | Image.Image | None = None
    is_clip_art: bool = False
    center_image_size_percent: float = DEFAULT_CENTER_IMAGE_PERCENT
    caption: str | None = None
    include_text: bool = False
    size: int | None = None
    module_px: int = DEFAULT_MODULE_PX
    quiet_zone: int = DEFAULT_QUIET_ZONE
    output_format: str = "png"
    max_version: int = 40
    verify_scan: bool = False

    def __post_init__(self):
        set_ = object.__setattr__
        set_(self, "dot_style", DotStyle.parse(self.dot_style))
        set_(self, "corner_style", CornerStyle.parse(self.corner_style))
        set_(self, "frame_style", FrameStyle.parse(self.frame_style))
        set_(self, "foreground_color", parse_color(self.foreground_color))
        set_(self, "background_color", parse_color(self.background_color))
        if self.frame_color is not None:
            set_(self, "frame_color", parse_color(self.frame_color))

        fmt = str(self.output_format).lower()
        if fmt not in OUTPUT_FORMATS:
            raise ValueError(f"Unsupported output format {self.output_format!r}")
        set_(self, "output_format", fmt)

        if int(self.module_px) < 1:
            raise ValueError("module_px must be >= 1")
        if int(self.quiet_zone) < 0:
            raise ValueError("quiet_zone must be >= 0")
        if not 1 <= int(self.max_version) <= 40:
            raise ValueError("max_version must be within 1-40")
        set_(self, "module_px", int(self.module_px))
        set_(self, "quiet_zone", int(self.quiet_zone))
        if self.size is not None:
            if int(self.size) < 1:
                raise ValueError("size must be >= 1 pixel")
            set_(self, "size", int(self.size))
        set_(self, "max_version", int(self.max_version))

    @property
    def resolved_frame_color(self) -> RGB:
        return self.frame_color or self.foreground_color

    @property
    def has_center_image(self) -> bool:
        if isinstance(self.center_image, (str, bytes, bytearray)):
            return len(self.center_image) > 0
        return self.center_image is not None

    def module_px_for(self, modules_across: int) -> int:
        """Pixels per module for a symbol *modules_across* wide, quiet zone included."""
        if self.size is None:
            return self.module_px
        return max(1, self.size // modules_across)

    @property
    def pil_format(self) -> str:
        return OUTPUT_FORMATS[self.output_format]

    def with_overrides(self, **changes) -> "StyleOptions":
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict) -> "StyleOptions":
        """Build options from snake_case keys or the camelCase keys of exported web configs."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _CAMEL_KEYS.get(key, key)
            if name not in known:
                log.warning("Ignoring unknown option %r", key)
                continue
            kwargs[name] = value
        return cls(**kwargs)


_CAMEL_KEYS = {
    "dotStyle": "dot_style",
    "cornerStyle": "corner_style",
    "cornerRadius": "corner_radius_percent",
    "cornerRadiusPercent": "corner_radius_percent",
    "frameStyle": "frame_style",
    "frameColor": "frame_color",
    "frameWidth": "frame_width_percent",
    "frameWidthPercent": "frame_width_percent",
    "foregroundColor": "foreground_color",
    "backgroundColor": "background_color",
    "centerImage": "center_image",
    "centerImageIsClipArt": "is_clip_art",
    "isClipArt": "is_clip_art",
    "centerImageSize": "center_image_size_percent",
    "centerImageSizePercent": "center_image_size_percent",
    "captionText": "caption",
    "includeText": "include_text",
    "margin": "quiet_zone",
    "format": "output_format",
    "maxVersion": "max_version",
    "verifyScan": "verify_scan",
    "modulePx": "module_px",
}


def load_options(path: str | Path) -> StyleOptions:
    """Load StyleOptions from a JSON file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object of options")
    options = StyleOptions.from_dict(data)
    log.info("Loaded options from %s", path)
    return options
