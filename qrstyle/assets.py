"""Center-image asset loading.

An asset source may be a PIL image, raw bytes, a ``data:`` URI, a file path,
or ``clipart:<name>`` for a bundled icon. Failures raise ``AssetLoadError``
(missing) or ``AssetDecodeError`` (present but not an image).
"""

import base64
import binascii
import io
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from qrstyle.clipart import CLIPART, render_clipart
from qrstyle.errors import AssetDecodeError, AssetLoadError
from qrstyle.logging import audit, get_logger, trace

log = get_logger("assets")

CLIPART_PREFIX = "clipart:"


def _decode_bytes(data: bytes, origin: str) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise AssetDecodeError(f"Cannot decode image from {origin}: {exc}") from exc
    return img


def _decode_data_uri(uri: str) -> Image.Image:
    header, _, payload = uri.partition(",")
    if not payload:
        raise AssetDecodeError("data URI has no payload")
    if ";base64" not in header:
        raise AssetDecodeError("Only base64 data URIs are supported")
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise AssetDecodeError(f"Invalid base64 in data URI: {exc}") from exc
    return _decode_bytes(raw, "data URI")


@trace
def load_asset(source, color=(0, 0, 0)) -> Image.Image:
    """Load a center-image asset as RGBA.

    Args:
        source: PIL image, bytes, data URI, path, or ``clipart:<name>``.
        color: Fill for bundled clip art.
    """
    if isinstance(source, Image.Image):
        img = source.copy()
        kind = "image"
    elif isinstance(source, (bytes, bytearray)):
        img = _decode_bytes(bytes(source), "bytes")
        kind = "bytes"
    elif isinstance(source, (str, Path)):
        text = str(source)
        if text.startswith(CLIPART_PREFIX):
            name = text[len(CLIPART_PREFIX):]
            if name.lower() not in CLIPART:
                raise AssetLoadError(f"Unknown clip art {name!r}; available: {', '.join(sorted(CLIPART))}")
            img = render_clipart(name, color=color)
            kind = "clipart"
        elif text.startswith("data:"):
            img = _decode_data_uri(text)
            kind = "data_uri"
        else:
            path = Path(text)
            if not path.is_file():
                raise AssetLoadError(f"Center image not found: {path}")
            img = _decode_bytes(path.read_bytes(), str(path))
            kind = "file"
    else:
        raise AssetLoadError(f"Unsupported asset source type {type(source).__name__}")

    audit("asset.loaded", logger=log, kind=kind, size=f"{img.width}x{img.height}", mode=img.mode)
    return img.convert("RGBA")


def is_clipart_source(source) -> bool:
    return isinstance(source, str) and source.startswith(CLIPART_PREFIX)
