"""Module grids and where they come from.

The renderer works on a ``GridSource``: either the structural grid produced by
the encoder (exact) or a pre-rendered raster whose modules have to be
estimated. Structural is always preferred when available.
"""

from dataclasses import dataclass

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image

from qrstyle.ecc import ECCLevel
from qrstyle.errors import EncodingError
from qrstyle.logging import audit, get_logger, trace

log = get_logger("grid")

MIN_SIZE = 21
MAX_SIZE = 177
FINDER_MODULES = 7


@dataclass(frozen=True)
class ModuleGrid:
    """Immutable square boolean matrix (True = dark) plus its quiet zone in modules."""

    modules: tuple[tuple[bool, ...], ...]
    quiet_zone: int = 4

    def __post_init__(self):
        n = len(self.modules)
        if not MIN_SIZE <= n <= MAX_SIZE or (n - MIN_SIZE) % 4:
            raise ValueError(f"Grid side must be 21-177 in steps of 4, got {n}")
        if any(len(row) != n for row in self.modules):
            raise ValueError("Grid must be square")
        if self.quiet_zone < 0:
            raise ValueError("quiet_zone must be >= 0")

    @classmethod
    def from_rows(cls, rows, quiet_zone: int = 4) -> "ModuleGrid":
        return cls(tuple(tuple(bool(v) for v in row) for row in rows), quiet_zone)

    @property
    def size(self) -> int:
        return len(self.modules)

    @property
    def version(self) -> int:
        return (self.size - 17) // 4

    def is_dark(self, row: int, col: int) -> bool:
        return self.modules[row][col]


@dataclass(frozen=True)
class Structural:
    """Grid handed over directly by the encoder."""

    grid: ModuleGrid


@dataclass(frozen=True)
class RasterEstimated:
    """A pre-rendered code image; modules are sampled from pixels.

    ``module_count``/``quiet_zone`` are encoder metadata when the caller still
    has it; without them the module pitch is guessed from the image width.
    """

    image: Image.Image
    module_count: int | None = None
    quiet_zone: int | None = None


GridSource = Structural | RasterEstimated


@trace
def encode_grid(
    text: str,
    level: ECCLevel,
    quiet_zone: int = 4,
    max_version: int = 40,
) -> ModuleGrid:
    """Encode *text* with the ``qrcode`` library and return its module grid.

    Raises:
        EncodingError: empty text, or text that does not fit at *level*
            within *max_version*.
    """
    if not text:
        raise EncodingError("Cannot encode empty text", length=0, level=level.letter,
                            max_version=max_version)

    qr = qrcode.QRCode(version=None, error_correction=level.value, box_size=1, border=quiet_zone)
    qr.add_data(text)
    try:
        qr.make(fit=True)
    except DataOverflowError as exc:
        raise EncodingError(
            f"Text of {len(text)} chars exceeds QR capacity at level {level.letter}",
            length=len(text), level=level.letter, max_version=max_version,
        ) from exc

    if qr.version > max_version:
        raise EncodingError(
            f"Text of {len(text)} chars needs version {qr.version} at level {level.letter}, "
            f"above the ceiling of {max_version}",
            length=len(text), level=level.letter, max_version=max_version,
        )

    grid = ModuleGrid.from_rows(qr.modules, quiet_zone=quiet_zone)
    audit("grid.encoded", logger=log,
          data=text[:80], version=grid.version, size=f"{grid.size}x{grid.size}",
          ecc=level.letter, quiet_zone=quiet_zone)
    return grid
