"""Error-correction policy: pick a redundancy level that keeps a decorated code scannable.

The level is chosen from the requested style *before* the grid is encoded.
Every styling feature that eats into the module area pushes the level up;
nothing ever pushes it down.
"""

import math
from enum import Enum

import qrcode.constants

from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import CornerStyle, DotStyle, StyleOptions

log = get_logger("ecc")

# Fraction of the symbol kept in reserve for anti-aliasing and print artifacts
RENDER_RESERVE = 0.05
OVERLAY_SHRINK = 0.7
OVERLAY_MIN_PERCENT = 1.0


class ECCLevel(Enum):
    LOW = qrcode.constants.ERROR_CORRECT_L  # 7%
    MEDIUM = qrcode.constants.ERROR_CORRECT_M  # 15%
    QUARTILE = qrcode.constants.ERROR_CORRECT_Q  # 25%
    HIGH = qrcode.constants.ERROR_CORRECT_H  # 30%

    @property
    def letter(self) -> str:
        return self.name[0]

    @property
    def recovery(self) -> float:
        return _RECOVERY[self]

    @property
    def rank(self) -> int:
        # qrcode's constants are not ordered by strength (L=1, M=0, Q=3, H=2)
        return _RANK[self]

    @classmethod
    def from_letter(cls, letter: str) -> "ECCLevel":
        for level in cls:
            if level.letter == letter.upper():
                return level
        raise ValueError(f"Unknown error-correction level {letter!r}")


_RECOVERY = {
    ECCLevel.LOW: 0.07,
    ECCLevel.MEDIUM: 0.15,
    ECCLevel.QUARTILE: 0.25,
    ECCLevel.HIGH: 0.30,
}
_RANK = {ECCLevel.LOW: 0, ECCLevel.MEDIUM: 1, ECCLevel.QUARTILE: 2, ECCLevel.HIGH: 3}


def styling_features(options: StyleOptions) -> list[str]:
    """Names of the requested features that obscure or reshape modules."""
    features = []
    if options.dot_style is not DotStyle.SQUARE:
        features.append("dot_style")
    if options.corner_style is not CornerStyle.SQUARE:
        features.append("corner_style")
    if options.has_center_image:
        features.append("center_image")
    return features


@trace
def select_ecc_level(options: StyleOptions) -> ECCLevel:
    """MEDIUM for a plain code, QUARTILE for one feature, HIGH for two or more.

    LOW is never chosen: even an unstyled code keeps margin for rendering
    artifacts.
    """
    features = styling_features(options)
    if len(features) >= 2:
        level = ECCLevel.HIGH
    elif features:
        level = ECCLevel.QUARTILE
    else:
        level = ECCLevel.MEDIUM
    audit("ecc.selected", logger=log, level=level.letter, features=",".join(features) or "none")
    return level


def overlay_obscuration(percent: float, is_clip_art: bool, symbol_fraction: float = 1.0) -> float:
    """Estimate the fraction of the symbol hidden by a center overlay.

    Args:
        percent: Overlay size as a percent of the image width.
        is_clip_art: Clip art always sits on a circular background.
        symbol_fraction: Symbol width / image width (quiet zone and frame excluded).
    """
    p = percent / 100.0
    if is_clip_art or percent < 15:
        area = math.pi * (0.6 * p) ** 2
    else:
        area = (1.2 * p) ** 2
    return area / max(symbol_fraction, 1e-6) ** 2


@trace
def fit_overlay_to_budget(
    level: ECCLevel,
    percent: float,
    is_clip_art: bool,
    symbol_fraction: float = 1.0,
) -> float:
    """Shrink an overlay until its obscuration fits the level's recovery budget.

    Returns the (possibly reduced) overlay percent.
    """
    budget = level.recovery - RENDER_RESERVE
    fitted = percent
    while (overlay_obscuration(fitted, is_clip_art, symbol_fraction) > budget
           and fitted > OVERLAY_MIN_PERCENT):
        fitted = max(OVERLAY_MIN_PERCENT, fitted * OVERLAY_SHRINK)

    obscured = overlay_obscuration(fitted, is_clip_art, symbol_fraction)
    if fitted != percent:
        log.warning("Center image would hide too much of the code, shrinking %.1f%% -> %.1f%%",
                    percent, fitted)
    audit("ecc.overlay_budget", logger=log,
          level=level.letter, requested=round(percent, 2), fitted=round(fitted, 2),
          obscured=f"{obscured:.1%}", budget=f"{budget:.1%}")
    return fitted
