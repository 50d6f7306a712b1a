"""
Rate-to-colour mapping for chart bars.

Marginal contribution rate bands
--------------------------------
    rate > 0.12            green  #bbf7d0 -> #166534   darker as rate rises (ceiling 0.30)
    0.08 <= rate <= 0.12   blue   #dbeafe -> #1d4ed8   darker as rate rises
    0.04 <= rate <  0.08   yellow #fef3c7 -> #d97706   darker as rate falls
    rate <  0.04           red    #fecaca -> #991b1b   darker as rate falls (floor -0.10)
    non-finite             #d1d5db

Channels are interpolated linearly and rounded half up.
"""

from __future__ import annotations

import math
from typing import Final

import numpy as np

INVALID_RATE_COLOR: Final[str] = "#d1d5db"
NEUTRAL_DELTA_COLOR: Final[str] = "#cbd5f5"

GREEN_RANGE: Final[tuple[str, str]] = ("#bbf7d0", "#166534")
BLUE_RANGE: Final[tuple[str, str]] = ("#dbeafe", "#1d4ed8")
YELLOW_RANGE: Final[tuple[str, str]] = ("#fef3c7", "#d97706")
RED_RANGE: Final[tuple[str, str]] = ("#fecaca", "#991b1b")

GREEN_CEILING: Final[float] = 0.30
RED_FLOOR: Final[float] = -0.10
EXPENSE_DELTA_SPAN: Final[float] = 0.20


def _hex_to_rgb(color: str) -> np.ndarray:
    value = int(color.lstrip("#"), 16)
    return np.array([(value >> 16) & 255, (value >> 8) & 255, value & 255], dtype=float)


def _rgb_to_hex(channels: np.ndarray) -> str:
    return "#" + "".join(f"{int(channel):02x}" for channel in channels)


def _factor(numerator: float, span: float) -> float:
    return float(np.clip(numerator / span, 0.0, 1.0))


def interpolate_color(start: str, end: str, factor: float) -> str:
    """Blend *start* towards *end* by *factor* in [0, 1]."""
    start_rgb = _hex_to_rgb(start)
    end_rgb = _hex_to_rgb(end)
    blended = np.floor(start_rgb + (end_rgb - start_rgb) * factor + 0.5)
    return _rgb_to_hex(np.clip(blended, 0, 255))


def color_for_rate(rate: float) -> str:
    """Map a marginal contribution rate (fraction) to its band colour."""
    if rate is None or not math.isfinite(rate):
        return INVALID_RATE_COLOR

    if rate > 0.12:
        return interpolate_color(*GREEN_RANGE, _factor(rate - 0.12, GREEN_CEILING - 0.12))
    if 0.08 <= rate <= 0.12:
        return interpolate_color(*BLUE_RANGE, _factor(rate - 0.08, 0.04))
    if 0.04 <= rate < 0.08:
        return interpolate_color(*YELLOW_RANGE, _factor(0.08 - rate, 0.04))
    return interpolate_color(*RED_RANGE, _factor(0.04 - rate, 0.04 - RED_FLOOR))


def expense_delta_color(delta: float) -> str:
    """
    Colour for an expense-rate deviation from baseline.

    Over-spending (positive delta) shades red, under-spending green, with
    full saturation at a 20 point deviation.
    """
    if delta is None or not math.isfinite(delta) or delta == 0:
        return NEUTRAL_DELTA_COLOR

    factor = _factor(abs(delta), EXPENSE_DELTA_SPAN)
    if delta > 0:
        return interpolate_color(*RED_RANGE, factor)
    return interpolate_color(*GREEN_RANGE, factor)
