"""
Display-only outlier clamping for bar charts.

When one bar dwarfs the rest, it is drawn at ``ratio`` times the second
largest magnitude so the other bars stay readable. The stored value is
never changed; only ``display_value`` is.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

DEFAULT_CLAMP_RATIO = 2.0


@dataclass(frozen=True)
class ClampedValue(Generic[T]):
    item: T
    value: float
    display_value: float
    is_clamped: bool


def _identity(item: object) -> float:
    return float(item)  # type: ignore[arg-type]


def clamp_absolute_max(
    items: Sequence[T],
    key: Callable[[T], float] | None = None,
    ratio: float = DEFAULT_CLAMP_RATIO,
) -> list[ClampedValue[T]]:
    """
    Clamp magnitudes above ``ratio x`` the second largest magnitude.

    Args:
        items: Values, or objects from which *key* extracts a value.
        key: Value accessor; defaults to ``float(item)``.
        ratio: Threshold multiplier applied to the second largest magnitude.

    Returns:
        One ``ClampedValue`` per item, in input order. Items whose magnitude
        exceeds the threshold are displayed at ``sign(value) * threshold``.
        Fewer than two items, or a zero largest/second magnitude, leave every
        item unclamped.
    """
    getter = key or _identity
    values = [getter(item) for item in items]
    unclamped = [
        ClampedValue(item=item, value=value, display_value=value, is_clamped=False)
        for item, value in zip(items, values)
    ]
    if len(values) < 2:
        return unclamped

    magnitudes = sorted((abs(value) for value in values), reverse=True)
    largest, second = magnitudes[0], magnitudes[1]
    if largest == 0 or second == 0:
        return unclamped

    threshold = second * ratio
    clamped: list[ClampedValue[T]] = []
    for item, value in zip(items, values):
        if abs(value) <= threshold:
            clamped.append(ClampedValue(item=item, value=value, display_value=value, is_clamped=False))
        else:
            display = math.copysign(threshold, value)
            clamped.append(ClampedValue(item=item, value=value, display_value=display, is_clamped=True))
    return clamped
