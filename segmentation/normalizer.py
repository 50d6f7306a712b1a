"""
Dimension value normalization for grouped views.

Splits every raw dimension value into a grouping key and a display label,
so that values differing only in width, case or stray whitespace land in
the same bucket while keeping their original spelling on screen.
"""

from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import dataclass
from typing import Any

from dashboard.domain.rows import DataRow, missing_label

_WHITESPACE = re.compile(r"[\s\u00a0\u3000]+")


@dataclass(frozen=True)
class NormalizedLabel:
    """Grouping key plus the display label it was derived from."""

    key: str
    label: str


def normalize_label(value: Any, fallback: str) -> NormalizedLabel:
    """Canonicalize one raw dimension value.

    Args:
        value: Raw string, number or boolean taken from a row.
        fallback: Label used for missing or blank values.

    Returns:
        ``NormalizedLabel`` whose ``key`` is NFKC-normalized, whitespace-free
        and lower-cased, and whose ``label`` is the trimmed original.
        Missing, blank and unsupported values map to ``(fallback, fallback)``.
    """
    if value is None:
        return NormalizedLabel(key=fallback, label=fallback)

    if isinstance(value, bool):
        text = "true" if value else "false"
        return NormalizedLabel(key=text, label=text)

    if isinstance(value, (int, float)):
        if isinstance(value, float):
            if not math.isfinite(value):
                return NormalizedLabel(key=fallback, label=fallback)
            if value.is_integer():
                value = int(value)
        text = str(value)
        return NormalizedLabel(key=text, label=text)

    if not isinstance(value, str):
        return NormalizedLabel(key=fallback, label=fallback)

    trimmed = value.strip()
    if not trimmed:
        return NormalizedLabel(key=fallback, label=fallback)

    key = _WHITESPACE.sub("", unicodedata.normalize("NFKC", trimmed)).lower()
    return NormalizedLabel(key=key, label=trimmed)


def normalize_dimension(row: DataRow, dimension: str) -> NormalizedLabel:
    """Normalize the value *row* holds for *dimension* with its fallback label."""
    return normalize_label(row.get(dimension), missing_label(dimension))


def is_missing(normalized: NormalizedLabel, dimension: str) -> bool:
    return normalized.label == missing_label(dimension)
