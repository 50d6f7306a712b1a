"""
Dimension aggregation for grouped chart views.

Rows are bucketed by the normalized key of one dimension; each bucket keeps
running sums of the requested measure columns. Ratios are always computed
from the bucket sums, never averaged across rows.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from dashboard.domain.rows import MEASURE_COLUMNS, SKIP_MISSING_DIMENSIONS, DataRow
from segmentation.normalizer import is_missing, normalize_dimension

logger = logging.getLogger(__name__)


@dataclass
class AggregationBucket:
    """Running measure sums for one dimension value."""

    key: str
    label: str
    sums: dict[str, float] = field(default_factory=dict)
    row_count: int = 0

    def add(self, row: DataRow, measures: Sequence[str]) -> None:
        for column in measures:
            self.sums[column] = self.sums.get(column, 0.0) + row.measure(column)
        self.row_count += 1

    def total(self, column: str) -> float:
        return self.sums.get(column, 0.0)

    def ratio(self, numerator: str, denominator: str) -> float:
        return safe_ratio(self.total(numerator), self.total(denominator))


def safe_ratio(numerator: float, denominator: float) -> float:
    """``numerator / denominator`` with a zero denominator giving ``0.0``."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def aggregate_by_dimension(
    rows: Iterable[DataRow],
    dimension: str,
    measures: Sequence[str] = MEASURE_COLUMNS,
) -> dict[str, AggregationBucket]:
    """
    Group *rows* by the normalized value of *dimension*.

    Returns buckets keyed by normalized key in first-seen order. Each bucket
    keeps the label of the first row seen for its key. For sparse risk
    dimensions, rows without a value are dropped instead of forming a
    fallback bucket.
    """
    skip_missing = dimension in SKIP_MISSING_DIMENSIONS
    buckets: dict[str, AggregationBucket] = {}
    skipped = 0
    for row in rows:
        normalized = normalize_dimension(row, dimension)
        if skip_missing and is_missing(normalized, dimension):
            skipped += 1
            continue
        bucket = buckets.get(normalized.key)
        if bucket is None:
            bucket = AggregationBucket(key=normalized.key, label=normalized.label)
            buckets[normalized.key] = bucket
        bucket.add(row, measures)

    logger.debug(
        "aggregate_by_dimension dimension=%s buckets=%d skipped=%d",
        dimension,
        len(buckets),
        skipped,
    )
    return buckets


@dataclass(frozen=True)
class WeeklyTotals:
    week: int
    sums: dict[str, float]

    def total(self, column: str) -> float:
        return self.sums.get(column, 0.0)


def aggregate_by_week(
    rows: Iterable[DataRow],
    measures: Sequence[str] = MEASURE_COLUMNS,
) -> list[WeeklyTotals]:
    """Sum *measures* per week number, ascending; rows without a week are ignored."""
    totals: dict[int, dict[str, float]] = {}
    for row in rows:
        if row.week_number is None:
            continue
        sums = totals.setdefault(row.week_number, {column: 0.0 for column in measures})
        for column in measures:
            sums[column] += row.measure(column)
    return [WeeklyTotals(week=week, sums=totals[week]) for week in sorted(totals)]


def has_dimension_data(rows: Iterable[DataRow], dimension: str) -> bool:
    """Return True when any row carries a non-blank value for *dimension*."""
    for row in rows:
        value = row.get(dimension)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return True
    return False
