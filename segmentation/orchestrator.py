"""
Chart series orchestrator.

Wires together dimension aggregation, the comparison metric catalogue,
colour mapping and outlier clamping into single deterministic calls that
produce ready-to-draw bar series.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from dashboard.config import get_dashboard_settings
from dashboard.domain.rows import DataRow
from segmentation.aggregator import aggregate_by_dimension, safe_ratio
from segmentation.clamping import clamp_absolute_max
from segmentation.color_scale import color_for_rate, expense_delta_color
from segmentation.comparison import (
    DEFAULT_COMPARISON_METRIC,
    WAN,
    ComparisonMetric,
    format_grouped_integer,
    get_comparison_metric,
)

logger = logging.getLogger(__name__)

SortOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class ComparisonBar:
    dimension: str
    value: float
    display_value: float
    color: str
    marginal_rate: float
    is_clamped: bool


@dataclass(frozen=True)
class ExpenseContributionBar:
    dimension: str
    contribution: float
    contribution_wan: float
    display_contribution: float
    actual_rate: float
    delta_rate: float
    contribution_rate: float
    color: str
    signed_premium: float
    is_clamped: bool


class ChartSeriesOrchestrator:
    """
    Builds grouped bar series for one filtered row set.

    Each step is delegated to its dedicated module:
        1. ``aggregate_by_dimension`` groups rows and sums measures.
        2. The comparison catalogue or the expense formula computes values.
        3. ``color_for_rate`` / ``expense_delta_color`` pick bar colours.
        4. ``clamp_absolute_max`` rescales a dominant outlier for display.

    Args:
        clamp_ratio: Outlier threshold multiplier; defaults to
                     ``DashboardSettings.clamp_ratio``.
        expense_baseline: Reference expense rate; defaults to
                          ``DashboardSettings.expense_baseline``.
    """

    def __init__(
        self,
        clamp_ratio: float | None = None,
        expense_baseline: float | None = None,
    ) -> None:
        settings = get_dashboard_settings()
        self._clamp_ratio = clamp_ratio if clamp_ratio is not None else settings.clamp_ratio
        self._expense_baseline = (
            expense_baseline if expense_baseline is not None else settings.expense_baseline
        )

    def comparison_series(
        self,
        rows: Sequence[DataRow],
        dimension: str,
        metric_key: str = DEFAULT_COMPARISON_METRIC,
        sort_order: SortOrder = "desc",
    ) -> list[ComparisonBar]:
        """
        Compute one comparison metric per dimension value.

        Bars are sorted by value, coloured by the bucket's marginal
        contribution rate and clamped for display.

        Raises:
            KeyError: When *metric_key* is not a catalogue metric.
        """
        metric = get_comparison_metric(metric_key)
        if not rows:
            return []

        buckets = aggregate_by_dimension(rows, dimension)
        bars = []
        for bucket in buckets.values():
            marginal_rate = bucket.ratio("marginal_contribution_amount_yuan", "matured_premium_yuan")
            value = metric.compute(bucket)
            bars.append(
                ComparisonBar(
                    dimension=bucket.label,
                    value=value,
                    display_value=value,
                    color=color_for_rate(marginal_rate),
                    marginal_rate=marginal_rate,
                    is_clamped=False,
                )
            )
        bars.sort(key=lambda bar: bar.value, reverse=sort_order == "desc")

        clamped = clamp_absolute_max(bars, key=lambda bar: bar.value, ratio=self._clamp_ratio)
        logger.debug(
            "comparison_series dimension=%s metric=%s bars=%d clamped=%d",
            dimension,
            metric_key,
            len(clamped),
            sum(1 for c in clamped if c.is_clamped),
        )
        return [
            ComparisonBar(
                dimension=c.item.dimension,
                value=c.value,
                display_value=c.display_value,
                color=c.item.color,
                marginal_rate=c.item.marginal_rate,
                is_clamped=c.is_clamped,
            )
            for c in clamped
        ]

    def expense_series(
        self,
        rows: Sequence[DataRow],
        dimension: str,
        sort_order: SortOrder = "desc",
    ) -> list[ExpenseContributionBar]:
        """
        Compute the expense surplus of each dimension value against the baseline rate.

        ``contribution = signed x (baseline - expense / signed)``; positive
        values mean the group spent less than the baseline allows.
        """
        if not rows:
            return []

        baseline = self._expense_baseline
        buckets = aggregate_by_dimension(
            rows, dimension, measures=("signed_premium_yuan", "expense_amount_yuan")
        )
        bars = []
        for bucket in buckets.values():
            signed = bucket.total("signed_premium_yuan")
            actual_rate = safe_ratio(bucket.total("expense_amount_yuan"), signed)
            delta_rate = actual_rate - baseline
            contribution_rate = baseline - actual_rate
            contribution = signed * contribution_rate
            bars.append(
                ExpenseContributionBar(
                    dimension=bucket.label,
                    contribution=contribution,
                    contribution_wan=contribution / WAN,
                    display_contribution=contribution,
                    actual_rate=actual_rate,
                    delta_rate=delta_rate,
                    contribution_rate=contribution_rate,
                    color=expense_delta_color(delta_rate),
                    signed_premium=signed,
                    is_clamped=False,
                )
            )
        bars.sort(key=lambda bar: bar.contribution, reverse=sort_order == "desc")

        clamped = clamp_absolute_max(bars, key=lambda bar: bar.contribution, ratio=self._clamp_ratio)
        return [
            ExpenseContributionBar(
                dimension=c.item.dimension,
                contribution=c.item.contribution,
                contribution_wan=c.item.contribution_wan,
                display_contribution=c.display_value,
                actual_rate=c.item.actual_rate,
                delta_rate=c.item.delta_rate,
                contribution_rate=c.item.contribution_rate,
                color=c.item.color,
                signed_premium=c.item.signed_premium,
                is_clamped=c.is_clamped,
            )
            for c in clamped
        ]


# ---------------------------------------------------------------------------
# Table views
# ---------------------------------------------------------------------------


def comparison_table(
    bars: Sequence[ComparisonBar],
    metric: ComparisonMetric,
) -> tuple[list[str], list[list[str]]]:
    """Header and display rows for copying a comparison series as a table."""
    header = ["维度", metric.label, "满期边际贡献率"]
    records = [
        [bar.dimension, metric.format_with_unit(bar.value), f"{bar.marginal_rate * 100:.2f}%"]
        for bar in bars
    ]
    return header, records


def expense_table(bars: Sequence[ExpenseContributionBar]) -> tuple[list[str], list[list[str]]]:
    """Header and display rows for copying an expense series as a table."""
    header = ["维度", "实际费用率", "与基准差异", "费用结余", "签单保费"]
    records = []
    for bar in bars:
        delta_pct = bar.delta_rate * 100
        sign = "+" if delta_pct >= 0 else ""
        records.append(
            [
                bar.dimension,
                f"{bar.actual_rate * 100:.2f}%",
                f"{sign}{delta_pct:.2f}%",
                f"{format_grouped_integer(bar.contribution / WAN)}万",
                f"{format_grouped_integer(bar.signed_premium / WAN)}万",
            ]
        )
    return header, records


def build_comparison_series(
    rows: Sequence[DataRow],
    dimension: str,
    metric_key: str = DEFAULT_COMPARISON_METRIC,
    sort_order: SortOrder = "desc",
) -> list[ComparisonBar]:
    return ChartSeriesOrchestrator().comparison_series(rows, dimension, metric_key, sort_order)


def build_expense_series(
    rows: Sequence[DataRow],
    dimension: str,
    sort_order: SortOrder = "desc",
) -> list[ExpenseContributionBar]:
    return ChartSeriesOrchestrator().expense_series(rows, dimension, sort_order)
