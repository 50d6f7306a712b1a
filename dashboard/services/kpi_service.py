"""
dashboard/services/kpi_service.py

Headline KPI cards and the weekly trend series.

All functions operate on rows already partitioned by the period resolver.
No row filtering happens here; the caller passes a ``PeriodContext``.

Headline metrics
----------------
Signed premium                      = Σ signed_premium_yuan
Matured loss ratio                  = Σ reported claims / Σ matured premium
Expense ratio                       = Σ expense / Σ signed premium
Matured marginal contribution rate  = Σ marginal contribution / Σ matured premium

Ratios with a zero denominator are reported as ``0`` on cards.

Comparison baseline
-------------------
weekly  current-week rows   vs previous-week rows              ("较上周")
ytd     point rows          vs selected weeks before current   ("较前一周累计")
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Final

from dashboard.config import get_dashboard_settings
from dashboard.domain.filters import TimePeriod
from dashboard.domain.rows import DataRow
from dashboard.logging_utils import log_event
from dashboard.services.period_service import PeriodContext
from metrics.engine import MetricsEngine, round_half_up
from segmentation.aggregator import aggregate_by_week

logger = logging.getLogger(__name__)


class KPIKey:
    SIGNED_PREMIUM = "signed_premium"
    MATURED_LOSS_RATIO = "matured_loss_ratio"
    EXPENSE_RATIO = "expense_ratio"
    MATURED_MARGINAL_CONTRIBUTION_RATE = "matured_marginal_contribution_rate"


KPI_KEYS: Final[tuple[str, ...]] = (
    KPIKey.SIGNED_PREMIUM,
    KPIKey.MATURED_LOSS_RATIO,
    KPIKey.EXPENSE_RATIO,
    KPIKey.MATURED_MARGINAL_CONTRIBUTION_RATE,
)

RATE_KPI_KEYS: Final[tuple[str, ...]] = KPI_KEYS[1:]

COMPARISON_DESCRIPTIONS: Final[dict[str, str]] = {
    TimePeriod.WEEKLY: "较上周",
    TimePeriod.YTD: "较前一周累计",
}

NOT_AVAILABLE: Final[str] = "N/A"

_SUMMARY_METRICS: Final[tuple[str, ...]] = (
    "signed_premium",
    "matured_premium",
    "reported_claim",
    "expense_amount",
    "marginal_contribution_amount",
    "matured_loss_ratio",
    "expense_ratio",
    "matured_marginal_contribution_rate",
)

_RATIO_DENOMINATORS: Final[dict[str, str]] = {
    "matured_loss_ratio": "matured_premium",
    "expense_ratio": "signed_premium",
    "matured_marginal_contribution_rate": "matured_premium",
}
"""Headline ratios read as 0 unless their summed denominator is positive."""


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetricSummary:
    """
    Totals and headline ratios for one row set.
    """

    signed_premium: float = 0.0
    matured_premium: float = 0.0
    reported_claim: float = 0.0
    expense_amount: float = 0.0
    marginal_contribution_amount: float = 0.0
    matured_loss_ratio: float = 0.0
    expense_ratio: float = 0.0
    matured_marginal_contribution_rate: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not (
            self.signed_premium
            or self.matured_premium
            or self.expense_amount
            or self.reported_claim
        )


@dataclass(frozen=True)
class KPICard:
    """
    Display payload for one headline KPI card.

    ``current_raw_value`` / ``previous_raw_value`` are in yuan for amounts
    and in percent for rates.
    """

    key: str
    value: str
    change: str
    change_type: str
    description: str
    previous_value: str | None = None
    change_value: str | None = None
    current_raw_value: float | None = None
    previous_raw_value: float | None = None


@dataclass(frozen=True)
class ChartDataPoint:
    week_number: int
    signed_premium_yuan: float
    reported_claim_payment_yuan: float


@dataclass(frozen=True)
class KPIReport:
    """
    Cards, trend series and the baseline rows the cards were compared to.
    """

    mode: str
    cards: dict[str, KPICard]
    chart: list[ChartDataPoint] = field(default_factory=list)
    baseline_rows: tuple[DataRow, ...] = field(default=(), repr=False)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def compute_change(current: float, previous: float) -> float:
    """
    Relative change ``(current - previous) / |previous|``.

    A zero baseline yields ``1``, ``-1`` or ``0`` by the sign of *current*.
    """
    if previous == 0:
        if current > 0:
            return 1.0
        if current < 0:
            return -1.0
        return 0.0
    return (current - previous) / abs(previous)


def format_relative_change(change: float) -> str:
    if not math.isfinite(change):
        return NOT_AVAILABLE
    sign = "+" if change > 0 else ""
    return f"{sign}{change * 100:.2f}%"


def format_diff_amount(diff: float) -> str:
    sign = "+" if diff >= 0 else ""
    return f"{sign}{round_half_up(diff / 10000):,}万"


def format_diff_point(diff: float) -> str:
    sign = "+" if diff >= 0 else ""
    return f"{sign}{diff:.2f}pp"


def format_currency_wan(value: float) -> str:
    """Render a yuan amount as ``¥ 1,234.56万``."""
    amount = value / 10000
    sign = "-" if amount < 0 else ""
    return f"{sign}¥ {abs(amount):,.2f}万"


def format_percentage(value: float) -> str:
    return f"{value * 100:.2f}%"


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class KPIService:
    """
    Stateless KPI card builder.

    Usage::

        context = resolve_period(rows, FilterSpec(), mode="weekly")
        report = KPIService().build_report(context)
        report.cards["signed_premium"].value  # "¥ 12.34万"
    """

    def __init__(
        self,
        engine: MetricsEngine | None = None,
        *,
        null_placeholder: str | None = None,
    ) -> None:
        self._engine = engine if engine is not None else MetricsEngine()
        if null_placeholder is None:
            null_placeholder = get_dashboard_settings().null_placeholder
        self._null_placeholder = null_placeholder

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def summarize(self, rows: Sequence[DataRow]) -> MetricSummary:
        """
        Sum the headline amounts and derive the headline ratios for *rows*.

        Unresolvable values become ``0``, and so does any ratio whose summed
        denominator is zero or negative (net refunds).
        """
        if not rows:
            return MetricSummary()
        values = {
            name: value or 0.0
            for name, value in self._engine.calculate_many(_SUMMARY_METRICS, rows).items()
        }
        for ratio, denominator in _RATIO_DENOMINATORS.items():
            if values[denominator] <= 0:
                values[ratio] = 0.0
        return MetricSummary(**values)

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def build_cards(
        self,
        current_rows: Sequence[DataRow],
        previous_rows: Sequence[DataRow],
        description: str,
    ) -> dict[str, KPICard]:
        """
        Compare *current_rows* against *previous_rows* for every headline KPI.

        An empty *previous_rows* means "no comparison period": changes are
        ``N/A`` and previous values are omitted.
        """
        current = self.summarize(current_rows)
        if current.is_empty:
            logger.debug("KPI cards requested without current data.")
            return self.empty_cards(description)

        previous = self.summarize(previous_rows) if previous_rows else None
        cards = {KPIKey.SIGNED_PREMIUM: self._amount_card(current, previous, description)}
        for key in RATE_KPI_KEYS:
            cards[key] = self._rate_card(key, current, previous, description)
        return cards

    def empty_cards(self, description: str) -> dict[str, KPICard]:
        return {
            key: KPICard(
                key=key,
                value=self._null_placeholder,
                change=NOT_AVAILABLE,
                change_type="increase",
                description=description,
            )
            for key in KPI_KEYS
        }

    def _amount_card(
        self,
        current: MetricSummary,
        previous: MetricSummary | None,
        description: str,
    ) -> KPICard:
        value = current.signed_premium
        if previous is None:
            return KPICard(
                key=KPIKey.SIGNED_PREMIUM,
                value=format_currency_wan(value),
                change=NOT_AVAILABLE,
                change_type="increase",
                description=description,
                current_raw_value=value,
            )
        base = previous.signed_premium
        diff = value - base
        return KPICard(
            key=KPIKey.SIGNED_PREMIUM,
            value=format_currency_wan(value),
            change=format_relative_change(compute_change(value, base)),
            change_type="increase" if diff >= 0 else "decrease",
            description=description,
            previous_value=format_currency_wan(base),
            change_value=format_diff_amount(diff),
            current_raw_value=value,
            previous_raw_value=base,
        )

    def _rate_card(
        self,
        key: str,
        current: MetricSummary,
        previous: MetricSummary | None,
        description: str,
    ) -> KPICard:
        value = getattr(current, key)
        if previous is None:
            return KPICard(
                key=key,
                value=format_percentage(value),
                change=NOT_AVAILABLE,
                change_type="increase",
                description=description,
                current_raw_value=value * 100,
            )
        base = getattr(previous, key)
        diff_points = (value - base) * 100
        return KPICard(
            key=key,
            value=format_percentage(value),
            change=format_relative_change(compute_change(value, base)),
            change_type="increase" if diff_points >= 0 else "decrease",
            description=description,
            previous_value=format_percentage(base),
            change_value=format_diff_point(diff_points),
            current_raw_value=value * 100,
            previous_raw_value=base * 100,
        )

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------

    def build_report(self, context: PeriodContext) -> KPIReport:
        """
        Build the cards and trend series for a resolved period.
        """
        if context.mode == TimePeriod.WEEKLY:
            current_rows = context.current_rows
            baseline_rows = context.previous_rows
        else:
            current_rows = context.point_rows
            baseline_rows = context.previous_cumulative_rows()

        description = COMPARISON_DESCRIPTIONS[context.mode]
        cards = self.build_cards(current_rows, baseline_rows, description)
        chart = weekly_trend(context.trend_rows)
        log_event(
            logger,
            logging.DEBUG,
            "kpi_report_built",
            mode=context.mode,
            current_rows=len(current_rows),
            baseline_rows=len(baseline_rows),
            chart_points=len(chart),
        )
        return KPIReport(
            mode=context.mode,
            cards=cards,
            chart=chart,
            baseline_rows=tuple(baseline_rows),
        )


def weekly_trend(rows: Sequence[DataRow]) -> list[ChartDataPoint]:
    """Per-week signed premium and reported claim sums, ascending by week."""
    return [
        ChartDataPoint(
            week_number=totals.week,
            signed_premium_yuan=totals.total("signed_premium_yuan"),
            reported_claim_payment_yuan=totals.total("reported_claim_payment_yuan"),
        )
        for totals in aggregate_by_week(
            rows, measures=("signed_premium_yuan", "reported_claim_payment_yuan")
        )
    ]
