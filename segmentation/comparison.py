"""
Comparison metric catalogue for grouped bar charts.

Every metric is computed from one bucket's measure sums. Amounts are shown
in 万元 (yuan / 10 000), rates in percent; zero denominators give ``0``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from metrics.engine import round_half_up
from segmentation.aggregator import AggregationBucket, safe_ratio

WAN: Final[float] = 10000.0


@dataclass(frozen=True)
class ComparisonMetric:
    """One selectable bar-chart metric."""

    key: str
    label: str
    description: str
    unit: str
    compute: Callable[[AggregationBucket], float]
    format: Callable[[float], str]

    def format_with_unit(self, value: float) -> str:
        formatted = self.format(value)
        if not self.unit or self.unit in formatted:
            return formatted
        return f"{formatted}{self.unit}"


def format_grouped_integer(value: float) -> str:
    return f"{round_half_up(value):,}"


def format_percent(value: float) -> str:
    return f"{value:.2f}%"


def _amount(column: str) -> Callable[[AggregationBucket], float]:
    return lambda bucket: bucket.total(column) / WAN


def _count(column: str) -> Callable[[AggregationBucket], float]:
    return lambda bucket: bucket.total(column)


def _rate(numerator: str, denominator: str) -> Callable[[AggregationBucket], float]:
    return lambda bucket: bucket.ratio(numerator, denominator) * 100


def _variable_cost_ratio(bucket: AggregationBucket) -> float:
    expense_ratio = bucket.ratio("expense_amount_yuan", "signed_premium_yuan")
    claim_ratio = bucket.ratio("reported_claim_payment_yuan", "matured_premium_yuan")
    return (expense_ratio + claim_ratio) * 100


def _incident_rate(bucket: AggregationBucket) -> float:
    policies = bucket.total("policy_count")
    signed = bucket.total("signed_premium_yuan")
    if policies == 0 or signed == 0:
        return 0.0
    claim_frequency = bucket.total("claim_case_count") / policies
    maturity = safe_ratio(bucket.total("matured_premium_yuan"), signed)
    return claim_frequency * maturity * 100


COMPARISON_METRICS: Final[tuple[ComparisonMetric, ...]] = (
    ComparisonMetric(
        key="signedPremium",
        label="签单保费（万元）",
        description="签单保费求和",
        unit="万元",
        compute=_amount("signed_premium_yuan"),
        format=format_grouped_integer,
    ),
    ComparisonMetric(
        key="maturedLossRatio",
        label="满期赔付率（%）",
        description="已报告赔款总额 ÷ 满期保费总额 × 100",
        unit="%",
        compute=_rate("reported_claim_payment_yuan", "matured_premium_yuan"),
        format=format_percent,
    ),
    ComparisonMetric(
        key="expenseRatio",
        label="费用率（%）",
        description="费用金额总额 ÷ 签单保费总额 × 100",
        unit="%",
        compute=_rate("expense_amount_yuan", "signed_premium_yuan"),
        format=format_percent,
    ),
    ComparisonMetric(
        key="marginalContributionRate",
        label="满期边际贡献率（%）",
        description="满期边际贡献额总额 ÷ 满期保费总额 × 100",
        unit="%",
        compute=_rate("marginal_contribution_amount_yuan", "matured_premium_yuan"),
        format=format_percent,
    ),
    ComparisonMetric(
        key="maturedPremium",
        label="满期保费（万元）",
        description="满期保费求和",
        unit="万元",
        compute=_amount("matured_premium_yuan"),
        format=format_grouped_integer,
    ),
    ComparisonMetric(
        key="policyCount",
        label="保单件数（件）",
        description="保单件数求和",
        unit="件",
        compute=_count("policy_count"),
        format=format_grouped_integer,
    ),
    ComparisonMetric(
        key="claimCaseCount",
        label="赔案件数（件）",
        description="赔案件数求和",
        unit="件",
        compute=_count("claim_case_count"),
        format=format_grouped_integer,
    ),
    ComparisonMetric(
        key="variableCostRatio",
        label="变动成本率（%）",
        description="（费用金额总额 ÷ 签单保费总额）+（已报告赔款总额 ÷ 满期保费总额）后再 × 100",
        unit="%",
        compute=_variable_cost_ratio,
        format=format_percent,
    ),
    ComparisonMetric(
        key="incidentRate",
        label="满期出险率（%）",
        description="（赔案件数总额 ÷ 保单件数总额）×（满期保费总额 ÷ 签单保费总额）× 100",
        unit="%",
        compute=_incident_rate,
        format=format_percent,
    ),
    ComparisonMetric(
        key="averagePremium",
        label="单均保费（元）",
        description="签单保费总额 ÷ 保单件数总额",
        unit="元",
        compute=lambda bucket: bucket.ratio("signed_premium_yuan", "policy_count"),
        format=lambda value: f"{format_grouped_integer(value)} 元",
    ),
    ComparisonMetric(
        key="averageClaim",
        label="案均赔款（元）",
        description="已报告赔款总额 ÷ 赔案件数总额",
        unit="元",
        compute=lambda bucket: bucket.ratio("reported_claim_payment_yuan", "claim_case_count"),
        format=lambda value: f"{format_grouped_integer(value)} 元",
    ),
    ComparisonMetric(
        key="marginalContributionAmount",
        label="满期边际贡献额（万元）",
        description="满期边际贡献额求和",
        unit="万元",
        compute=_amount("marginal_contribution_amount_yuan"),
        format=format_grouped_integer,
    ),
    ComparisonMetric(
        key="commercialPremiumBeforeDiscount",
        label="商业险折前保费（万元）",
        description="商业险折前保费求和",
        unit="万元",
        compute=_amount("commercial_premium_before_discount_yuan"),
        format=format_grouped_integer,
    ),
    ComparisonMetric(
        key="commercialAutonomyCoefficient",
        label="商业险自主系数",
        description="签单保费总额 ÷ 商业险折前保费总额",
        unit="系数",
        compute=lambda bucket: bucket.ratio(
            "signed_premium_yuan", "commercial_premium_before_discount_yuan"
        ),
        format=lambda value: f"{value:.3f}",
    ),
    ComparisonMetric(
        key="reportedClaim",
        label="已报告赔款（万元）",
        description="已报告赔款求和",
        unit="万元",
        compute=_amount("reported_claim_payment_yuan"),
        format=format_grouped_integer,
    ),
    ComparisonMetric(
        key="expenseAmount",
        label="费用金额（万元）",
        description="费用金额求和",
        unit="万元",
        compute=_amount("expense_amount_yuan"),
        format=format_grouped_integer,
    ),
)

_METRICS_BY_KEY: Final[dict[str, ComparisonMetric]] = {m.key: m for m in COMPARISON_METRICS}

DEFAULT_COMPARISON_METRIC: Final[str] = "signedPremium"


def get_comparison_metric(key: str) -> ComparisonMetric:
    """
    Look up a comparison metric by key.

    Raises
    ------
    KeyError
        When *key* is not in the catalogue.
    """
    try:
        return _METRICS_BY_KEY[key]
    except KeyError:
        raise KeyError(
            f"Unknown comparison metric '{key}'. Allowed: {sorted(_METRICS_BY_KEY)}."
        ) from None
