"""
dashboard/domain/rows.py

Weekly policy observation rows and the column catalogue shared by the
filter, period, metrics and aggregation layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final


# ---------------------------------------------------------------------------
# Column catalogue
# ---------------------------------------------------------------------------

CSV_HEADERS: Final[tuple[str, ...]] = (
    "snapshot_date",
    "policy_start_year",
    "business_type_category",
    "chengdu_branch",
    "third_level_organization",
    "customer_category_3",
    "insurance_type",
    "is_new_energy_vehicle",
    "coverage_type",
    "is_transferred_vehicle",
    "renewal_status",
    "vehicle_insurance_grade",
    "highway_risk_grade",
    "large_truck_score",
    "small_truck_score",
    "terminal_source",
    "signed_premium_yuan",
    "matured_premium_yuan",
    "policy_count",
    "claim_case_count",
    "reported_claim_payment_yuan",
    "expense_amount_yuan",
    "commercial_premium_before_discount_yuan",
    "premium_plan_yuan",
    "marginal_contribution_amount_yuan",
    "week_number",
)
"""Exact header row expected in uploaded CSV extracts."""

MEASURE_COLUMNS: Final[tuple[str, ...]] = (
    "signed_premium_yuan",
    "matured_premium_yuan",
    "policy_count",
    "claim_case_count",
    "reported_claim_payment_yuan",
    "expense_amount_yuan",
    "commercial_premium_before_discount_yuan",
    "premium_plan_yuan",
    "marginal_contribution_amount_yuan",
)
"""Directly summable numeric columns."""

NUMERIC_COLUMNS: Final[tuple[str, ...]] = (
    "policy_start_year",
    "large_truck_score",
    "small_truck_score",
    *MEASURE_COLUMNS,
    "week_number",
)

DIMENSION_LABELS: Final[dict[str, str]] = {
    "customer_category_3": "客户类别",
    "chengdu_branch": "机构层级",
    "third_level_organization": "三级机构",
    "business_type_category": "业务类型",
    "insurance_type": "险种类型",
    "is_new_energy_vehicle": "是否新能源",
    "coverage_type": "险别组合",
    "is_transferred_vehicle": "是否过户车",
    "renewal_status": "新续转状态",
    "terminal_source": "终端来源",
    "vehicle_insurance_grade": "车险分等级",
    "highway_risk_grade": "高速风险等级",
    "large_truck_score": "大货车评分",
    "small_truck_score": "小货车评分",
}
"""Groupable dimensions with their display names."""

SKIP_MISSING_DIMENSIONS: Final[frozenset[str]] = frozenset(
    {"vehicle_insurance_grade", "large_truck_score", "small_truck_score"}
)
"""Sparse risk dimensions whose unfilled rows are hidden from grouped views."""

LABEL_UNCATEGORISED: Final[str] = "未分类"
LABEL_UNSCORED: Final[str] = "未评分"
LABEL_UNFILLED: Final[str] = "未填写"


def missing_label(dimension: str) -> str:
    """Return the display label used when *dimension* carries no value."""
    if dimension == "customer_category_3":
        return LABEL_UNCATEGORISED
    if dimension in {"large_truck_score", "small_truck_score"}:
        return LABEL_UNSCORED
    return LABEL_UNFILLED


# ---------------------------------------------------------------------------
# Row
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DataRow:
    """
    One (organization x business type x ...) weekly observation.

    Every field is optional so that partially-populated extracts still load;
    consumers treat missing measures as zero and missing dimensions as the
    dimension's fallback label.
    """

    snapshot_date: str | None = None
    policy_start_year: int | None = None
    business_type_category: str | None = None
    chengdu_branch: str | None = None
    third_level_organization: str | None = None
    customer_category_3: str | None = None
    insurance_type: str | None = None
    is_new_energy_vehicle: str | None = None
    coverage_type: str | None = None
    is_transferred_vehicle: str | None = None
    renewal_status: str | None = None
    vehicle_insurance_grade: str | None = None
    highway_risk_grade: str | None = None
    large_truck_score: float | None = None
    small_truck_score: float | None = None
    terminal_source: str | None = None
    signed_premium_yuan: float | None = None
    matured_premium_yuan: float | None = None
    policy_count: float | None = None
    claim_case_count: float | None = None
    reported_claim_payment_yuan: float | None = None
    expense_amount_yuan: float | None = None
    commercial_premium_before_discount_yuan: float | None = None
    premium_plan_yuan: float | None = None
    marginal_contribution_amount_yuan: float | None = None
    week_number: int | None = None

    def get(self, column: str) -> Any:
        """Return the value stored under *column*, or ``None`` for unknown columns."""
        return getattr(self, column, None)

    def measure(self, column: str) -> float:
        """Return *column* as a float, treating missing or non-numeric values as zero."""
        return to_number(self.get(column))

    def as_dict(self) -> dict[str, Any]:
        return {column: getattr(self, column) for column in CSV_HEADERS}


def to_number(value: Any) -> float:
    """
    Coerce a raw measure to float for accumulation.

    ``None``, booleans, unparseable strings and NaN all count as ``0.0``.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:
        return 0.0
    return number
