"""
tests/test_aggregator.py

Pytest unit tests for dimension and weekly aggregation.

Coverage
--------
- Ratios derived from bucket sums, not averaged per row
- Buckets merge equivalent spellings and keep the first-seen label
- First-seen bucket order
- Sparse risk dimensions drop unfilled rows
- Other dimensions use the fallback label bucket
- Weekly totals ascend and ignore rows without a week
"""

from __future__ import annotations

from typing import Any

import pytest

from dashboard.domain.rows import DataRow
from segmentation.aggregator import (
    aggregate_by_dimension,
    aggregate_by_week,
    has_dimension_data,
    safe_ratio,
)


def _row(**values: Any) -> DataRow:
    return DataRow(**values)


class TestAggregateByDimension:
    def test_ratios_come_from_bucket_sums(self) -> None:
        rows = [
            _row(third_level_organization="天府", matured_premium_yuan=900.0, marginal_contribution_amount_yuan=0.0),
            _row(third_level_organization="天府", matured_premium_yuan=100.0, marginal_contribution_amount_yuan=100.0),
            _row(third_level_organization="高新", matured_premium_yuan=500.0, marginal_contribution_amount_yuan=250.0),
        ]
        buckets = aggregate_by_dimension(rows, "third_level_organization")

        rates = {
            bucket.label: bucket.ratio("marginal_contribution_amount_yuan", "matured_premium_yuan")
            for bucket in buckets.values()
        }
        # Averaging per-row rates would give 0.5 for 天府.
        assert rates == {"天府": pytest.approx(0.10), "高新": pytest.approx(0.50)}
        assert buckets["天府"].row_count == 2

    def test_loss_ratio_per_organization(self) -> None:
        rows = [
            _row(
                third_level_organization="天府",
                signed_premium_yuan=1000.0,
                matured_premium_yuan=800.0,
                reported_claim_payment_yuan=80.0,
            ),
            _row(
                third_level_organization="高新",
                signed_premium_yuan=2000.0,
                matured_premium_yuan=1800.0,
                reported_claim_payment_yuan=900.0,
            ),
        ]
        buckets = aggregate_by_dimension(rows, "third_level_organization")
        rates = {
            bucket.label: bucket.ratio("reported_claim_payment_yuan", "matured_premium_yuan")
            for bucket in buckets.values()
        }
        assert rates == {"天府": pytest.approx(0.10), "高新": pytest.approx(0.50)}

    def test_equivalent_spellings_share_a_bucket(self) -> None:
        rows = [
            _row(business_type_category="非营业 个人客车", signed_premium_yuan=10.0),
            _row(business_type_category="非营业个人客车", signed_premium_yuan=5.0),
        ]
        buckets = aggregate_by_dimension(rows, "business_type_category")
        assert len(buckets) == 1
        (bucket,) = buckets.values()
        assert bucket.label == "非营业 个人客车"
        assert bucket.total("signed_premium_yuan") == pytest.approx(15.0)

    def test_first_seen_order(self) -> None:
        rows = [
            _row(insurance_type="交强险"),
            _row(insurance_type="商业险"),
            _row(insurance_type="交强险"),
        ]
        buckets = aggregate_by_dimension(rows, "insurance_type")
        assert [bucket.label for bucket in buckets.values()] == ["交强险", "商业险"]

    def test_missing_values_form_fallback_bucket(self) -> None:
        rows = [_row(customer_category_3=None), _row(customer_category_3="  ")]
        buckets = aggregate_by_dimension(rows, "customer_category_3")
        assert [bucket.label for bucket in buckets.values()] == ["未分类"]
        assert buckets["未分类"].row_count == 2

    @pytest.mark.parametrize("dimension", ["vehicle_insurance_grade", "large_truck_score", "small_truck_score"])
    def test_sparse_dimensions_skip_missing(self, dimension: str) -> None:
        filled = "A" if dimension == "vehicle_insurance_grade" else 2.0
        rows = [_row(**{dimension: filled}), _row()]
        buckets = aggregate_by_dimension(rows, dimension)
        assert len(buckets) == 1
        assert next(iter(buckets.values())).row_count == 1

    def test_missing_measures_count_as_zero(self) -> None:
        buckets = aggregate_by_dimension([_row(insurance_type="交强险")], "insurance_type")
        assert buckets["交强险"].total("signed_premium_yuan") == 0.0

    def test_custom_measures(self) -> None:
        rows = [_row(insurance_type="交强险", policy_count=3.0, signed_premium_yuan=9.0)]
        bucket = aggregate_by_dimension(rows, "insurance_type", measures=("policy_count",))["交强险"]
        assert bucket.sums == {"policy_count": 3.0}

    def test_empty_rows(self) -> None:
        assert aggregate_by_dimension([], "insurance_type") == {}


class TestWeeklyTotals:
    def test_weeks_ascend_and_sum(self) -> None:
        rows = [
            _row(week_number=38, signed_premium_yuan=5.0),
            _row(week_number=36, signed_premium_yuan=1.0),
            _row(week_number=38, signed_premium_yuan=2.0),
            _row(week_number=None, signed_premium_yuan=100.0),
        ]
        totals = aggregate_by_week(rows, measures=("signed_premium_yuan",))
        assert [item.week for item in totals] == [36, 38]
        assert totals[1].total("signed_premium_yuan") == pytest.approx(7.0)

    def test_empty_rows(self) -> None:
        assert aggregate_by_week([]) == []


class TestHelpers:
    def test_safe_ratio_zero_denominator(self) -> None:
        assert safe_ratio(5.0, 0.0) == 0.0
        assert safe_ratio(1.0, 4.0) == 0.25

    def test_has_dimension_data(self) -> None:
        assert not has_dimension_data([_row(), _row(vehicle_insurance_grade=" ")], "vehicle_insurance_grade")
        assert has_dimension_data([_row(), _row(large_truck_score=0.0)], "large_truck_score")
