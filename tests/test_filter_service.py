"""
tests/test_filter_service.py

Pytest unit tests for FilterSpec, the filter matcher and filter options.

Coverage
--------
- None = unconstrained, [] = exclude-all, list = exact allow-list
- Scalar year filter compares string forms
- Missing columns never match a populated allow-list
- Week selection is ignored by the matcher
- FilterSpec.replace / without return new specs
- Filter option ordering
"""

from __future__ import annotations

from typing import Any

import pytest

from dashboard.domain.filters import DimensionFilter, FilterSpec, FilterState
from dashboard.domain.rows import DataRow
from dashboard.services.filter_service import (
    build_filter_options,
    filter_rows,
    matches,
    sort_by_preferred_order,
)


def _row(**values: Any) -> DataRow:
    return DataRow(**values)


@pytest.fixture()
def rows() -> list[DataRow]:
    return [
        _row(
            third_level_organization="天府",
            business_type_category="非营业个人客车",
            policy_start_year=2025,
            is_new_energy_vehicle="新能源",
            week_number=37,
        ),
        _row(
            third_level_organization="高新",
            business_type_category="营业货车",
            policy_start_year=2024,
            is_new_energy_vehicle="燃油",
            week_number=38,
        ),
        _row(third_level_organization=None, policy_start_year=2025, week_number=38),
    ]


class TestDimensionFilter:
    def test_none_is_unconstrained(self) -> None:
        constraint = DimensionFilter.from_selection(None)
        assert constraint.state == FilterState.UNCONSTRAINED
        assert constraint.admits(None)
        assert constraint.admits("anything")

    def test_empty_list_excludes_all(self) -> None:
        constraint = DimensionFilter.from_selection([])
        assert constraint.state == FilterState.EXCLUDE_ALL
        assert not constraint.admits("天府")
        assert not constraint.admits(None)

    def test_list_is_exact_membership(self) -> None:
        constraint = DimensionFilter.from_selection(["天府"])
        assert constraint.admits("天府")
        assert not constraint.admits(" 天府")
        assert not constraint.admits(None)

    def test_to_selection_round_trips_states(self) -> None:
        assert DimensionFilter.from_selection(None).to_selection() is None
        assert DimensionFilter.from_selection([]).to_selection() == []
        assert DimensionFilter.from_selection(["b", "a"]).to_selection() == ["a", "b"]


class TestMatches:
    def test_unconstrained_spec_matches_everything(self, rows: list[DataRow]) -> None:
        assert filter_rows(rows, FilterSpec()) == rows

    def test_empty_selection_matches_nothing(self, rows: list[DataRow]) -> None:
        spec = FilterSpec.from_selections(business_types=[])
        assert filter_rows(rows, spec) == []

    def test_allow_list(self, rows: list[DataRow]) -> None:
        spec = FilterSpec.from_selections(region=["高新"])
        assert filter_rows(rows, spec) == [rows[1]]

    def test_missing_column_never_matches_allow_list(self, rows: list[DataRow]) -> None:
        spec = FilterSpec.from_selections(region=["天府", "高新"])
        assert not matches(rows[2], spec)

    def test_year_compares_string_form(self, rows: list[DataRow]) -> None:
        spec = FilterSpec.from_selections(year=2025)
        assert filter_rows(rows, spec) == [rows[0], rows[2]]

    def test_year_without_row_value_fails(self) -> None:
        spec = FilterSpec.from_selections(year="2025")
        assert not matches(_row(), spec)

    def test_dimensions_combine_conjunctively(self, rows: list[DataRow]) -> None:
        spec = FilterSpec.from_selections(region=["天府", "高新"], energy_types=["燃油"])
        assert filter_rows(rows, spec) == [rows[1]]

    def test_week_selection_is_not_applied(self, rows: list[DataRow]) -> None:
        spec = FilterSpec.from_selections(week_number=["37"])
        assert filter_rows(rows, spec) == rows

    def test_input_order_preserved(self, rows: list[DataRow]) -> None:
        reversed_rows = list(reversed(rows))
        assert filter_rows(reversed_rows, FilterSpec()) == reversed_rows


class TestFilterSpec:
    def test_is_frozen(self) -> None:
        spec = FilterSpec()
        with pytest.raises((AttributeError, TypeError)):
            spec.year = "2025"  # type: ignore[misc]

    def test_replace_returns_new_spec(self) -> None:
        spec = FilterSpec()
        narrowed = spec.replace(region=["天府"])
        assert spec.region.is_unconstrained
        assert narrowed.region.to_selection() == ["天府"]

    def test_without_restores_unconstrained(self) -> None:
        spec = FilterSpec.from_selections(region=[], year="2025", week_number=["38"])
        cleared = spec.without("region").without("year").without("week_number")
        assert cleared == FilterSpec()
        assert spec.region.state == FilterState.EXCLUDE_ALL

    def test_without_unknown_dimension_raises(self) -> None:
        with pytest.raises(KeyError):
            FilterSpec().without("colour")

    def test_unknown_field_raises(self) -> None:
        with pytest.raises(TypeError):
            FilterSpec.from_selections(colour=["red"])

    def test_blank_year_is_unconstrained(self) -> None:
        assert FilterSpec.from_selections(year="  ").year is None


class TestFilterOptions:
    def test_empty_rows(self) -> None:
        options = build_filter_options([])
        assert options.years == []
        assert options.week_numbers == []

    def test_ordering(self) -> None:
        rows = [
            _row(policy_start_year=2024, week_number=10, is_new_energy_vehicle="燃油", is_transferred_vehicle="过户车"),
            _row(policy_start_year=2025, week_number=9, is_new_energy_vehicle="混动", is_transferred_vehicle="非过户车"),
            _row(policy_start_year=2025, week_number=38, is_new_energy_vehicle="新能源", third_level_organization="高新"),
            _row(third_level_organization="天府"),
        ]
        options = build_filter_options(rows)
        assert options.years == ["2025", "2024"]
        assert options.week_numbers == ["9", "10", "38"]
        assert options.energy_types == ["新能源", "燃油", "混动"]
        assert options.transferred_status == ["非过户车", "过户车"]
        assert options.regions == sorted(["天府", "高新"])

    def test_sort_by_preferred_order_puts_unknowns_last(self) -> None:
        assert sort_by_preferred_order(["z", "b", "a", "b"], ["b"]) == ["b", "a", "z"]
