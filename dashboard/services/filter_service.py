"""
dashboard/services/filter_service.py

Row scoping under a FilterSpec, plus the option lists a filter UI offers.

Semantics per dimension
-----------------------
unconstrained  → no constraint
exclude-all    → no row can match (the user deselected everything)
allow-list     → exact, unnormalized membership of the row value

The scalar ``year`` filter compares the row's policy start year as a string.
The week selection is *not* applied here; the period resolver owns it.

Every function is pure and total: unknown or missing columns never raise,
they simply fail populated allow-lists.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Final

from dashboard.domain.filters import FilterSpec
from dashboard.domain.rows import DataRow

logger = logging.getLogger(__name__)

ENERGY_TYPE_ORDER: Final[tuple[str, ...]] = ("新能源", "燃油")
TRANSFER_STATUS_ORDER: Final[tuple[str, ...]] = ("非过户车", "过户车")


def matches(row: DataRow, filter_spec: FilterSpec) -> bool:
    """Return True when *row* passes every dimension constraint and the year filter."""
    for column, constraint in filter_spec.dimension_filters():
        if not constraint.admits(row.get(column)):
            return False
    if filter_spec.year is not None:
        year = row.get("policy_start_year")
        if year is None or str(year) != filter_spec.year:
            return False
    return True


def filter_rows(rows: Iterable[DataRow], filter_spec: FilterSpec) -> list[DataRow]:
    """Return the rows passing :func:`matches`, preserving input order."""
    matched = [row for row in rows if matches(row, filter_spec)]
    logger.debug("filter_rows matched=%d", len(matched))
    return matched


# ---------------------------------------------------------------------------
# Filter options
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FilterOptions:
    """
    Distinct selectable values per filter, derived from the loaded rows.
    """

    years: list[str] = field(default_factory=list)
    regions: list[str] = field(default_factory=list)
    insurance_types: list[str] = field(default_factory=list)
    business_types: list[str] = field(default_factory=list)
    customer_categories: list[str] = field(default_factory=list)
    energy_types: list[str] = field(default_factory=list)
    week_numbers: list[str] = field(default_factory=list)
    transferred_status: list[str] = field(default_factory=list)
    coverage_types: list[str] = field(default_factory=list)
    renewal_statuses: list[str] = field(default_factory=list)
    terminal_sources: list[str] = field(default_factory=list)


def sort_by_preferred_order(values: Iterable[str], preferred: Sequence[str]) -> list[str]:
    """
    Sort *values* so members of *preferred* come first in that order;
    the remaining values follow in ascending order.
    """
    rank = {value: index for index, value in enumerate(preferred)}
    return sorted(set(values), key=lambda value: (rank.get(value, len(rank)), value))


def _distinct(rows: Sequence[DataRow], column: str) -> set[str]:
    return {str(value) for value in (row.get(column) for row in rows) if value is not None}


def build_filter_options(rows: Sequence[DataRow]) -> FilterOptions:
    """
    Build the option lists shown by the filter sidebar.

    Years sort newest first, weeks ascend numerically, the boolean-like
    dimensions follow their preferred display order, everything else
    ascends.
    """
    if not rows:
        return FilterOptions()

    weeks = {row.week_number for row in rows if row.week_number is not None}
    return FilterOptions(
        years=sorted(_distinct(rows, "policy_start_year"), reverse=True),
        regions=sorted(_distinct(rows, "third_level_organization")),
        insurance_types=sorted(_distinct(rows, "insurance_type")),
        business_types=sorted(_distinct(rows, "business_type_category")),
        customer_categories=sorted(_distinct(rows, "customer_category_3")),
        energy_types=sort_by_preferred_order(
            _distinct(rows, "is_new_energy_vehicle"), ENERGY_TYPE_ORDER
        ),
        week_numbers=[str(week) for week in sorted(weeks)],
        transferred_status=sort_by_preferred_order(
            _distinct(rows, "is_transferred_vehicle"), TRANSFER_STATUS_ORDER
        ),
        coverage_types=sorted(_distinct(rows, "coverage_type")),
        renewal_statuses=sorted(_distinct(rows, "renewal_status")),
        terminal_sources=sorted(_distinct(rows, "terminal_source")),
    )
