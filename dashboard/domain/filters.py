"""
dashboard/domain/filters.py

Immutable filter selections.

Each filterable dimension carries one of three states:

    UNCONSTRAINED  : the dimension matches every row (built from ``None``)
    EXCLUDE_ALL    : the dimension matches no row   (built from ``[]``)
    ALLOW          : the row value must be a member (built from a list)

Removing the last selected chip in a UI therefore has to produce
``None`` again; leaving ``[]`` behind means "exclude everything".
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Final, Literal


class TimePeriod:
    WEEKLY = "weekly"
    YTD = "ytd"


PeriodMode = Literal["weekly", "ytd"]

VALID_MODES: Final[frozenset[str]] = frozenset({TimePeriod.WEEKLY, TimePeriod.YTD})


class FilterState:
    UNCONSTRAINED = "unconstrained"
    EXCLUDE_ALL = "exclude_all"
    ALLOW = "allow"


@dataclass(frozen=True)
class DimensionFilter:
    """
    Three-state constraint for one dimension.
    """

    state: str = FilterState.UNCONSTRAINED
    values: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_selection(cls, selection: Iterable[Any] | None) -> "DimensionFilter":
        if selection is None:
            return UNCONSTRAINED
        if isinstance(selection, DimensionFilter):
            return selection
        if isinstance(selection, str):
            selection = [selection]
        values = frozenset(str(value) for value in selection)
        if not values:
            return EXCLUDE_ALL
        return cls(state=FilterState.ALLOW, values=values)

    @property
    def is_unconstrained(self) -> bool:
        return self.state == FilterState.UNCONSTRAINED

    def admits(self, value: Any) -> bool:
        """Return True when a row holding *value* passes this constraint."""
        if self.state == FilterState.UNCONSTRAINED:
            return True
        if self.state == FilterState.EXCLUDE_ALL:
            return False
        if value is None:
            return False
        return str(value) in self.values

    def to_selection(self) -> list[str] | None:
        """Inverse of :meth:`from_selection`, with sorted members."""
        if self.state == FilterState.UNCONSTRAINED:
            return None
        return sorted(self.values)


UNCONSTRAINED: Final[DimensionFilter] = DimensionFilter()
EXCLUDE_ALL: Final[DimensionFilter] = DimensionFilter(state=FilterState.EXCLUDE_ALL)


FILTER_DIMENSIONS: Final[dict[str, str]] = {
    "region": "third_level_organization",
    "insurance_types": "insurance_type",
    "business_types": "business_type_category",
    "customer_categories": "customer_category_3",
    "energy_types": "is_new_energy_vehicle",
    "transferred_status": "is_transferred_vehicle",
    "coverage_types": "coverage_type",
    "renewal_statuses": "renewal_status",
    "terminal_sources": "terminal_source",
}
"""FilterSpec field name -> DataRow column it constrains."""


@dataclass(frozen=True)
class FilterSpec:
    """
    Immutable filter input for one computation pass.

    Build it with :meth:`from_selections` from plain ``None`` / list values;
    derive variants with :meth:`replace` and :meth:`without`, which always
    return new instances.
    """

    region: DimensionFilter = UNCONSTRAINED
    insurance_types: DimensionFilter = UNCONSTRAINED
    business_types: DimensionFilter = UNCONSTRAINED
    customer_categories: DimensionFilter = UNCONSTRAINED
    energy_types: DimensionFilter = UNCONSTRAINED
    transferred_status: DimensionFilter = UNCONSTRAINED
    coverage_types: DimensionFilter = UNCONSTRAINED
    renewal_statuses: DimensionFilter = UNCONSTRAINED
    terminal_sources: DimensionFilter = UNCONSTRAINED
    year: str | None = None
    week_number: tuple[str, ...] | None = None

    @classmethod
    def from_selections(cls, **selections: Any) -> "FilterSpec":
        return cls(**_coerce(selections))

    def replace(self, **changes: Any) -> "FilterSpec":
        return dataclasses.replace(self, **_coerce(changes))

    def without(self, name: str) -> "FilterSpec":
        """Return a copy with *name* back to unconstrained."""
        if name == "year":
            return dataclasses.replace(self, year=None)
        if name == "week_number":
            return dataclasses.replace(self, week_number=None)
        if name not in FILTER_DIMENSIONS:
            raise KeyError(f"Unknown filter dimension '{name}'.")
        return dataclasses.replace(self, **{name: UNCONSTRAINED})

    def dimension_filters(self) -> Iterator[tuple[str, DimensionFilter]]:
        """Yield ``(row column, constraint)`` pairs for every filter dimension."""
        for name, column in FILTER_DIMENSIONS.items():
            yield column, getattr(self, name)

    @property
    def has_week_selection(self) -> bool:
        return bool(self.week_number)


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    coerced: dict[str, Any] = {}
    for name, value in values.items():
        if name in FILTER_DIMENSIONS:
            coerced[name] = DimensionFilter.from_selection(value)
        elif name == "year":
            coerced[name] = None if value is None or str(value).strip() == "" else str(value).strip()
        elif name == "week_number":
            if value is None:
                coerced[name] = None
            elif isinstance(value, (str, int)):
                coerced[name] = (str(value),)
            else:
                coerced[name] = tuple(str(week) for week in value)
        else:
            raise TypeError(f"Unknown filter field '{name}'.")
    return coerced
