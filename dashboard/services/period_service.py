"""
dashboard/services/period_service.py

Temporal partitioning of filter-matched rows.

Resolution steps
----------------
1. ``available_weeks``  : sorted distinct weeks among rows passing the
   dimension/year filters (the week selection itself is ignored here).
2. ``selected_weeks``   : the explicit week selection, parsed to ints and
   intersected with ``available_weeks``; all available weeks otherwise.
3. ``current_week``     : max of ``selected_weeks``.
4. ``previous_week`` / ``pre_previous_week`` : the nearest lesser
   *available* weeks.
5. ``trend_rows``       : every row in a selected week (multi-week charts).
   ``point_rows``       : weekly: current-week rows only;
                          ytd:    rows up to and including the current week,
                                  narrowed to the selection when explicit.

An empty ``available_weeks`` is the "no data" shape: every week is ``None``
and every row set is empty. It is never an error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from dashboard.domain.filters import VALID_MODES, FilterSpec, PeriodMode, TimePeriod
from dashboard.domain.rows import DataRow
from dashboard.logging_utils import log_event
from dashboard.services.filter_service import filter_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeriodContext:
    """
    Derived comparison periods and the row sets partitioned by them.

    Recomputed from scratch whenever rows or filters change; never stored.
    """

    mode: str
    available_weeks: tuple[int, ...] = ()
    selected_weeks: tuple[int, ...] = ()
    explicit_selection: bool = False
    current_week: int | None = None
    previous_week: int | None = None
    pre_previous_week: int | None = None
    matched_rows: tuple[DataRow, ...] = field(default=(), repr=False)
    trend_rows: tuple[DataRow, ...] = field(default=(), repr=False)
    point_rows: tuple[DataRow, ...] = field(default=(), repr=False)
    current_rows: tuple[DataRow, ...] = field(default=(), repr=False)
    previous_rows: tuple[DataRow, ...] = field(default=(), repr=False)
    pre_previous_rows: tuple[DataRow, ...] = field(default=(), repr=False)

    @property
    def has_data(self) -> bool:
        return self.current_week is not None

    def previous_cumulative_rows(self) -> tuple[DataRow, ...]:
        """
        Rows of the selected weeks strictly before the current week.

        Used as the year-to-date comparison baseline.
        """
        if self.current_week is None:
            return ()
        earlier = {week for week in self.selected_weeks if week < self.current_week}
        if not earlier:
            return ()
        return tuple(row for row in self.trend_rows if row.week_number in earlier)


def parse_week_selection(selection: Iterable[str] | None) -> list[int]:
    """
    Parse a week selection into sorted distinct ints.

    Entries that are not integers are dropped.
    """
    if not selection:
        return []
    weeks: set[int] = set()
    for raw in selection:
        try:
            weeks.add(int(str(raw).strip()))
        except ValueError:
            continue
    return sorted(weeks)


def nearest_lesser(weeks: Sequence[int], reference: int | None) -> int | None:
    """Return the greatest element of sorted *weeks* strictly below *reference*."""
    if reference is None:
        return None
    lesser = [week for week in weeks if week < reference]
    return lesser[-1] if lesser else None


def resolve_period(
    rows: Sequence[DataRow],
    filter_spec: FilterSpec,
    mode: PeriodMode = TimePeriod.WEEKLY,
) -> PeriodContext:
    """
    Resolve current / previous / pre-previous weeks and the derived row sets.

    Raises
    ------
    ValueError
        When *mode* is neither ``"weekly"`` nor ``"ytd"``.
    """
    if mode not in VALID_MODES:
        raise ValueError(f"Unknown period mode '{mode}'. Allowed: {sorted(VALID_MODES)}.")

    matched = filter_rows(rows, filter_spec)
    available = sorted({row.week_number for row in matched if row.week_number is not None})
    if not available:
        return PeriodContext(mode=mode, explicit_selection=filter_spec.has_week_selection)

    requested = parse_week_selection(filter_spec.week_number)
    explicit = bool(requested)
    if explicit:
        available_set = set(available)
        selected = [week for week in requested if week in available_set]
    else:
        selected = list(available)

    current_week = selected[-1] if selected else None
    previous_week = nearest_lesser(available, current_week)
    pre_previous_week = nearest_lesser(available, previous_week)

    selected_set = set(selected)
    trend_rows = tuple(row for row in matched if row.week_number in selected_set)
    current_rows = _rows_at(matched, current_week)

    if mode == TimePeriod.WEEKLY:
        point_rows = current_rows
    elif current_week is None:
        point_rows = ()
    else:
        point_rows = tuple(
            row
            for row in matched
            if row.week_number is not None
            and row.week_number <= current_week
            and (not explicit or row.week_number in selected_set)
        )

    context = PeriodContext(
        mode=mode,
        available_weeks=tuple(available),
        selected_weeks=tuple(selected),
        explicit_selection=explicit,
        current_week=current_week,
        previous_week=previous_week,
        pre_previous_week=pre_previous_week,
        matched_rows=tuple(matched),
        trend_rows=trend_rows,
        point_rows=point_rows,
        current_rows=current_rows,
        previous_rows=_rows_at(matched, previous_week),
        pre_previous_rows=_rows_at(matched, pre_previous_week),
    )
    log_event(
        logger,
        logging.DEBUG,
        "period_resolved",
        mode=mode,
        current_week=current_week,
        previous_week=previous_week,
        pre_previous_week=pre_previous_week,
        selected_weeks=len(selected),
        point_rows=len(point_rows),
    )
    return context


def _rows_at(rows: Sequence[DataRow], week: int | None) -> tuple[DataRow, ...]:
    if week is None:
        return ()
    return tuple(row for row in rows if row.week_number == week)
