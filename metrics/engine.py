"""
metrics/engine.py

Formula-driven metrics engine.

Computation steps for ``calculate(name, rows, mode)``
-----------------------------------------------------
1. Sum every base measure's source column over *rows*. In ``"ytd"`` mode
   the sums cover only the rows of the latest week present, since each
   weekly extract row is already a cumulative snapshot.
2. A base measure name returns its sum.
3. Any other name resolves its definition and recursively resolves every
   name its formula needs. The chain of names currently being resolved is
   tracked; reaching one of them again yields ``None`` for that branch, so
   ``A -> B -> A`` terminates with ``None`` while diamond-shaped graphs
   still resolve.
4. The formula tree is evaluated; unknown names, division by zero and
   non-finite results all give ``None``.

The engine holds no per-call state and never mutates its inputs.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence

from dashboard.domain.filters import TimePeriod
from dashboard.domain.rows import DataRow
from metrics.base import MetricDefinition, MetricFormat
from metrics.registry import MetricRegistry, get_default_registry, metric_edges

logger = logging.getLogger(__name__)


def latest_week(rows: Iterable[DataRow]) -> int | None:
    latest: int | None = None
    for row in rows:
        week = row.week_number
        if week is not None and (latest is None or week > latest):
            latest = week
    return latest


def round_half_up(value: float) -> int:
    """Round to the nearest integer with ties toward positive infinity."""
    return math.floor(value + 0.5)


class MetricsEngine:
    """
    Evaluates registry metrics over a row set.

    Usage::

        engine = MetricsEngine()
        value = engine.calculate("matured_loss_ratio", rows)
        engine.format(value, "matured_loss_ratio")  # "10.00%"
    """

    def __init__(
        self,
        registry: MetricRegistry | None = None,
        *,
        null_placeholder: str | None = None,
    ) -> None:
        self.registry = registry if registry is not None else get_default_registry()
        if null_placeholder is None:
            null_placeholder = self.registry.formatting.null_placeholder
        self.null_placeholder = null_placeholder

    # ------------------------------------------------------------------
    # Base aggregation
    # ------------------------------------------------------------------

    def aggregate_base(
        self,
        rows: Sequence[DataRow],
        mode: str | None = None,
    ) -> dict[str, float]:
        """
        Sum every base measure over *rows* (latest week only in ``"ytd"`` mode).
        """
        target: Sequence[DataRow] = rows
        if mode == TimePeriod.YTD:
            week = latest_week(rows)
            if week is not None:
                target = [row for row in rows if row.week_number == week]

        totals: dict[str, float] = {}
        for definition in self.registry.base_measures():
            column = definition.source_column or ""
            totals[definition.name] = sum(row.measure(column) for row in target)
        return totals

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def calculate(
        self,
        metric_name: str,
        rows: Sequence[DataRow],
        mode: str | None = None,
    ) -> float | None:
        """
        Compute *metric_name* over *rows*.

        Returns ``None`` for unknown metrics, cyclic dependencies, division
        by zero and non-finite results.
        """
        base_values = self.aggregate_base(rows, mode)
        return self._resolve(metric_name, base_values, frozenset(), {})

    def calculate_many(
        self,
        metric_names: Iterable[str],
        rows: Sequence[DataRow],
        mode: str | None = None,
    ) -> dict[str, float | None]:
        """
        Compute several metrics over one base aggregation, sharing resolved values.
        """
        base_values = self.aggregate_base(rows, mode)
        resolved: dict[str, float | None] = {}
        return {
            name: self._resolve(name, base_values, frozenset(), resolved)
            for name in metric_names
        }

    def _resolve(
        self,
        name: str,
        base_values: dict[str, float],
        resolving: frozenset[str],
        resolved: dict[str, float | None],
    ) -> float | None:
        if name in base_values:
            return base_values[name]
        if name in resolved:
            return resolved[name]
        if name in resolving:
            logger.debug("Cyclic dependency reached at metric '%s'.", name)
            return None

        definition = self.registry.get(name)
        if definition is None or definition.expression is None:
            logger.debug("Metric '%s' is not defined.", name)
            return None

        chain = resolving | {name}
        values = {
            ref: self._resolve(ref, base_values, chain, resolved)
            for ref in metric_edges(definition)
        }
        value = definition.expression.evaluate(values)
        if value is None:
            logger.debug("Metric '%s' evaluated to None.", name)
        resolved[name] = value
        return value

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def format(self, value: float | None, metric_name: str) -> str:
        """
        Render *value* with the formatting rule of *metric_name*.

        ``None`` and non-finite values render as the null placeholder;
        percentage metrics as ``"12.34%"``; three-decimal metrics as
        ``"0.987"``; everything else as a thousands-grouped integer.
        """
        if value is None or not math.isfinite(value):
            return self.null_placeholder

        rules = self.registry.formatting
        definition: MetricDefinition | None = self.registry.get(metric_name)
        metric_format = definition.format if definition is not None else MetricFormat.INTEGER_WITH_COMMA

        if metric_format == MetricFormat.PERCENTAGE_2:
            rule = rules.percentage_2
            return rule.format_string.format(value * rule.multiplier)
        if metric_format == MetricFormat.DECIMAL_3:
            return rules.decimal_3.format_string.format(value)
        return rules.integer_with_comma.format_string.format(round_half_up(value))
