"""
metrics/base.py

Metric definition types shared by the registry and the engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Iterable

from metrics.expression import Expression


class MetricKind:
    BASE_MEASURE = "base_measure"
    RATIO_METRIC = "ratio_metric"
    DERIVED_MEASURE = "derived_measure"
    COMPOSITE_METRIC = "composite_metric"


FORMULA_KINDS: Final[tuple[str, ...]] = (
    MetricKind.RATIO_METRIC,
    MetricKind.DERIVED_MEASURE,
    MetricKind.COMPOSITE_METRIC,
)


class MetricFormat:
    PERCENTAGE_2 = "percentage_2"
    INTEGER_WITH_COMMA = "integer_with_comma"
    DECIMAL_3 = "decimal_3"


class MetricConfigError(ValueError):
    """
    Raised when a metric registry is structurally invalid.

    ``metrics`` lists the offending metric names so callers can report them.
    """

    def __init__(self, message: str, metrics: Iterable[str] = ()) -> None:
        self.metrics = tuple(sorted(metrics))
        super().__init__(message)


@dataclass(frozen=True)
class MetricDefinition:
    """
    One registry entry.

    Base measures carry ``source_column``; every other kind carries a
    parsed ``expression`` together with its declared ``dependencies``.
    """

    name: str
    kind: str
    label: str = ""
    source_column: str | None = None
    formula: str | None = None
    expression: Expression | None = None
    dependencies: tuple[str, ...] = ()
    format: str = MetricFormat.INTEGER_WITH_COMMA

    @property
    def is_base(self) -> bool:
        return self.kind == MetricKind.BASE_MEASURE

    @property
    def is_percentage(self) -> bool:
        return self.format == MetricFormat.PERCENTAGE_2
