"""
metrics/registry.py

Metric registry: document schema, validation and loading.

A registry document has four definition sections plus formatting rules::

    {
      "base_measures":     {name: {"source_column": ..., "label": ...}},
      "ratio_metrics":     {name: {"formula": ..., "dependencies": [...], "format": ...}},
      "derived_measures":  {...},
      "composite_metrics": {...},
      "formatting_rules":  {"null_placeholder": "-", "percentage_2": {...}, ...}
    }

Validation on build
-------------------
* metric names are unique across sections;
* every formula parses (``FormulaSyntaxError`` is wrapped);
* ratio metrics reference base measures only;
* no formula references an unknown name;
* the dependency graph over non-base metrics is acyclic (Kahn's algorithm).

The last three checks raise ``MetricConfigError`` in strict mode and are
logged and left to evaluation time otherwise.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dashboard.config import get_dashboard_settings, register_settings_dependent
from dashboard.domain.rows import MEASURE_COLUMNS
from metrics.base import (
    FORMULA_KINDS,
    MetricConfigError,
    MetricDefinition,
    MetricFormat,
    MetricKind,
)
from metrics.defaults import DEFAULT_METRICS_CONFIG
from metrics.expression import FormulaSyntaxError, parse_formula

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Document schema
# ---------------------------------------------------------------------------


class BaseMeasureConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    source_column: str = Field(..., min_length=1)
    label: str = ""


class FormulaMetricConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    formula: str = Field(..., min_length=1)
    dependencies: list[str] = Field(default_factory=list)
    format: str = MetricFormat.INTEGER_WITH_COMMA
    label: str = ""


class PercentageRule(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    multiplier: float = 100.0
    format_string: str = "{:.2f}%"


class NumberRule(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    format_string: str


class FormattingRules(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    null_placeholder: str = "-"
    percentage_2: PercentageRule = Field(default_factory=PercentageRule)
    integer_with_comma: NumberRule = Field(
        default_factory=lambda: NumberRule(format_string="{:,.0f}")
    )
    decimal_3: NumberRule = Field(default_factory=lambda: NumberRule(format_string="{:.3f}"))


class MetricsConfig(BaseModel):
    """
    Validated registry document.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    base_measures: dict[str, BaseMeasureConfig] = Field(default_factory=dict)
    ratio_metrics: dict[str, FormulaMetricConfig] = Field(default_factory=dict)
    derived_measures: dict[str, FormulaMetricConfig] = Field(default_factory=dict)
    composite_metrics: dict[str, FormulaMetricConfig] = Field(default_factory=dict)
    formatting_rules: FormattingRules = Field(default_factory=FormattingRules)


_SECTION_KINDS: dict[str, str] = {
    "ratio_metrics": MetricKind.RATIO_METRIC,
    "derived_measures": MetricKind.DERIVED_MEASURE,
    "composite_metrics": MetricKind.COMPOSITE_METRIC,
}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class MetricRegistry:
    """
    Immutable lookup of metric definitions by name.
    """

    def __init__(
        self,
        definitions: Mapping[str, MetricDefinition],
        formatting: FormattingRules,
    ) -> None:
        self._definitions = dict(definitions)
        self.formatting = formatting

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def get(self, name: str) -> MetricDefinition | None:
        return self._definitions.get(name)

    def base_measures(self) -> list[MetricDefinition]:
        return [d for d in self._definitions.values() if d.is_base]


def build_registry(config: MetricsConfig, *, strict: bool = True) -> MetricRegistry:
    """
    Turn a validated document into a :class:`MetricRegistry`.

    Raises
    ------
    MetricConfigError
        Duplicate names or unparseable formulas (always); ratio metrics over
        non-base names, unknown references and dependency cycles (strict only).
    """
    definitions: dict[str, MetricDefinition] = {}

    for name, measure in config.base_measures.items():
        if measure.source_column not in MEASURE_COLUMNS:
            logger.warning(
                "Base measure '%s' sums non-measure column '%s'.", name, measure.source_column
            )
        definitions[name] = MetricDefinition(
            name=name,
            kind=MetricKind.BASE_MEASURE,
            label=measure.label or name,
            source_column=measure.source_column,
        )

    for section, kind in _SECTION_KINDS.items():
        for name, metric in getattr(config, section).items():
            if name in definitions:
                raise MetricConfigError(f"Metric '{name}' is defined more than once.", [name])
            try:
                expression = parse_formula(metric.formula)
            except FormulaSyntaxError as exc:
                raise MetricConfigError(str(exc), [name]) from exc
            definitions[name] = MetricDefinition(
                name=name,
                kind=kind,
                label=metric.label or name,
                formula=metric.formula,
                expression=expression,
                dependencies=tuple(metric.dependencies),
                format=metric.format,
            )

    problems = _reference_problems(definitions)
    cyclic = find_cycle_members(definitions)
    if cyclic:
        problems.append((f"Cyclic metric dependencies: {', '.join(sorted(cyclic))}.", cyclic))

    for message, names in problems:
        if strict:
            raise MetricConfigError(message, names)
        logger.warning("%s Affected metrics evaluate to None.", message)

    logger.debug("Metric registry built with %d definitions.", len(definitions))
    return MetricRegistry(definitions, config.formatting_rules)


def metric_edges(definition: MetricDefinition) -> set[str]:
    """Names *definition* depends on: declared dependencies plus formula references."""
    if definition.expression is None:
        return set()
    return set(definition.dependencies) | set(definition.expression.references())


def find_cycle_members(definitions: Mapping[str, MetricDefinition]) -> set[str]:
    """
    Return the formula metrics that sit on, or depend on, a dependency cycle.

    Kahn's algorithm over the non-base subgraph: whatever cannot be
    topologically ordered is reported.
    """
    formula_names = {name for name, d in definitions.items() if not d.is_base}
    edges = {
        name: metric_edges(definitions[name]) & formula_names for name in formula_names
    }
    remaining = {name: len(deps) for name, deps in edges.items()}
    dependants: dict[str, set[str]] = {name: set() for name in formula_names}
    for name, deps in edges.items():
        for dep in deps:
            dependants[dep].add(name)

    ready = [name for name, count in remaining.items() if count == 0]
    while ready:
        name = ready.pop()
        for dependant in dependants[name]:
            remaining[dependant] -= 1
            if remaining[dependant] == 0:
                ready.append(dependant)
    return {name for name, count in remaining.items() if count > 0}


def _reference_problems(
    definitions: Mapping[str, MetricDefinition],
) -> list[tuple[str, set[str]]]:
    problems: list[tuple[str, set[str]]] = []
    for name, definition in definitions.items():
        if definition.is_base:
            continue
        referenced = metric_edges(definition)
        unknown = sorted(ref for ref in referenced if ref not in definitions)
        if unknown:
            problems.append(
                (f"Metric '{name}' references unknown names: {', '.join(unknown)}.", {name})
            )
        if definition.kind == MetricKind.RATIO_METRIC:
            non_base = sorted(
                ref for ref in referenced if ref in definitions and not definitions[ref].is_base
            )
            if non_base:
                problems.append(
                    (
                        f"Ratio metric '{name}' may only reference base measures, "
                        f"found: {', '.join(non_base)}.",
                        {name},
                    )
                )
    return problems


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def parse_metrics_config(document: Mapping[str, Any]) -> MetricsConfig:
    """Validate a raw registry document (pydantic ``ValidationError`` on bad shape)."""
    return MetricsConfig.model_validate(dict(document))


def _resolve_config_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (Path(__file__).resolve().parents[1] / candidate).resolve()


def load_registry(path: str | Path | None = None, *, strict: bool | None = None) -> MetricRegistry:
    """
    Build a registry from a JSON document at *path*, or the built-in one.

    *strict* defaults to ``DashboardSettings.strict_metrics``.

    Raises
    ------
    FileNotFoundError
        When *path* does not exist.
    MetricConfigError
        When the document fails registry validation.
    """
    if strict is None:
        strict = get_dashboard_settings().strict_metrics

    if path is None:
        document: Mapping[str, Any] = DEFAULT_METRICS_CONFIG
    else:
        resolved = _resolve_config_path(str(path))
        if not resolved.exists():
            raise FileNotFoundError(f"Metrics config file not found: {resolved}")
        document = json.loads(resolved.read_text(encoding="utf-8"))
        logger.info("Loading metrics config from %s", resolved)

    return build_registry(parse_metrics_config(document), strict=strict)


@lru_cache(maxsize=1)
def get_default_registry() -> MetricRegistry:
    """
    Return the cached registry selected by ``DASHBOARD_METRICS_CONFIG``.
    """
    settings = get_dashboard_settings()
    return load_registry(settings.metrics_config_path, strict=settings.strict_metrics)


register_settings_dependent(get_default_registry.cache_clear)
