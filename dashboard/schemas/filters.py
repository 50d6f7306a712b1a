"""
dashboard/schemas/filters.py

JSON-facing filter payload.

Field semantics match ``FilterSpec``: a missing or ``null`` list leaves the
dimension unconstrained, an empty list excludes every row.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dashboard.domain.filters import FILTER_DIMENSIONS, FilterSpec


class FilterPayload(BaseModel):
    """
    camelCase filter document as exchanged with clients and saved views.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    year: str | None = None
    region: list[str] | None = None
    insurance_types: list[str] | None = Field(default=None, alias="insuranceTypes")
    business_types: list[str] | None = Field(default=None, alias="businessTypes")
    customer_categories: list[str] | None = Field(default=None, alias="customerCategories")
    energy_types: list[str] | None = Field(default=None, alias="energyTypes")
    transferred_status: list[str] | None = Field(default=None, alias="transferredStatus")
    coverage_types: list[str] | None = Field(default=None, alias="coverageTypes")
    renewal_statuses: list[str] | None = Field(default=None, alias="renewalStatuses")
    terminal_sources: list[str] | None = Field(default=None, alias="terminalSources")
    week_number: list[str] | None = Field(default=None, alias="weekNumber")

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("week_number", mode="before")
    @classmethod
    def _coerce_weeks(cls, value: object) -> object:
        if isinstance(value, list):
            return [str(item) if isinstance(item, int) else item for item in value]
        return value

    def to_filter_spec(self) -> FilterSpec:
        return FilterSpec.from_selections(**self.model_dump(by_alias=False))

    @classmethod
    def from_filter_spec(cls, spec: FilterSpec) -> "FilterPayload":
        selections: dict[str, object] = {
            name: getattr(spec, name).to_selection() for name in FILTER_DIMENSIONS
        }
        selections["year"] = spec.year
        selections["week_number"] = list(spec.week_number) if spec.week_number is not None else None
        return cls.model_validate(selections)
