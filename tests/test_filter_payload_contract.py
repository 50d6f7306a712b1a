import json

import pytest
from pydantic import ValidationError

from dashboard.domain.filters import FilterSpec, FilterState
from dashboard.domain.ingestion import IngestionSummary, RowValidationError
from dashboard.schemas.filters import FilterPayload
from dashboard.schemas.ingestion import CSVIngestionSummaryResponse


def _payload() -> dict:
    return {
        "year": 2025,
        "region": ["天府"],
        "businessTypes": [],
        "energyTypes": None,
        "weekNumber": [38, "37"],
    }


def test_filter_payload_contract() -> None:
    payload = FilterPayload.model_validate(_payload())

    assert payload.year == "2025"
    assert payload.week_number == ["38", "37"]

    spec = payload.to_filter_spec()
    assert spec.region.to_selection() == ["天府"]
    assert spec.business_types.state == FilterState.EXCLUDE_ALL
    assert spec.energy_types.is_unconstrained
    assert spec.week_number == ("38", "37")

    serialized = json.loads(payload.model_dump_json(by_alias=True))
    assert serialized["businessTypes"] == []
    assert serialized["energyTypes"] is None


def test_filter_payload_rejects_extra_fields() -> None:
    data = _payload()
    data["colour"] = ["red"]
    with pytest.raises(ValidationError):
        FilterPayload.model_validate(data)


def test_filter_payload_round_trips_spec() -> None:
    spec = FilterSpec.from_selections(region=[], insurance_types=["交强险"], year="2024")
    payload = FilterPayload.from_filter_spec(spec)

    assert payload.region == []
    assert payload.insurance_types == ["交强险"]
    assert payload.to_filter_spec() == spec


def test_empty_payload_is_unconstrained() -> None:
    assert FilterPayload().to_filter_spec() == FilterSpec()


def test_ingestion_summary_response_contract() -> None:
    summary = IngestionSummary(
        rows_processed=3,
        rows_failed=1,
        validation_errors=[
            RowValidationError(row_number=4, message="Invalid numeric value.", column="policy_count", value="x")
        ],
    )
    response = CSVIngestionSummaryResponse.from_summary(summary)

    parsed = json.loads(response.model_dump_json())
    assert set(parsed) == {"rows_processed", "rows_failed", "validation_errors"}
    assert parsed["validation_errors"][0]["column"] == "policy_count"
