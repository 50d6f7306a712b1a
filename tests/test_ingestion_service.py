"""
tests/test_ingestion_service.py

Pytest unit tests for CSV ingestion.

Coverage
--------
- Valid rows parse into typed DataRow values
- Header mismatch / missing header raise CSVHeaderValidationError
- Header-only files load as empty
- Invalid numeric rows are skipped and reported
- Completely empty rows are ignored silently
- Energy / transfer aliases normalize to canonical labels
- max_validation_errors caps captured errors, not the failure count
"""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from dashboard.domain.rows import CSV_HEADERS
from dashboard.services.export_service import rows_to_csv
from dashboard.services.ingestion_service import CSVHeaderValidationError, CSVIngestionService
from dashboard.validators.csv_validator import normalize_alias


def _line(**values: str) -> str:
    return ",".join(values.get(column, "") for column in CSV_HEADERS)


def _csv(*lines: str, header: str | None = None) -> io.StringIO:
    head = ",".join(CSV_HEADERS) if header is None else header
    return io.StringIO("\n".join([head, *lines]) + "\n")


@pytest.fixture()
def svc() -> CSVIngestionService:
    return CSVIngestionService(max_validation_errors=50, log_validation_errors=False)


class TestParseRows:
    def test_valid_row(self, svc: CSVIngestionService) -> None:
        stream = _csv(
            _line(
                policy_start_year="2025",
                third_level_organization=" 天府 ",
                signed_premium_yuan="1234.5",
                policy_count="3",
                week_number="38",
                is_new_energy_vehicle="是",
            )
        )
        result = svc.parse_rows(stream)

        assert result.summary.rows_processed == 1
        assert result.summary.rows_failed == 0
        (row,) = result.rows
        assert row.policy_start_year == 2025
        assert row.week_number == 38
        assert row.third_level_organization == "天府"
        assert row.signed_premium_yuan == pytest.approx(1234.5)
        assert row.policy_count == pytest.approx(3.0)
        assert row.is_new_energy_vehicle == "新能源"
        assert row.matured_premium_yuan is None

    def test_header_only_is_empty(self, svc: CSVIngestionService) -> None:
        result = svc.parse_rows(_csv())
        assert result.rows == ()
        assert result.summary.rows_processed == 0

    def test_missing_header_raises(self, svc: CSVIngestionService) -> None:
        with pytest.raises(CSVHeaderValidationError):
            svc.parse_rows(io.StringIO(""))

    def test_header_mismatch_raises(self, svc: CSVIngestionService) -> None:
        header = ",".join(CSV_HEADERS[:-1])
        with pytest.raises(CSVHeaderValidationError) as excinfo:
            svc.parse_rows(_csv(header=header))
        assert "week_number" in str(excinfo.value)

    def test_reordered_header_raises(self, svc: CSVIngestionService) -> None:
        header = ",".join(reversed(CSV_HEADERS))
        with pytest.raises(CSVHeaderValidationError):
            svc.parse_rows(_csv(header=header))

    def test_header_error_is_value_error(self, svc: CSVIngestionService) -> None:
        with pytest.raises(ValueError):
            svc.parse_rows(_csv(header="a,b,c"))

    def test_invalid_number_skips_row(self, svc: CSVIngestionService) -> None:
        stream = _csv(
            _line(signed_premium_yuan="abc", week_number="38"),
            _line(signed_premium_yuan="10", week_number="38"),
        )
        result = svc.parse_rows(stream)

        assert result.summary.rows_processed == 1
        assert result.summary.rows_failed == 1
        (error,) = result.summary.validation_errors
        assert error.row_number == 2
        assert error.column == "signed_premium_yuan"
        assert error.value == "abc"

    @pytest.mark.parametrize("value", ["nan", "inf", "-Infinity"])
    def test_non_finite_numbers_are_rejected(self, svc: CSVIngestionService, value: str) -> None:
        result = svc.parse_rows(_csv(_line(expense_amount_yuan=value)))
        assert result.rows == ()
        assert result.summary.rows_failed == 1

    def test_fractional_week_is_rejected(self, svc: CSVIngestionService) -> None:
        result = svc.parse_rows(_csv(_line(week_number="38.5")))
        assert result.summary.rows_failed == 1
        assert result.summary.validation_errors[0].column == "week_number"

    def test_completely_empty_rows_are_ignored(self, svc: CSVIngestionService) -> None:
        stream = _csv(_line(), _line(week_number="37"), "")
        result = svc.parse_rows(stream)
        assert result.summary.rows_processed == 1
        assert result.summary.rows_failed == 0

    def test_error_capture_is_capped(self) -> None:
        svc = CSVIngestionService(max_validation_errors=2, log_validation_errors=False)
        stream = _csv(*[_line(policy_count="x") for _ in range(5)])
        result = svc.parse_rows(stream)
        assert result.summary.rows_failed == 5
        assert len(result.summary.validation_errors) == 2

    def test_validation_errors_are_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        svc = CSVIngestionService(max_validation_errors=5, log_validation_errors=True)
        with caplog.at_level("WARNING"):
            svc.parse_rows(_csv(_line(policy_count="x")))
        assert "CSV validation error" in caplog.text


class TestReadRows:
    def test_reads_utf8_with_bom(self, svc: CSVIngestionService, tmp_path: Path) -> None:
        path = tmp_path / "extract.csv"
        content = _csv(_line(week_number="12", terminal_source="APP")).getvalue()
        path.write_text(content, encoding="utf-8-sig")

        result = svc.read_rows(path)
        assert [row.terminal_source for row in result.rows] == ["APP"]

    def test_non_utf8_raises_header_error(self, svc: CSVIngestionService, tmp_path: Path) -> None:
        path = tmp_path / "extract.csv"
        path.write_bytes(",".join(CSV_HEADERS).encode("utf-8") + b"\n\xff\xfe\xfa\n")
        with pytest.raises(CSVHeaderValidationError):
            svc.read_rows(path)

    def test_export_loads_back(self, svc: CSVIngestionService) -> None:
        original = svc.parse_rows(
            _csv(_line(week_number="38", signed_premium_yuan="10.5", is_transferred_vehicle="否"))
        ).rows
        reloaded = svc.parse_rows(io.StringIO(rows_to_csv(original))).rows
        assert reloaded == original


class TestAliases:
    @pytest.mark.parametrize(
        "raw, expected",
        [("是", "新能源"), ("TRUE", "新能源"), ("0", "燃油"), ("非新能源", "燃油"), ("混动", "混动")],
    )
    def test_energy_aliases(self, raw: str, expected: str) -> None:
        assert normalize_alias("is_new_energy_vehicle", raw) == expected

    @pytest.mark.parametrize("raw, expected", [("是", "过户车"), ("否", "非过户车"), ("过户", "过户车")])
    def test_transfer_aliases(self, raw: str, expected: str) -> None:
        assert normalize_alias("is_transferred_vehicle", raw) == expected

    def test_other_columns_untouched(self) -> None:
        assert normalize_alias("insurance_type", "是") == "是"
        assert normalize_alias("is_new_energy_vehicle", None) is None
