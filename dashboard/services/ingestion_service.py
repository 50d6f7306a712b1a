"""
dashboard/services/ingestion_service.py

CSV loading for weekly policy extracts.

The header must equal ``CSV_HEADERS`` exactly (order included). Rows with
invalid numeric values are skipped and reported in the summary; they never
abort the load.
"""

from __future__ import annotations

import csv
import logging
from functools import lru_cache
from pathlib import Path
from typing import IO

from dashboard.config import get_csv_ingestion_settings, register_settings_dependent
from dashboard.domain.ingestion import IngestionResult, IngestionSummary, RowValidationError
from dashboard.domain.rows import CSV_HEADERS, DataRow
from dashboard.logging_utils import log_event
from dashboard.validators.csv_validator import CSVRowValidator

logger = logging.getLogger(__name__)


class CSVHeaderValidationError(ValueError):
    """
    Raised when CSV shape/header validation fails.
    """


class CSVIngestionService:
    """
    Coordinates CSV parsing and row validation.
    """

    def __init__(
        self,
        *,
        max_validation_errors: int,
        log_validation_errors: bool,
        validator: CSVRowValidator | None = None,
    ) -> None:
        self._max_validation_errors = max(1, max_validation_errors)
        self._log_validation_errors = log_validation_errors
        self._validator = validator or CSVRowValidator()

    def read_rows(self, path: str | Path) -> IngestionResult:
        """
        Load rows from the CSV file at *path* (UTF-8, optional BOM).
        """
        try:
            with open(path, encoding="utf-8-sig", newline="") as handle:
                return self.parse_rows(handle)
        except UnicodeDecodeError as exc:
            raise CSVHeaderValidationError("CSV must be UTF-8 encoded.") from exc

    def parse_rows(self, text_stream: IO[str]) -> IngestionResult:
        """
        Parse rows from an open text stream.

        Raises
        ------
        CSVHeaderValidationError
            When the header row is missing or differs from ``CSV_HEADERS``,
            or the stream is not valid CSV.
        """
        rows: list[DataRow] = []
        rows_failed = 0
        captured_errors: list[RowValidationError] = []

        try:
            reader = csv.DictReader(text_stream)
            headers = [header.strip() for header in (reader.fieldnames or [])]
            if not headers:
                raise CSVHeaderValidationError("CSV header row is missing.")
            if tuple(headers) != CSV_HEADERS:
                missing = [column for column in CSV_HEADERS if column not in headers]
                unexpected = [column for column in headers if column not in CSV_HEADERS]
                raise CSVHeaderValidationError(
                    "CSV header does not match the expected template. "
                    f"Missing: {missing or 'none'}; unexpected: {unexpected or 'none'}."
                )
            reader.fieldnames = headers

            for row_number, raw_row in enumerate(reader, start=2):
                if self._validator.is_completely_empty_row(raw_row):
                    continue

                parsed_row, row_errors = self._validator.validate_row(
                    raw_row=raw_row,
                    row_number=row_number,
                )
                if row_errors or parsed_row is None:
                    rows_failed += 1
                    for error in row_errors:
                        self._record_error(captured_errors, error)
                    continue
                rows.append(parsed_row)

        except csv.Error as exc:
            raise CSVHeaderValidationError(f"Invalid CSV format: {exc}") from exc

        summary = IngestionSummary(
            rows_processed=len(rows),
            rows_failed=rows_failed,
            validation_errors=captured_errors,
        )
        log_event(
            logger,
            logging.INFO,
            "csv_rows_loaded",
            rows_processed=summary.rows_processed,
            rows_failed=summary.rows_failed,
        )
        return IngestionResult(rows=tuple(rows), summary=summary)

    def _record_error(
        self,
        captured_errors: list[RowValidationError],
        error: RowValidationError,
    ) -> None:
        if self._log_validation_errors:
            logger.warning(
                "CSV validation error row=%s column=%s message=%s value=%r",
                error.row_number,
                error.column,
                error.message,
                error.value,
            )

        if len(captured_errors) < self._max_validation_errors:
            captured_errors.append(error)


@lru_cache(maxsize=1)
def get_csv_ingestion_service() -> CSVIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """
    settings = get_csv_ingestion_settings()
    return CSVIngestionService(
        max_validation_errors=settings.max_validation_errors,
        log_validation_errors=settings.log_validation_errors,
    )


register_settings_dependent(get_csv_ingestion_service.cache_clear)


def read_rows(path: str | Path) -> IngestionResult:
    return get_csv_ingestion_service().read_rows(path)


def parse_rows(text_stream: IO[str]) -> IngestionResult:
    return get_csv_ingestion_service().parse_rows(text_stream)
