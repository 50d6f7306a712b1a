"""
dashboard/validators/csv_validator.py

Row-level validation and type parsing for weekly extract CSV rows.
"""

from __future__ import annotations

import math
from typing import Any, Final, Mapping

from dashboard.domain.ingestion import RowValidationError
from dashboard.domain.rows import CSV_HEADERS, NUMERIC_COLUMNS, DataRow

INTEGER_COLUMNS: Final[frozenset[str]] = frozenset({"policy_start_year", "week_number"})

ENERGY_NEW: Final[str] = "新能源"
ENERGY_FUEL: Final[str] = "燃油"
TRANSFERRED: Final[str] = "过户车"
NOT_TRANSFERRED: Final[str] = "非过户车"

ENERGY_ALIASES: Final[dict[str, str]] = {
    "是": ENERGY_NEW,
    "true": ENERGY_NEW,
    "1": ENERGY_NEW,
    "新能源": ENERGY_NEW,
    "否": ENERGY_FUEL,
    "false": ENERGY_FUEL,
    "0": ENERGY_FUEL,
    "燃油": ENERGY_FUEL,
    "非新能源": ENERGY_FUEL,
}

TRANSFER_ALIASES: Final[dict[str, str]] = {
    "是": TRANSFERRED,
    "true": TRANSFERRED,
    "1": TRANSFERRED,
    "过户": TRANSFERRED,
    "过户车": TRANSFERRED,
    "否": NOT_TRANSFERRED,
    "false": NOT_TRANSFERRED,
    "0": NOT_TRANSFERRED,
    "非过户": NOT_TRANSFERRED,
    "非过户车": NOT_TRANSFERRED,
}

ALIASED_COLUMNS: Final[dict[str, dict[str, str]]] = {
    "is_new_energy_vehicle": ENERGY_ALIASES,
    "is_transferred_vehicle": TRANSFER_ALIASES,
}


def normalize_alias(column: str, value: str | None) -> str | None:
    """
    Map boolean-like spellings of the energy / transfer flags to their
    canonical labels. Unknown spellings are returned trimmed.
    """
    if value is None:
        return None
    aliases = ALIASED_COLUMNS.get(column)
    if aliases is None:
        return value
    return aliases.get(value.strip().lower(), value)


class CSVRowValidator:
    """
    Validates and parses raw CSV rows into ``DataRow`` instances.
    """

    def is_completely_empty_row(self, row: Mapping[str, Any]) -> bool:
        """
        Return True when all values in the row are empty or whitespace.
        """

        return all(self._is_blank(value) for value in row.values())

    def validate_row(
        self,
        *,
        raw_row: Mapping[str, str | None],
        row_number: int,
    ) -> tuple[DataRow | None, list[RowValidationError]]:
        """
        Parse one CSV row.

        Numeric columns: blank -> ``None``; unparseable or non-finite ->
        validation error (the row is rejected). Text columns are trimmed,
        blank -> ``None``; the energy / transfer flags are alias-normalized.
        """

        errors: list[RowValidationError] = []
        values: dict[str, Any] = {}

        for column in CSV_HEADERS:
            raw_value = raw_row.get(column)
            if column in NUMERIC_COLUMNS:
                values[column] = self._parse_number(
                    value=raw_value,
                    column=column,
                    row_number=row_number,
                    errors=errors,
                )
            else:
                values[column] = normalize_alias(column, self._parse_optional_string(raw_value))

        if errors:
            return None, errors
        return DataRow(**values), []

    def _parse_number(
        self,
        *,
        value: Any,
        column: str,
        row_number: int,
        errors: list[RowValidationError],
    ) -> float | int | None:
        if self._is_blank(value):
            return None

        text = str(value).strip()
        try:
            number = float(text)
        except ValueError:
            number = math.nan

        if not math.isfinite(number):
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column=column,
                    message="Invalid numeric value.",
                    value=text,
                )
            )
            return None

        if column in INTEGER_COLUMNS:
            if not number.is_integer():
                errors.append(
                    RowValidationError(
                        row_number=row_number,
                        column=column,
                        message="Expected an integer value.",
                        value=text,
                    )
                )
                return None
            return int(number)
        return number

    def _parse_optional_string(self, value: Any) -> str | None:
        if self._is_blank(value):
            return None
        return str(value).strip()

    def _is_blank(self, value: Any) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())
