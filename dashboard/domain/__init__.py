"""
dashboard/domain package marker.
"""

from dashboard.domain.filters import (
    FILTER_DIMENSIONS,
    DimensionFilter,
    FilterSpec,
    FilterState,
    PeriodMode,
    TimePeriod,
)
from dashboard.domain.ingestion import IngestionResult, IngestionSummary, RowValidationError
from dashboard.domain.rows import CSV_HEADERS, MEASURE_COLUMNS, DataRow, missing_label

__all__ = [
    "FILTER_DIMENSIONS",
    "DimensionFilter",
    "FilterSpec",
    "FilterState",
    "PeriodMode",
    "TimePeriod",
    "IngestionResult",
    "IngestionSummary",
    "RowValidationError",
    "CSV_HEADERS",
    "MEASURE_COLUMNS",
    "DataRow",
    "missing_label",
]
