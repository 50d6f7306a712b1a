"""
dashboard/services package marker.
"""

from dashboard.services.export_service import ExportResult, rows_to_csv, to_tsv
from dashboard.services.filter_service import (
    FilterOptions,
    build_filter_options,
    filter_rows,
    matches,
)
from dashboard.services.ingestion_service import (
    CSVHeaderValidationError,
    CSVIngestionService,
    get_csv_ingestion_service,
)
from dashboard.services.kpi_service import KPICard, KPIReport, KPIService, weekly_trend
from dashboard.services.period_service import PeriodContext, resolve_period

__all__ = [
    "ExportResult",
    "rows_to_csv",
    "to_tsv",
    "FilterOptions",
    "build_filter_options",
    "filter_rows",
    "matches",
    "CSVHeaderValidationError",
    "CSVIngestionService",
    "get_csv_ingestion_service",
    "KPICard",
    "KPIReport",
    "KPIService",
    "weekly_trend",
    "PeriodContext",
    "resolve_period",
]
