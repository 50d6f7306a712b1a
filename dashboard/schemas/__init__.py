"""
dashboard/schemas package marker.
"""

from dashboard.schemas.filters import FilterPayload
from dashboard.schemas.ingestion import CSVIngestionSummaryResponse, CSVValidationErrorResponse

__all__ = [
    "FilterPayload",
    "CSVIngestionSummaryResponse",
    "CSVValidationErrorResponse",
]
