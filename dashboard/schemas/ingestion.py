"""
dashboard/schemas/ingestion.py

Serialisable ingestion summary.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from dashboard.domain.ingestion import IngestionSummary


class CSVValidationErrorResponse(BaseModel):
    """
    One row-level validation error.
    """

    row_number: int = Field(..., ge=1)
    message: str
    column: str | None = None
    value: str | None = None


class CSVIngestionSummaryResponse(BaseModel):
    """
    CSV ingestion summary.
    """

    rows_processed: int = Field(..., ge=0)
    rows_failed: int = Field(..., ge=0)
    validation_errors: list[CSVValidationErrorResponse] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: IngestionSummary) -> "CSVIngestionSummaryResponse":
        return cls(
            rows_processed=summary.rows_processed,
            rows_failed=summary.rows_failed,
            validation_errors=[
                CSVValidationErrorResponse(
                    row_number=error.row_number,
                    message=error.message,
                    column=error.column,
                    value=error.value,
                )
                for error in summary.validation_errors
            ],
        )
