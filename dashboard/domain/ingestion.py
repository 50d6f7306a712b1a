"""
dashboard/domain/ingestion.py

Domain models used by the CSV row loader.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dashboard.domain.rows import DataRow


@dataclass(frozen=True)
class RowValidationError:
    """
    One CSV row validation error detail.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class IngestionSummary:
    """
    End-of-run ingestion summary.
    """

    rows_processed: int
    rows_failed: int
    validation_errors: list[RowValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class IngestionResult:
    """
    Loaded rows plus the summary describing what was skipped.
    """

    rows: tuple[DataRow, ...]
    summary: IngestionSummary
