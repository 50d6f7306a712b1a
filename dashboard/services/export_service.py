"""
dashboard/services/export_service.py

Tabular export helpers.

Two shapes are produced:

    to_tsv       : tab/newline join of already-formatted display cells, the
                   clipboard format for chart tables.
    rows_to_csv  : the loaded rows re-serialised under ``CSV_HEADERS``, so an
                   exported file loads back through the ingestion service.

No number formatting happens here; callers pass display strings.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from dashboard.domain.rows import CSV_HEADERS, DataRow


@dataclass
class ExportResult:
    """
    Flat tabular data ready for CSV or TSV serialisation.

    Attributes
    ----------
    rows:   Flat dict per row.
    fields: Ordered column names.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)

    def records(self) -> list[list[Any]]:
        return [[row.get(name) for name in self.fields] for row in self.rows]


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_tsv(header: Sequence[str], records: Iterable[Sequence[Any]]) -> str:
    """Join *header* and *records* with tabs and newlines."""
    lines = ["\t".join(_cell(cell) for cell in header)]
    lines.extend("\t".join(_cell(cell) for cell in record) for record in records)
    return "\n".join(lines)


def export_rows(rows: Iterable[DataRow]) -> ExportResult:
    return ExportResult(rows=[row.as_dict() for row in rows], fields=list(CSV_HEADERS))


def rows_to_csv(rows: Iterable[DataRow]) -> str:
    """
    Serialise rows under the ingestion header; ``None`` becomes an empty cell.
    """
    result = export_rows(rows)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")
    writer.writerow(result.fields)
    for record in result.records():
        writer.writerow([_cell(value) for value in record])
    return buffer.getvalue()
