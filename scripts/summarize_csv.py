"""
Summarize a weekly policy extract from CLI.
"""

from __future__ import annotations

import argparse
import dataclasses
import json

from dashboard.config import configure_logging
from dashboard.domain.rows import DIMENSION_LABELS
from dashboard.schemas.filters import FilterPayload
from dashboard.schemas.ingestion import CSVIngestionSummaryResponse
from dashboard.services.export_service import to_tsv
from dashboard.services.ingestion_service import read_rows
from dashboard.services.kpi_service import KPIService
from dashboard.services.period_service import resolve_period
from segmentation.comparison import DEFAULT_COMPARISON_METRIC, get_comparison_metric
from segmentation.orchestrator import (
    build_comparison_series,
    build_expense_series,
    comparison_table,
    expense_table,
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Print KPI cards for a weekly extract CSV.")
    parser.add_argument("csv_path", help="Path to the weekly extract CSV file.")
    parser.add_argument(
        "--mode",
        choices=("weekly", "ytd"),
        default="weekly",
        help="Comparison period mode.",
    )
    parser.add_argument(
        "--filters",
        dest="filters",
        default=None,
        help="Optional JSON filter document (camelCase keys).",
    )
    parser.add_argument(
        "--dimension",
        dest="dimension",
        choices=sorted(DIMENSION_LABELS),
        default=None,
        help="Optional dimension column; prints a comparison table as TSV.",
    )
    parser.add_argument(
        "--metric",
        dest="metric",
        default=DEFAULT_COMPARISON_METRIC,
        help="Comparison metric key used with --dimension.",
    )
    parser.add_argument(
        "--expense",
        action="store_true",
        help="With --dimension, print the expense contribution table instead.",
    )
    args = parser.parse_args()

    configure_logging()
    result = read_rows(args.csv_path)
    payload = FilterPayload.model_validate_json(args.filters) if args.filters else FilterPayload()
    context = resolve_period(result.rows, payload.to_filter_spec(), mode=args.mode)
    report = KPIService().build_report(context)

    output = {
        "ingestion": CSVIngestionSummaryResponse.from_summary(result.summary).model_dump(),
        "current_week": context.current_week,
        "previous_week": context.previous_week,
        "cards": {key: dataclasses.asdict(card) for key, card in report.cards.items()},
        "trend": [dataclasses.asdict(point) for point in report.chart],
    }
    print(json.dumps(output, indent=2, ensure_ascii=False))

    if args.dimension:
        if args.expense:
            header, records = expense_table(build_expense_series(context.trend_rows, args.dimension))
        else:
            metric = get_comparison_metric(args.metric)
            bars = build_comparison_series(context.trend_rows, args.dimension, metric.key)
            header, records = comparison_table(bars, metric)
        print(to_tsv(header, records))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
