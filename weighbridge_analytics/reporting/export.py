"""
Export helpers for spreadsheet and manual analysis.

All writers create parent directories and return the written ``Path``.
They accept generic ``list[dict]`` rows; the ``*_rows`` adapters flatten
engine outputs into such rows so a CSV loads in Excel without unpivoting.
"""

from __future__ import annotations

import csv
import json
from dataclasses import asdict
from pathlib import Path
from typing import Sequence

from weighbridge_analytics.aggregation.comparison import ComparisonKPI
from weighbridge_analytics.models.analytics import BenchmarkEntry, CorrelationResult, ForecastPoint


def export_to_csv(
    records: list[dict],
    path: Path,
    fieldnames: list[str] | None = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file.

    Args:
        records:    List of row dicts.
        path:       Destination file path.
        fieldnames: Column order.  If None, uses the keys of the first record.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if not records:
        path.write_text("", encoding="utf-8")
        return path
    cols = fieldnames or list(records[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    return path


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` as pretty-printed JSON (dates serialised as ISO strings)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path


def forecast_rows(points: Sequence[ForecastPoint]) -> list[dict]:
    return [p.model_dump(mode="json") for p in points]


def benchmark_rows(entries: Sequence[BenchmarkEntry]) -> list[dict]:
    """One row per location with a 1-based ``rank`` column first."""
    return [{"rank": i, **e.model_dump(mode="json")} for i, e in enumerate(entries, start=1)]


def correlation_rows(result: CorrelationResult) -> list[dict]:
    """One row per analysed day: date, x, y, fitted value, residual, outlier flag."""
    return [p.model_dump(mode="json") for p in result.points]


def comparison_rows(kpis: Sequence[ComparisonKPI]) -> list[dict]:
    return [asdict(k) for k in kpis]
