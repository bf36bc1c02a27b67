"""
Tests for CSV/JSON export helpers.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from pathlib import Path

from weighbridge_analytics.benchmark.scorer import location_aggregates, score
from weighbridge_analytics.forecast.engine import project
from weighbridge_analytics.reporting.export import (
    benchmark_rows,
    export_to_csv,
    export_to_json,
    forecast_rows,
)
from weighbridge_analytics.taxonomy.engine_taxonomy import ForecastModel


class TestExport:
    def test_csv_round_trip_columns(self, tmp_path: Path, sample_records):
        rows = benchmark_rows(score(location_aggregates(sample_records)))
        path = export_to_csv(rows, tmp_path / "out" / "benchmark.csv")
        with path.open(encoding="utf-8", newline="") as f:
            read = list(csv.DictReader(f))
        assert read[0]["rank"] == "1"
        assert read[0]["name"] == "AFD A"
        assert len(read) == len(rows)

    def test_empty_csv(self, tmp_path: Path):
        path = export_to_csv([], tmp_path / "empty.csv")
        assert path.read_text(encoding="utf-8") == ""

    def test_json_dates_as_iso(self, tmp_path: Path):
        points = project([(date(2026, 1, 1), 100.0), (date(2026, 1, 2), 200.0)], 1, ForecastModel.LINEAR_REG)
        path = export_to_json(forecast_rows(points), tmp_path / "forecast.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data[0]["target_date"] == "2026-01-03"
        assert data[0]["predicted_value"] == 300.0
