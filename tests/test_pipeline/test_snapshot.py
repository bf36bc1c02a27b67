"""
Tests for the end-to-end analytics snapshot.
"""

from __future__ import annotations

from datetime import date

import pytest

from weighbridge_analytics.config import AppConfig
from weighbridge_analytics.filtering.record_filter import LocationFacet, TimeWindow
from weighbridge_analytics.forecast.engine import ForecastParams
from weighbridge_analytics.models.record import PriceEntry
from weighbridge_analytics.pipeline.snapshot import build_snapshot
from weighbridge_analytics.taxonomy.engine_taxonomy import ForecastModel, WeatherCondition


class TestBuildSnapshot:
    def test_week_window(self, sample_records):
        snap = build_snapshot(sample_records, TimeWindow.current_week(date(2026, 1, 14)))
        assert snap.window.start == date(2026, 1, 12)
        assert len(snap.daily) == 7
        assert snap.stats.dynamic_target == 240_000
        assert len(snap.forecast) == 7
        assert snap.comparison and len(snap.comparison) == 5
        assert snap.correlation is None
        assert snap.correlation_cells == []

    def test_stats_match_subset(self, sample_records):
        snap = build_snapshot(
            sample_records, TimeWindow.all_time(), LocationFacet.region("BINTUHAN")
        )
        assert snap.record_count == 10
        assert snap.stats.total_weight == pytest.approx(45_000.0)
        assert [e.name for e in snap.benchmark] == ["AFD F"]
        assert snap.comparison == []

    def test_with_factors(self, sample_records, sample_factors):
        snap = build_snapshot(
            sample_records,
            TimeWindow.all_time(),
            factors=sample_factors,
            model=ForecastModel.HYBRID,
            horizon_days=3,
            params=ForecastParams(weather_override=WeatherCondition.CLEAR),
            lag_days=1,
        )
        assert snap.correlation is not None
        assert snap.correlation.lag_days == 1
        assert snap.correlation.n == 13
        assert len(snap.correlation_cells) == 36
        assert len(snap.forecast) == 3

    def test_price_entries_without_daily_factors(self, sample_records):
        prices = [
            PriceEntry(effective_date=date(2026, 1, 1), price=2500.0),
            PriceEntry(effective_date=date(2026, 1, 12), price=2650.0),
        ]
        snap = build_snapshot(
            sample_records, TimeWindow.all_time(), prices=prices, x_metric="price", y_metric="weight",
        )
        assert snap.correlation is not None
        assert snap.correlation.n == 14
        assert len(snap.correlation_cells) == 36

    def test_empty_window(self, sample_records):
        snap = build_snapshot(sample_records, TimeWindow.day(date(2030, 1, 1)))
        assert snap.record_count == 0
        assert snap.forecast == []
        assert snap.benchmark == []
        assert snap.stats.total_weight == 0

    def test_config_defaults_used(self, sample_records):
        config = AppConfig.model_validate({"forecast": {"horizon_days": 2}})
        snap = build_snapshot(sample_records, TimeWindow.all_time(), config=config)
        assert len(snap.forecast) == 2

    def test_idempotent(self, sample_records, sample_factors):
        window = TimeWindow.current_month(date(2026, 1, 10))
        a = build_snapshot(sample_records, window, factors=sample_factors)
        b = build_snapshot(sample_records, window, factors=sample_factors)
        assert a == b

    def test_unknown_model_raises(self, sample_records):
        with pytest.raises(ValueError):
            build_snapshot(sample_records, TimeWindow.all_time(), model="arima")
