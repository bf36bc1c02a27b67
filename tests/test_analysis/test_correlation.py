"""
Tests for Pearson correlation, lag pairing, residual anomalies and the matrix.
"""

from __future__ import annotations

import random
from datetime import date, timedelta

import pytest

from weighbridge_analytics.aggregation.daily import build_daily_aggregates
from weighbridge_analytics.analysis.correlation import (
    MATRIX_METRICS,
    analyze,
    analyze_pairs,
    build_factor_table,
    correlation_matrix,
    correlation_strength,
    lag_pairs,
    linear_fit,
    pearson,
)
from weighbridge_analytics.models.analytics import DailyAggregate
from weighbridge_analytics.models.record import ExternalFactor, PriceEntry
from weighbridge_analytics.taxonomy.engine_taxonomy import CorrelationMetric

D1, D2, D3 = date(2026, 1, 1), date(2026, 1, 2), date(2026, 1, 3)


def _daily(day: date, weight: float, bunches: int = 100) -> DailyAggregate:
    return DailyAggregate(
        obs_date=day,
        total_weight=weight,
        total_bunches=bunches,
        record_count=1,
        avg_dwell_minutes=30.0,
        quality_ratio=weight / bunches,
    )


class TestPearson:
    def test_perfect_positive(self):
        assert pearson([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)

    def test_perfect_negative(self):
        assert pearson([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)

    def test_constant_series_is_zero(self):
        assert pearson([1, 2, 3], [5, 5, 5]) == 0.0
        assert pearson([4, 4, 4], [1, 2, 3]) == 0.0

    def test_fewer_than_two(self):
        assert pearson([], []) == 0.0
        assert pearson([1], [1]) == 0.0

    def test_length_mismatch_raises(self):
        with pytest.raises(ValueError):
            pearson([1, 2], [1])

    def test_random_series_in_range(self):
        rng = random.Random(42)
        for _ in range(200):
            n = rng.randint(2, 30)
            xs = [rng.uniform(0, 1e6) for _ in range(n)]
            ys = [rng.uniform(0, 50) for _ in range(n)]
            assert -1.0 <= pearson(xs, ys) <= 1.0


class TestLinearFit:
    def test_exact(self):
        slope, intercept = linear_fit([0, 1, 2], [1, 3, 5])
        assert slope == pytest.approx(2.0)
        assert intercept == pytest.approx(1.0)

    def test_constant_x(self):
        assert linear_fit([2, 2], [4, 6]) == (0.0, 5.0)

    def test_empty(self):
        assert linear_fit([], []) == (0.0, 0.0)


class TestLagPairs:
    def test_lag_one_day(self):
        xs = {D1: 0.0, D2: 10.0, D3: 5.0}
        ys = {D1: 100.0, D2: 100.0, D3: 110.0}
        assert lag_pairs(xs, ys, 1) == [(D2, 0.0, 100.0), (D3, 10.0, 110.0)]

    def test_no_lag_same_day(self):
        xs = {D1: 1.0, D3: 3.0}
        ys = {D1: 10.0, D2: 20.0, D3: 30.0}
        assert lag_pairs(xs, ys) == [(D1, 1.0, 10.0), (D3, 3.0, 30.0)]

    def test_lag_past_calendar_start_drops_day(self):
        assert lag_pairs({D1: 1.0}, {D2: 2.0}, 10**7) == []
        assert lag_pairs({D1: 1.0}, {D2: 2.0}, -(10**7)) == []

    def test_lag_beyond_timedelta_range(self):
        assert lag_pairs({D1: 1.0}, {D2: 2.0}, 10**12) == []

    def test_out_of_range_day_skipped_others_kept(self):
        early = date(1, 1, 2)
        xs = {date(1, 1, 1): 5.0, D1: 1.0}
        ys = {early: 50.0, D2: 2.0}
        assert lag_pairs(xs, ys, 1) == [(early, 5.0, 50.0), (D2, 1.0, 2.0)]
        assert lag_pairs(xs, ys, 2) == []


class TestFactorTable:
    def test_union_of_dates_and_no_delivery_days(self):
        daily = [_daily(D1, 1000)]
        factors = {D2: ExternalFactor(obs_date=D2, rainfall_mm=12.0)}
        rows = build_factor_table(daily, factors)
        assert [r.obs_date for r in rows] == [D1, D2]
        assert rows[0].rainfall is None
        assert rows[1].weight == 0.0
        assert rows[1].quality_ratio is None
        assert rows[1].price is None

    def test_window_limits(self):
        rows = build_factor_table([_daily(D1, 1), _daily(D2, 2), _daily(D3, 3)], None, D2, D2)
        assert [r.obs_date for r in rows] == [D2]

    def test_prices_stepped_over_delivery_days(self):
        daily = [_daily(D1, 100), _daily(D2, 200), _daily(D3, 300)]
        factors = {D1: ExternalFactor(obs_date=D1, rainfall_mm=4.0)}
        prices = [
            PriceEntry(effective_date=D1, price=2500.0),
            PriceEntry(effective_date=D3, price=2650.0),
        ]
        rows = build_factor_table(daily, factors, prices=prices)
        assert [r.price for r in rows] == [2500.0, 2500.0, 2650.0]
        assert [r.rainfall for r in rows] == [4.0, None, None]

    def test_daily_price_wins_over_stepped_price(self):
        factors = {D2: ExternalFactor(obs_date=D2, price=2400.0)}
        prices = [PriceEntry(effective_date=D1, price=2500.0)]
        rows = build_factor_table([_daily(D1, 100), _daily(D2, 200)], factors, prices=prices)
        assert [r.price for r in rows] == [2500.0, 2400.0]

    def test_days_before_first_price_have_none(self):
        prices = [PriceEntry(effective_date=D2, price=2500.0)]
        rows = build_factor_table([_daily(D1, 100), _daily(D2, 200)], None, prices=prices)
        assert [r.price for r in rows] == [None, 2500.0]


class TestAnalyze:
    def test_lagged_rainfall(self):
        daily = [_daily(D1, 100), _daily(D2, 100), _daily(D3, 110)]
        factors = {
            D1: ExternalFactor(obs_date=D1, rainfall_mm=0.0),
            D2: ExternalFactor(obs_date=D2, rainfall_mm=10.0),
            D3: ExternalFactor(obs_date=D3, rainfall_mm=5.0),
        }
        result = analyze(daily, factors, "rainfall", "weight", lag_days=1)
        assert result.n == 2
        assert [(p.x, p.y) for p in result.points] == [(0.0, 100.0), (10.0, 110.0)]
        assert result.r == pytest.approx(1.0)
        assert len(result.trend_line) == 2
        assert result.outlier_flags == [False, False]

    def test_missing_factor_dates_dropped(self):
        daily = [_daily(D1, 100), _daily(D2, 200)]
        factors = {D1: ExternalFactor(obs_date=D1, rainfall_mm=3.0)}
        result = analyze(daily, factors, CorrelationMetric.RAINFALL, CorrelationMetric.WEIGHT)
        assert result.n == 1
        assert result.r == 0.0
        assert result.trend_line == []

    def test_price_pairs_every_delivery_day(self):
        days = [date(2026, 1, 1) + timedelta(days=i) for i in range(7)]
        daily = [_daily(d, 1000.0 + 100 * i) for i, d in enumerate(days)]
        factors = {days[0]: ExternalFactor(obs_date=days[0], rainfall_mm=3.0)}
        prices = [
            PriceEntry(effective_date=days[0], price=2500.0),
            PriceEntry(effective_date=days[4], price=2700.0),
        ]
        result = analyze(daily, factors, "price", "weight", prices=prices)
        assert result.n == 7
        assert result.r > 0

    def test_huge_lag_gives_empty_result(self):
        daily = [_daily(D1, 100), _daily(D2, 200)]
        factors = {D1: ExternalFactor(obs_date=D1, rainfall_mm=3.0)}
        result = analyze(daily, factors, "rainfall", "weight", lag_days=10**7)
        assert result.n == 0
        assert result.r == 0.0

    def test_unknown_metric_raises(self):
        with pytest.raises(ValueError):
            analyze([], {}, "humidity", "weight")

    def test_residual_outlier_flagged(self):
        pairs = [(date(2026, 1, i + 1), float(i), float(i) * 10) for i in range(10)]
        pairs[5] = (pairs[5][0], 5.0, 400.0)
        result = analyze_pairs(pairs)
        assert result.outlier_flags[5] is True
        assert sum(result.outlier_flags) == 1

    def test_exact_fit_never_flagged(self):
        pairs = [(date(2026, 1, i + 1), float(i), 2.0 * i + 1) for i in range(5)]
        result = analyze_pairs(pairs)
        assert not any(result.outlier_flags)
        assert result.std_dev_of_residuals == pytest.approx(0.0, abs=1e-9)

    def test_strength_label(self):
        assert correlation_strength(-0.75) == "very strong"
        assert correlation_strength(0.55) == "strong"
        assert correlation_strength(0.3) == "moderate"
        assert correlation_strength(0.1) == "weak"


class TestMatrix:
    def test_shape_and_diagonal(self, sample_records, sample_factors):
        daily = build_daily_aggregates(sample_records)
        cells = correlation_matrix(daily, sample_factors)
        assert len(cells) == len(MATRIX_METRICS) ** 2
        for cell in cells:
            assert -1.0 <= cell.r <= 1.0
            if cell.x_metric == cell.y_metric:
                assert cell.r == 1.0

    def test_constant_metric_diagonal_is_zero(self):
        daily = [_daily(D1 + timedelta(days=i), 1000.0 + i) for i in range(4)]
        factors = {
            d.obs_date: ExternalFactor(obs_date=d.obs_date, price=2500.0) for d in daily
        }
        cells = {(c.x_metric, c.y_metric): c for c in correlation_matrix(daily, factors)}
        assert cells[(CorrelationMetric.PRICE, CorrelationMetric.PRICE)].r == 0.0
        assert cells[(CorrelationMetric.PRICE, CorrelationMetric.WEIGHT)].r == 0.0
        assert cells[(CorrelationMetric.WEIGHT, CorrelationMetric.BUNCHES)].r == 0.0
        assert cells[(CorrelationMetric.WEIGHT, CorrelationMetric.QUALITY_RATIO)].r == pytest.approx(1.0)

    def test_idempotent(self, sample_records, sample_factors):
        daily = build_daily_aggregates(sample_records)
        assert correlation_matrix(daily, sample_factors) == correlation_matrix(daily, sample_factors)
