"""
Tests for period aggregation: totals, dwell exclusion, grades and targets.
"""

from __future__ import annotations

from datetime import date

import pytest

from weighbridge_analytics.aggregation.period import (
    aggregate_period,
    average_dwell,
    dwell_minutes,
    dynamic_target,
    grade_distribution,
    is_valid_dwell,
    quality_grade,
    quality_ratio,
)
from weighbridge_analytics.config import AggregationConfig
from weighbridge_analytics.filtering.record_filter import TimeWindow
from weighbridge_analytics.taxonomy.engine_taxonomy import QualityGrade


class TestAggregatePeriod:
    def test_two_record_example(self, make_record):
        records = [
            make_record(net_weight=5000, bunch_count=417),
            make_record(net_weight=450, bunch_count=35),
        ]
        stats = aggregate_period(records, TimeWindow.day(date(2026, 1, 5)))
        assert stats.total_weight == 5450
        assert stats.total_bunches == 452
        assert stats.trip_count == 2
        assert stats.quality_ratio == pytest.approx(12.057, abs=1e-3)

    def test_empty_subset_is_all_zero(self):
        stats = aggregate_period([], TimeWindow.day(date(2026, 1, 5)))
        assert stats.total_weight == 0
        assert stats.quality_ratio == 0
        assert stats.avg_dwell_minutes == 0
        assert stats.target_percent == 0
        assert stats.grade_counts == {QualityGrade.A: 0, QualityGrade.B: 0, QualityGrade.C: 0}

    def test_zero_bunches_ratio_is_zero(self, make_record):
        stats = aggregate_period([make_record(bunch_count=0)], TimeWindow.all_time())
        assert stats.quality_ratio == 0.0

    def test_target_percent_capped_at_100(self, make_record):
        stats = aggregate_period([make_record(net_weight=90_000)], TimeWindow.day(date(2026, 1, 5)))
        assert stats.dynamic_target == 40_000
        assert stats.target_percent == 100.0

    def test_target_percent_partial(self, make_record):
        stats = aggregate_period([make_record(net_weight=10_000)], TimeWindow.day(date(2026, 1, 5)))
        assert stats.target_percent == pytest.approx(25.0)

    def test_total_weight_is_sum(self, sample_records):
        stats = aggregate_period(sample_records, TimeWindow.all_time())
        assert stats.total_weight == pytest.approx(sum(r.net_weight for r in sample_records))


class TestDwell:
    def test_short_visit_kept(self):
        assert dwell_minutes("19:27", "19:32") == 5
        assert is_valid_dwell(5)

    def test_wrapped_negative_excluded(self):
        minutes = dwell_minutes("08:00", "07:55")
        assert minutes == 1435
        assert not is_valid_dwell(minutes)

    def test_overnight_shift(self):
        assert dwell_minutes("23:30", "00:15") == 45

    @pytest.mark.parametrize("minutes", [0, 300, 301, -1])
    def test_bounds_are_exclusive(self, minutes):
        assert not is_valid_dwell(minutes)

    def test_299_is_valid(self):
        assert is_valid_dwell(299)

    @pytest.mark.parametrize("entry,exit_", [("", "08:00"), ("8h", "09:00"), ("25:00", "09:00"), (None, None)])
    def test_malformed_clock_is_none(self, entry, exit_):
        assert dwell_minutes(entry, exit_) is None

    def test_average_skips_invalid(self, make_record):
        records = [
            make_record(entry_time="19:27", exit_time="19:32"),
            make_record(entry_time="08:00", exit_time="07:55"),
            make_record(entry_time="garbage", exit_time="08:00"),
            make_record(entry_time="10:00", exit_time="10:15"),
        ]
        avg, n = average_dwell(records)
        assert n == 2
        assert avg == pytest.approx(10.0)

    def test_custom_bounds_from_config(self, make_record):
        cfg = AggregationConfig(dwell_max_minutes=10)
        avg, n = average_dwell([make_record(entry_time="10:00", exit_time="10:15")], cfg)
        assert (avg, n) == (0.0, 0)


class TestGrades:
    @pytest.mark.parametrize(
        "ratio,grade",
        [(25.0, QualityGrade.A), (20.0, QualityGrade.A), (19.99, QualityGrade.B),
         (10.0, QualityGrade.B), (9.99, QualityGrade.C), (0.0, QualityGrade.C)],
    )
    def test_thresholds(self, ratio, grade):
        assert quality_grade(ratio) is grade

    def test_distribution_has_all_grades(self, make_record):
        dist = grade_distribution([make_record(net_weight=5000, bunch_count=200)])
        assert dist == {QualityGrade.A: 1, QualityGrade.B: 0, QualityGrade.C: 0}

    def test_quality_ratio_guard(self):
        assert quality_ratio(100.0, 0) == 0.0


class TestDynamicTarget:
    def test_day(self):
        assert dynamic_target(TimeWindow.day(date(2026, 1, 5))) == 40_000

    def test_week_is_six_working_days(self):
        assert dynamic_target(TimeWindow.current_week(date(2026, 1, 5))) == 240_000

    def test_month_uses_real_length(self):
        assert dynamic_target(TimeWindow.current_month(date(2026, 2, 10))) == 28 * 40_000

    def test_custom_range(self):
        w = TimeWindow.custom(date(2026, 1, 1), date(2026, 1, 10))
        assert dynamic_target(w) == 10 * 40_000

    def test_all_time_counts_one_day(self):
        assert dynamic_target(TimeWindow.all_time()) == 40_000
