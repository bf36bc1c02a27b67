"""
Tests for time-window and location-facet record selection.
"""

from __future__ import annotations

from datetime import date

import pytest

from weighbridge_analytics.filtering.record_filter import (
    LocationFacet,
    TimeWindow,
    filter_records,
    search_records,
)
from weighbridge_analytics.taxonomy.engine_taxonomy import WindowKind

REGIONS = {
    "NASAL": ["AFD A", "AFD B", "AFD C", "AFD D", "AFD E"],
    "BINTUHAN": ["AFD F", "AFD G"],
}


class TestTimeWindow:
    def test_week_starts_monday(self):
        # 2026-01-08 is a Thursday.
        w = TimeWindow.current_week(date(2026, 1, 8))
        assert w.start == date(2026, 1, 5)
        assert w.end == date(2026, 1, 11)

    def test_week_on_sunday_goes_back_six_days(self):
        w = TimeWindow.current_week(date(2026, 1, 11))
        assert w.start == date(2026, 1, 5)

    def test_month_bounds(self):
        w = TimeWindow.current_month(date(2024, 2, 14))
        assert (w.start, w.end) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_custom_swaps_reversed_endpoints(self):
        w = TimeWindow.custom(date(2026, 1, 10), date(2026, 1, 3))
        assert (w.start, w.end) == (date(2026, 1, 3), date(2026, 1, 10))
        assert w.day_count == 8

    def test_custom_is_inclusive(self):
        w = TimeWindow.custom(date(2026, 1, 3), date(2026, 1, 10))
        assert w.contains(date(2026, 1, 3))
        assert w.contains(date(2026, 1, 10))
        assert not w.contains(date(2026, 1, 11))

    def test_all_time_contains_everything(self):
        w = TimeWindow.all_time()
        assert w.contains(date(1999, 1, 1))
        assert w.day_count is None

    def test_previous_day(self):
        assert TimeWindow.day(date(2026, 3, 1)).previous() == TimeWindow.day(date(2026, 2, 28))

    def test_previous_week(self):
        prev = TimeWindow.current_week(date(2026, 1, 8)).previous()
        assert (prev.start, prev.end) == (date(2025, 12, 29), date(2026, 1, 4))

    def test_previous_month_crosses_year(self):
        prev = TimeWindow.current_month(date(2026, 1, 20)).previous()
        assert prev.kind is WindowKind.MONTH
        assert (prev.start, prev.end) == (date(2025, 12, 1), date(2025, 12, 31))

    def test_custom_and_all_have_no_previous(self):
        assert TimeWindow.custom(date(2026, 1, 1), date(2026, 1, 2)).previous() is None
        assert TimeWindow.all_time().previous() is None


class TestLocationFacet:
    def test_parse_all(self):
        assert LocationFacet.parse(None, REGIONS).kind == "all"
        assert LocationFacet.parse("all", REGIONS).kind == "all"

    def test_parse_region_case_insensitive(self):
        facet = LocationFacet.parse("nasal", REGIONS)
        assert facet.kind == "region"
        assert facet.value == "NASAL"

    def test_parse_location_code(self):
        facet = LocationFacet.parse("afd g", REGIONS)
        assert facet.kind == "location"

    def test_location_substring_match(self):
        facet = LocationFacet.location("afd a")
        assert facet.matches("Afd A Nasal", REGIONS)
        assert not facet.matches("AFD B NASAL", REGIONS)

    def test_blank_location_code_selects_all(self, sample_records):
        assert LocationFacet.location("   ").kind == "all"
        assert LocationFacet.location("") == LocationFacet.all()
        result = filter_records(sample_records, TimeWindow.all_time(), LocationFacet.location(" "), REGIONS)
        assert result == sample_records

    def test_unknown_region_matches_nothing(self):
        facet = LocationFacet.region("UNKNOWN")
        assert not facet.matches("AFD A NASAL", REGIONS)


class TestFilterRecords:
    def test_day_window_matches_calendar_day(self, sample_records):
        result = filter_records(sample_records, TimeWindow.day(date(2026, 1, 5)))
        assert {r.record_date for r in result} == {date(2026, 1, 5)}
        assert len(result) == 3

    def test_region_facet(self, sample_records):
        result = filter_records(
            sample_records, TimeWindow.all_time(), LocationFacet.region("BINTUHAN"), REGIONS
        )
        assert result
        assert all("AFD F" in r.location for r in result)

    def test_no_match_returns_empty_list(self, sample_records):
        result = filter_records(sample_records, TimeWindow.day(date(2030, 1, 1)))
        assert result == []

    def test_does_not_mutate_input(self, sample_records):
        before = list(sample_records)
        filter_records(sample_records, TimeWindow.day(date(2026, 1, 5)), LocationFacet.location("AFD A"))
        assert sample_records == before

    def test_preserves_input_order(self, sample_records):
        result = filter_records(sample_records, TimeWindow.all_time())
        assert result == sample_records


class TestSearchRecords:
    def test_search_vehicle(self, sample_records):
        result = search_records(sample_records, "4444", field="vehicle")
        assert len(result) == 2

    def test_search_all_fields(self, sample_records):
        assert len(search_records(sample_records, "plasma")) == 2

    def test_empty_query_returns_all(self, sample_records):
        assert len(search_records(sample_records, "  ")) == len(sample_records)

    @pytest.mark.parametrize("field", ["id", "vehicle", "location"])
    def test_no_hit(self, sample_records, field):
        assert search_records(sample_records, "zzz", field=field) == []
