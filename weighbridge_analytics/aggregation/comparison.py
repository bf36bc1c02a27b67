"""
Period-over-period KPI comparison.

``compare_periods(current, previous)`` turns two ``PeriodStats`` into one
``ComparisonKPI`` per headline metric.  ``percentage`` is relative to the
previous period and is 0 when the previous value is 0 (no baseline, no
percentage).  ``is_positive_good`` tells a renderer whether an increase is
good news: it is for every metric except dwell time.
"""

from __future__ import annotations

from dataclasses import dataclass

from weighbridge_analytics.aggregation.period import PeriodStats


@dataclass(frozen=True)
class ComparisonKPI:
    name: str
    current: float
    previous: float
    delta: float
    percentage: float
    unit: str
    is_positive_good: bool

    @property
    def is_improvement(self) -> bool:
        """True when the change moves in the good direction."""
        if self.delta == 0:
            return False
        return (self.delta > 0) == self.is_positive_good


def _kpi(name: str, current: float, previous: float, unit: str, is_positive_good: bool = True) -> ComparisonKPI:
    delta = current - previous
    percentage = delta / previous * 100.0 if previous > 0 else 0.0
    return ComparisonKPI(name, current, previous, delta, percentage, unit, is_positive_good)


def compare_periods(current: PeriodStats, previous: PeriodStats) -> list[ComparisonKPI]:
    """Headline KPI deltas between two periods."""
    return [
        _kpi("total_weight",  current.total_weight,      previous.total_weight,      "kg"),
        _kpi("total_bunches", current.total_bunches,     previous.total_bunches,     "bunches"),
        _kpi("quality_ratio", current.quality_ratio,     previous.quality_ratio,     "kg/bunch"),
        _kpi("trip_count",    current.trip_count,        previous.trip_count,        "trips"),
        _kpi("avg_dwell",     current.avg_dwell_minutes, previous.avg_dwell_minutes, "min",
             is_positive_good=False),
    ]
