"""
Secondary breakdowns of a filtered record subset.

These feed the operations views: supplier ranking by weight, the entry-hour
histogram, the low-quality delivery list, and the per-vehicle leaderboard.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Sequence

from weighbridge_analytics.aggregation.period import quality_grade, record_dwell
from weighbridge_analytics.config import AggregationConfig
from weighbridge_analytics.models.record import Record
from weighbridge_analytics.taxonomy.engine_taxonomy import QualityGrade
from weighbridge_analytics.utils.time_utils import parse_clock

_DEFAULT_CONFIG = AggregationConfig()

PEAK_HOUR_RANGE = range(7, 23)  # 07:00 .. 22:00 inclusive

_PRO_TRIPS = 8
_LEGEND_TRIPS = 20


@dataclass(frozen=True)
class LocationTotal:
    location: str
    total_weight: float


@dataclass(frozen=True)
class HourCount:
    hour: int
    count: int

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:00"


@dataclass(frozen=True)
class VehicleStat:
    """Per-vehicle delivery summary.

    ``current_streak`` and ``level`` are computed over the full record history
    (not just the filtered window), so a vehicle keeps its standing when the
    view is narrowed.

    Attributes:
        vehicle_id:        Plate number.
        trip_count:        Deliveries within the window.
        total_weight:      Weight delivered within the window (kg).
        avg_dwell_minutes: Mean valid dwell within the window.
        last_visit:        Latest delivery day within the window.
        current_streak:    Consecutive delivery days ending at the latest visit.
        level:             "Rookie", "Pro" (>= 8 trips) or "Legend" (>= 20 trips).
        prev_total_weight: Weight in the comparison window.
        prev_trip_count:   Trips in the comparison window.
    """

    vehicle_id: str
    trip_count: int
    total_weight: float
    avg_dwell_minutes: float
    last_visit: date
    current_streak: int
    level: str
    prev_total_weight: float
    prev_trip_count: int


def location_totals(records: Iterable[Record]) -> list[LocationTotal]:
    """Weight per raw location, heaviest first."""
    totals: dict[str, float] = defaultdict(float)
    for r in records:
        totals[r.location or "Unknown"] += r.net_weight
    return sorted(
        (LocationTotal(loc, w) for loc, w in totals.items()),
        key=lambda t: (-t.total_weight, t.location),
    )


def peak_hours(records: Iterable[Record]) -> list[HourCount]:
    """Deliveries per weigh-in hour over the 07:00-22:00 operating range."""
    counts: dict[int, int] = defaultdict(int)
    for r in records:
        minutes = parse_clock(r.entry_time)
        if minutes is not None:
            counts[minutes // 60] += 1
    return [HourCount(h, counts.get(h, 0)) for h in PEAK_HOUR_RANGE]


def grade_c_issues(
    records: Iterable[Record],
    config: AggregationConfig = _DEFAULT_CONFIG,
) -> list[Record]:
    """Grade-C deliveries with a bunch count, lowest bunch weight first."""
    issues = [
        r for r in records
        if r.bunch_count > 0 and quality_grade(r.quality_ratio, config) is QualityGrade.C
    ]
    return sorted(issues, key=lambda r: r.quality_ratio)


def delivery_streak(days: Iterable[date]) -> int:
    """Consecutive calendar days ending at the most recent day in ``days``."""
    unique = sorted(set(days), reverse=True)
    if not unique:
        return 0
    streak = 1
    for newer, older in zip(unique, unique[1:]):
        if newer - older != timedelta(days=1):
            break
        streak += 1
    return streak


def vehicle_level(total_trips: int) -> str:
    if total_trips >= _LEGEND_TRIPS:
        return "Legend"
    if total_trips >= _PRO_TRIPS:
        return "Pro"
    return "Rookie"


def vehicle_stats(
    records: Sequence[Record],
    all_records: Sequence[Record] | None = None,
    previous_records: Sequence[Record] | None = None,
    config: AggregationConfig = _DEFAULT_CONFIG,
) -> list[VehicleStat]:
    """Per-vehicle leaderboard for ``records``, heaviest first.

    Args:
        records:          The filtered window.
        all_records:      Full history for streak and level; defaults to ``records``.
        previous_records: Comparison-window records for the ``prev_*`` fields.
        config:           Dwell bounds.
    """
    history: dict[str, list[Record]] = defaultdict(list)
    for r in all_records if all_records is not None else records:
        history[r.vehicle_id].append(r)

    prev: dict[str, tuple[float, int]] = {}
    for r in previous_records or ():
        weight, trips = prev.get(r.vehicle_id, (0.0, 0))
        prev[r.vehicle_id] = (weight + r.net_weight, trips + 1)

    window: dict[str, list[Record]] = defaultdict(list)
    for r in records:
        window[r.vehicle_id].append(r)

    stats: list[VehicleStat] = []
    for vehicle, rows in window.items():
        dwells = [m for m in (record_dwell(r, config) for r in rows) if m is not None]
        past = history.get(vehicle, rows)
        prev_weight, prev_trips = prev.get(vehicle, (0.0, 0))
        stats.append(
            VehicleStat(
                vehicle_id=vehicle,
                trip_count=len(rows),
                total_weight=sum(r.net_weight for r in rows),
                avg_dwell_minutes=sum(dwells) / len(dwells) if dwells else 0.0,
                last_visit=max(r.record_date for r in rows),
                current_streak=delivery_streak(r.record_date for r in past),
                level=vehicle_level(len(past)),
                prev_total_weight=prev_weight,
                prev_trip_count=prev_trips,
            )
        )
    return sorted(stats, key=lambda v: (-v.total_weight, v.vehicle_id))
