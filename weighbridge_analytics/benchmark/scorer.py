"""
Per-location benchmark scoring.

Pipeline
--------
1.  ``location_aggregates(records)`` groups a filtered subset by raw location
    string and counts the subset's distinct delivery dates (``period_days``,
    at least 1) so consistency is relative to the days the mill was active.
2.  ``score(aggregates)`` turns each aggregate into a ``BenchmarkEntry``:

        volume      = min(weight / 100 000 * 25, 25)
        quality     = min(ratio / 25 * 25, 25)
        consistency = consistency% * 0.25
        grade A     = gradeA% * 0.25

    Each sub-score is capped independently before summing, so the composite
    stays in ``[0, 100]`` for non-negative inputs.  Entries are returned
    highest composite first.
3.  ``gap_analysis(entries, location)`` compares one entry with the
    across-location average and with the best performer.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence

from weighbridge_analytics.aggregation.period import quality_grade, quality_ratio, record_dwell
from weighbridge_analytics.config import AggregationConfig, BenchmarkConfig
from weighbridge_analytics.models.analytics import BenchmarkEntry
from weighbridge_analytics.models.record import Record
from weighbridge_analytics.taxonomy.engine_taxonomy import QualityGrade
from weighbridge_analytics.utils.stats import mean
from weighbridge_analytics.utils.time_utils import shift_months

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = BenchmarkConfig()
_DEFAULT_AGG_CONFIG = AggregationConfig()

_AFD_PATTERN = re.compile(r"AFD\s+([A-Z0-9]+)", re.IGNORECASE)
_SHORT_NAME_LEN = 10


@dataclass(frozen=True)
class LocationAggregate:
    """Raw per-location totals, before scoring.

    Attributes:
        location:         Raw location string.
        total_weight:     Delivered weight (kg).
        total_bunches:    Delivered bunches.
        trip_count:       Deliveries.
        grade_a_count:    Deliveries graded A.
        dwell_total:      Sum of valid dwell minutes.
        dwell_count:      Deliveries with a valid dwell.
        active_dates:     Distinct days with a delivery from this location.
        period_days:      Distinct delivery days across the whole subset.
    """

    location: str
    total_weight: float
    total_bunches: int
    trip_count: int
    grade_a_count: int
    dwell_total: float
    dwell_count: int
    active_dates: frozenset[date] = field(default_factory=frozenset)
    period_days: int = 1

    @property
    def quality_ratio(self) -> float:
        return quality_ratio(self.total_weight, self.total_bunches)

    @property
    def avg_dwell_minutes(self) -> float:
        return self.dwell_total / self.dwell_count if self.dwell_count else 0.0

    @property
    def consistency_percent(self) -> float:
        return len(self.active_dates) / max(self.period_days, 1) * 100.0

    @property
    def grade_a_percent(self) -> float:
        return self.grade_a_count / self.trip_count * 100.0 if self.trip_count else 0.0


@dataclass(frozen=True)
class MetricGap:
    """One metric of a gap analysis."""

    metric: str
    value: float
    average: float
    best: float
    gap_to_average: float
    gap_to_best: float
    percent_to_average: float
    percent_to_best: float


@dataclass(frozen=True)
class GapAnalysis:
    location: str
    name: str
    rank: int
    gaps: list[MetricGap]

    def metric(self, name: str) -> MetricGap:
        for gap in self.gaps:
            if gap.metric == name:
                return gap
        raise KeyError(name)


def short_location_name(raw: str) -> str:
    """``"AFD X"`` for any location naming an AFD block, else its first 10 characters."""
    match = _AFD_PATTERN.search(raw or "")
    if match:
        return f"AFD {match.group(1).upper()}"
    return (raw or "")[:_SHORT_NAME_LEN]


def location_aggregates(
    records: Iterable[Record],
    config: AggregationConfig = _DEFAULT_AGG_CONFIG,
) -> list[LocationAggregate]:
    """Group ``records`` by raw location, in first-seen order."""
    rows = list(records)
    period_days = max(len({r.record_date for r in rows}), 1)

    grouped: dict[str, list[Record]] = defaultdict(list)
    for r in rows:
        grouped[r.location].append(r)

    result: list[LocationAggregate] = []
    for location, group in grouped.items():
        dwells = [m for m in (record_dwell(r, config) for r in group) if m is not None]
        result.append(
            LocationAggregate(
                location=location,
                total_weight=sum(r.net_weight for r in group),
                total_bunches=sum(r.bunch_count for r in group),
                trip_count=len(group),
                grade_a_count=sum(
                    1 for r in group if quality_grade(r.quality_ratio, config) is QualityGrade.A
                ),
                dwell_total=sum(dwells),
                dwell_count=len(dwells),
                active_dates=frozenset(r.record_date for r in group),
                period_days=period_days,
            )
        )
    return result


def _capped(value: float, cap: float) -> float:
    return max(0.0, min(value, cap))


def score_aggregate(agg: LocationAggregate, config: BenchmarkConfig = _DEFAULT_CONFIG) -> BenchmarkEntry:
    """Score one location."""
    cap = config.sub_score_cap
    volume = _capped(agg.total_weight / config.volume_full_score_kg * cap, cap)
    quality = _capped(agg.quality_ratio / config.quality_full_score_ratio * cap, cap)
    consistency = _capped(agg.consistency_percent * cap / 100.0, cap)
    grade_a = _capped(agg.grade_a_percent * cap / 100.0, cap)

    return BenchmarkEntry(
        location=agg.location,
        name=short_location_name(agg.location),
        total_weight=agg.total_weight,
        total_bunches=agg.total_bunches,
        quality_ratio=agg.quality_ratio,
        trip_count=agg.trip_count,
        avg_dwell_minutes=agg.avg_dwell_minutes,
        consistency_percent=agg.consistency_percent,
        grade_a_percent=agg.grade_a_percent,
        volume_score=volume,
        quality_score=quality,
        consistency_score=consistency,
        grade_a_score=grade_a,
        composite_score=volume + quality + consistency + grade_a,
    )


def score(
    aggregates: Iterable[LocationAggregate],
    config: BenchmarkConfig = _DEFAULT_CONFIG,
) -> list[BenchmarkEntry]:
    """Score every location, highest composite first.

    Ties keep the heavier location first, then sort by name.
    """
    entries = [score_aggregate(agg, config) for agg in aggregates]
    return sorted(entries, key=lambda e: (-e.composite_score, -e.total_weight, e.location))


def _gap(metric: str, value: float, values: Sequence[float]) -> MetricGap:
    average = mean(values)
    best = max(values)
    return MetricGap(
        metric=metric,
        value=value,
        average=average,
        best=best,
        gap_to_average=value - average,
        gap_to_best=value - best,
        percent_to_average=(value - average) / average * 100.0 if average else 0.0,
        percent_to_best=(value - best) / best * 100.0 if best else 0.0,
    )


def gap_analysis(entries: Sequence[BenchmarkEntry], location: str) -> Optional[GapAnalysis]:
    """Compare ``location`` with the average and best of ``entries``.

    ``location`` may be the raw location string or its short name.  Returns
    ``None`` when no entry matches.
    """
    target = next(
        (e for e in entries if e.location == location or e.name == location),
        None,
    )
    if target is None:
        logger.debug("No benchmark entry for location '%s'.", location)
        return None

    ranked = sorted(entries, key=lambda e: -e.composite_score)
    rank = next(i for i, e in enumerate(ranked, start=1) if e is target)

    metrics = (
        ("volume", lambda e: e.total_weight),
        ("quality", lambda e: e.quality_ratio),
        ("trips", lambda e: float(e.trip_count)),
        ("consistency", lambda e: e.consistency_percent),
    )
    gaps = [_gap(name, get(target), [get(e) for e in entries]) for name, get in metrics]
    return GapAnalysis(location=target.location, name=target.name, rank=rank, gaps=gaps)


def monthly_location_trend(
    records: Iterable[Record],
    today: date,
    months: int = 3,
) -> dict[str, dict[str, float]]:
    """Weight per short location name for each of the last ``months`` months.

    Returns:
        ``{"YYYY-MM": {"AFD A": kg, ...}}`` oldest month first, every month
        present even when empty.
    """
    keys = [shift_months(today, -offset).strftime("%Y-%m") for offset in range(months - 1, -1, -1)]
    trend: dict[str, dict[str, float]] = {k: {} for k in keys}
    for r in records:
        key = r.record_date.strftime("%Y-%m")
        if key not in trend:
            continue
        name = short_location_name(r.location)
        trend[key][name] = trend[key].get(name, 0.0) + r.net_weight
    return trend
