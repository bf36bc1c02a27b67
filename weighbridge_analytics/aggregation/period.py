"""
Period aggregation: reduce a filtered record subset to KPI statistics.

Dwell time
----------
Dwell is ``exit - entry`` on a same-day clock, in minutes.  A negative
difference means the visit crossed midnight and gets +1440.  A dwell is used
in averages only when ``dwell_min < dwell < dwell_max`` (0 and 300 by
default): zero or multi-hour values are data-entry errors, not real visits.
So 19:27 → 19:32 is 5 minutes (kept), while 08:00 → 07:55 becomes
1435 minutes (dropped).  Unparsable clocks drop the record from the dwell
average only.

Quality grade
-------------
Each record's bunch-weight ratio grades it A (>= 20), B (>= 10) or C.

Dynamic target
--------------
The delivery target scales a 40 t daily baseline by the window's day count:
1 for a day, 6 working days for a week, the real length of the month, or
``end - start + 1`` for a custom range.  The unbounded window counts as 1 day.
``target_percent`` is capped at 100.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

from weighbridge_analytics.config import AggregationConfig
from weighbridge_analytics.filtering.record_filter import TimeWindow
from weighbridge_analytics.models.record import Record
from weighbridge_analytics.taxonomy.engine_taxonomy import QualityGrade, WindowKind
from weighbridge_analytics.utils.time_utils import MINUTES_PER_DAY, days_in_month, parse_clock

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = AggregationConfig()


@dataclass(frozen=True)
class PeriodStats:
    """KPI statistics for one record subset.

    Attributes:
        total_weight:      Sum of net weight (kg).
        total_bunches:     Sum of bunch counts.
        trip_count:        Number of records.
        quality_ratio:     ``total_weight / total_bunches``, 0 when no bunches.
        avg_dwell_minutes: Mean over valid dwells, 0 when none.
        dwell_sample_size: Records that contributed a valid dwell.
        dynamic_target:    Delivery target for the window (kg).
        target_percent:    ``total_weight / dynamic_target * 100`` capped at 100.
        grade_counts:      Records per quality grade (all three keys present).
    """

    total_weight: float
    total_bunches: int
    trip_count: int
    quality_ratio: float
    avg_dwell_minutes: float
    dwell_sample_size: int
    dynamic_target: float
    target_percent: float
    grade_counts: dict[QualityGrade, int] = field(default_factory=dict)


def dwell_minutes(entry_time: str | None, exit_time: str | None) -> Optional[float]:
    """Minutes between entry and exit clocks, wrapping past midnight.

    Returns ``None`` when either clock is missing or malformed.
    """
    entry = parse_clock(entry_time)
    exit_ = parse_clock(exit_time)
    if entry is None or exit_ is None:
        return None
    diff = exit_ - entry
    if diff < 0:
        diff += MINUTES_PER_DAY
    return float(diff)


def is_valid_dwell(minutes: float | None, config: AggregationConfig = _DEFAULT_CONFIG) -> bool:
    """True when ``minutes`` lies strictly inside the configured dwell bounds."""
    return minutes is not None and config.dwell_min_minutes < minutes < config.dwell_max_minutes


def record_dwell(record: Record, config: AggregationConfig = _DEFAULT_CONFIG) -> Optional[float]:
    """The record's dwell in minutes if it is usable for averages, else ``None``."""
    minutes = dwell_minutes(record.entry_time, record.exit_time)
    if minutes is None:
        logger.debug(
            "Record %s has unparsable clocks (%r, %r); excluded from dwell.",
            record.record_id, record.entry_time, record.exit_time,
        )
        return None
    return minutes if is_valid_dwell(minutes, config) else None


def average_dwell(records: Iterable[Record], config: AggregationConfig = _DEFAULT_CONFIG) -> tuple[float, int]:
    """Mean valid dwell and the number of records it was computed from."""
    valid = [m for m in (record_dwell(r, config) for r in records) if m is not None]
    if not valid:
        return 0.0, 0
    return sum(valid) / len(valid), len(valid)


def quality_ratio(total_weight: float, total_bunches: int) -> float:
    """Average bunch weight, guarded against zero bunches."""
    return total_weight / total_bunches if total_bunches > 0 else 0.0


def quality_grade(ratio: float, config: AggregationConfig = _DEFAULT_CONFIG) -> QualityGrade:
    """Grade a bunch-weight ratio."""
    if ratio >= config.grade_a_min_ratio:
        return QualityGrade.A
    if ratio >= config.grade_b_min_ratio:
        return QualityGrade.B
    return QualityGrade.C


def grade_distribution(
    records: Iterable[Record],
    config: AggregationConfig = _DEFAULT_CONFIG,
) -> dict[QualityGrade, int]:
    """Count records per grade.  Every grade appears, possibly with 0."""
    counts = Counter(quality_grade(r.quality_ratio, config) for r in records)
    return {grade: counts.get(grade, 0) for grade in QualityGrade}


def target_days(window: TimeWindow, config: AggregationConfig = _DEFAULT_CONFIG) -> int:
    """Number of baseline days the window's target covers."""
    if window.kind is WindowKind.DAY:
        return 1
    if window.kind is WindowKind.WEEK:
        return config.week_working_days
    if window.kind is WindowKind.MONTH:
        return days_in_month(window.start)  # type: ignore[arg-type]
    if window.kind is WindowKind.CUSTOM:
        return max(window.day_count or 1, 1)
    return 1


def dynamic_target(window: TimeWindow, config: AggregationConfig = _DEFAULT_CONFIG) -> float:
    """Delivery target in kg for ``window``."""
    return config.base_daily_target_kg * target_days(window, config)


def aggregate_period(
    records: Iterable[Record],
    window: TimeWindow,
    config: AggregationConfig = _DEFAULT_CONFIG,
) -> PeriodStats:
    """Reduce a record subset to its period statistics.

    Never raises for sparse data: an empty subset yields all-zero totals and
    a 0% completion against the window's target.
    """
    rows = list(records)
    total_weight = sum(r.net_weight for r in rows)
    total_bunches = sum(r.bunch_count for r in rows)
    avg_dwell, dwell_n = average_dwell(rows, config)
    target = dynamic_target(window, config)

    return PeriodStats(
        total_weight=total_weight,
        total_bunches=total_bunches,
        trip_count=len(rows),
        quality_ratio=quality_ratio(total_weight, total_bunches),
        avg_dwell_minutes=avg_dwell,
        dwell_sample_size=dwell_n,
        dynamic_target=target,
        target_percent=min(total_weight / target * 100.0, 100.0),
        grade_counts=grade_distribution(rows, config),
    )
