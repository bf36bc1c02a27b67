"""
Daily aggregation of weighbridge records.

Collapses records into one ``DailyAggregate`` per calendar day that has at
least one delivery, sorted ascending by date.  Days without deliveries are
not materialised here; ``analysis.correlation.build_factor_table`` fills
them in where a calendar-complete view is needed.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable

from weighbridge_analytics.aggregation.period import average_dwell, quality_ratio
from weighbridge_analytics.config import AggregationConfig
from weighbridge_analytics.models.analytics import DailyAggregate
from weighbridge_analytics.models.record import Record

_DEFAULT_CONFIG = AggregationConfig()


def group_by_date(records: Iterable[Record]) -> dict[date, list[Record]]:
    """Group records by calendar day, keys in ascending order."""
    groups: dict[date, list[Record]] = defaultdict(list)
    for r in records:
        groups[r.record_date].append(r)
    return {d: groups[d] for d in sorted(groups)}


def build_daily_aggregates(
    records: Iterable[Record],
    config: AggregationConfig = _DEFAULT_CONFIG,
) -> list[DailyAggregate]:
    """One ``DailyAggregate`` per delivery day, ascending by date."""
    result: list[DailyAggregate] = []
    for day, rows in group_by_date(records).items():
        total_weight = sum(r.net_weight for r in rows)
        total_bunches = sum(r.bunch_count for r in rows)
        avg_dwell, _ = average_dwell(rows, config)
        result.append(
            DailyAggregate(
                obs_date=day,
                total_weight=total_weight,
                total_bunches=total_bunches,
                record_count=len(rows),
                avg_dwell_minutes=avg_dwell,
                quality_ratio=quality_ratio(total_weight, total_bunches),
            )
        )
    return result


def daily_totals(records: Iterable[Record]) -> list[tuple[date, float]]:
    """Ordered ``(date, total_weight)`` history, the forecaster's usual input."""
    return [
        (day, sum(r.net_weight for r in rows))
        for day, rows in group_by_date(records).items()
    ]
