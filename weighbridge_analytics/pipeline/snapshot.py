"""
Full analytics pass over one record set.

``build_snapshot`` runs the complete data flow in one call:

    records → filter → period stats / daily aggregates
                     → forecast, benchmark, breakdowns
                     → correlation (only when factor data is supplied)

and returns a frozen ``DashboardSnapshot``.  Every stage is a pure function
of its inputs, so calling it twice with the same arguments gives equal
snapshots.  Callers that poll a record store simply call it again on change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional, Sequence

from weighbridge_analytics.aggregation.breakdowns import (
    HourCount,
    LocationTotal,
    VehicleStat,
    grade_c_issues,
    location_totals,
    peak_hours,
    vehicle_stats,
)
from weighbridge_analytics.aggregation.comparison import ComparisonKPI, compare_periods
from weighbridge_analytics.aggregation.daily import build_daily_aggregates, daily_totals
from weighbridge_analytics.aggregation.period import PeriodStats, aggregate_period
from weighbridge_analytics.analysis.correlation import MatrixCell, analyze, correlation_matrix
from weighbridge_analytics.benchmark.scorer import location_aggregates, score
from weighbridge_analytics.config import AppConfig
from weighbridge_analytics.filtering.record_filter import LocationFacet, TimeWindow, filter_records
from weighbridge_analytics.forecast.engine import ForecastParams, ForecastSummary, forecast_summary, project
from weighbridge_analytics.models.analytics import (
    BenchmarkEntry,
    CorrelationResult,
    DailyAggregate,
    ForecastPoint,
)
from weighbridge_analytics.models.record import ExternalFactor, PriceEntry, Record
from weighbridge_analytics.taxonomy.engine_taxonomy import CorrelationMetric, ForecastModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardSnapshot:
    """Every derived view for one filter selection.

    ``comparison`` is empty when the window has no comparison period, and
    ``correlation``/``correlation_cells`` are empty without factor data.
    """

    window: TimeWindow
    facet: LocationFacet
    record_count: int
    stats: PeriodStats
    daily: list[DailyAggregate]
    forecast: list[ForecastPoint]
    forecast_summary: ForecastSummary
    benchmark: list[BenchmarkEntry]
    comparison: list[ComparisonKPI] = field(default_factory=list)
    location_totals: list[LocationTotal] = field(default_factory=list)
    peak_hours: list[HourCount] = field(default_factory=list)
    grade_c_issues: list[Record] = field(default_factory=list)
    vehicles: list[VehicleStat] = field(default_factory=list)
    correlation: Optional[CorrelationResult] = None
    correlation_cells: list[MatrixCell] = field(default_factory=list)


def build_snapshot(
    records: Sequence[Record],
    window: TimeWindow,
    facet: LocationFacet | None = None,
    config: AppConfig | None = None,
    factors: Mapping[date, ExternalFactor] | None = None,
    model: ForecastModel | str | None = None,
    horizon_days: int | None = None,
    params: ForecastParams | None = None,
    x_metric: CorrelationMetric | str = CorrelationMetric.RAINFALL,
    y_metric: CorrelationMetric | str = CorrelationMetric.WEIGHT,
    lag_days: int = 0,
    prices: Sequence[PriceEntry] | None = None,
) -> DashboardSnapshot:
    """Compute every analytics view for ``window`` and ``facet``.

    Args:
        records:      Full record set, any order.
        window:       Calendar window to analyse.
        facet:        Location selector (all locations when ``None``).
        config:       Application config; defaults apply when ``None``.
        factors:      Daily rainfall/price series for the correlation views.
        model:        Forecast model, ``config.forecast.default_model`` if omitted.
        horizon_days: Forecast horizon, ``config.forecast.horizon_days`` if omitted.
        params:       Hybrid-model scenario inputs.
        x_metric, y_metric, lag_days: Scatter analysis selection.
        prices:       Effective-dated price entries, stepped over every
                      delivery and factor date.

    Raises:
        ValueError: For an unknown model or metric, or a negative horizon.
    """
    config = config or AppConfig()
    facet = facet or LocationFacet.all()
    model = ForecastModel(model or config.forecast.default_model)
    horizon = config.forecast.horizon_days if horizon_days is None else horizon_days

    subset = filter_records(records, window, facet, config.regions)
    logger.debug(
        "Snapshot for %s %s..%s facet=%s:%s: %d of %d records.",
        window.kind, window.start, window.end, facet.kind, facet.value,
        len(subset), len(records),
    )

    stats = aggregate_period(subset, window, config.aggregation)
    daily = build_daily_aggregates(subset, config.aggregation)
    points = project(daily_totals(subset), horizon, model, params, config.forecast)

    comparison: list[ComparisonKPI] = []
    previous_records: list[Record] = []
    previous_window = window.previous()
    if previous_window is not None:
        previous_records = filter_records(records, previous_window, facet, config.regions)
        previous_stats = aggregate_period(previous_records, previous_window, config.aggregation)
        comparison = compare_periods(stats, previous_stats)

    correlation: Optional[CorrelationResult] = None
    cells: list[MatrixCell] = []
    if factors or prices:
        correlation = analyze(
            daily, factors, x_metric, y_metric, lag_days, config.correlation,
            start=window.start, end=window.end, prices=prices,
        )
        cells = correlation_matrix(
            daily, factors, start=window.start, end=window.end, prices=prices,
        )

    return DashboardSnapshot(
        window=window,
        facet=facet,
        record_count=len(subset),
        stats=stats,
        daily=daily,
        forecast=points,
        forecast_summary=forecast_summary(points),
        benchmark=score(location_aggregates(subset, config.aggregation), config.benchmark),
        comparison=comparison,
        location_totals=location_totals(subset),
        peak_hours=peak_hours(subset),
        grade_c_issues=grade_c_issues(subset, config.aggregation),
        vehicles=vehicle_stats(subset, records, previous_records, config.aggregation),
        correlation=correlation,
        correlation_cells=cells,
    )
