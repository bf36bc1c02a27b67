"""
Correlation and anomaly analysis of daily supply against external factors.

Inputs
------
``build_factor_table(daily, factors)`` joins the daily aggregates with the
sparse factor series into one ``FactorRow`` per date (the union of delivery
dates and factor dates).  On a day with no deliveries, weight and bunches are
0 (nothing arrived) while quality ratio and dwell are unknown.  Missing
factor values stay ``None``.  Effective-dated ``prices``, when given, are
expanded over every date in the table, so a delivery day with no factor row
still carries the price in effect.

Scatter mode: ``analyze(...)``
------------------------------
1.  Extract the X and Y metric series from the table.
2.  Time-lag shift: for each day D with a Y value, X is read from day
    ``D - lag_days`` by exact date match.  Only X moves.  Days without a
    lagged X value (or without a Y value) are dropped entirely.
3.  Pearson ``r`` by the sum-of-products formula, 0 when either series is
    constant or fewer than two days remain.
4.  OLS trend of Y on X plus the two endpoints at min/max X.
5.  Residual anomalies: ``|y - fit(x)| > 1.5 * std(residuals)`` and
    ``> 0``, so exact-fit points are never flagged.

Matrix mode: ``correlation_matrix(...)``
----------------------------------------
``r`` for every ordered pair of the fixed metric set on same-day values.
Lag does not apply.  The diagonal is 1 for any metric with variance and 0
for a constant one.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Mapping, Optional, Sequence

from weighbridge_analytics.config import CorrelationConfig
from weighbridge_analytics.models.analytics import (
    CorrelationPoint,
    CorrelationResult,
    DailyAggregate,
    TrendPoint,
)
from weighbridge_analytics.analysis.factors import price_series
from weighbridge_analytics.models.record import ExternalFactor, PriceEntry
from weighbridge_analytics.taxonomy.engine_taxonomy import CorrelationMetric
from weighbridge_analytics.utils.stats import population_std

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = CorrelationConfig()

MATRIX_METRICS: tuple[CorrelationMetric, ...] = tuple(CorrelationMetric)


@dataclass(frozen=True)
class FactorRow:
    """All correlation metrics for one calendar day."""

    obs_date: date
    weight: float
    bunches: float
    quality_ratio: Optional[float]
    dwell: Optional[float]
    rainfall: Optional[float]
    price: Optional[float]

    def value(self, metric: CorrelationMetric) -> Optional[float]:
        metric = CorrelationMetric(metric)
        if metric is CorrelationMetric.WEIGHT:
            return self.weight
        if metric is CorrelationMetric.BUNCHES:
            return self.bunches
        if metric is CorrelationMetric.QUALITY_RATIO:
            return self.quality_ratio
        if metric is CorrelationMetric.DWELL:
            return self.dwell
        if metric is CorrelationMetric.RAINFALL:
            return self.rainfall
        if metric is CorrelationMetric.PRICE:
            return self.price
        raise ValueError(f"Unhandled correlation metric '{metric}'.")


@dataclass(frozen=True)
class MatrixCell:
    x_metric: CorrelationMetric
    y_metric: CorrelationMetric
    r: float
    n: int


# ── Statistics ────────────────────────────────────────────────────────────────


def _is_constant(values: Sequence[float]) -> bool:
    return all(v == values[0] for v in values)


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson correlation coefficient, clamped to ``[-1, 1]``.

    Returns 0 for fewer than two pairs, for a constant series, or for a
    non-finite intermediate, never NaN.
    """
    n = len(xs)
    if n != len(ys):
        raise ValueError(f"Series lengths differ: {n} vs {len(ys)}.")
    if n < 2 or _is_constant(xs) or _is_constant(ys):
        return 0.0

    sum_x = math.fsum(xs)
    sum_y = math.fsum(ys)
    sum_xy = math.fsum(x * y for x, y in zip(xs, ys))
    sum_x2 = math.fsum(x * x for x in xs)
    sum_y2 = math.fsum(y * y for y in ys)

    numerator = n * sum_xy - sum_x * sum_y
    radicand = (n * sum_x2 - sum_x * sum_x) * (n * sum_y2 - sum_y * sum_y)
    if radicand <= 0 or not math.isfinite(radicand):
        return 0.0
    r = numerator / math.sqrt(radicand)
    if not math.isfinite(r):
        return 0.0
    return max(-1.0, min(1.0, r))


def linear_fit(xs: Sequence[float], ys: Sequence[float]) -> tuple[float, float]:
    """OLS ``(slope, intercept)`` of ys on xs.

    A constant X gives slope 0 and the mean of Y as intercept; an empty input
    gives ``(0, 0)``.
    """
    n = len(xs)
    if n == 0:
        return 0.0, 0.0
    sum_x = math.fsum(xs)
    sum_y = math.fsum(ys)
    if n < 2 or _is_constant(xs):
        return 0.0, sum_y / n
    sum_xy = math.fsum(x * y for x, y in zip(xs, ys))
    sum_x2 = math.fsum(x * x for x in xs)
    denom = n * sum_x2 - sum_x * sum_x
    if denom == 0:
        return 0.0, sum_y / n
    slope = (n * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def correlation_strength(r: float) -> str:
    """Verbal label for ``|r|``."""
    magnitude = abs(r)
    if magnitude >= 0.7:
        return "very strong"
    if magnitude >= 0.5:
        return "strong"
    if magnitude >= 0.3:
        return "moderate"
    return "weak"


# ── Table construction ────────────────────────────────────────────────────────


def build_factor_table(
    daily: Sequence[DailyAggregate],
    factors: Mapping[date, ExternalFactor] | None = None,
    start: date | None = None,
    end: date | None = None,
    prices: Sequence[PriceEntry] | None = None,
) -> list[FactorRow]:
    """Join daily aggregates with factor data, one row per date, ascending.

    Args:
        daily:   Daily aggregates (delivery days).
        factors: Sparse factor series.
        start:   Optional first date to keep.
        end:     Optional last date to keep.
        prices:  Effective-dated prices, stepped over every table date.  A
                 price already present in ``factors`` for a day wins.
    """
    factors = factors or {}
    by_date = {d.obs_date: d for d in daily}
    days = sorted(set(by_date) | set(factors))
    stepped = price_series(prices, days) if prices else {}
    rows: list[FactorRow] = []
    for day in days:
        if (start is not None and day < start) or (end is not None and day > end):
            continue
        agg = by_date.get(day)
        factor = factors.get(day)
        price = factor.price if factor and factor.price is not None else stepped.get(day)
        rows.append(
            FactorRow(
                obs_date=day,
                weight=agg.total_weight if agg else 0.0,
                bunches=float(agg.total_bunches) if agg else 0.0,
                quality_ratio=agg.quality_ratio if agg else None,
                dwell=agg.avg_dwell_minutes if agg else None,
                rainfall=factor.rainfall_mm if factor else None,
                price=price,
            )
        )
    return rows


def metric_series(rows: Sequence[FactorRow], metric: CorrelationMetric) -> dict[date, float]:
    """Date → value for ``metric``, omitting days without data."""
    series: dict[date, float] = {}
    for row in rows:
        v = row.value(metric)
        if v is not None:
            series[row.obs_date] = v
    return series


def lag_pairs(
    x_series: Mapping[date, Optional[float]],
    y_series: Mapping[date, Optional[float]],
    lag_days: int = 0,
) -> list[tuple[date, float, float]]:
    """Pair each Y day D with X from day ``D - lag_days``.

    Days whose lagged X (or whose Y) is missing are dropped, including days
    whose lagged date falls outside the representable calendar.

    Returns:
        ``(D, x[D - lag], y[D])`` tuples in date order.
    """
    try:
        offset = timedelta(days=lag_days)
    except OverflowError:
        logger.debug("Lag of %d days is out of range; no pairs.", lag_days)
        return []
    pairs: list[tuple[date, float, float]] = []
    for day in sorted(y_series):
        y = y_series[day]
        try:
            lagged = day - offset
        except OverflowError:
            continue
        x = x_series.get(lagged)
        if x is None or y is None:
            continue
        pairs.append((day, float(x), float(y)))
    return pairs


# ── Analysis ──────────────────────────────────────────────────────────────────


def analyze_pairs(
    pairs: Sequence[tuple[date, float, float]],
    x_metric: str = "x",
    y_metric: str = "y",
    lag_days: int = 0,
    config: CorrelationConfig = _DEFAULT_CONFIG,
) -> CorrelationResult:
    """Correlation, trend line and residual anomalies for prepared pairs."""
    xs = [x for _, x, _ in pairs]
    ys = [y for _, _, y in pairs]
    n = len(pairs)

    r = pearson(xs, ys)
    slope, intercept = linear_fit(xs, ys)

    fitted = [slope * x + intercept for x in xs]
    residuals = [abs(y - f) for y, f in zip(ys, fitted)]
    residual_std = population_std(residuals)
    threshold = config.outlier_sigma * residual_std
    flags = [res > threshold and res > 0 for res in residuals]

    points = [
        CorrelationPoint(obs_date=d, x=x, y=y, fitted=f, residual=res, is_outlier=flag)
        for (d, x, y), f, res, flag in zip(pairs, fitted, residuals, flags)
    ]

    trend_line: list[TrendPoint] = []
    if n >= 2:
        min_x, max_x = min(xs), max(xs)
        trend_line = [
            TrendPoint(x=min_x, y=slope * min_x + intercept),
            TrendPoint(x=max_x, y=slope * max_x + intercept),
        ]
    else:
        logger.debug("Only %d analysable day(s) for %s vs %s.", n, x_metric, y_metric)

    return CorrelationResult(
        x_metric=str(x_metric),
        y_metric=str(y_metric),
        lag_days=lag_days,
        n=n,
        r=r,
        slope=slope,
        intercept=intercept,
        std_dev_of_residuals=residual_std,
        outlier_flags=flags,
        points=points,
        trend_line=trend_line,
        strength=correlation_strength(r),
    )


def analyze(
    daily: Sequence[DailyAggregate],
    factors: Mapping[date, ExternalFactor] | None,
    x_metric: CorrelationMetric | str,
    y_metric: CorrelationMetric | str,
    lag_days: int = 0,
    config: CorrelationConfig = _DEFAULT_CONFIG,
    start: date | None = None,
    end: date | None = None,
    prices: Sequence[PriceEntry] | None = None,
) -> CorrelationResult:
    """Scatter-mode analysis of one X/Y metric pair with optional X lag.

    Raises:
        ValueError: If either metric is not a ``CorrelationMetric``.
    """
    x_metric = CorrelationMetric(x_metric)
    y_metric = CorrelationMetric(y_metric)
    rows = build_factor_table(daily, factors, start, end, prices)
    pairs = lag_pairs(metric_series(rows, x_metric), metric_series(rows, y_metric), lag_days)
    return analyze_pairs(pairs, x_metric.value, y_metric.value, lag_days, config)


def correlation_matrix(
    daily: Sequence[DailyAggregate],
    factors: Mapping[date, ExternalFactor] | None = None,
    metrics: Sequence[CorrelationMetric] = MATRIX_METRICS,
    start: date | None = None,
    end: date | None = None,
    prices: Sequence[PriceEntry] | None = None,
) -> list[MatrixCell]:
    """Same-day ``r`` for every ordered pair of ``metrics`` (row-major by X)."""
    rows = build_factor_table(daily, factors, start, end, prices)
    series = {m: metric_series(rows, m) for m in metrics}

    cells: list[MatrixCell] = []
    for mx in metrics:
        for my in metrics:
            pairs = lag_pairs(series[mx], series[my], 0)
            xs = [x for _, x, _ in pairs]
            if mx == my:
                r = 1.0 if len(xs) >= 2 and not _is_constant(xs) else 0.0
            else:
                r = pearson(xs, [y for _, _, y in pairs])
            cells.append(MatrixCell(x_metric=mx, y_metric=my, r=r, n=len(pairs)))
    return cells
