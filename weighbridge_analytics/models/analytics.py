"""
Structured engine outputs.

All models are frozen and recomputed from the current record set on every
request; the engine never persists or caches them.  Numbers are raw floats:
rounding and locale formatting belong to whoever renders them.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator


class DailyAggregate(BaseModel):
    """Totals for one calendar day.

    Attributes:
        obs_date: Calendar day.
        total_weight: Sum of net weight (kg).
        total_bunches: Sum of bunch counts.
        record_count: Number of deliveries.
        avg_dwell_minutes: Mean on-site time over deliveries with a valid dwell,
            0 when none qualified.
        quality_ratio: ``total_weight / total_bunches``; 0 when no bunches.
    """

    model_config = ConfigDict(frozen=True)

    obs_date: date
    total_weight: float
    total_bunches: int
    record_count: int
    avg_dwell_minutes: float
    quality_ratio: float


class ForecastPoint(BaseModel):
    """One projected day with its uncertainty band.

    Attributes:
        target_date: Projected calendar day.
        step: 1-based distance from the last history day.
        predicted_value: Central estimate (kg), never negative.
        lower_bound: ``max(0, predicted - margin)``.
        upper_bound: ``predicted + margin``.
    """

    model_config = ConfigDict(frozen=True)

    target_date: date
    step: int
    predicted_value: float
    lower_bound: float
    upper_bound: float

    @model_validator(mode="after")
    def validate_band(self) -> "ForecastPoint":
        if not self.lower_bound <= self.predicted_value <= self.upper_bound:
            raise ValueError(
                f"Expected lower_bound ({self.lower_bound}) <= predicted_value "
                f"({self.predicted_value}) <= upper_bound ({self.upper_bound})."
            )
        if self.lower_bound < 0:
            raise ValueError("lower_bound must be non-negative.")
        if self.step < 1:
            raise ValueError(f"step must be >= 1, got {self.step}.")
        return self


class BenchmarkEntry(BaseModel):
    """Ranked location with its composite score and the four sub-scores.

    Attributes:
        location: Raw location string as recorded.
        name: Short display label (``"AFD A"``).
        total_weight: Delivered weight (kg).
        total_bunches: Delivered bunches.
        quality_ratio: Average bunch weight over the period.
        trip_count: Number of deliveries.
        avg_dwell_minutes: Mean valid dwell time.
        consistency_percent: Share of the period's active days with a delivery.
        grade_a_percent: Share of deliveries graded A.
        volume_score, quality_score, consistency_score, grade_a_score:
            Capped sub-scores.
        composite_score: Sum of the sub-scores.
    """

    model_config = ConfigDict(frozen=True)

    location: str
    name: str
    total_weight: float
    total_bunches: int
    quality_ratio: float
    trip_count: int
    avg_dwell_minutes: float
    consistency_percent: float
    grade_a_percent: float
    volume_score: float
    quality_score: float
    consistency_score: float
    grade_a_score: float
    composite_score: float

    @model_validator(mode="after")
    def validate_score(self) -> "BenchmarkEntry":
        if self.composite_score < 0:
            raise ValueError("composite_score must be non-negative.")
        return self


class CorrelationPoint(BaseModel):
    """One analysed day in a scatter analysis.

    ``x`` is the (possibly lagged) factor value, ``y`` the same-day outcome.
    """

    model_config = ConfigDict(frozen=True)

    obs_date: date
    x: float
    y: float
    fitted: float
    residual: float
    is_outlier: bool


class TrendPoint(BaseModel):
    """An endpoint of the fitted trend line."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class CorrelationResult(BaseModel):
    """Pearson correlation, linear trend and residual anomalies for one X/Y pair.

    Attributes:
        x_metric: Metric on the X axis.
        y_metric: Metric on the Y axis.
        lag_days: Days the X metric was shifted back.
        n: Number of analysed days.
        r: Pearson correlation in ``[-1, 1]``; 0 for degenerate series.
        slope: OLS slope of Y on X.
        intercept: OLS intercept.
        std_dev_of_residuals: Population std of absolute residuals.
        outlier_flags: One flag per analysed point, in date order.
        points: The analysed points.
        trend_line: ``(minX, fit(minX))`` and ``(maxX, fit(maxX))``; empty
            when fewer than two points were analysed.
    """

    model_config = ConfigDict(frozen=True)

    x_metric: str
    y_metric: str
    lag_days: int = 0
    n: int
    r: float
    slope: float
    intercept: float
    std_dev_of_residuals: float
    outlier_flags: list[bool]
    points: list[CorrelationPoint] = []
    trend_line: list[TrendPoint] = []
    strength: Optional[str] = None

    @model_validator(mode="after")
    def validate_r(self) -> "CorrelationResult":
        if not -1.0 <= self.r <= 1.0:
            raise ValueError(f"r must be in [-1, 1], got {self.r}.")
        if len(self.outlier_flags) != len(self.points):
            raise ValueError("outlier_flags must align with points.")
        return self
