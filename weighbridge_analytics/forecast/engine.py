"""
Multi-step supply projection.

How it works
------------
1.  The uncertainty scale is fixed once: the population standard deviation
    of the *input* history values.
2.  For each step ``i = 1 .. horizon_days`` a fresh model is fitted to the
    working history and asked for one value.
3.  That value is appended to the working history (a new tuple each step),
    so step ``i + 1`` is fitted on the real history plus the ``i`` projected
    values.  Every model, including the linear trend, works this way.
4.  The band at step ``i`` is ``margin = std * (1 + growth * i)``
    (growth 0.1 by default): it widens linearly with distance.
    ``lower = max(0, predicted - margin)`` and ``upper = predicted + margin``.

Known limitation: feeding a model's own projections back as if they were
observations compounds its near-term error across the horizon.  Results are
kept this way for parity with the dashboards that consume them; a direct
multi-step forecaster would be a separate model, not a fix to this one.

Reported values are floored at zero (supply cannot be negative) while the
raw model output is what gets fed back.

Degenerate inputs never raise: an empty history gives an empty projection,
and models that need more data project 0 for that step.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Mapping, Optional, Sequence

from weighbridge_analytics.config import ForecastConfig
from weighbridge_analytics.forecast.models import (
    ExponentialSmoothingModel,
    HybridModel,
    LinearRegressionModel,
    MovingAverageModel,
)
from weighbridge_analytics.models.analytics import ForecastPoint
from weighbridge_analytics.taxonomy.engine_taxonomy import ForecastModel, WeatherCondition
from weighbridge_analytics.utils.stats import population_std

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = ForecastConfig()


@dataclass(frozen=True)
class ForecastParams:
    """Scenario inputs for the hybrid model.

    ``weather_override`` and ``is_holiday`` apply to every projected day.
    ``weather_by_date`` and ``holidays`` set them for specific days and take
    precedence over the blanket values.  Other models ignore all of these.
    """

    weather_override: Optional[WeatherCondition] = None
    is_holiday: bool = False
    weather_by_date: Mapping[date, WeatherCondition] = field(default_factory=dict)
    holidays: frozenset[date] = frozenset()

    def weather_on(self, day: date) -> Optional[WeatherCondition]:
        return self.weather_by_date.get(day, self.weather_override)

    def holiday_on(self, day: date) -> bool:
        return self.is_holiday or day in self.holidays


@dataclass(frozen=True)
class ForecastSummary:
    total_projected: float
    peak_date: Optional[date]
    peak_value: float


def build_model(
    model: ForecastModel,
    target_date: date,
    params: ForecastParams,
    config: ForecastConfig = _DEFAULT_CONFIG,
):
    """Instantiate the one-step model for ``model``.

    Raises:
        ValueError: If ``model`` is not a known ``ForecastModel``.
    """
    model = ForecastModel(model)
    if model is ForecastModel.MOVING_AVERAGE:
        return MovingAverageModel(window=config.moving_average_window)
    if model is ForecastModel.LINEAR_REG:
        return LinearRegressionModel()
    if model is ForecastModel.EXPONENTIAL_SMOOTHING:
        return ExponentialSmoothingModel(alpha=config.smoothing_alpha)
    if model is ForecastModel.HYBRID:
        return HybridModel(
            weather=params.weather_on(target_date),
            is_holiday=params.holiday_on(target_date),
            weather_multipliers=config.weather_multipliers,
            holiday_multiplier=config.holiday_multiplier,
        )
    raise ValueError(f"Unhandled forecast model '{model}'.")


def forecast_step(
    working: tuple[float, ...],
    model: ForecastModel,
    target_date: date,
    params: ForecastParams | None = None,
    config: ForecastConfig = _DEFAULT_CONFIG,
) -> tuple[float, tuple[float, ...]]:
    """One recursive step: project the next value and extend the history.

    Returns:
        ``(raw_value, working + (raw_value,))``.
    """
    m = build_model(model, target_date, params or ForecastParams(), config)
    m.fit(working)
    value = m.predict_next()
    return value, working + (value,)


def band_margin(std_dev: float, step: int, config: ForecastConfig = _DEFAULT_CONFIG) -> float:
    """Half-width of the uncertainty band ``step`` days out."""
    return std_dev * (1.0 + step * config.margin_growth_per_step)


def project(
    history: Sequence[tuple[date, float]],
    horizon_days: int,
    model: ForecastModel | str,
    params: ForecastParams | None = None,
    config: ForecastConfig = _DEFAULT_CONFIG,
) -> list[ForecastPoint]:
    """Project ``horizon_days`` future daily totals.

    Args:
        history:      Chronological ``(date, value)`` pairs.
        horizon_days: Number of days to project (0 gives an empty list).
        model:        Projection model.
        params:       Hybrid scenario inputs.
        config:       Model constants.

    Returns:
        One ``ForecastPoint`` per projected day, dated from the day after the
        last history date.

    Raises:
        ValueError: If ``horizon_days`` is negative or ``model`` is unknown.
    """
    if horizon_days < 0:
        raise ValueError(f"horizon_days must be >= 0, got {horizon_days}.")
    model = ForecastModel(model)
    if not history:
        logger.debug("Empty history; no projection for model %s.", model)
        return []

    params = params or ForecastParams()
    values = tuple(float(v) for _, v in history)
    last_date = history[-1][0]
    std_dev = population_std(values)

    points: list[ForecastPoint] = []
    working = values
    for step in range(1, horizon_days + 1):
        target = last_date + timedelta(days=step)
        raw, working = forecast_step(working, model, target, params, config)
        predicted = max(0.0, raw)
        margin = band_margin(std_dev, step, config)
        points.append(
            ForecastPoint(
                target_date=target,
                step=step,
                predicted_value=predicted,
                lower_bound=max(0.0, predicted - margin),
                upper_bound=predicted + margin,
            )
        )
    return points


def forecast_summary(points: Sequence[ForecastPoint]) -> ForecastSummary:
    """Total projected supply and the busiest projected day."""
    if not points:
        return ForecastSummary(total_projected=0.0, peak_date=None, peak_value=0.0)
    peak = max(points, key=lambda p: p.predicted_value)
    return ForecastSummary(
        total_projected=math.fsum(p.predicted_value for p in points),
        peak_date=peak.target_date,
        peak_value=peak.predicted_value,
    )
