"""
One-step supply projection models.

Each model answers a single question: given the daily totals so far, what is
tomorrow's total?  Multi-step horizons are produced by ``forecast.engine``,
which feeds every projection back into the history before asking again.

  MovingAverageModel        → "Supply hovers around last week's level."
  LinearRegressionModel     → "Supply follows a straight-line trend over the
                               whole history."
  ExponentialSmoothingModel → "Recent days matter more than old ones."
  HybridModel               → "The linear trend, adjusted for tomorrow's
                               weather and whether the mill is operating."

Interface contract
------------------
All models implement:

  fit(values: Sequence[float]) → None
    Receive the working history in chronological order.  Re-fitting
    replaces all previous state.

  predict_next() → float
    Projection for the day after the last fitted value.  Degenerate
    histories give 0.0 rather than raising.
"""

from __future__ import annotations

import math
from typing import Mapping, Sequence

from weighbridge_analytics.taxonomy.engine_taxonomy import ForecastModel, WeatherCondition


class MovingAverageModel:
    """Mean of the last ``window`` values.

    Returns 0 until the history holds a full window (and therefore whenever
    it holds fewer than two values).
    """

    name = ForecastModel.MOVING_AVERAGE

    def __init__(self, window: int = 7) -> None:
        self._window = window
        self._mean = 0.0

    def fit(self, values: Sequence[float]) -> None:
        self._mean = 0.0
        if len(values) < max(self._window, 2):
            return
        tail = values[-self._window:]
        self._mean = sum(tail) / len(tail)

    def predict_next(self) -> float:
        return self._mean


class LinearRegressionModel:
    """Ordinary least squares of value on time index ``0 .. n-1``.

    Projects ``slope * x + intercept`` at ``x = n + steps_ahead - 1``.
    """

    name = ForecastModel.LINEAR_REG

    def __init__(self) -> None:
        self._n = 0
        self._slope = 0.0
        self._intercept = 0.0

    @property
    def slope(self) -> float:
        return self._slope

    @property
    def intercept(self) -> float:
        return self._intercept

    def fit(self, values: Sequence[float]) -> None:
        self._n = len(values)
        self._slope = 0.0
        self._intercept = 0.0
        if self._n < 2:
            return
        n = self._n
        sum_x = n * (n - 1) / 2
        sum_xx = (n - 1) * n * (2 * n - 1) / 6
        sum_y = math.fsum(values)
        sum_xy = math.fsum(i * v for i, v in enumerate(values))
        denom = n * sum_xx - sum_x * sum_x
        self._slope = (n * sum_xy - sum_x * sum_y) / denom
        self._intercept = (sum_y - self._slope * sum_x) / n

    def predict(self, steps_ahead: int = 1) -> float:
        if self._n < 2:
            return 0.0
        return self._slope * (self._n + steps_ahead - 1) + self._intercept

    def predict_next(self) -> float:
        return self.predict(1)


class ExponentialSmoothingModel:
    """Single exponential smoothing ``S_t = a * v_t + (1 - a) * S_{t-1}``.

    Seeded with the first observation; the projection is the last smoothed
    level.
    """

    name = ForecastModel.EXPONENTIAL_SMOOTHING

    def __init__(self, alpha: float = 0.6) -> None:
        self._alpha = alpha
        self._level = 0.0

    def fit(self, values: Sequence[float]) -> None:
        self._level = 0.0
        if not values:
            return
        level = values[0]
        for v in values[1:]:
            level = self._alpha * v + (1 - self._alpha) * level
        self._level = level

    def predict_next(self) -> float:
        return self._level


class HybridModel:
    """Linear trend scaled by weather and holiday multipliers, floored at 0.

    Args:
        weather:             Weather expected on the projected day, or None.
        is_holiday:          True when the mill does not operate that day.
        weather_multipliers: Weather label → multiplier.
        holiday_multiplier:  Multiplier applied on non-operating days.
    """

    name = ForecastModel.HYBRID

    def __init__(
        self,
        weather: WeatherCondition | None,
        is_holiday: bool,
        weather_multipliers: Mapping[str, float],
        holiday_multiplier: float = 0.5,
    ) -> None:
        self._base = LinearRegressionModel()
        self._weather = weather
        self._is_holiday = is_holiday
        self._weather_multipliers = weather_multipliers
        self._holiday_multiplier = holiday_multiplier

    @property
    def adjustment(self) -> float:
        """Combined multiplier applied to the linear base."""
        factor = 1.0
        if self._weather is not None:
            factor *= self._weather_multipliers.get(self._weather.value, 1.0)
        if self._is_holiday:
            factor *= self._holiday_multiplier
        return factor

    def fit(self, values: Sequence[float]) -> None:
        self._base.fit(values)

    def predict_next(self) -> float:
        return max(0.0, self._base.predict_next() * self.adjustment)


def weather_condition_for_rainfall(rainfall_mm: float | None) -> WeatherCondition | None:
    """Classify a day's rainfall: dry → Cerah, up to 30 mm → Hujan Ringan,
    more → Hujan Deras.  ``None`` stays unknown.

    Cloud cover is not recorded in rainfall data, so ``Berawan`` is never
    inferred here.
    """
    if rainfall_mm is None:
        return None
    if rainfall_mm <= 0:
        return WeatherCondition.CLEAR
    if rainfall_mm <= 30:
        return WeatherCondition.LIGHT_RAIN
    return WeatherCondition.HEAVY_RAIN
