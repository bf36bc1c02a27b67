"""
Closed vocabularies used by the analytics engine.

  - ``WindowKind``        — which calendar window a filter selects.
  - ``ForecastModel``     — the projection model for one forecast call.
  - ``WeatherCondition``  — daily weather override for the hybrid model.
    Values are the labels used by the weighbridge operators' weather log.
  - ``QualityGrade``      — per-record bunch-weight grade.
  - ``CorrelationMetric`` — the fixed metric set of the factor analysis.

This module has NO imports from any other ``weighbridge_analytics`` package.
"""

from enum import StrEnum


class WindowKind(StrEnum):
    """Calendar window selected by a record filter."""

    DAY = "day"
    WEEK = "week"
    """Current ISO week, Monday through Sunday."""

    MONTH = "month"
    CUSTOM = "custom"
    """Explicit inclusive ``[start, end]`` date range."""

    ALL = "all"


class ForecastModel(StrEnum):
    """Supply projection model."""

    MOVING_AVERAGE = "moving_average"
    LINEAR_REG = "linear_reg"
    EXPONENTIAL_SMOOTHING = "exponential_smoothing"
    HYBRID = "hybrid"
    """Linear trend adjusted by weather and holiday multipliers."""


class WeatherCondition(StrEnum):
    """Daily weather condition as recorded in the weather log."""

    CLEAR = "Cerah"
    CLOUDY = "Berawan"
    LIGHT_RAIN = "Hujan Ringan"
    HEAVY_RAIN = "Hujan Deras"


class QualityGrade(StrEnum):
    """Bunch-weight (BJR) grade of a single delivery."""

    A = "A"
    B = "B"
    C = "C"


class CorrelationMetric(StrEnum):
    """Daily metrics available to the factor correlation analysis."""

    WEIGHT = "weight"
    BUNCHES = "bunches"
    QUALITY_RATIO = "quality_ratio"
    RAINFALL = "rainfall"
    PRICE = "price"
    DWELL = "dwell"

    @property
    def is_external(self) -> bool:
        """True for metrics supplied by the external factor series."""
        return self in (CorrelationMetric.RAINFALL, CorrelationMetric.PRICE)
