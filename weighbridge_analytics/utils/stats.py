"""Small numeric helpers shared by the forecaster and the correlation analysis."""

from __future__ import annotations

import math
from typing import Sequence


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0 for an empty sequence."""
    return math.fsum(values) / len(values) if values else 0.0


def population_std(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for an empty sequence."""
    if not values:
        return 0.0
    mu = mean(values)
    variance = math.fsum((v - mu) ** 2 for v in values) / len(values)
    return math.sqrt(max(0.0, variance))
