"""
External factor series.

A factor series is a sparse ``dict[date, ExternalFactor]``: a date that is
missing, or whose value is ``None``, has no data.  It is never read as zero.

Prices are published as effective-dated entries rather than daily values;
``price_series`` expands them into a step function over the dates of
interest.
"""

from __future__ import annotations

from bisect import bisect_right
from datetime import date
from typing import Iterable, Mapping

from weighbridge_analytics.models.record import ExternalFactor, PriceEntry


def price_series(prices: Iterable[PriceEntry], dates: Iterable[date]) -> dict[date, float]:
    """Price in effect on each of ``dates``.

    The price on day D is the latest entry with ``effective_date <= D``.
    Dates before the first entry get no value.  When two entries share an
    effective date, the later one in ``prices`` wins.
    """
    by_date: dict[date, float] = {}
    for p in prices:
        by_date[p.effective_date] = p.price
    effective = sorted(by_date)
    if not effective:
        return {}

    result: dict[date, float] = {}
    for d in dates:
        idx = bisect_right(effective, d)
        if idx > 0:
            result[d] = by_date[effective[idx - 1]]
    return result


def merge_factors(
    rainfall: Mapping[date, float] | None = None,
    prices: Mapping[date, float] | None = None,
) -> dict[date, ExternalFactor]:
    """Combine per-date rainfall and price maps into one factor series."""
    rainfall = rainfall or {}
    prices = prices or {}
    return {
        d: ExternalFactor(obs_date=d, rainfall_mm=rainfall.get(d), price=prices.get(d))
        for d in sorted(set(rainfall) | set(prices))
    }


def factors_from_list(factors: Iterable[ExternalFactor]) -> dict[date, ExternalFactor]:
    """Index factors by date.  Later entries for a date fill gaps in earlier ones."""
    result: dict[date, ExternalFactor] = {}
    for f in factors:
        prior = result.get(f.obs_date)
        if prior is None:
            result[f.obs_date] = f
        else:
            result[f.obs_date] = ExternalFactor(
                obs_date=f.obs_date,
                rainfall_mm=f.rainfall_mm if f.rainfall_mm is not None else prior.rainfall_mm,
                price=f.price if f.price is not None else prior.price,
            )
    return dict(sorted(result.items()))
