"""
Record selection by time window and location facet.

``filter_records(records, window, facet)`` is the first stage of every
analysis: it picks the deliveries that belong to the requested period and
location, and returns a new list (input is never mutated; no match gives an
empty list).

Windows use calendar-day semantics.  A record dated D matches a day window D
whatever its clock times, and an inclusive custom range ``[start, end]``
matches both endpoints.

Location facets
---------------
``all``       — every record.
``region``    — a named set of location codes (``NASAL`` = AFD A-E by default).
                A record matches if its raw location contains any of the codes.
``location``  — a single code matched by case-insensitive substring
                containment against the raw location string.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Literal, Mapping, Optional, Sequence

from weighbridge_analytics.models.record import Record
from weighbridge_analytics.taxonomy.engine_taxonomy import WindowKind
from weighbridge_analytics.utils.time_utils import month_bounds, shift_months, week_start

logger = logging.getLogger(__name__)

SearchField = Literal["all", "id", "vehicle", "location"]


@dataclass(frozen=True)
class TimeWindow:
    """An inclusive calendar window.

    Build one with the classmethod constructors rather than directly.
    ``start``/``end`` are ``None`` only for ``WindowKind.ALL``.
    """

    kind: WindowKind
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def day(cls, day: date) -> "TimeWindow":
        return cls(WindowKind.DAY, day, day)

    @classmethod
    def current_week(cls, today: date) -> "TimeWindow":
        """Monday through Sunday of ``today``'s ISO week."""
        monday = week_start(today)
        return cls(WindowKind.WEEK, monday, monday + timedelta(days=6))

    @classmethod
    def current_month(cls, today: date) -> "TimeWindow":
        first, last = month_bounds(today)
        return cls(WindowKind.MONTH, first, last)

    @classmethod
    def custom(cls, start: date, end: date) -> "TimeWindow":
        """Inclusive range; reversed endpoints are swapped."""
        if end < start:
            start, end = end, start
        return cls(WindowKind.CUSTOM, start, end)

    @classmethod
    def all_time(cls) -> "TimeWindow":
        return cls(WindowKind.ALL)

    def contains(self, day: date) -> bool:
        if self.kind is WindowKind.ALL:
            return True
        return self.start <= day <= self.end  # type: ignore[operator]

    @property
    def day_count(self) -> Optional[int]:
        """Calendar days spanned, or ``None`` for the unbounded window."""
        if self.start is None or self.end is None:
            return None
        return (self.end - self.start).days + 1

    def previous(self) -> Optional["TimeWindow"]:
        """The comparison window for period-over-period KPIs.

        day → previous day, week → previous Monday-Sunday, month → previous
        calendar month.  Custom and all-time windows have no comparison
        period and return ``None``.
        """
        if self.kind is WindowKind.DAY:
            return TimeWindow.day(self.start - timedelta(days=1))  # type: ignore[operator]
        if self.kind is WindowKind.WEEK:
            return TimeWindow.current_week(self.start - timedelta(days=7))  # type: ignore[operator]
        if self.kind is WindowKind.MONTH:
            return TimeWindow.current_month(shift_months(self.start, -1))  # type: ignore[arg-type]
        return None


@dataclass(frozen=True)
class LocationFacet:
    """Location selector: everything, a named region, or one location code."""

    kind: Literal["all", "region", "location"] = "all"
    value: str = ""

    @classmethod
    def all(cls) -> "LocationFacet":
        return cls("all")

    @classmethod
    def region(cls, name: str) -> "LocationFacet":
        return cls("region", name.strip().upper())

    @classmethod
    def location(cls, code: str) -> "LocationFacet":
        """Substring match on a location code.  A blank code selects everything."""
        code = code.strip().upper()
        if not code:
            return cls.all()
        return cls("location", code)

    @classmethod
    def parse(cls, value: str | None, regions: Mapping[str, Sequence[str]]) -> "LocationFacet":
        """Interpret a user-supplied selector: ``ALL``, a region name, or a code."""
        if not value or value.strip().upper() == "ALL":
            return cls.all()
        if value.strip().upper() in regions:
            return cls.region(value)
        return cls.location(value)

    def codes(self, regions: Mapping[str, Sequence[str]]) -> list[str]:
        """Upper-cased location codes this facet matches."""
        if self.kind == "location":
            return [self.value]
        if self.kind == "region":
            codes = regions.get(self.value)
            if codes is None:
                logger.debug("Unknown region '%s'; facet matches nothing.", self.value)
                return []
            return [c.upper() for c in codes]
        return []

    def matches(self, location: str, regions: Mapping[str, Sequence[str]]) -> bool:
        if self.kind == "all":
            return True
        loc = location.upper()
        return any(code in loc for code in self.codes(regions))


def filter_records(
    records: Iterable[Record],
    window: TimeWindow,
    facet: LocationFacet | None = None,
    regions: Mapping[str, Sequence[str]] | None = None,
) -> list[Record]:
    """Return the records inside ``window`` that match ``facet``.

    Args:
        records: Any iterable of records, in any order.
        window:  Calendar window.
        facet:   Location selector; ``None`` means all locations.
        regions: Region name → location codes, usually ``AppConfig.regions``.

    Returns:
        New list preserving input order; empty when nothing matches.
    """
    facet = facet or LocationFacet.all()
    regions = regions or {}
    return [
        r for r in records
        if window.contains(r.record_date) and facet.matches(r.location, regions)
    ]


def search_records(
    records: Iterable[Record],
    query: str,
    field: SearchField = "all",
) -> list[Record]:
    """Case-insensitive substring search over ticket id, vehicle, or location.

    An empty query returns every record.
    """
    needle = query.strip().lower()
    if not needle:
        return list(records)

    def _haystacks(r: Record) -> tuple[str, ...]:
        if field == "id":
            return (r.record_id,)
        if field == "vehicle":
            return (r.vehicle_id,)
        if field == "location":
            return (r.location,)
        return (r.record_id, r.vehicle_id, r.location)

    return [r for r in records if any(needle in h.lower() for h in _haystacks(r))]
