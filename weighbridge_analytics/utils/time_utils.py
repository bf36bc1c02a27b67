"""
Calendar and clock helpers.

All window arithmetic works on ``datetime.date`` (local calendar days), never
on instants, so a delivery recorded on day D belongs to day D regardless of
its time of day.  Clock strings are the weighbridge's ``HH:MM`` entry/exit
stamps, which carry no date of their own.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Optional

MINUTES_PER_DAY = 1440


def parse_clock(value: str | None) -> Optional[int]:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) clock string into minutes after midnight.

    Returns ``None`` for empty or malformed strings and for out-of-range
    components.  Seconds, when present, are ignored.
    """
    if not value:
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def week_start(today: date) -> date:
    """Return the Monday of ``today``'s ISO week."""
    return today - timedelta(days=today.isoweekday() - 1)


def month_bounds(day: date) -> tuple[date, date]:
    """Return the first and last calendar day of ``day``'s month."""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def days_in_month(day: date) -> int:
    """Number of days in ``day``'s calendar month."""
    return calendar.monthrange(day.year, day.month)[1]


def shift_months(day: date, months: int) -> date:
    """Return the first day of the month ``months`` away from ``day``'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)

