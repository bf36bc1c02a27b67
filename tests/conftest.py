"""
Shared pytest fixtures for the weighbridge analytics test suite.

Provides:
  - ``make_record``: factory for ``Record`` objects with sensible defaults.
  - ``sample_records``: a small two-week record set across four locations.
  - ``sample_factors``: rainfall and price for the same fortnight.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Callable

import pytest

from weighbridge_analytics.models.record import ExternalFactor, Record

_counter = {"n": 0}


def build_record(
    record_date: date = date(2026, 1, 5),
    net_weight: float = 5_000.0,
    bunch_count: int = 250,
    location: str = "AFD A NASAL",
    vehicle_id: str = "BD 1234 AB",
    entry_time: str = "08:00",
    exit_time: str = "08:30",
    record_id: str | None = None,
) -> Record:
    """Build a ``Record``; ids are unique unless given."""
    if record_id is None:
        _counter["n"] += 1
        record_id = f"Tiket.{_counter['n']:04d}"
    return Record(
        record_id=record_id,
        record_date=record_date,
        entry_time=entry_time,
        exit_time=exit_time,
        vehicle_id=vehicle_id,
        net_weight=net_weight,
        bunch_count=bunch_count,
        location=location,
    )


@pytest.fixture
def make_record() -> Callable[..., Record]:
    return build_record


@pytest.fixture
def sample_records() -> list[Record]:
    """14 days (2026-01-05 Monday .. 2026-01-18) of deliveries.

    AFD A delivers daily, AFD B every other day, AFD F on weekdays, and
    "KEBUN PLASMA" (no AFD code) twice.
    """
    start = date(2026, 1, 5)
    rows: list[Record] = []
    for i in range(14):
        day = start + timedelta(days=i)
        rows.append(build_record(day, 6_000.0 + 100 * i, 280, "AFD A NASAL", "BD 1111 AA"))
        if i % 2 == 0:
            rows.append(build_record(day, 3_000.0, 200, "AFD B NASAL", "BD 2222 BB", "09:00", "09:45"))
        if day.isoweekday() <= 5:
            rows.append(build_record(day, 4_500.0, 500, "AFD F BINTUHAN", "BD 3333 CC", "10:15", "11:00"))
    rows.append(build_record(start + timedelta(days=3), 1_200.0, 150, "KEBUN PLASMA", "BE 4444 DD", "21:50", "22:10"))
    rows.append(build_record(start + timedelta(days=10), 1_000.0, 0, "KEBUN PLASMA", "BE 4444 DD", "", ""))
    return rows


@pytest.fixture
def sample_factors() -> dict[date, ExternalFactor]:
    start = date(2026, 1, 5)
    return {
        start + timedelta(days=i): ExternalFactor(
            obs_date=start + timedelta(days=i),
            rainfall_mm=float((i * 7) % 40),
            price=2_500.0 if i < 7 else 2_650.0,
        )
        for i in range(14)
    }
