"""
File loaders for weighbridge records and external factor data.

Formats
-------
Records, ``.json``: a list of ticket objects, or ``{"records": [...]}``.
Records, ``.csv``: comma-delimited with a header row.  Required columns
(English or ticket-export names):

  id / record_id,  tanggal / date,  netto / net_weight

Optional columns: ``jam_masuk``, ``jam_keluar``, ``nopol``, ``janjang``,
``lokasi`` (or their English equivalents).  Empty cells fall back to the
model defaults.

Factors, ``.json`` or ``.csv``: rows of ``date``, ``rainfall`` (mm) and
``price``; either value may be blank.  A JSON factor file may instead hold
``{"rainfall": [...], "prices": [...]}`` where ``prices`` are effective-dated
``{"effective_date", "price"}`` entries.  ``load_factors`` steps them over
the rainfall dates only; ``load_factor_data`` also returns the raw entries so
the correlation table can step them over every delivery date as well.

Every row is validated before anything is returned.  If any row fails, one
``ValueError`` is raised listing the first 10 failures.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

from pydantic import BaseModel, ValidationError

from weighbridge_analytics.analysis.factors import factors_from_list, price_series
from weighbridge_analytics.models.record import ExternalFactor, PriceEntry, Record

logger = logging.getLogger(__name__)

_MAX_ERRORS_SHOWN = 10

_RECORD_REQUIRED = (
    ("record_id", "id"),
    ("record_date", "date", "tanggal"),
    ("net_weight", "netto"),
)

T = TypeVar("T", bound=BaseModel)


def load_records(path: Path) -> list[Record]:
    """Load and validate weighbridge records from a JSON or CSV file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: On an unsupported extension, missing CSV columns, or any
            row that fails validation.
    """
    rows = _read_rows(path, list_key="records")
    if path.suffix.lower() == ".csv" and rows:
        _check_columns(path, rows[0].keys(), _RECORD_REQUIRED)
    records = _validate_rows(path, rows, Record.model_validate)
    logger.info("Loaded %d records from %s", len(records), path.name)
    return records


def load_factors(path: Path) -> dict[date, ExternalFactor]:
    """Load a daily factor series from a JSON or CSV file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: On an unsupported extension or any invalid row.
    """
    factors, _ = load_factor_data(path)
    return factors


def load_factor_data(path: Path) -> tuple[dict[date, ExternalFactor], list[PriceEntry]]:
    """Load the daily factor series and any effective-dated price entries.

    Daily-row files carry no price entries; their prices are already per day.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: On an unsupported extension or any invalid row.
    """
    if path.suffix.lower() == ".json":
        data = _read_json(path)
        if isinstance(data, dict) and ("rainfall" in data or "prices" in data):
            return _factors_from_sections(path, data)

    rows = _read_rows(path, list_key="factors")
    factors = _validate_rows(path, rows, ExternalFactor.model_validate)
    logger.info("Loaded %d factor rows from %s", len(factors), path.name)
    return factors_from_list(factors), []


# ── Private helpers ────────────────────────────────────────────────────────────


def _factors_from_sections(
    path: Path, data: dict[str, Any]
) -> tuple[dict[date, ExternalFactor], list[PriceEntry]]:
    rainfall_rows = _validate_rows(path, data.get("rainfall") or [], ExternalFactor.model_validate)
    prices = _validate_rows(path, data.get("prices") or [], PriceEntry.model_validate)

    rainfall = {f.obs_date: f.rainfall_mm for f in rainfall_rows if f.rainfall_mm is not None}
    prices_by_date = price_series(prices, rainfall.keys()) if rainfall else {}
    for p in prices:
        prices_by_date.setdefault(p.effective_date, p.price)

    merged = [
        ExternalFactor(obs_date=d, rainfall_mm=rainfall.get(d), price=prices_by_date.get(d))
        for d in sorted(set(rainfall) | set(prices_by_date))
    ]
    logger.info(
        "Loaded %d rainfall rows and %d price entries from %s",
        len(rainfall_rows), len(prices), path.name,
    )
    return factors_from_list(merged), prices


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _read_rows(path: Path, list_key: str) -> list[dict[str, Any]]:
    """Raw row dicts from a JSON list/object or a CSV file."""
    suffix = path.suffix.lower()
    if suffix == ".json":
        data = _read_json(path)
        if isinstance(data, dict):
            data = data.get(list_key, [])
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON list of rows in {path.name}.")
        return data
    if suffix == ".csv":
        if not path.exists():
            raise FileNotFoundError(f"Data file not found: {path}")
        with open(path, encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            if reader.fieldnames is None:
                raise ValueError(f"CSV file is empty or has no header row: {path}")
            rows = [_drop_blank(row) for row in reader]
        if not rows:
            logger.warning("CSV is empty (header only): %s", path)
        return rows
    raise ValueError(f"Unsupported file type '{path.suffix}' for {path.name}; use .json or .csv.")


def _drop_blank(row: dict[str, str]) -> dict[str, str]:
    """Remove empty cells so the model defaults apply."""
    return {k.strip(): v.strip() for k, v in row.items() if k and v is not None and v.strip()}


def _check_columns(path: Path, columns: Iterable[str], required: Iterable[tuple[str, ...]]) -> None:
    present = set(columns)
    missing = [names[0] for names in required if not present.intersection(names)]
    if missing:
        raise ValueError(
            f"{path.name} missing required columns: {missing}\n"
            f"Found columns: {sorted(present)}"
        )


def _validate_rows(
    path: Path,
    rows: list[dict[str, Any]],
    validate: Callable[[dict[str, Any]], T],
) -> list[T]:
    """Validate every row; raise one ``ValueError`` summarising all failures."""
    items: list[T] = []
    errors: list[tuple[int, str]] = []
    for i, row in enumerate(rows, start=1):
        try:
            items.append(validate(row))
        except (ValueError, ValidationError) as exc:
            errors.append((i, str(exc).replace("\n", " ")))

    if errors:
        detail = "\n".join(f"  Row {n}: {msg}" for n, msg in errors[:_MAX_ERRORS_SHOWN])
        suffix = (
            f"\n  … and {len(errors) - _MAX_ERRORS_SHOWN} more"
            if len(errors) > _MAX_ERRORS_SHOWN else ""
        )
        raise ValueError(f"{len(errors)} row(s) failed validation in {path.name}:\n{detail}{suffix}")
    return items
