"""
Input models: weighbridge transaction records and external factor data.

``Record`` is one truck delivery as captured at the weighbridge.  Records are
immutable once ingested; ``record_id`` is the uniqueness key used by the
external store for idempotent re-imports (the engine itself never
de-duplicates).

The field aliases accept the column names of the mill's ticket export
(``tanggal``, ``jam_masuk``, ``jam_keluar``, ``nopol``, ``netto``,
``janjang``, ``lokasi``) as well as English names, so a loader can pass raw
rows straight through ``Record.model_validate``.

Clock fields are kept as raw strings: a malformed clock must only exclude the
record from dwell-time statistics, never reject the record.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class Record(BaseModel):
    """One weighbridge ticket.

    Attributes:
        record_id: Ticket identifier, e.g. ``"Tiket.0001"``.
        record_date: Local calendar day of the delivery.
        entry_time: Weigh-in clock, ``HH:MM``.
        exit_time: Weigh-out clock, ``HH:MM``.
        vehicle_id: Truck plate number.
        net_weight: Net delivered weight in kg.
        bunch_count: Number of fruit bunches in the load.
        location: Raw source location string, e.g. ``"AFD A NASAL"``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    record_id: str = Field(validation_alias=AliasChoices("record_id", "id"))
    record_date: date = Field(validation_alias=AliasChoices("record_date", "date", "tanggal"))
    entry_time: str = Field(
        default="", validation_alias=AliasChoices("entry_time", "jam_masuk")
    )
    exit_time: str = Field(
        default="", validation_alias=AliasChoices("exit_time", "jam_keluar")
    )
    vehicle_id: str = Field(
        default="", validation_alias=AliasChoices("vehicle_id", "nopol")
    )
    net_weight: float = Field(validation_alias=AliasChoices("net_weight", "netto"))
    bunch_count: int = Field(
        default=0, validation_alias=AliasChoices("bunch_count", "janjang")
    )
    location: str = Field(
        default="", validation_alias=AliasChoices("location", "lokasi")
    )

    @field_validator("net_weight")
    @classmethod
    def validate_weight(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"net_weight must be non-negative, got {v}.")
        return v

    @field_validator("bunch_count")
    @classmethod
    def validate_bunches(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"bunch_count must be non-negative, got {v}.")
        return v

    @field_validator("entry_time", "exit_time", "vehicle_id", "location", mode="before")
    @classmethod
    def coerce_blank(cls, v: object) -> str:
        return "" if v is None else str(v).strip()

    @property
    def quality_ratio(self) -> float:
        """Average bunch weight (BJR) of this load; 0 when no bunches were counted."""
        return self.net_weight / self.bunch_count if self.bunch_count > 0 else 0.0


class ExternalFactor(BaseModel):
    """External conditions on one calendar day.

    Either value may be missing; a missing value means "no data", not zero.

    Attributes:
        obs_date: Calendar day.
        rainfall_mm: Daily rainfall in millimetres, or ``None``.
        price: Fresh-fruit-bunch purchase price in effect that day, or ``None``.
    """

    model_config = ConfigDict(frozen=True)

    obs_date: date = Field(validation_alias=AliasChoices("obs_date", "date"))
    rainfall_mm: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("rainfall_mm", "rainfall")
    )
    price: Optional[float] = None

    @model_validator(mode="after")
    def validate_non_negative(self) -> "ExternalFactor":
        if self.rainfall_mm is not None and self.rainfall_mm < 0:
            raise ValueError("rainfall_mm must be non-negative.")
        if self.price is not None and self.price < 0:
            raise ValueError("price must be non-negative.")
        return self


class PriceEntry(BaseModel):
    """A purchase price that takes effect on ``effective_date`` and holds
    until the next entry."""

    model_config = ConfigDict(frozen=True)

    effective_date: date
    price: float

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"price must be non-negative, got {v}.")
        return v
