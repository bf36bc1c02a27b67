"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``WEIGHBRIDGE_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The engine's scoring constants (baseline target, dwell exclusion bounds,
grade thresholds, sigma multiplier, composite-score caps) live here as named
fields so the formulas stay auditable.  Every engine function accepts the
relevant sub-config and falls back to a default instance when omitted, so the
defaults below must match the documented behaviour exactly.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from weighbridge_analytics.taxonomy.engine_taxonomy import ForecastModel, WeatherCondition

# ── Sub-config models ─────────────────────────────────────────────────────────


class DataConfig(BaseModel):
    """Filesystem paths used by the CLI."""

    model_config = ConfigDict(frozen=True)

    records_file: str = "data/records.json"
    factors_file: str = "data/factors.json"
    output_dir: str = "data/outputs"


class AggregationConfig(BaseModel):
    """Period aggregation constants."""

    model_config = ConfigDict(frozen=True)

    base_daily_target_kg: float = 40_000.0
    week_working_days: int = 6
    dwell_min_minutes: float = 0.0      # exclusive lower bound
    dwell_max_minutes: float = 300.0    # exclusive upper bound
    grade_a_min_ratio: float = 20.0
    grade_b_min_ratio: float = 10.0

    @model_validator(mode="after")
    def validate_bounds(self) -> "AggregationConfig":
        if self.dwell_min_minutes >= self.dwell_max_minutes:
            raise ValueError(
                f"dwell_min_minutes ({self.dwell_min_minutes}) must be < "
                f"dwell_max_minutes ({self.dwell_max_minutes})."
            )
        if self.grade_b_min_ratio > self.grade_a_min_ratio:
            raise ValueError("grade_b_min_ratio must be <= grade_a_min_ratio.")
        if self.base_daily_target_kg <= 0:
            raise ValueError("base_daily_target_kg must be positive.")
        return self


_DEFAULT_WEATHER_MULTIPLIERS: dict[str, float] = {
    WeatherCondition.CLEAR.value:      1.05,
    WeatherCondition.CLOUDY.value:     0.98,
    WeatherCondition.LIGHT_RAIN.value: 0.90,
    WeatherCondition.HEAVY_RAIN.value: 0.70,
}


class ForecastConfig(BaseModel):
    """Forecast model parameters."""

    model_config = ConfigDict(frozen=True)

    default_model: ForecastModel = ForecastModel.LINEAR_REG
    horizon_days: int = 7
    moving_average_window: int = 7
    smoothing_alpha: float = 0.6
    margin_growth_per_step: float = 0.1
    holiday_multiplier: float = 0.5
    weather_multipliers: dict[str, float] = dict(_DEFAULT_WEATHER_MULTIPLIERS)

    @field_validator("smoothing_alpha")
    @classmethod
    def validate_alpha(cls, v: float) -> float:
        if not 0.0 < v < 1.0:
            raise ValueError(f"smoothing_alpha must be in (0.0, 1.0), got {v}.")
        return v

    @field_validator("moving_average_window", "horizon_days")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}.")
        return v

    @field_validator("weather_multipliers")
    @classmethod
    def validate_weather_keys(cls, v: dict[str, float]) -> dict[str, float]:
        valid = {w.value for w in WeatherCondition}
        unknown = set(v) - valid
        if unknown:
            raise ValueError(
                f"Unknown weather conditions {sorted(unknown)}. Must be among {sorted(valid)}."
            )
        return {**_DEFAULT_WEATHER_MULTIPLIERS, **v}


class CorrelationConfig(BaseModel):
    """Correlation / anomaly settings."""

    model_config = ConfigDict(frozen=True)

    outlier_sigma: float = 1.5


class BenchmarkConfig(BaseModel):
    """Composite benchmark score scaling.

    Each of the four sub-scores is capped at ``sub_score_cap`` so the total
    stays within ``[0, 4 * sub_score_cap]``.
    """

    model_config = ConfigDict(frozen=True)

    volume_full_score_kg: float = 100_000.0
    quality_full_score_ratio: float = 25.0
    sub_score_cap: float = 25.0


_DEFAULT_REGIONS: dict[str, list[str]] = {
    "NASAL":    ["AFD A", "AFD B", "AFD C", "AFD D", "AFD E"],
    "BINTUHAN": ["AFD F", "AFD G"],
}


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration.

    CLI commands receive an ``AppConfig`` instance built by ``load_config()``;
    engine functions receive only the sub-config they need.
    """

    model_config = ConfigDict(frozen=True)

    data: DataConfig = DataConfig()
    aggregation: AggregationConfig = AggregationConfig()
    forecast: ForecastConfig = ForecastConfig()
    correlation: CorrelationConfig = CorrelationConfig()
    benchmark: BenchmarkConfig = BenchmarkConfig()
    regions: dict[str, list[str]] = dict(_DEFAULT_REGIONS)
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False

    @field_validator("regions")
    @classmethod
    def normalise_regions(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        return {name.upper(): [code.upper() for code in codes] for name, codes in v.items()}


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply WEIGHBRIDGE_* env vars to the raw config dict.

    Supported overrides:
      WEIGHBRIDGE_RECORDS_FILE  → raw["data"]["records_file"]
      WEIGHBRIDGE_FACTORS_FILE  → raw["data"]["factors_file"]
      WEIGHBRIDGE_LOG_LEVEL     → raw["logging"]["level"]
      WEIGHBRIDGE_DEBUG         → raw["debug"]
    """
    if records_file := os.environ.get("WEIGHBRIDGE_RECORDS_FILE"):
        raw.setdefault("data", {})["records_file"] = records_file

    if factors_file := os.environ.get("WEIGHBRIDGE_FACTORS_FILE"):
        raw.setdefault("data", {})["factors_file"] = factors_file

    if log_level := os.environ.get("WEIGHBRIDGE_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("WEIGHBRIDGE_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        data=DataConfig(**raw.get("data", {})),
        aggregation=AggregationConfig(**raw.get("aggregation", {})),
        forecast=ForecastConfig(**raw.get("forecast", {})),
        correlation=CorrelationConfig(**raw.get("correlation", {})),
        benchmark=BenchmarkConfig(**raw.get("benchmark", {})),
        regions=raw.get("regions", dict(_DEFAULT_REGIONS)),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
