"""
Weighbridge Analytics — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Load records (and factor data where needed).
  4. Run the engine for the selected window and location.
  5. Report the result to stdout, optionally exporting JSON/CSV.

Install and run::

    pip install -e .
    weighbridge-analytics --help
    weighbridge-analytics validate-config
    weighbridge-analytics summary --window month --date 2026-01-15
    weighbridge-analytics forecast --model hybrid --weather "Hujan Deras"
    weighbridge-analytics correlate --x rainfall --y weight --lag 1
    weighbridge-analytics benchmark --window all --gap "AFD A"
    weighbridge-analytics compare --window week
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="weighbridge-analytics",
    help="Weighbridge delivery analytics and supply forecasting.",
    add_completion=False,
)

_WINDOW_HELP = "Time window: day, week, month, custom or all."


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from weighbridge_analytics.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from weighbridge_analytics.utils.logging import configure_logging
    configure_logging(config.logging, debug=config.debug)


def _parse_date(value: Optional[str], option: str) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        typer.echo(f"[ERROR] Invalid date for {option}: {exc}", err=True)
        raise typer.Exit(code=1)


def _resolve_window(kind: str, on: Optional[str], start: Optional[str], end: Optional[str]):
    """Build a ``TimeWindow`` from the CLI options."""
    from weighbridge_analytics.filtering.record_filter import TimeWindow
    from weighbridge_analytics.taxonomy.engine_taxonomy import WindowKind

    try:
        window_kind = WindowKind(kind.lower())
    except ValueError:
        typer.echo(f"[ERROR] Unknown window '{kind}'. {_WINDOW_HELP}", err=True)
        raise typer.Exit(code=1)

    today = _parse_date(on, "--date") or date.today()
    if window_kind is WindowKind.DAY:
        return TimeWindow.day(today)
    if window_kind is WindowKind.WEEK:
        return TimeWindow.current_week(today)
    if window_kind is WindowKind.MONTH:
        return TimeWindow.current_month(today)
    if window_kind is WindowKind.CUSTOM:
        first = _parse_date(start, "--start")
        last = _parse_date(end, "--end")
        if first is None or last is None:
            typer.echo("[ERROR] --start and --end are required for a custom window.", err=True)
            raise typer.Exit(code=1)
        return TimeWindow.custom(first, last)
    return TimeWindow.all_time()


def _load_records_or_exit(config, records_file: Optional[str]):
    from weighbridge_analytics.ingestion.record_loader import load_records

    path = Path(records_file or config.data.records_file)
    try:
        return load_records(path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except ValueError as exc:
        typer.echo(f"[ERROR] Record load failed:\n{exc}", err=True)
        raise typer.Exit(code=1)


def _load_factors_or_exit(config, factors_file: Optional[str]):
    from weighbridge_analytics.ingestion.record_loader import load_factor_data

    path = Path(factors_file or config.data.factors_file)
    try:
        return load_factor_data(path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except ValueError as exc:
        typer.echo(f"[ERROR] Factor load failed:\n{exc}", err=True)
        raise typer.Exit(code=1)


def _select(config, records, window, location: Optional[str]):
    from weighbridge_analytics.filtering.record_filter import LocationFacet, filter_records

    facet = LocationFacet.parse(location, config.regions)
    return facet, filter_records(records, window, facet, config.regions)


def _export(rows: list[dict], export_path: Optional[str]) -> None:
    if not export_path:
        return
    from weighbridge_analytics.reporting.export import export_to_csv, export_to_json

    path = Path(export_path)
    if path.suffix.lower() == ".csv":
        export_to_csv(rows, path)
    else:
        export_to_json(rows, path)
    typer.echo(f"  Exported {len(rows)} row(s) to {path}")


def _describe_window(window) -> str:
    if window.start is None:
        return "all time"
    return f"{window.kind.value} {window.start} → {window.end}"


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values."""
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Records file:     {config.data.records_file}")
    typer.echo(f"  Factors file:     {config.data.factors_file}")
    typer.echo(f"  Daily target:     {config.aggregation.base_daily_target_kg:,.0f} kg")
    typer.echo(f"  Forecast model:   {config.forecast.default_model.value}")
    typer.echo(f"  Horizon:          {config.forecast.horizon_days} days")
    typer.echo(f"  Regions:          {', '.join(sorted(config.regions))}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("summary")
def summary(
    window: str = typer.Option("month", "--window", help=_WINDOW_HELP),
    on: Optional[str] = typer.Option(None, "--date", help="Reference day (ISO date, default today)."),
    start: Optional[str] = typer.Option(None, "--start", help="Custom window start (ISO date)."),
    end: Optional[str] = typer.Option(None, "--end", help="Custom window end (ISO date)."),
    location: Optional[str] = typer.Option(None, "--location", help="ALL, a region name or a location code."),
    records_file: Optional[str] = typer.Option(None, "--records", help="Override records file from config."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Print period KPIs, grade distribution and top locations."""
    from weighbridge_analytics.aggregation.breakdowns import grade_c_issues, location_totals
    from weighbridge_analytics.aggregation.period import aggregate_period

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    time_window = _resolve_window(window, on, start, end)
    records = _load_records_or_exit(config, records_file)
    _, subset = _select(config, records, time_window, location)
    stats = aggregate_period(subset, time_window, config.aggregation)

    typer.echo(f"Summary | {_describe_window(time_window)} | location={location or 'ALL'}")
    typer.echo("")
    typer.echo(f"  Total weight:   {stats.total_weight:,.0f} kg")
    typer.echo(f"  Total bunches:  {stats.total_bunches:,}")
    typer.echo(f"  Trips:          {stats.trip_count}")
    typer.echo(f"  Quality (BJR):  {stats.quality_ratio:.2f} kg/bunch")
    typer.echo(f"  Avg dwell:      {stats.avg_dwell_minutes:.1f} min ({stats.dwell_sample_size} valid)")
    typer.echo(f"  Target:         {stats.dynamic_target:,.0f} kg ({stats.target_percent:.1f}%)")
    grades = ", ".join(f"{g.value}={n}" for g, n in stats.grade_counts.items())
    typer.echo(f"  Grades:         {grades}")

    totals = location_totals(subset)
    if totals:
        typer.echo("")
        typer.echo("  Top locations:")
        for t in totals[:5]:
            typer.echo(f"    {t.location:<24} {t.total_weight:>12,.0f} kg")

    issues = grade_c_issues(subset, config.aggregation)
    if issues:
        typer.echo("")
        typer.echo(f"  Grade C deliveries: {len(issues)}")


@app.command("forecast")
def forecast(
    model: Optional[str] = typer.Option(
        None,
        "--model",
        help="moving_average, linear_reg, exponential_smoothing or hybrid.",
    ),
    horizon: Optional[int] = typer.Option(None, "--horizon", help="Days to project."),
    weather: Optional[str] = typer.Option(
        None, "--weather", help="Hybrid weather override: Cerah, Berawan, Hujan Ringan, Hujan Deras.",
    ),
    holiday: bool = typer.Option(False, "--holiday", help="Treat projected days as holidays (hybrid)."),
    window: str = typer.Option("all", "--window", help=_WINDOW_HELP),
    on: Optional[str] = typer.Option(None, "--date", help="Reference day (ISO date, default today)."),
    start: Optional[str] = typer.Option(None, "--start", help="Custom window start (ISO date)."),
    end: Optional[str] = typer.Option(None, "--end", help="Custom window end (ISO date)."),
    location: Optional[str] = typer.Option(None, "--location", help="ALL, a region name or a location code."),
    records_file: Optional[str] = typer.Option(None, "--records", help="Override records file from config."),
    export_path: Optional[str] = typer.Option(None, "--export", help="Write points to .json or .csv."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Project daily delivered weight with an uncertainty band."""
    from weighbridge_analytics.aggregation.daily import daily_totals
    from weighbridge_analytics.forecast.engine import ForecastParams, forecast_summary, project
    from weighbridge_analytics.reporting.export import forecast_rows
    from weighbridge_analytics.taxonomy.engine_taxonomy import ForecastModel, WeatherCondition

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        selected = ForecastModel(model) if model else config.forecast.default_model
        weather_override = WeatherCondition(weather) if weather else None
    except ValueError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    days = horizon if horizon is not None else config.forecast.horizon_days
    if days < 0:
        typer.echo("[ERROR] --horizon must be >= 0.", err=True)
        raise typer.Exit(code=1)

    time_window = _resolve_window(window, on, start, end)
    records = _load_records_or_exit(config, records_file)
    _, subset = _select(config, records, time_window, location)

    history = daily_totals(subset)
    params = ForecastParams(weather_override=weather_override, is_holiday=holiday)
    points = project(history, days, selected, params, config.forecast)

    typer.echo(
        f"Forecast | model={selected.value} | horizon={days}d | "
        f"history={len(history)} day(s)"
    )
    if not points:
        typer.echo("  No history in the selected window; nothing to project.")
        return

    typer.echo("")
    for p in points:
        typer.echo(
            f"  {p.target_date}  {p.predicted_value:>12,.0f} kg  "
            f"[{p.lower_bound:,.0f} – {p.upper_bound:,.0f}]"
        )
    s = forecast_summary(points)
    typer.echo("")
    typer.echo(f"  Total projected: {s.total_projected:,.0f} kg")
    typer.echo(f"  Peak day:        {s.peak_date} ({s.peak_value:,.0f} kg)")
    _export(forecast_rows(points), export_path)


@app.command("correlate")
def correlate(
    x_metric: str = typer.Option("rainfall", "--x", help="X metric (weight, bunches, quality_ratio, rainfall, price, dwell)."),
    y_metric: str = typer.Option("weight", "--y", help="Y metric."),
    lag: int = typer.Option(0, "--lag", help="Days to shift X back before pairing."),
    matrix: bool = typer.Option(False, "--matrix", help="Print the full same-day correlation matrix."),
    window: str = typer.Option("all", "--window", help=_WINDOW_HELP),
    on: Optional[str] = typer.Option(None, "--date", help="Reference day (ISO date, default today)."),
    start: Optional[str] = typer.Option(None, "--start", help="Custom window start (ISO date)."),
    end: Optional[str] = typer.Option(None, "--end", help="Custom window end (ISO date)."),
    location: Optional[str] = typer.Option(None, "--location", help="ALL, a region name or a location code."),
    records_file: Optional[str] = typer.Option(None, "--records", help="Override records file from config."),
    factors_file: Optional[str] = typer.Option(None, "--factors", help="Override factors file from config."),
    export_path: Optional[str] = typer.Option(None, "--export", help="Write analysed points to .json or .csv."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Correlate daily supply with rainfall, price and other metrics."""
    from weighbridge_analytics.aggregation.daily import build_daily_aggregates
    from weighbridge_analytics.analysis.correlation import MATRIX_METRICS, analyze, correlation_matrix
    from weighbridge_analytics.reporting.export import correlation_rows

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    time_window = _resolve_window(window, on, start, end)
    records = _load_records_or_exit(config, records_file)
    factors, prices = _load_factors_or_exit(config, factors_file)
    _, subset = _select(config, records, time_window, location)
    daily = build_daily_aggregates(subset, config.aggregation)

    if matrix:
        cells = correlation_matrix(
            daily, factors, start=time_window.start, end=time_window.end, prices=prices,
        )
        header = "".join(f"{m.value[:10]:>12}" for m in MATRIX_METRICS)
        typer.echo(f"{'':<14}{header}")
        for i, mx in enumerate(MATRIX_METRICS):
            row = cells[i * len(MATRIX_METRICS):(i + 1) * len(MATRIX_METRICS)]
            typer.echo(f"{mx.value:<14}" + "".join(f"{c.r:>12.2f}" for c in row))
        return

    try:
        result = analyze(
            daily, factors, x_metric, y_metric, lag, config.correlation,
            start=time_window.start, end=time_window.end, prices=prices,
        )
    except ValueError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Correlation | {result.x_metric} (lag {lag}d) vs {result.y_metric} | n={result.n}")
    typer.echo("")
    typer.echo(f"  r:          {result.r:+.3f} ({result.strength})")
    typer.echo(f"  Trend:      y = {result.slope:.4f} x + {result.intercept:.2f}")
    typer.echo(f"  Resid. std: {result.std_dev_of_residuals:.2f}")
    outliers = [p for p in result.points if p.is_outlier]
    typer.echo(f"  Anomalies:  {len(outliers)}")
    for p in outliers:
        typer.echo(f"    {p.obs_date}  x={p.x:,.2f}  y={p.y:,.2f}  residual={p.residual:,.2f}")
    _export(correlation_rows(result), export_path)


@app.command("benchmark")
def benchmark(
    gap: Optional[str] = typer.Option(None, "--gap", help="Show gap analysis for this location."),
    window: str = typer.Option("month", "--window", help=_WINDOW_HELP),
    on: Optional[str] = typer.Option(None, "--date", help="Reference day (ISO date, default today)."),
    start: Optional[str] = typer.Option(None, "--start", help="Custom window start (ISO date)."),
    end: Optional[str] = typer.Option(None, "--end", help="Custom window end (ISO date)."),
    location: Optional[str] = typer.Option(None, "--location", help="ALL, a region name or a location code."),
    records_file: Optional[str] = typer.Option(None, "--records", help="Override records file from config."),
    export_path: Optional[str] = typer.Option(None, "--export", help="Write the ranking to .json or .csv."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Rank locations by composite score (volume, quality, consistency, grade A)."""
    from weighbridge_analytics.benchmark.scorer import gap_analysis, location_aggregates, score
    from weighbridge_analytics.reporting.export import benchmark_rows

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    time_window = _resolve_window(window, on, start, end)
    records = _load_records_or_exit(config, records_file)
    _, subset = _select(config, records, time_window, location)
    entries = score(location_aggregates(subset, config.aggregation), config.benchmark)

    typer.echo(f"Benchmark | {_describe_window(time_window)} | {len(entries)} location(s)")
    typer.echo("")
    for rank, e in enumerate(entries, start=1):
        typer.echo(
            f"  {rank:>2}. {e.name:<12} score={e.composite_score:5.1f}  "
            f"weight={e.total_weight:>10,.0f}  BJR={e.quality_ratio:5.2f}  "
            f"consistency={e.consistency_percent:5.1f}%  gradeA={e.grade_a_percent:5.1f}%"
        )

    if gap:
        analysis = gap_analysis(entries, gap)
        typer.echo("")
        if analysis is None:
            typer.echo(f"  No benchmark entry for '{gap}'.")
        else:
            typer.echo(f"  Gap analysis for {analysis.name} (rank {analysis.rank}):")
            for g in analysis.gaps:
                typer.echo(
                    f"    {g.metric:<12} value={g.value:,.2f}  "
                    f"vs avg {g.percent_to_average:+.1f}%  vs best {g.percent_to_best:+.1f}%"
                )
    _export(benchmark_rows(entries), export_path)


@app.command("compare")
def compare(
    window: str = typer.Option("week", "--window", help="day, week or month."),
    on: Optional[str] = typer.Option(None, "--date", help="Reference day (ISO date, default today)."),
    location: Optional[str] = typer.Option(None, "--location", help="ALL, a region name or a location code."),
    records_file: Optional[str] = typer.Option(None, "--records", help="Override records file from config."),
    export_path: Optional[str] = typer.Option(None, "--export", help="Write the KPIs to .json or .csv."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Compare headline KPIs with the previous period."""
    from weighbridge_analytics.aggregation.comparison import compare_periods
    from weighbridge_analytics.aggregation.period import aggregate_period
    from weighbridge_analytics.reporting.export import comparison_rows

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    time_window = _resolve_window(window, on, None, None)
    previous_window = time_window.previous()
    if previous_window is None:
        typer.echo("[ERROR] compare needs a day, week or month window.", err=True)
        raise typer.Exit(code=1)

    records = _load_records_or_exit(config, records_file)
    _, current = _select(config, records, time_window, location)
    _, previous = _select(config, records, previous_window, location)

    kpis = compare_periods(
        aggregate_period(current, time_window, config.aggregation),
        aggregate_period(previous, previous_window, config.aggregation),
    )

    typer.echo(f"Compare | {_describe_window(time_window)} vs {_describe_window(previous_window)}")
    typer.echo("")
    for k in kpis:
        marker = "▲" if k.delta > 0 else "▼" if k.delta < 0 else "="
        verdict = "better" if k.is_improvement else "" if k.delta == 0 else "worse"
        typer.echo(
            f"  {k.name:<14} {k.current:>12,.2f} {k.unit:<9} "
            f"{marker} {k.percentage:+6.1f}%  {verdict}"
        )
    _export(comparison_rows(kpis), export_path)


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
