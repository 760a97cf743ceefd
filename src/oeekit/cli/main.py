from __future__ import annotations

from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from oeekit.cli._utils import LEVEL_STYLES, format_currency, format_percent, parse_day, write_json
from oeekit.cli.synthetic import synth_app
from oeekit.contract.models import CostConfig, PlantDataset
from oeekit.core.errors import InvalidRecordError
from oeekit.costing.losses import compute_losses_with
from oeekit.evaluation import (
    DEFAULT_PARETO_TOP,
    RecordFilter,
    aggregate_by_day,
    aggregate_by_machine,
    build_dashboard,
    day_dataframe,
    machine_dataframe,
    machine_losses,
    rank_machines,
    stoppage_pareto,
    summarise_plant,
    trend_series,
)
from oeekit.io.loaders import load_plant
from oeekit.metrics.oee import MetricResult, level_label
from oeekit.telemetry import AnalysisTelemetryLogger
from oeekit.validation.records import RecordIssue, find_invalid_records, validate_labels

app = typer.Typer(add_completion=False, no_args_is_help=True)
app.add_typer(synth_app, name="synth")
console = Console()

MACHINE_OPTION_HELP = "Restrict the analysis to one machine id."
SHIFT_OPTION_HELP = "Restrict production records to one shift label."
FROM_OPTION_HELP = "First day of the window (YYYY-MM-DD, inclusive)."
TO_OPTION_HELP = "Last day of the window (YYYY-MM-DD, inclusive)."
TELEMETRY_OPTION_HELP = "Append an analysis record to this JSONL file."


def _load(plant: Path, issues: list[RecordIssue] | None = None) -> PlantDataset:
    try:
        return load_plant(plant, issues=issues)
    except (FileNotFoundError, KeyError, ValueError) as exc:
        console.print(f"[red]Failed to load {plant}:[/red] {exc}")
        raise typer.Exit(1)


def _build_filter(
    machine: str | None,
    shift: str | None,
    date_from: str | None,
    date_to: str | None,
) -> RecordFilter:
    start = parse_day(date_from, option="--from")
    end = parse_day(date_to, option="--to")
    if start is not None and end is not None and start > end:
        raise typer.BadParameter("--from must not be after --to.", param_hint="--from")
    return RecordFilter(machine_id=machine, shift=shift, date_from=start, date_to=end)


def _check_machine(dataset: PlantDataset, flt: RecordFilter) -> None:
    if flt.machine_id is not None and flt.machine_id not in dataset.machine_ids():
        raise typer.BadParameter(
            f"Unknown machine '{flt.machine_id}'. Known: {', '.join(dataset.machine_ids())}.",
            param_hint="--machine",
        )


@contextmanager
def _abort_on_invalid_records():
    try:
        yield
    except InvalidRecordError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)


def _telemetry(
    telemetry_log: Path | None,
    command: str,
    dataset: PlantDataset,
    plant: Path,
    flt: RecordFilter,
    context: dict[str, Any] | None = None,
):
    if telemetry_log is None:
        return nullcontext()
    return AnalysisTelemetryLogger(
        log_path=telemetry_log,
        command=command,
        dataset=dataset.name,
        dataset_path=str(plant),
        filters=flt.to_dict(),
        context=context,
    )


def _finalize(logger: Any, metrics: dict[str, Any]) -> None:
    if isinstance(logger, AnalysisTelemetryLogger):
        logger.finalize(status="ok", metrics=metrics)


def _styled_level(metrics: MetricResult) -> str:
    style = LEVEL_STYLES[metrics.level]
    return f"[{style}]{level_label(metrics.level)}[/{style}]"


def _cost_with_overrides(base: CostConfig, **overrides: float | None) -> CostConfig:
    payload = base.model_dump()
    payload.update({key: value for key, value in overrides.items() if value is not None})
    return CostConfig(**payload)


@app.command()
def validate(plant: Path):
    """Validate a plant.yaml bundle and print summary."""
    issues: list[RecordIssue] = []
    dataset = _load(plant, issues)
    t = Table(title=f"Plant: {dataset.name}")
    t.add_column("Entities")
    t.add_column("Count")
    t.add_row("Machines", str(len(dataset.machines)))
    t.add_row("Production records", str(len(dataset.production)))
    t.add_row("Stoppage records", str(len(dataset.stoppages)))
    t.add_row("Shifts", str(len(dataset.config.shifts)))
    t.add_row("Stop reasons", str(len(dataset.config.stop_reasons)))
    console.print(t)

    issues.extend(find_invalid_records(dataset.production, dataset.stoppages, dataset.machines))
    for message in validate_labels(dataset.production, dataset.stoppages, dataset.config):
        console.print(f"[yellow]warning:[/yellow] {message}")
    if issues:
        for issue in issues:
            console.print(f"[red]{issue.kind}:[/red] {issue.reason} ({issue.record!r})")
        console.print(f"[red]{len(issues)} invalid record(s).[/red]")
        raise typer.Exit(1)
    console.print("[green]All records valid.[/green]")


@app.command()
def metrics(
    plant: Path,
    machine: str | None = typer.Option(None, "--machine", help=MACHINE_OPTION_HELP),
    shift: str | None = typer.Option(None, "--shift", help=SHIFT_OPTION_HELP),
    date_from: str | None = typer.Option(None, "--from", help=FROM_OPTION_HELP),
    date_to: str | None = typer.Option(None, "--to", help=TO_OPTION_HELP),
    json_out: Path | None = typer.Option(None, "--json-out", help="Write metrics as JSON."),
    csv_out: Path | None = typer.Option(
        None, "--csv-out", help="Write the per-machine summary as CSV."
    ),
    telemetry_log: Path | None = typer.Option(
        None, "--telemetry-log", help=TELEMETRY_OPTION_HELP
    ),
):
    """Print availability, performance, quality and OEE per machine."""
    dataset = _load(plant)
    flt = _build_filter(machine, shift, date_from, date_to)
    _check_machine(dataset, flt)

    telemetry = _telemetry(telemetry_log, "metrics", dataset, plant, flt)
    with _abort_on_invalid_records(), telemetry as logger:
        aggregates = aggregate_by_machine(
            dataset.production, dataset.stoppages, dataset.machines, filters=flt
        )
        plant_summary = summarise_plant(aggregates, dataset.config.cost)

        table = Table(title=f"OEE - {dataset.name}")
        table.add_column("Machine")
        table.add_column("Records", justify="right")
        table.add_column("Availability", justify="right")
        table.add_column("Performance", justify="right")
        table.add_column("Quality", justify="right")
        table.add_column("OEE", justify="right")
        table.add_column("Level")
        for aggregate in aggregates:
            result = aggregate.metrics()
            table.add_row(
                aggregate.machine.label,
                str(aggregate.totals.records),
                format_percent(result.availability),
                format_percent(result.performance),
                format_percent(result.quality),
                format_percent(result.oee),
                _styled_level(result),
            )
        headline = plant_summary.metrics
        table.add_row(
            "[bold]Plant[/bold]",
            str(plant_summary.totals.records),
            format_percent(headline.availability),
            format_percent(headline.performance),
            format_percent(headline.quality),
            f"[bold]{format_percent(headline.oee)}[/bold]",
            _styled_level(headline),
        )
        console.print(table)

        if json_out is not None:
            write_json(
                json_out,
                {
                    "plant": headline.to_dict(),
                    "machines": [
                        {"machine_id": aggregate.machine_id, **aggregate.metrics().to_dict()}
                        for aggregate in aggregates
                    ],
                    "filters": flt.to_dict(),
                },
            )
            console.print(f"Metrics written to {json_out}")
        if csv_out is not None:
            csv_out.parent.mkdir(parents=True, exist_ok=True)
            machine_dataframe(aggregates, dataset.config.cost).to_csv(csv_out, index=False)
            console.print(f"Machine summary written to {csv_out}")
        _finalize(logger, headline.to_dict())


@app.command()
def losses(
    plant: Path | None = typer.Argument(
        None, help="Optional plant.yaml; when given, losses are reported per machine."
    ),
    stop_duration: float = typer.Option(0.0, "--stop-duration", min=0.0, help="Stop minutes."),
    defects: float = typer.Option(0.0, "--defects", min=0.0, help="Defective units."),
    total_production: float = typer.Option(
        0.0, "--total-production", min=0.0, help="Units produced."
    ),
    planned_time: float = typer.Option(0.0, "--planned-time", min=0.0, help="Planned minutes."),
    ideal_speed: float = typer.Option(0.0, "--ideal-speed", min=0.0, help="Units per minute."),
    stop_cost: float | None = typer.Option(
        None, "--stop-cost", min=0.0, help="Cost per stop minute (overrides plant config)."
    ),
    defect_cost: float | None = typer.Option(
        None, "--defect-cost", min=0.0, help="Cost per defective unit (overrides plant config)."
    ),
    unit_value: float | None = typer.Option(
        None, "--unit-value", min=0.0, help="Value per good unit (overrides plant config)."
    ),
    oee_goal: float | None = typer.Option(
        None, "--oee-goal", min=0.0, max=1.0, help="Target OEE (overrides plant config)."
    ),
    machine: str | None = typer.Option(None, "--machine", help=MACHINE_OPTION_HELP),
    shift: str | None = typer.Option(None, "--shift", help=SHIFT_OPTION_HELP),
    date_from: str | None = typer.Option(None, "--from", help=FROM_OPTION_HELP),
    date_to: str | None = typer.Option(None, "--to", help=TO_OPTION_HELP),
    json_out: Path | None = typer.Option(None, "--json-out", help="Write losses as JSON."),
    telemetry_log: Path | None = typer.Option(
        None, "--telemetry-log", help=TELEMETRY_OPTION_HELP
    ),
):
    """Compute economic losses from raw counters, or per machine for a plant bundle."""
    overrides = {
        "stop_cost_per_minute": stop_cost,
        "defect_cost_per_unit": defect_cost,
        "production_value_per_unit": unit_value,
        "oee_goal": oee_goal,
    }
    if plant is None:
        plant_only = (machine, shift, date_from, date_to, telemetry_log)
        if any(value is not None for value in plant_only):
            raise typer.BadParameter(
                "--machine, --shift, --from, --to and --telemetry-log require a plant.yaml.",
                param_hint="plant",
            )
        cost = _cost_with_overrides(CostConfig(), **overrides)
        result = compute_losses_with(
            cost,
            stop_duration=stop_duration,
            defects=defects,
            total_production=total_production,
            planned_time=planned_time,
            ideal_speed=ideal_speed,
        )
        table = Table(title="Economic losses")
        table.add_column("Category")
        table.add_column("Amount", justify="right")
        for key, value in result.to_dict().items():
            table.add_row(key.replace("_", " ").capitalize(), format_currency(value))
        console.print(table)
        if json_out is not None:
            write_json(json_out, {**result.to_dict(), "cost": cost.model_dump()})
            console.print(f"Losses written to {json_out}")
        return

    dataset = _load(plant)
    flt = _build_filter(machine, shift, date_from, date_to)
    _check_machine(dataset, flt)
    cost = _cost_with_overrides(dataset.config.cost, **overrides)

    telemetry = _telemetry(
        telemetry_log, "losses", dataset, plant, flt, {"cost": cost.model_dump()}
    )
    with _abort_on_invalid_records(), telemetry as logger:
        aggregates = aggregate_by_machine(
            dataset.production, dataset.stoppages, dataset.machines, filters=flt
        )
        rows = machine_losses(aggregates, cost)
        total = summarise_plant(aggregates, cost).losses

        table = Table(title=f"Economic losses - {dataset.name}")
        table.add_column("Machine")
        table.add_column("OEE", justify="right")
        table.add_column("Stoppage", justify="right")
        table.add_column("Production", justify="right")
        table.add_column("Defects", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("Potential gain", justify="right")
        for row in rows:
            table.add_row(
                row.name or row.machine_id,
                format_percent(row.oee),
                format_currency(row.losses.stoppage_loss),
                format_currency(row.losses.production_loss),
                format_currency(row.losses.defect_loss),
                format_currency(row.losses.total_loss),
                format_currency(row.losses.potential_gain),
            )
        table.add_row(
            "[bold]Plant[/bold]",
            "",
            format_currency(total.stoppage_loss),
            format_currency(total.production_loss),
            format_currency(total.defect_loss),
            f"[bold]{format_currency(total.total_loss)}[/bold]",
            format_currency(total.potential_gain),
        )
        console.print(table)
        if json_out is not None:
            write_json(
                json_out,
                {
                    "plant": total.to_dict(),
                    "machines": [row.to_dict() for row in rows],
                    "cost": cost.model_dump(),
                    "filters": flt.to_dict(),
                },
            )
            console.print(f"Losses written to {json_out}")
        _finalize(logger, total.to_dict())


@app.command()
def report(
    plant: Path,
    machine: str | None = typer.Option(None, "--machine", help=MACHINE_OPTION_HELP),
    shift: str | None = typer.Option(None, "--shift", help=SHIFT_OPTION_HELP),
    date_from: str | None = typer.Option(None, "--from", help=FROM_OPTION_HELP),
    date_to: str | None = typer.Option(None, "--to", help=TO_OPTION_HELP),
    top: int = typer.Option(
        DEFAULT_PARETO_TOP, "--top", min=1, help="Number of stoppage causes to list."
    ),
    json_out: Path | None = typer.Option(None, "--json-out", help="Write the report as JSON."),
    telemetry_log: Path | None = typer.Option(
        None, "--telemetry-log", help=TELEMETRY_OPTION_HELP
    ),
):
    """Print the plant overview: OEE, losses, ranking and main stoppage causes."""
    dataset = _load(plant)
    flt = _build_filter(machine, shift, date_from, date_to)
    _check_machine(dataset, flt)
    cost = dataset.config.cost

    telemetry = _telemetry(telemetry_log, "report", dataset, plant, flt, {"top": top})
    with _abort_on_invalid_records(), telemetry as logger:
        summary = build_dashboard(
            dataset.production,
            dataset.stoppages,
            dataset.machines,
            cost,
            filters=flt,
            top_reasons=top,
        )
        headline = summary.metrics
        console.print(f"[bold]Plant report - {dataset.name}[/bold]")
        console.print(
            f"OEE {format_percent(headline.oee)} ({_styled_level(headline)}) "
            f"vs goal {format_percent(summary.oee_goal)}; "
            f"availability {format_percent(headline.availability)}, "
            f"performance {format_percent(headline.performance)}, "
            f"quality {format_percent(headline.quality)}"
        )
        console.print(
            f"Machines: {summary.total_machines} "
            f"([red]{summary.critical_machines} critical[/red]); "
            f"stoppages: {summary.stoppages.events} events, "
            f"{summary.stoppages.total_minutes:.1f} min "
            f"({summary.stoppages.planned_events} planned / "
            f"{summary.stoppages.unplanned_events} unplanned)"
        )

        loss_table = Table(title="Economic losses")
        loss_table.add_column("Category")
        loss_table.add_column("Amount", justify="right")
        loss_table.add_column("Share", justify="right")
        for share in summary.loss_shares:
            loss_table.add_row(
                share.category.capitalize(),
                format_currency(share.value),
                f"{share.percentage:.1f}%",
            )
        loss_table.add_row("[bold]Total[/bold]", format_currency(summary.losses.total_loss), "")
        loss_table.add_row("Potential gain", format_currency(summary.losses.potential_gain), "")
        console.print(loss_table)

        ranking_table = Table(title="Machine ranking")
        ranking_table.add_column("#", justify="right")
        ranking_table.add_column("Machine")
        ranking_table.add_column("Area")
        ranking_table.add_column("OEE", justify="right")
        ranking_table.add_column("Units", justify="right")
        ranking_table.add_column("Level")
        for row in summary.ranking:
            ranking_table.add_row(
                str(row.rank),
                row.name or row.machine_id,
                row.area or "",
                format_percent(row.metrics.oee),
                f"{row.total_production:,.0f}",
                _styled_level(row.metrics),
            )
        console.print(ranking_table)

        if summary.top_reasons:
            reason_table = Table(title="Main stoppage causes")
            reason_table.add_column("Reason")
            reason_table.add_column("Minutes", justify="right")
            reason_table.add_column("Events", justify="right")
            reason_table.add_column("Share", justify="right")
            for entry in summary.top_reasons:
                reason_table.add_row(
                    entry.reason,
                    f"{entry.duration:.1f}",
                    str(entry.events),
                    format_percent(entry.share),
                )
            console.print(reason_table)

        if json_out is not None:
            write_json(json_out, summary.to_dict())
            console.print(f"Report written to {json_out}")
        _finalize(
            logger,
            {
                **headline.to_dict(),
                "total_loss": summary.losses.total_loss,
                "critical_machines": summary.critical_machines,
            },
        )


@app.command()
def pareto(
    plant: Path,
    machine: str | None = typer.Option(None, "--machine", help=MACHINE_OPTION_HELP),
    date_from: str | None = typer.Option(None, "--from", help=FROM_OPTION_HELP),
    date_to: str | None = typer.Option(None, "--to", help=TO_OPTION_HELP),
    top: int | None = typer.Option(None, "--top", min=1, help="Show only the first N causes."),
    json_out: Path | None = typer.Option(None, "--json-out", help="Write the table as JSON."),
    telemetry_log: Path | None = typer.Option(
        None, "--telemetry-log", help=TELEMETRY_OPTION_HELP
    ),
):
    """Rank stoppage causes by accumulated minutes."""
    dataset = _load(plant)
    flt = _build_filter(machine, None, date_from, date_to)
    _check_machine(dataset, flt)

    telemetry = _telemetry(telemetry_log, "pareto", dataset, plant, flt, {"top": top})
    with _abort_on_invalid_records(), telemetry as logger:
        entries = stoppage_pareto(
            dataset.stoppages, machines=dataset.machines, filters=flt, top=top
        )

        table = Table(title=f"Stoppage Pareto - {dataset.name}")
        table.add_column("#", justify="right")
        table.add_column("Reason")
        table.add_column("Minutes", justify="right")
        table.add_column("Events", justify="right")
        table.add_column("Share", justify="right")
        table.add_column("Cumulative", justify="right")
        for position, entry in enumerate(entries, start=1):
            table.add_row(
                str(position),
                entry.reason,
                f"{entry.duration:.1f}",
                str(entry.events),
                format_percent(entry.share),
                format_percent(entry.cumulative_share),
            )
        console.print(table)
        if not entries:
            console.print("[yellow]No stoppages in the selected window.[/yellow]")

        if json_out is not None:
            write_json(json_out, [entry.to_dict() for entry in entries])
            console.print(f"Pareto table written to {json_out}")
        _finalize(
            logger,
            {
                "reasons": len(entries),
                "total_minutes": sum(entry.duration for entry in entries),
            },
        )


@app.command()
def trend(
    plant: Path,
    machine: str | None = typer.Option(None, "--machine", help=MACHINE_OPTION_HELP),
    shift: str | None = typer.Option(None, "--shift", help=SHIFT_OPTION_HELP),
    date_from: str | None = typer.Option(None, "--from", help=FROM_OPTION_HELP),
    date_to: str | None = typer.Option(None, "--to", help=TO_OPTION_HELP),
    json_out: Path | None = typer.Option(None, "--json-out", help="Write the series as JSON."),
    csv_out: Path | None = typer.Option(None, "--csv-out", help="Write day summaries as CSV."),
    telemetry_log: Path | None = typer.Option(
        None, "--telemetry-log", help=TELEMETRY_OPTION_HELP
    ),
):
    """Print the daily OEE trend in ascending date order."""
    dataset = _load(plant)
    flt = _build_filter(machine, shift, date_from, date_to)
    _check_machine(dataset, flt)

    telemetry = _telemetry(telemetry_log, "trend", dataset, plant, flt)
    with _abort_on_invalid_records(), telemetry as logger:
        days = aggregate_by_day(
            dataset.production, dataset.stoppages, dataset.machines, filters=flt
        )
        points = trend_series(days)

        table = Table(title=f"OEE trend - {dataset.name}")
        table.add_column("Date")
        table.add_column("Availability", justify="right")
        table.add_column("Performance", justify="right")
        table.add_column("Quality", justify="right")
        table.add_column("OEE", justify="right")
        table.add_column("Units", justify="right")
        for point in points:
            table.add_row(
                point.date.isoformat(),
                format_percent(point.availability),
                format_percent(point.performance),
                format_percent(point.quality),
                format_percent(point.oee),
                f"{point.total_production:,.0f}",
            )
        console.print(table)

        if json_out is not None:
            write_json(json_out, [point.to_dict() for point in points])
            console.print(f"Trend written to {json_out}")
        if csv_out is not None:
            csv_out.parent.mkdir(parents=True, exist_ok=True)
            day_dataframe(days).to_csv(csv_out, index=False)
            console.print(f"Day summary written to {csv_out}")
        _finalize(logger, {"days": len(points)})


@app.command()
def ranking(
    plant: Path,
    shift: str | None = typer.Option(None, "--shift", help=SHIFT_OPTION_HELP),
    date_from: str | None = typer.Option(None, "--from", help=FROM_OPTION_HELP),
    date_to: str | None = typer.Option(None, "--to", help=TO_OPTION_HELP),
    json_out: Path | None = typer.Option(None, "--json-out", help="Write the ranking as JSON."),
):
    """Rank machines by OEE (ties broken by units produced)."""
    dataset = _load(plant)
    flt = _build_filter(None, shift, date_from, date_to)
    with _abort_on_invalid_records():
        aggregates = aggregate_by_machine(
            dataset.production, dataset.stoppages, dataset.machines, filters=flt
        )
    rows = rank_machines(aggregates, dataset.config.cost)

    table = Table(title=f"Machine ranking - {dataset.name}")
    table.add_column("#", justify="right")
    table.add_column("Machine")
    table.add_column("OEE", justify="right")
    table.add_column("Units", justify="right")
    table.add_column("Total loss", justify="right")
    table.add_column("Level")
    for row in rows:
        table.add_row(
            str(row.rank),
            row.name or row.machine_id,
            format_percent(row.metrics.oee),
            f"{row.total_production:,.0f}",
            format_currency(row.losses.total_loss) if row.losses is not None else "",
            _styled_level(row.metrics) + (" [red]![/red]" if row.critical else ""),
        )
    console.print(table)
    if json_out is not None:
        write_json(json_out, [row.to_dict() for row in rows])
        console.print(f"Ranking written to {json_out}")


__all__ = ["app"]
