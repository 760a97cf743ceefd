from __future__ import annotations

import datetime as dt
import json
import shutil
import tomllib
from dataclasses import asdict
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console

from oeekit.contract.models import CostConfig
from oeekit.io.loaders import decode_label_list
from oeekit.synthetic import SyntheticPlantConfig, generate_plant_dataset

console = Console()
synth_app = typer.Typer(no_args_is_help=True, help="Generate synthetic plant datasets.")

TIER_PRESETS: dict[str, SyntheticPlantConfig] = {
    "small": SyntheticPlantConfig(
        name="synthetic-small",
        num_machines=3,
        num_days=7,
        shifts_per_day=1,
    ),
    "reference": SyntheticPlantConfig(
        name="synthetic-reference",
        num_machines=5,
        num_days=30,
        shifts_per_day=2,
    ),
    "large": SyntheticPlantConfig(
        name="synthetic-large",
        num_machines=12,
        num_days=90,
        shifts_per_day=3,
    ),
}

TIER_SEEDS: dict[str, int] = {
    "small": 101,
    "reference": 202,
    "large": 303,
}

_INT_RANGES = {"num_machines", "num_days", "stops_per_shift"}
_FLOAT_RANGES = {"ideal_speed", "stop_duration"}
_LABEL_SETS = {"shifts", "stop_reasons"}
_COST_FIELDS = set(CostConfig.model_fields)


def _parse_range(value: str) -> tuple[int, int]:
    try:
        lo, hi = value.split(":")
        return int(lo), int(hi)
    except ValueError as exc:
        raise typer.BadParameter("Expected range in the form 'min:max'.") from exc


def _load_config(path: Path) -> dict[str, Any]:
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    if suffix == ".json":
        return json.loads(path.read_text(encoding="utf-8"))
    if suffix == ".toml":
        return tomllib.loads(path.read_text(encoding="utf-8"))
    raise typer.BadParameter("Unsupported config format. Use YAML, TOML, or JSON.")


def _merge_config(base: SyntheticPlantConfig, overrides: dict[str, Any]) -> SyntheticPlantConfig:
    data = asdict(base)
    cost = base.cost.model_dump()
    for key, value in overrides.items():
        if key == "seed":
            continue
        if key in _INT_RANGES:
            if isinstance(value, (list, tuple)) and len(value) == 2:
                data[key] = tuple(int(part) for part in value)
            elif isinstance(value, str) and ":" in value:
                data[key] = _parse_range(value)
            else:
                data[key] = int(value)
        elif key in _FLOAT_RANGES:
            if isinstance(value, (list, tuple)) and len(value) == 2:
                data[key] = (float(value[0]), float(value[1]))
            elif isinstance(value, str) and ":" in value:
                lo, hi = value.split(":")
                data[key] = (float(lo), float(hi))
            else:
                raise typer.BadParameter(f"{key} expects a two-value range.")
        elif key in _LABEL_SETS:
            data[key] = decode_label_list(value)
        elif key == "end_date":
            data[key] = value if isinstance(value, dt.date) else dt.date.fromisoformat(str(value))
        elif key in _COST_FIELDS:
            cost[key] = value
        elif key in data:
            data[key] = value
        else:
            raise typer.BadParameter(f"Unknown synthetic config field '{key}'.")
    data["cost"] = CostConfig(**cost)
    return SyntheticPlantConfig(**data)


def _describe_metadata(metadata: dict[str, Any]) -> None:
    console.print("[bold]Synthetic Plant Summary[/bold]")
    console.print(f"Name: {metadata.get('name')}")
    console.print(f"Seed: {metadata.get('seed')}")
    console.print(f"Window: {metadata.get('start_date')} → {metadata.get('end_date')}")
    counts = metadata.get("counts", {})
    console.print("Counts: " + ", ".join(f"{key}={counts[key]}" for key in sorted(counts)))


@synth_app.command("generate")
def generate_synthetic_dataset(
    output_dir: Path = typer.Argument(
        None, help="Directory to write the bundle (defaults to examples/synthetic/<tier>)."
    ),
    tier: str = typer.Option(
        "reference",
        "--tier",
        case_sensitive=False,
        help="Preset tier to seed the configuration. Use 'custom' to start from defaults only.",
    ),
    config: Path = typer.Option(
        None,
        "--config",
        help="Optional config file (YAML/TOML/JSON) overriding SyntheticPlantConfig fields.",
    ),
    seed: int = typer.Option(
        None,
        "--seed",
        help="RNG seed. Defaults to tier preset (if available) or 123.",
    ),
    overwrite: bool = typer.Option(
        False,
        "--overwrite",
        help="Overwrite existing directory if it already exists.",
    ),
    preview: bool = typer.Option(
        False,
        "--preview",
        help="Print summary without writing files.",
    ),
    machines: str = typer.Option(
        None,
        "--machines",
        help="Override machine count (int) or range 'min:max'.",
    ),
    days: str = typer.Option(
        None,
        "--days",
        help="Override history length in days (int) or range 'min:max'.",
    ),
    shifts_per_day: int = typer.Option(
        None,
        "--shifts-per-day",
        min=1,
        help="Override shifts per day.",
    ),
    end_date: str = typer.Option(
        None,
        "--end-date",
        help="Last day of the generated history (YYYY-MM-DD).",
    ),
) -> None:
    """Generate a seeded plant.yaml + CSV bundle."""
    tier = (tier or "reference").lower()
    if tier not in TIER_PRESETS and tier != "custom":
        raise typer.BadParameter(f"Unknown tier '{tier}'. Valid options: {', '.join(TIER_PRESETS)}.")

    base_config = TIER_PRESETS.get(tier, SyntheticPlantConfig(name="synthetic-custom"))

    config_overrides: dict[str, Any] = {}
    if config is not None:
        config_overrides = _load_config(config)
        if not isinstance(config_overrides, dict):
            raise typer.BadParameter("Config file must yield a mapping/dictionary.")

    cli_overrides: dict[str, Any] = {}
    if machines:
        cli_overrides["num_machines"] = machines
    if days:
        cli_overrides["num_days"] = days
    if shifts_per_day is not None:
        cli_overrides["shifts_per_day"] = shifts_per_day
    if end_date:
        cli_overrides["end_date"] = end_date

    merged = _merge_config(base_config, config_overrides)
    merged = _merge_config(merged, cli_overrides)

    seed_value = seed
    if seed_value is None and "seed" in config_overrides:
        seed_value = int(config_overrides["seed"])
    if seed_value is None:
        seed_value = TIER_SEEDS.get(tier, 123)

    try:
        bundle = generate_plant_dataset(merged, seed=seed_value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    metadata = {**bundle.metadata, "tier": tier}

    if preview:
        _describe_metadata(metadata)
        return

    target_dir = output_dir
    if target_dir is None:
        target_dir = Path("examples/synthetic") / tier
    if target_dir.exists():
        if not overwrite:
            console.print(
                f"[red]Directory {target_dir} already exists. Use --overwrite to replace.[/red]"
            )
            raise typer.Exit(1)
        shutil.rmtree(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    bundle.metadata = metadata
    bundle.write(target_dir, metadata_path=target_dir / "metadata.yaml")

    console.print(f"[green]Synthetic dataset written to {target_dir}[/green]")
    _describe_metadata(metadata)


__all__ = ["synth_app", "TIER_PRESETS", "TIER_SEEDS"]
