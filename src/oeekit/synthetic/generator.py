"""Synthetic plant history generator."""

from __future__ import annotations

import datetime as dt
import random
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd
import yaml

from oeekit.contract.models import (
    CostConfig,
    MachineSpec,
    PlantConfig,
    PlantDataset,
    ShiftRecord,
    StoppageRecord,
    StoppageType,
)


@dataclass(frozen=True)
class MachineProfile:
    """Capacity and typical factor levels used to draw a machine's history."""

    name: str
    area: str
    ideal_speed: float
    planned_time: float
    availability: float
    performance: float
    quality: float


REFERENCE_MACHINES: tuple[MachineProfile, ...] = (
    MachineProfile("Line A - Assembly", "Production", 80.0, 480.0, 0.91, 0.88, 0.96),
    MachineProfile("Line B - Paint", "Finishing", 60.0, 480.0, 0.72, 0.79, 0.88),
    MachineProfile("CNC-01", "Machining", 45.0, 480.0, 0.95, 0.92, 0.97),
    MachineProfile("Press H-200", "Stamping", 120.0, 480.0, 0.60, 0.71, 0.82),
    MachineProfile("Injector PL-5", "Plastics", 90.0, 480.0, 0.84, 0.86, 0.93),
)

REFERENCE_STOP_REASONS: tuple[str, ...] = (
    "Mechanical failure",
    "Electrical failure",
    "Material shortage",
    "Format changeover",
    "Preventive maintenance",
    "Operator absent",
    "Quality issue",
    "Other",
)


def _as_range(value: tuple[int, int] | int) -> tuple[int, int]:
    if isinstance(value, tuple):
        return value
    return (value, value)


@dataclass
class SyntheticPlantConfig:
    """Configuration for generating random plant histories.

    ``shifts_per_day`` selects the leading labels of ``shifts`` and may not exceed
    their number.
    """

    name: str = "synthetic-plant"
    num_machines: tuple[int, int] | int = 5
    num_days: tuple[int, int] | int = 30
    shifts_per_day: int = 2
    end_date: dt.date = dt.date(2024, 6, 30)
    shifts: tuple[str, ...] = ("MORNING", "AFTERNOON", "NIGHT")
    stop_reasons: tuple[str, ...] = REFERENCE_STOP_REASONS
    ideal_speed: tuple[float, float] = (40.0, 120.0)
    planned_time: float = 480.0
    factor_variance: float = 0.1
    stop_probability: float = 0.6
    stops_per_shift: tuple[int, int] | int = (1, 3)
    stop_duration: tuple[float, float] = (5.0, 45.0)
    observation_probability: float = 0.4
    cost: CostConfig = field(
        default_factory=lambda: CostConfig(
            stop_cost_per_minute=50.0,
            defect_cost_per_unit=15.0,
            production_value_per_unit=25.0,
            oee_goal=0.85,
        )
    )


@dataclass
class SyntheticPlantBundle:
    """Generated dataset plus DataFrame views and a writer for the YAML/CSV bundle."""

    dataset: PlantDataset
    machines: pd.DataFrame
    production: pd.DataFrame
    stoppages: pd.DataFrame
    metadata: dict[str, object] = field(default_factory=dict)

    def write(self, out_dir: Path, *, metadata_path: Path | None = None) -> Path:
        out_dir = Path(out_dir)
        data_dir = out_dir / "data"
        data_dir.mkdir(parents=True, exist_ok=True)

        self.machines.to_csv(data_dir / "machines.csv", index=False)
        self.production.to_csv(data_dir / "production.csv", index=False)
        self.stoppages.to_csv(data_dir / "stoppages.csv", index=False)

        config = self.dataset.config
        payload: dict[str, object] = {
            "name": self.dataset.name,
            "data": {
                "machines": "data/machines.csv",
                "production": "data/production.csv",
                "stoppages": "data/stoppages.csv",
            },
            "config": {
                **config.cost.model_dump(),
                "shifts": list(config.shifts),
                "stop_reasons": list(config.stop_reasons),
            },
        }
        plant_path = out_dir / "plant.yaml"
        with plant_path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(payload, handle, sort_keys=False, allow_unicode=True)
        if metadata_path is not None:
            with Path(metadata_path).open("w", encoding="utf-8") as handle:
                yaml.safe_dump(self.metadata, handle, sort_keys=False)
        return plant_path


def _sample_int(rng: random.Random, bounds: tuple[int, int] | int) -> int:
    low, high = _as_range(bounds)
    return rng.randint(int(low), int(high))


def _sample_float(rng: random.Random, bounds: tuple[float, float]) -> float:
    return rng.uniform(float(bounds[0]), float(bounds[1]))


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def _profiles(config: SyntheticPlantConfig, rng: random.Random, count: int) -> list[MachineProfile]:
    profiles = list(REFERENCE_MACHINES[:count])
    for idx in range(len(profiles), count):
        profiles.append(
            MachineProfile(
                name=f"Machine {idx + 1}",
                area="General",
                ideal_speed=round(_sample_float(rng, config.ideal_speed), 1),
                planned_time=config.planned_time,
                availability=round(rng.uniform(0.6, 0.95), 2),
                performance=round(rng.uniform(0.7, 0.93), 2),
                quality=round(rng.uniform(0.82, 0.98), 2),
            )
        )
    return profiles


def generate_plant_dataset(
    config: SyntheticPlantConfig | None = None,
    *,
    seed: int = 123,
) -> SyntheticPlantBundle:
    """Generate a seeded production/stoppage history.

    Each machine draws per-shift factor levels around its profile (availability and
    performance floored at 0.4, quality at 0.7), derives production and defects from
    its capacity, and logs up to ``stops_per_shift`` stoppages with probability
    ``stop_probability``. Duplicate (machine, day, reason, type) stoppages are skipped.
    Raises ``ValueError`` when ``shifts_per_day`` is outside ``1..len(shifts)``.
    """

    cfg = config or SyntheticPlantConfig()
    rng = random.Random(seed)
    num_machines = max(1, _sample_int(rng, cfg.num_machines))
    num_days = max(1, _sample_int(rng, cfg.num_days))
    if not 1 <= cfg.shifts_per_day <= len(cfg.shifts):
        raise ValueError(
            f"shifts_per_day must be between 1 and {len(cfg.shifts)} "
            f"(the number of shift labels), got {cfg.shifts_per_day}"
        )
    shifts = cfg.shifts[: cfg.shifts_per_day]

    profiles = _profiles(cfg, rng, num_machines)
    machines = [
        MachineSpec(
            id=f"M{idx + 1}",
            name=profile.name,
            area=profile.area,
            ideal_speed=profile.ideal_speed,
            planned_time=profile.planned_time,
        )
        for idx, profile in enumerate(profiles)
    ]

    production: list[ShiftRecord] = []
    stoppages: list[StoppageRecord] = []
    stop_types = (StoppageType.PLANNED, StoppageType.UNPLANNED)
    for offset in range(num_days - 1, -1, -1):
        day = cfg.end_date - dt.timedelta(days=offset)
        for machine, profile in zip(machines, profiles):
            logged_stops: set[tuple[str, StoppageType]] = set()
            for shift in shifts:
                variance = (rng.random() - 0.5) * cfg.factor_variance
                availability = _clamp(profile.availability + variance, 0.4, 1.0)
                performance = _clamp(profile.performance + variance, 0.4, 1.0)
                quality = _clamp(profile.quality + (rng.random() - 0.5) * 0.05, 0.7, 1.0)

                operative_time = round(machine.planned_time * availability, 1)
                ideal_output = machine.ideal_speed * operative_time
                total_production = float(round(ideal_output * performance))
                defects = float(round(total_production * (1 - quality)))
                production.append(
                    ShiftRecord(
                        machine_id=machine.id,
                        date=day,
                        shift=shift,
                        operative_time=operative_time,
                        total_production=total_production,
                        defects=defects,
                    )
                )

                if rng.random() >= cfg.stop_probability:
                    continue
                for _ in range(max(0, _sample_int(rng, cfg.stops_per_shift))):
                    reason = rng.choice(cfg.stop_reasons)
                    stop_type = rng.choice(stop_types)
                    duration = round(_sample_float(rng, cfg.stop_duration), 1)
                    observations = (
                        f"Logged during {shift} shift"
                        if rng.random() < cfg.observation_probability
                        else None
                    )
                    if (reason, stop_type) in logged_stops:
                        continue
                    logged_stops.add((reason, stop_type))
                    stoppages.append(
                        StoppageRecord(
                            machine_id=machine.id,
                            date=day,
                            reason=reason,
                            type=stop_type,
                            duration_minutes=duration,
                            observations=observations,
                        )
                    )

    dataset = PlantDataset(
        name=cfg.name,
        machines=machines,
        production=production,
        stoppages=stoppages,
        config=PlantConfig(cost=cfg.cost, shifts=cfg.shifts, stop_reasons=cfg.stop_reasons),
    )
    metadata: dict[str, object] = {
        "name": cfg.name,
        "seed": seed,
        "start_date": (cfg.end_date - dt.timedelta(days=num_days - 1)).isoformat(),
        "end_date": cfg.end_date.isoformat(),
        "counts": {
            "machines": len(machines),
            "days": num_days,
            "production": len(production),
            "stoppages": len(stoppages),
        },
    }
    return SyntheticPlantBundle(
        dataset=dataset,
        machines=pd.DataFrame([machine.model_dump() for machine in machines]),
        production=pd.DataFrame(
            [record.model_dump(mode="json") for record in production],
            columns=list(ShiftRecord.model_fields),
        ),
        stoppages=pd.DataFrame(
            [record.model_dump(mode="json") for record in stoppages],
            columns=list(StoppageRecord.model_fields),
        ),
        metadata=metadata,
    )


__all__ = [
    "MachineProfile",
    "REFERENCE_MACHINES",
    "REFERENCE_STOP_REASONS",
    "SyntheticPlantConfig",
    "SyntheticPlantBundle",
    "generate_plant_dataset",
]
