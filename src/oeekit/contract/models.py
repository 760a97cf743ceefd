"""Pydantic models describing oeekit inputs (records, machines, cost parameters)."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

__all__ = [
    "StoppageType",
    "ShiftRecord",
    "StoppageRecord",
    "MachineSpec",
    "CostConfig",
    "PlantConfig",
    "PlantDataset",
    "DEFAULT_SHIFTS",
    "coerce_day",
]

DEFAULT_SHIFTS: tuple[str, ...] = ("MORNING", "AFTERNOON", "NIGHT")


def coerce_day(value: object) -> object:
    """Drop any time-of-day component from a date-like value.

    ``datetime`` instances collapse to their date and ISO strings such as
    ``"2024-05-01T06:00:00Z"`` keep only the ``YYYY-MM-DD`` prefix. Anything else is
    returned unchanged so pydantic can report it.
    """

    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, str):
        stripped = value.strip()
        if "T" in stripped:
            return stripped.split("T", 1)[0]
        if " " in stripped:
            return stripped.split(" ", 1)[0]
        return stripped
    return value


class StoppageType(str, Enum):
    PLANNED = "PLANNED"
    UNPLANNED = "UNPLANNED"


class ShiftRecord(BaseModel):
    """One machine's output for one shift.

    Attributes
    ----------
    machine_id:
        Identifier of the machine (must resolve to a :class:`MachineSpec`).
    date:
        Production day. Time-of-day is discarded on construction.
    shift:
        Shift label (e.g. ``MORNING``) drawn from :attr:`PlantConfig.shifts`.
    operative_time:
        Minutes the machine actually ran.
    total_production:
        Units produced during the shift, good and defective.
    defects:
        Defective units, never more than ``total_production``.
    """

    model_config = ConfigDict(frozen=True)

    machine_id: str
    date: dt.date
    shift: str
    operative_time: float
    total_production: float
    defects: float = 0.0

    @field_validator("date", mode="before")
    @classmethod
    def _strip_time(cls, value: object) -> object:
        return coerce_day(value)

    @field_validator("operative_time", "total_production", "defects")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("ShiftRecord quantities must be non-negative")
        return value

    @model_validator(mode="after")
    def _defects_within_production(self) -> ShiftRecord:
        if self.defects > self.total_production:
            raise ValueError("ShiftRecord.defects must not exceed total_production")
        return self

    @property
    def good_units(self) -> float:
        return self.total_production - self.defects


class StoppageRecord(BaseModel):
    """A single downtime event.

    Attributes
    ----------
    machine_id:
        Identifier of the stopped machine.
    date:
        Day the stoppage was logged. Time-of-day is discarded on construction.
    reason:
        Free-text cause drawn from :attr:`PlantConfig.stop_reasons`.
    type:
        :class:`StoppageType` (planned maintenance vs. unplanned failure).
    duration_minutes:
        Length of the stoppage in minutes.
    observations:
        Optional operator notes, carried through untouched.
    """

    model_config = ConfigDict(frozen=True)

    machine_id: str
    date: dt.date
    reason: str
    type: StoppageType = StoppageType.UNPLANNED
    duration_minutes: float
    observations: str | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _strip_time(cls, value: object) -> object:
        return coerce_day(value)

    @field_validator("reason")
    @classmethod
    def _reason_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("StoppageRecord.reason must be non-empty")
        return value.strip()

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("duration_minutes")
    @classmethod
    def _duration_non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("StoppageRecord.duration_minutes must be non-negative")
        return value


class MachineSpec(BaseModel):
    """Static capacity reference for a machine.

    Attributes
    ----------
    id:
        Unique machine identifier referenced by records.
    name / area:
        Optional display metadata surfaced in rankings and CLI tables.
    ideal_speed:
        Theoretical output in units per minute. Zero is accepted and produces zero
        performance instead of an error.
    planned_time:
        Planned production minutes per shift.
    active:
        Inactive machines are skipped by the aggregators unless explicitly requested.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str | None = None
    area: str | None = None
    ideal_speed: float
    planned_time: float
    active: bool = True

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("MachineSpec.id must be non-empty")
        return value.strip()

    @field_validator("ideal_speed", "planned_time")
    @classmethod
    def _capacity_non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("MachineSpec capacity fields must be non-negative")
        return value

    @property
    def label(self) -> str:
        return self.name or self.id


class CostConfig(BaseModel):
    """Economic parameters applied to every loss computation.

    Attributes
    ----------
    stop_cost_per_minute:
        Cost of one minute of stoppage.
    defect_cost_per_unit:
        Cost of scrapping or reworking one defective unit.
    production_value_per_unit:
        Revenue attached to one good unit.
    oee_goal:
        Target OEE (0-1) used to size the potential gain. Defaults to 0.85.
    """

    model_config = ConfigDict(frozen=True)

    stop_cost_per_minute: float = 0.0
    defect_cost_per_unit: float = 0.0
    production_value_per_unit: float = 0.0
    oee_goal: float = 0.85

    @field_validator("stop_cost_per_minute", "defect_cost_per_unit", "production_value_per_unit")
    @classmethod
    def _cost_non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("CostConfig cost parameters must be non-negative")
        return value

    @field_validator("oee_goal")
    @classmethod
    def _goal_fraction(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("CostConfig.oee_goal must be within [0, 1]")
        return value


class PlantConfig(BaseModel):
    """Active plant configuration: cost parameters plus decoded label sets."""

    model_config = ConfigDict(frozen=True)

    cost: CostConfig = CostConfig()
    shifts: tuple[str, ...] = DEFAULT_SHIFTS
    stop_reasons: tuple[str, ...] = ()

    @field_validator("shifts", "stop_reasons")
    @classmethod
    def _clean_labels(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        cleaned: list[str] = []
        for label in value:
            label = label.strip()
            if label and label not in cleaned:
                cleaned.append(label)
        return tuple(cleaned)


class PlantDataset(BaseModel):
    """Top-level container handed to the engine by the file collaborator.

    Only machine references are checked here. Label membership (shift names, stop
    reasons) is reported as warnings by :func:`oeekit.io.load_plant`.
    """

    name: str
    machines: list[MachineSpec]
    production: list[ShiftRecord] = []
    stoppages: list[StoppageRecord] = []
    config: PlantConfig = PlantConfig()

    @model_validator(mode="after")
    def _unique_machines(self) -> PlantDataset:
        seen: set[str] = set()
        for machine in self.machines:
            if machine.id in seen:
                raise ValueError(f"Duplicate machine id '{machine.id}'")
            seen.add(machine.id)
        return self

    def machine_ids(self) -> list[str]:
        return [machine.id for machine in self.machines]
