"""Small record builders shared by the test modules."""

from __future__ import annotations

import datetime as dt

from oeekit.contract.models import MachineSpec, ShiftRecord, StoppageRecord


def shift(
    machine_id: str,
    day: str,
    operative_time: float,
    total_production: float,
    defects: float = 0.0,
    shift_label: str = "MORNING",
) -> ShiftRecord:
    return ShiftRecord(
        machine_id=machine_id,
        date=dt.date.fromisoformat(day),
        shift=shift_label,
        operative_time=operative_time,
        total_production=total_production,
        defects=defects,
    )


def stop(
    machine_id: str,
    day: str,
    reason: str,
    duration: float,
    stop_type: str = "UNPLANNED",
) -> StoppageRecord:
    return StoppageRecord(
        machine_id=machine_id,
        date=dt.date.fromisoformat(day),
        reason=reason,
        type=stop_type,
        duration_minutes=duration,
    )


def machine(machine_id: str, ideal_speed: float = 10.0, planned_time: float = 480.0) -> MachineSpec:
    return MachineSpec(id=machine_id, ideal_speed=ideal_speed, planned_time=planned_time)
