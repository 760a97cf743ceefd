"""Record integrity checks run before aggregation."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from oeekit.contract.models import MachineSpec, PlantConfig, ShiftRecord, StoppageRecord
from oeekit.core.errors import InvalidRecordError

__all__ = [
    "RecordIssue",
    "shift_record_problem",
    "stoppage_record_problem",
    "resolve_machine",
    "require_valid_shift_record",
    "require_valid_stoppage_record",
    "find_invalid_records",
    "validate_labels",
]


@dataclass(frozen=True, slots=True)
class RecordIssue:
    """A record that breaks the input contract, with a short reason.

    Rows rejected while loading a CSV table keep their raw mapping in ``record`` and
    their 1-based data row number in ``row``.
    """

    kind: str
    record: ShiftRecord | StoppageRecord | Mapping[str, object]
    reason: str
    row: int | None = None


def shift_record_problem(record: ShiftRecord) -> str | None:
    """Return why ``record`` is unusable, or ``None`` when it is sound.

    Records built through the pydantic constructor never fail here; the check covers
    ``model_construct`` copies and duck-typed rows handed over by collaborators.
    """

    if record.operative_time < 0:
        return "negative operative_time"
    if record.total_production < 0:
        return "negative total_production"
    if record.defects < 0:
        return "negative defects"
    if record.defects > record.total_production:
        return "defects exceed total_production"
    return None


def stoppage_record_problem(record: StoppageRecord) -> str | None:
    if record.duration_minutes < 0:
        return "negative duration_minutes"
    return None


def resolve_machine(
    record: ShiftRecord | StoppageRecord, machines: Mapping[str, MachineSpec]
) -> MachineSpec:
    machine = machines.get(record.machine_id)
    if machine is None:
        raise InvalidRecordError(record, f"unknown machine_id '{record.machine_id}'")
    return machine


def require_valid_shift_record(
    record: ShiftRecord, machines: Mapping[str, MachineSpec]
) -> MachineSpec:
    """Raise :class:`InvalidRecordError` for a broken record, else return its machine."""

    problem = shift_record_problem(record)
    if problem is not None:
        raise InvalidRecordError(record, problem)
    return resolve_machine(record, machines)


def require_valid_stoppage_record(
    record: StoppageRecord, machines: Mapping[str, MachineSpec]
) -> MachineSpec:
    problem = stoppage_record_problem(record)
    if problem is not None:
        raise InvalidRecordError(record, problem)
    return resolve_machine(record, machines)


def find_invalid_records(
    production: Iterable[ShiftRecord],
    stoppages: Iterable[StoppageRecord],
    machines: Iterable[MachineSpec],
) -> list[RecordIssue]:
    """Collect every contract violation without raising.

    Intended for callers that flag bad rows for review instead of rejecting the
    whole batch.
    """

    known = {machine.id for machine in machines}
    issues: list[RecordIssue] = []
    for record in production:
        problem = shift_record_problem(record)
        if problem is None and record.machine_id not in known:
            problem = f"unknown machine_id '{record.machine_id}'"
        if problem is not None:
            issues.append(RecordIssue(kind="production", record=record, reason=problem))
    for stoppage in stoppages:
        problem = stoppage_record_problem(stoppage)
        if problem is None and stoppage.machine_id not in known:
            problem = f"unknown machine_id '{stoppage.machine_id}'"
        if problem is not None:
            issues.append(RecordIssue(kind="stoppage", record=stoppage, reason=problem))
    return issues


def validate_labels(
    production: Iterable[ShiftRecord],
    stoppages: Iterable[StoppageRecord],
    config: PlantConfig,
) -> list[str]:
    """Return warnings for shift labels or stop reasons outside the configured sets.

    An empty configured set disables the corresponding check.
    """

    warnings: list[str] = []
    if config.shifts:
        unknown_shifts = sorted({r.shift for r in production if r.shift not in config.shifts})
        for shift in unknown_shifts:
            warnings.append(f"Shift '{shift}' not in configured shifts {list(config.shifts)}")
    if config.stop_reasons:
        unknown_reasons = sorted(
            {s.reason for s in stoppages if s.reason not in config.stop_reasons}
        )
        for reason in unknown_reasons:
            warnings.append(f"Stop reason '{reason}' not in configured stop reasons")
    return warnings
