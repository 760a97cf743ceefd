"""Record filters and grouped folds feeding the metric and loss calculators."""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import pandas as pd

from oeekit.contract.models import (
    CostConfig,
    MachineSpec,
    ShiftRecord,
    StoppageRecord,
    StoppageType,
    coerce_day,
)
from oeekit.costing.losses import LossResult, compute_losses_with
from oeekit.metrics.oee import MetricResult, compute_metrics
from oeekit.validation.records import require_valid_shift_record, require_valid_stoppage_record

__all__ = [
    "MACHINE_SUMMARY_COLUMNS",
    "DAY_SUMMARY_COLUMNS",
    "RecordFilter",
    "ProductionTotals",
    "MachineAggregate",
    "DayAggregate",
    "record_day",
    "aggregate_by_machine",
    "aggregate_by_day",
    "aggregate_global",
    "machine_dataframe",
    "day_dataframe",
    "records_dataframe",
]

MACHINE_SUMMARY_COLUMNS = [
    "machine_id",
    "name",
    "area",
    "records",
    "operative_time",
    "planned_time",
    "total_production",
    "defects",
    "good_units",
    "stop_duration",
    "planned_stop_duration",
    "unplanned_stop_duration",
    "stop_events",
    "availability",
    "performance",
    "quality",
    "oee",
    "level",
    "stoppage_loss",
    "production_loss",
    "defect_loss",
    "total_loss",
    "potential_gain",
]

DAY_SUMMARY_COLUMNS = [
    "date",
    "records",
    "operative_time",
    "planned_time",
    "total_production",
    "defects",
    "stop_duration",
    "stop_events",
    "availability",
    "performance",
    "quality",
    "oee",
]


def record_day(value: object) -> dt.date:
    """Return the calendar day of a record date (``date``, ``datetime`` or ISO text)."""

    value = coerce_day(value)
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value))


@dataclass(frozen=True, slots=True)
class RecordFilter:
    """Optional constraints applied to records before aggregation.

    Attributes
    ----------
    machine_id:
        Keep only records for this machine.
    shift:
        Keep only production records for this shift label. Stoppages carry no shift and
        are never excluded by it.
    date_from / date_to:
        Inclusive day bounds. Each bound applies on its own when the other is omitted.

    A ``None`` attribute means "no constraint".
    """

    machine_id: str | None = None
    shift: str | None = None
    date_from: dt.date | None = None
    date_to: dt.date | None = None

    def _in_window(self, value: object) -> bool:
        if self.date_from is None and self.date_to is None:
            return True
        day = record_day(value)
        if self.date_from is not None and day < self.date_from:
            return False
        if self.date_to is not None and day > self.date_to:
            return False
        return True

    def matches_production(self, record: ShiftRecord) -> bool:
        if self.machine_id is not None and record.machine_id != self.machine_id:
            return False
        if self.shift is not None and record.shift != self.shift:
            return False
        return self._in_window(record.date)

    def matches_stoppage(self, record: StoppageRecord) -> bool:
        if self.machine_id is not None and record.machine_id != self.machine_id:
            return False
        return self._in_window(record.date)

    def to_dict(self) -> dict[str, str | None]:
        return {
            "machine_id": self.machine_id,
            "shift": self.shift,
            "date_from": self.date_from.isoformat() if self.date_from else None,
            "date_to": self.date_to.isoformat() if self.date_to else None,
        }


@dataclass(slots=True)
class ProductionTotals:
    """Running sums over production and stoppage records.

    ``ideal_production`` accumulates ``ideal_speed * operative_time`` per record and
    ``capacity_production`` accumulates ``ideal_speed * planned_time``, so groups
    mixing machines of different speeds keep a capacity-weighted ideal.
    """

    records: int = 0
    operative_time: float = 0.0
    planned_time: float = 0.0
    total_production: float = 0.0
    defects: float = 0.0
    ideal_production: float = 0.0
    capacity_production: float = 0.0
    stop_duration: float = 0.0
    planned_stop_duration: float = 0.0
    stop_events: int = 0

    def add_shift(self, record: ShiftRecord, machine: MachineSpec) -> None:
        # One planned-time quota per shift record, not per calendar day.
        self.records += 1
        self.operative_time += record.operative_time
        self.planned_time += machine.planned_time
        self.total_production += record.total_production
        self.defects += record.defects
        self.ideal_production += machine.ideal_speed * record.operative_time
        self.capacity_production += machine.ideal_speed * machine.planned_time

    def add_stoppage(self, record: StoppageRecord) -> None:
        self.stop_duration += record.duration_minutes
        if record.type == StoppageType.PLANNED:
            self.planned_stop_duration += record.duration_minutes
        self.stop_events += 1

    def merge(self, other: ProductionTotals) -> None:
        self.records += other.records
        self.operative_time += other.operative_time
        self.planned_time += other.planned_time
        self.total_production += other.total_production
        self.defects += other.defects
        self.ideal_production += other.ideal_production
        self.capacity_production += other.capacity_production
        self.stop_duration += other.stop_duration
        self.planned_stop_duration += other.planned_stop_duration
        self.stop_events += other.stop_events

    @property
    def good_units(self) -> float:
        return self.total_production - self.defects

    @property
    def unplanned_stop_duration(self) -> float:
        return self.stop_duration - self.planned_stop_duration

    @property
    def effective_speed(self) -> float:
        """Ideal units per operative minute across the group (0 when nothing ran)."""
        if self.operative_time <= 0:
            return 0.0
        return self.ideal_production / self.operative_time

    @property
    def planned_speed(self) -> float:
        """Ideal units per planned minute across the group (0 without planned time)."""
        if self.planned_time <= 0:
            return 0.0
        return self.capacity_production / self.planned_time

    def metrics(self) -> MetricResult:
        return compute_metrics(
            self.operative_time,
            self.planned_time,
            self.total_production,
            self.defects,
            self.effective_speed,
        )

    def losses(self, cost: CostConfig) -> LossResult:
        return compute_losses_with(
            cost,
            stop_duration=self.stop_duration,
            defects=self.defects,
            total_production=self.total_production,
            planned_time=self.planned_time,
            ideal_speed=self.planned_speed,
        )


@dataclass(slots=True)
class MachineAggregate:
    """Totals for a single machine over the filtered window."""

    machine: MachineSpec
    totals: ProductionTotals = field(default_factory=ProductionTotals)

    @property
    def machine_id(self) -> str:
        return self.machine.id

    def metrics(self) -> MetricResult:
        t = self.totals
        return compute_metrics(
            t.operative_time,
            t.planned_time,
            t.total_production,
            t.defects,
            self.machine.ideal_speed,
        )

    def losses(self, cost: CostConfig) -> LossResult:
        t = self.totals
        return compute_losses_with(
            cost,
            stop_duration=t.stop_duration,
            defects=t.defects,
            total_production=t.total_production,
            planned_time=t.planned_time,
            ideal_speed=self.machine.ideal_speed,
        )


@dataclass(slots=True)
class DayAggregate:
    """Totals for one calendar day across the machines in scope."""

    day: dt.date
    totals: ProductionTotals = field(default_factory=ProductionTotals)

    def metrics(self) -> MetricResult:
        return self.totals.metrics()

    def losses(self, cost: CostConfig) -> LossResult:
        return self.totals.losses(cost)


def _machine_lookup(machines: Iterable[MachineSpec]) -> dict[str, MachineSpec]:
    return {machine.id: machine for machine in machines}


def aggregate_by_machine(
    production: Iterable[ShiftRecord],
    stoppages: Iterable[StoppageRecord],
    machines: Iterable[MachineSpec],
    *,
    filters: RecordFilter | None = None,
    include_inactive: bool = False,
) -> list[MachineAggregate]:
    """Fold records into one :class:`MachineAggregate` per machine.

    Parameters
    ----------
    production, stoppages:
        Raw records in any order.
    machines:
        Machine definitions. Output preserves this order and includes machines without
        matching records (their totals stay at zero).
    filters:
        Optional :class:`RecordFilter`. A ``machine_id`` filter also narrows the output to
        that machine.
    include_inactive:
        When ``False`` (default) inactive machines and their records are skipped.

    Raises
    ------
    InvalidRecordError
        If a matching record references an unknown machine or breaks the quantity
        contract.
    """

    flt = filters or RecordFilter()
    lookup = _machine_lookup(machines)
    aggregates: dict[str, MachineAggregate] = {}
    for machine_id, machine in lookup.items():
        if not (include_inactive or machine.active):
            continue
        if flt.machine_id is not None and machine_id != flt.machine_id:
            continue
        aggregates[machine_id] = MachineAggregate(machine=machine)

    for record in production:
        if not flt.matches_production(record):
            continue
        machine = require_valid_shift_record(record, lookup)
        aggregate = aggregates.get(machine.id)
        if aggregate is not None:
            aggregate.totals.add_shift(record, machine)

    for stoppage in stoppages:
        if not flt.matches_stoppage(stoppage):
            continue
        machine = require_valid_stoppage_record(stoppage, lookup)
        aggregate = aggregates.get(machine.id)
        if aggregate is not None:
            aggregate.totals.add_stoppage(stoppage)

    return list(aggregates.values())


def aggregate_by_day(
    production: Iterable[ShiftRecord],
    stoppages: Iterable[StoppageRecord],
    machines: Iterable[MachineSpec],
    *,
    filters: RecordFilter | None = None,
    include_inactive: bool = False,
) -> list[DayAggregate]:
    """Fold records into per-day buckets, ascending by date.

    Days without any matching record are omitted rather than zero-filled. Each shift
    record contributes its own machine's planned-time quota and ideal speed.
    """

    flt = filters or RecordFilter()
    lookup = _machine_lookup(machines)
    buckets: dict[dt.date, DayAggregate] = {}

    def bucket(day: dt.date) -> DayAggregate:
        aggregate = buckets.get(day)
        if aggregate is None:
            aggregate = DayAggregate(day=day)
            buckets[day] = aggregate
        return aggregate

    for record in production:
        if not flt.matches_production(record):
            continue
        machine = require_valid_shift_record(record, lookup)
        if not (include_inactive or machine.active):
            continue
        bucket(record_day(record.date)).totals.add_shift(record, machine)

    for stoppage in stoppages:
        if not flt.matches_stoppage(stoppage):
            continue
        machine = require_valid_stoppage_record(stoppage, lookup)
        if not (include_inactive or machine.active):
            continue
        bucket(record_day(stoppage.date)).totals.add_stoppage(stoppage)

    return [buckets[day] for day in sorted(buckets)]


def aggregate_global(aggregates: Iterable[MachineAggregate | DayAggregate]) -> ProductionTotals:
    """Sum per-machine (or per-day) totals into plant-wide totals."""

    total = ProductionTotals()
    for aggregate in aggregates:
        total.merge(aggregate.totals)
    return total


def machine_dataframe(
    aggregates: Sequence[MachineAggregate],
    cost: CostConfig | None = None,
) -> pd.DataFrame:
    """Return per-machine totals, metrics and (optionally) losses as a DataFrame.

    Parameters
    ----------
    aggregates:
        Output of :func:`aggregate_by_machine`.
    cost:
        When provided, loss columns are filled; otherwise they are left empty.
    """

    if not aggregates:
        return pd.DataFrame(columns=MACHINE_SUMMARY_COLUMNS)
    rows = []
    for aggregate in aggregates:
        totals = aggregate.totals
        metrics = aggregate.metrics()
        row: dict[str, object] = {
            "machine_id": aggregate.machine_id,
            "name": aggregate.machine.name,
            "area": aggregate.machine.area,
            "records": totals.records,
            "operative_time": totals.operative_time,
            "planned_time": totals.planned_time,
            "total_production": totals.total_production,
            "defects": totals.defects,
            "good_units": totals.good_units,
            "stop_duration": totals.stop_duration,
            "planned_stop_duration": totals.planned_stop_duration,
            "unplanned_stop_duration": totals.unplanned_stop_duration,
            "stop_events": totals.stop_events,
            "level": metrics.level.value,
            **metrics.to_dict(),
        }
        if cost is not None:
            row.update(aggregate.losses(cost).to_dict())
        rows.append(row)
    return pd.DataFrame(rows).reindex(columns=MACHINE_SUMMARY_COLUMNS)


def day_dataframe(days: Sequence[DayAggregate]) -> pd.DataFrame:
    """Return the day-level aggregates as a DataFrame (ascending dates)."""

    if not days:
        return pd.DataFrame(columns=DAY_SUMMARY_COLUMNS)
    rows = []
    for aggregate in days:
        totals = aggregate.totals
        rows.append(
            {
                "date": aggregate.day,
                "records": totals.records,
                "operative_time": totals.operative_time,
                "planned_time": totals.planned_time,
                "total_production": totals.total_production,
                "defects": totals.defects,
                "stop_duration": totals.stop_duration,
                "stop_events": totals.stop_events,
                **aggregate.metrics().to_dict(),
            }
        )
    return pd.DataFrame(rows).reindex(columns=DAY_SUMMARY_COLUMNS)


def records_dataframe(records: Sequence[ShiftRecord | StoppageRecord]) -> pd.DataFrame:
    """Flatten pydantic records into a DataFrame (enum values as plain strings)."""

    if not records:
        return pd.DataFrame()
    return pd.DataFrame([record.model_dump(mode="json") for record in records])
