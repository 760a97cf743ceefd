"""Plant-level summaries combining aggregation, metrics, losses and rankings."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from oeekit.contract.models import (
    CostConfig,
    MachineSpec,
    ShiftRecord,
    StoppageRecord,
    StoppageType,
)
from oeekit.costing.losses import LossResult, sum_losses
from oeekit.evaluation.aggregates import (
    MachineAggregate,
    ProductionTotals,
    RecordFilter,
    aggregate_by_day,
    aggregate_by_machine,
    aggregate_global,
)
from oeekit.evaluation.ranking import (
    DEFAULT_PARETO_TOP,
    LossShare,
    MachineRanking,
    ParetoEntry,
    TrendPoint,
    loss_distribution,
    rank_machines,
    stoppage_pareto,
    trend_series,
)
from oeekit.metrics.oee import MetricResult

__all__ = [
    "MachineLoss",
    "StoppageSummary",
    "PlantSummary",
    "DashboardSummary",
    "summarise_plant",
    "machine_losses",
    "summarise_stoppages",
    "build_dashboard",
]


@dataclass(frozen=True, slots=True)
class MachineLoss:
    """Loss breakdown and OEE for one machine."""

    machine_id: str
    name: str | None
    losses: LossResult
    oee: float

    def to_dict(self) -> dict[str, object]:
        return {
            "machine_id": self.machine_id,
            "name": self.name,
            "oee": self.oee,
            **self.losses.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class StoppageSummary:
    """Event counts and minutes split by stoppage type."""

    events: int = 0
    planned_events: int = 0
    unplanned_events: int = 0
    total_minutes: float = 0.0
    planned_minutes: float = 0.0
    unplanned_minutes: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "events": self.events,
            "planned_events": self.planned_events,
            "unplanned_events": self.unplanned_events,
            "total_minutes": self.total_minutes,
            "planned_minutes": self.planned_minutes,
            "unplanned_minutes": self.unplanned_minutes,
        }


@dataclass(slots=True)
class PlantSummary:
    """Plant-wide totals: metrics from the summed counters, losses summed per machine."""

    totals: ProductionTotals
    metrics: MetricResult
    losses: LossResult


@dataclass(slots=True)
class DashboardSummary:
    """Everything a plant overview needs, as plain values.

    Attributes
    ----------
    metrics:
        Plant-wide :class:`MetricResult`.
    oee_goal:
        Configured OEE target.
    losses:
        Plant-wide :class:`LossResult` (sum of per-machine results).
    loss_shares:
        :func:`loss_distribution` of ``losses``.
    trend:
        Ascending daily trend points.
    top_reasons:
        Leading stoppage causes (Pareto order).
    ranking:
        Machine leaderboard.
    total_machines / critical_machines:
        Counts over the ranked machines.
    stoppages:
        :class:`StoppageSummary` over the filtered window.
    filters:
        Filters applied to build the summary.
    """

    metrics: MetricResult
    oee_goal: float
    losses: LossResult
    loss_shares: list[LossShare]
    trend: list[TrendPoint]
    top_reasons: list[ParetoEntry]
    ranking: list[MachineRanking]
    total_machines: int
    critical_machines: int
    stoppages: StoppageSummary
    filters: RecordFilter = field(default_factory=RecordFilter)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable payload."""

        return {
            "metrics": self.metrics.to_dict(),
            "oee_goal": self.oee_goal,
            "losses": self.losses.to_dict(),
            "loss_shares": [share.to_dict() for share in self.loss_shares],
            "trend": [point.to_dict() for point in self.trend],
            "top_reasons": [entry.to_dict() for entry in self.top_reasons],
            "ranking": [row.to_dict() for row in self.ranking],
            "total_machines": self.total_machines,
            "critical_machines": self.critical_machines,
            "stoppages": self.stoppages.to_dict(),
            "filters": self.filters.to_dict(),
        }


def summarise_plant(aggregates: Sequence[MachineAggregate], cost: CostConfig) -> PlantSummary:
    totals = aggregate_global(aggregates)
    return PlantSummary(
        totals=totals,
        metrics=totals.metrics(),
        losses=sum_losses(aggregate.losses(cost) for aggregate in aggregates),
    )


def machine_losses(aggregates: Sequence[MachineAggregate], cost: CostConfig) -> list[MachineLoss]:
    """Per-machine losses sorted by descending total loss (ties keep input order)."""

    rows = [
        MachineLoss(
            machine_id=aggregate.machine_id,
            name=aggregate.machine.name,
            losses=aggregate.losses(cost),
            oee=aggregate.metrics().oee,
        )
        for aggregate in aggregates
    ]
    return sorted(rows, key=lambda row: -row.losses.total_loss)


def summarise_stoppages(
    stoppages: Iterable[StoppageRecord],
    *,
    filters: RecordFilter | None = None,
    stop_type: StoppageType | None = None,
) -> StoppageSummary:
    """Count stoppage events and minutes, optionally restricted to one type."""

    flt = filters or RecordFilter()
    planned_events = unplanned_events = 0
    planned_minutes = unplanned_minutes = 0.0
    for stoppage in stoppages:
        if not flt.matches_stoppage(stoppage):
            continue
        if stop_type is not None and stoppage.type != stop_type:
            continue
        if stoppage.type == StoppageType.PLANNED:
            planned_events += 1
            planned_minutes += stoppage.duration_minutes
        else:
            unplanned_events += 1
            unplanned_minutes += stoppage.duration_minutes
    return StoppageSummary(
        events=planned_events + unplanned_events,
        planned_events=planned_events,
        unplanned_events=unplanned_events,
        total_minutes=planned_minutes + unplanned_minutes,
        planned_minutes=planned_minutes,
        unplanned_minutes=unplanned_minutes,
    )


def build_dashboard(
    production: Sequence[ShiftRecord],
    stoppages: Sequence[StoppageRecord],
    machines: Sequence[MachineSpec],
    cost: CostConfig,
    *,
    filters: RecordFilter | None = None,
    top_reasons: int = DEFAULT_PARETO_TOP,
) -> DashboardSummary:
    """Assemble the plant overview from raw records.

    Records are only read; calling this twice on the same inputs returns equal
    summaries.
    """

    flt = filters or RecordFilter()
    aggregates = aggregate_by_machine(production, stoppages, machines, filters=flt)
    days = aggregate_by_day(production, stoppages, machines, filters=flt)
    plant = summarise_plant(aggregates, cost)
    ranking = rank_machines(aggregates, cost)
    active_ids = {aggregate.machine_id for aggregate in aggregates}
    in_scope = [stoppage for stoppage in stoppages if stoppage.machine_id in active_ids]

    return DashboardSummary(
        metrics=plant.metrics,
        oee_goal=cost.oee_goal,
        losses=plant.losses,
        loss_shares=loss_distribution(plant.losses),
        trend=trend_series(days),
        top_reasons=stoppage_pareto(in_scope, filters=flt, top=top_reasons),
        ranking=ranking,
        total_machines=len(ranking),
        critical_machines=sum(1 for row in ranking if row.critical),
        stoppages=summarise_stoppages(in_scope, filters=flt),
        filters=flt,
    )
