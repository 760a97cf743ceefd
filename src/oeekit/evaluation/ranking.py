"""Machine leaderboards, stoppage Pareto tables, trend series and loss shares."""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass

from oeekit.contract.models import CostConfig, MachineSpec, StoppageRecord
from oeekit.costing.losses import LossResult
from oeekit.evaluation.aggregates import DayAggregate, MachineAggregate, RecordFilter
from oeekit.metrics.oee import MetricResult, OEELevel
from oeekit.validation.records import require_valid_stoppage_record

__all__ = [
    "DEFAULT_PARETO_TOP",
    "LOSS_CATEGORIES",
    "MachineRanking",
    "ParetoEntry",
    "TrendPoint",
    "LossShare",
    "rank_machines",
    "stoppage_pareto",
    "trend_series",
    "loss_distribution",
]

DEFAULT_PARETO_TOP = 8

LOSS_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("stoppage", "stoppage_loss"),
    ("production", "production_loss"),
    ("defect", "defect_loss"),
)


@dataclass(frozen=True, slots=True)
class MachineRanking:
    """
    Leaderboard row for one machine.

    Attributes
    ----------
    rank:
        1-based position (1 = best OEE).
    machine_id, name, area:
        Machine identity carried from :class:`~oeekit.contract.MachineSpec`.
    metrics:
        Metrics over the aggregated window.
    total_production:
        Units produced in the window (first tie-breaker).
    level:
        OEE band of ``metrics.oee``.
    critical:
        ``True`` when the machine sits in the ``poor`` band.
    losses:
        Loss breakdown, present when a cost configuration was supplied.
    """

    rank: int
    machine_id: str
    name: str | None
    area: str | None
    metrics: MetricResult
    total_production: float
    level: OEELevel
    critical: bool
    losses: LossResult | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "rank": self.rank,
            "machine_id": self.machine_id,
            "name": self.name,
            "area": self.area,
            "total_production": self.total_production,
            "level": self.level.value,
            "critical": self.critical,
            **self.metrics.to_dict(),
        }
        if self.losses is not None:
            payload.update(self.losses.to_dict())
        return payload


@dataclass(frozen=True, slots=True)
class ParetoEntry:
    """Summed stoppage minutes for one reason."""

    reason: str
    duration: float
    events: int
    share: float
    cumulative_share: float
    relative_to_top: float

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class TrendPoint:
    """One day of the OEE trend."""

    date: dt.date
    availability: float
    performance: float
    quality: float
    oee: float
    total_production: float = 0.0
    defects: float = 0.0

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["date"] = self.date.isoformat()
        return payload


@dataclass(frozen=True, slots=True)
class LossShare:
    """Absolute value and percentage of total loss for one category."""

    category: str
    value: float
    percentage: float

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def rank_machines(
    aggregates: Sequence[MachineAggregate],
    cost: CostConfig | None = None,
) -> list[MachineRanking]:
    """Sort machines by descending OEE and assign ranks 1..N.

    Ties fall back to descending total production, then to the input order, so the
    output is deterministic for a given input sequence.
    """

    scored = [(aggregate, aggregate.metrics()) for aggregate in aggregates]
    # sorted() is stable, which keeps input order as the final tie-breaker.
    ordered = sorted(
        scored,
        key=lambda item: (-item[1].oee, -item[0].totals.total_production),
    )
    rankings: list[MachineRanking] = []
    for position, (aggregate, metrics) in enumerate(ordered, start=1):
        level = metrics.level
        rankings.append(
            MachineRanking(
                rank=position,
                machine_id=aggregate.machine_id,
                name=aggregate.machine.name,
                area=aggregate.machine.area,
                metrics=metrics,
                total_production=aggregate.totals.total_production,
                level=level,
                critical=level is OEELevel.POOR,
                losses=aggregate.losses(cost) if cost is not None else None,
            )
        )
    return rankings


def stoppage_pareto(
    stoppages: Iterable[StoppageRecord],
    *,
    machines: Iterable[MachineSpec] | None = None,
    filters: RecordFilter | None = None,
    top: int | None = None,
    include_inactive: bool = False,
) -> list[ParetoEntry]:
    """Group stoppages by reason and order them by summed duration.

    Parameters
    ----------
    stoppages:
        Stoppage records in any order.
    machines:
        Optional machine definitions. When given, every matching stoppage is checked
        against them and stoppages of inactive machines are skipped.
    filters:
        Optional :class:`RecordFilter` (machine and date bounds apply).
    top:
        Return only the first ``top`` entries. Shares are always computed against the
        full set, so a truncated view still reports each cause's true weight.
    include_inactive:
        Keep stoppages of inactive machines. Only used together with ``machines``.

    Returns
    -------
    list[ParetoEntry]
        Descending by duration; equal durations are ordered alphabetically by reason.

    Raises
    ------
    InvalidRecordError
        If ``machines`` is given and a matching stoppage references an unknown machine
        or has a negative duration.
    """

    flt = filters or RecordFilter()
    lookup = {machine.id: machine for machine in machines} if machines is not None else None
    durations: dict[str, float] = {}
    events: dict[str, int] = {}
    for stoppage in stoppages:
        if not flt.matches_stoppage(stoppage):
            continue
        if lookup is not None:
            machine = require_valid_stoppage_record(stoppage, lookup)
            if not (include_inactive or machine.active):
                continue
        durations[stoppage.reason] = durations.get(stoppage.reason, 0.0) + stoppage.duration_minutes
        events[stoppage.reason] = events.get(stoppage.reason, 0) + 1

    ordered = sorted(durations.items(), key=lambda item: (-item[1], item[0]))
    grand_total = sum(durations.values())
    top_duration = ordered[0][1] if ordered else 0.0

    entries: list[ParetoEntry] = []
    running = 0.0
    for reason, duration in ordered:
        running += duration
        entries.append(
            ParetoEntry(
                reason=reason,
                duration=duration,
                events=events[reason],
                share=duration / grand_total if grand_total > 0 else 0.0,
                cumulative_share=running / grand_total if grand_total > 0 else 0.0,
                relative_to_top=duration / top_duration if top_duration > 0 else 0.0,
            )
        )
    if top is not None:
        return entries[: max(top, 0)]
    return entries


def trend_series(days: Iterable[DayAggregate]) -> list[TrendPoint]:
    """Map per-day aggregates to trend points in ascending date order.

    Only days present in ``days`` are emitted; gaps are not interpolated.
    """

    points: list[TrendPoint] = []
    for aggregate in sorted(days, key=lambda item: item.day):
        metrics = aggregate.metrics()
        points.append(
            TrendPoint(
                date=aggregate.day,
                availability=metrics.availability,
                performance=metrics.performance,
                quality=metrics.quality,
                oee=metrics.oee,
                total_production=aggregate.totals.total_production,
                defects=aggregate.totals.defects,
            )
        )
    return points


def loss_distribution(losses: LossResult) -> list[LossShare]:
    """Split total loss into stoppage/production/defect shares (percent of total).

    Percentages are ``0`` when the total loss is ``0``.
    """

    total = losses.stoppage_loss + losses.production_loss + losses.defect_loss
    shares: list[LossShare] = []
    for category, attribute in LOSS_CATEGORIES:
        value = getattr(losses, attribute)
        shares.append(
            LossShare(
                category=category,
                value=value,
                percentage=(value / total * 100.0) if total > 0 else 0.0,
            )
        )
    return shares
