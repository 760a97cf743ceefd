"""Evaluation layer (aggregation, ranking, dashboards)."""

from .aggregates import (
    DAY_SUMMARY_COLUMNS,
    MACHINE_SUMMARY_COLUMNS,
    DayAggregate,
    MachineAggregate,
    ProductionTotals,
    RecordFilter,
    aggregate_by_day,
    aggregate_by_machine,
    aggregate_global,
    day_dataframe,
    machine_dataframe,
    record_day,
    records_dataframe,
)
from .dashboard import (
    DashboardSummary,
    MachineLoss,
    PlantSummary,
    StoppageSummary,
    build_dashboard,
    machine_losses,
    summarise_plant,
    summarise_stoppages,
)
from .ranking import (
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

__all__ = [
    "DAY_SUMMARY_COLUMNS",
    "MACHINE_SUMMARY_COLUMNS",
    "DEFAULT_PARETO_TOP",
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
    "MachineRanking",
    "ParetoEntry",
    "TrendPoint",
    "LossShare",
    "rank_machines",
    "stoppage_pareto",
    "trend_series",
    "loss_distribution",
    "MachineLoss",
    "StoppageSummary",
    "PlantSummary",
    "DashboardSummary",
    "summarise_plant",
    "machine_losses",
    "summarise_stoppages",
    "build_dashboard",
]
