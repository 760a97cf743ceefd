"""Economic loss helpers (stoppage, shortfall and defect costs)."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass

from oeekit.contract.models import CostConfig

__all__ = [
    "DEFAULT_OEE_GOAL",
    "LossResult",
    "compute_losses",
    "compute_losses_with",
    "sum_losses",
]

DEFAULT_OEE_GOAL = 0.85


@dataclass(frozen=True, slots=True)
class LossResult:
    """
    Monetary loss breakdown for a machine, a day or the whole plant.

    Attributes
    ----------
    stoppage_loss:
        Stoppage minutes priced at the per-minute stop cost.
    production_loss:
        Units missing against full planned capacity, priced at the unit value.
    defect_loss:
        Defective units priced at the per-unit defect cost.
    total_loss:
        Sum of the three categories.
    potential_gain:
        Revenue recoverable by lifting good output to the goal-scaled target. Never
        negative.
    """

    stoppage_loss: float = 0.0
    production_loss: float = 0.0
    defect_loss: float = 0.0
    total_loss: float = 0.0
    potential_gain: float = 0.0

    def __add__(self, other: LossResult) -> LossResult:
        if not isinstance(other, LossResult):
            return NotImplemented
        return LossResult(
            stoppage_loss=self.stoppage_loss + other.stoppage_loss,
            production_loss=self.production_loss + other.production_loss,
            defect_loss=self.defect_loss + other.defect_loss,
            total_loss=self.total_loss + other.total_loss,
            potential_gain=self.potential_gain + other.potential_gain,
        )

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


def compute_losses(
    stop_duration: float,
    defects: float,
    total_production: float,
    planned_time: float,
    ideal_speed: float,
    stop_cost_per_minute: float,
    defect_cost_per_unit: float,
    production_value_per_unit: float,
    oee_goal: float = DEFAULT_OEE_GOAL,
) -> LossResult:
    """
    Price the gap between actual and ideal output.

    Parameters
    ----------
    stop_duration:
        Stoppage minutes in the window.
    defects:
        Defective units.
    total_production:
        Units produced (good + defective).
    planned_time:
        Planned production minutes. Ideal output is measured against planned time,
        not operative time, so the shortfall reflects full-capacity potential.
    ideal_speed:
        Theoretical output in units per minute.
    stop_cost_per_minute, defect_cost_per_unit, production_value_per_unit:
        Cost parameters; callers validate them upstream (see :class:`CostConfig`).
    oee_goal:
        Target OEE used to size :attr:`LossResult.potential_gain`.
    """

    stoppage_loss = stop_duration * stop_cost_per_minute

    ideal_production = ideal_speed * planned_time
    lost_production = max(0.0, ideal_production - total_production)
    production_loss = lost_production * production_value_per_unit

    defect_loss = defects * defect_cost_per_unit
    total_loss = stoppage_loss + production_loss + defect_loss

    target_production = ideal_production * oee_goal
    good_units = total_production - defects
    potential_gain = max(0.0, target_production - good_units) * production_value_per_unit

    return LossResult(
        stoppage_loss=stoppage_loss,
        production_loss=production_loss,
        defect_loss=defect_loss,
        total_loss=total_loss,
        potential_gain=potential_gain,
    )


def compute_losses_with(
    cost: CostConfig,
    *,
    stop_duration: float,
    defects: float,
    total_production: float,
    planned_time: float,
    ideal_speed: float,
) -> LossResult:
    """Call :func:`compute_losses` with the parameters carried by ``cost``."""

    return compute_losses(
        stop_duration,
        defects,
        total_production,
        planned_time,
        ideal_speed,
        cost.stop_cost_per_minute,
        cost.defect_cost_per_unit,
        cost.production_value_per_unit,
        cost.oee_goal,
    )


def sum_losses(results: Iterable[LossResult]) -> LossResult:
    total = LossResult()
    for result in results:
        total = total + result
    return total
