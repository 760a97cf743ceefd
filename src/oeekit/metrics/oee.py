"""OEE factor calculations and level classification."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum

from oeekit.contract.models import MachineSpec, ShiftRecord

__all__ = [
    "MetricResult",
    "OEELevel",
    "LEVEL_THRESHOLDS",
    "LEVEL_COLORS",
    "LEVEL_LABELS",
    "compute_metrics",
    "compute_record_metrics",
    "classify_level",
    "level_color",
    "level_label",
]


@dataclass(frozen=True, slots=True)
class MetricResult:
    """
    Availability, performance, quality and their product.

    Attributes
    ----------
    availability:
        Share of planned time the machine actually ran.
    performance:
        Share of theoretical output (ideal speed over run time) achieved.
    quality:
        Share of output that was not defective.
    oee:
        ``availability * performance * quality``.

    All four values lie in ``[0, 1]``.
    """

    availability: float = 0.0
    performance: float = 0.0
    quality: float = 0.0
    oee: float = 0.0

    @property
    def level(self) -> OEELevel:
        return classify_level(self.oee)

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


class OEELevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"


# Lower bounds, checked in order.
LEVEL_THRESHOLDS: tuple[tuple[float, OEELevel], ...] = (
    (0.85, OEELevel.EXCELLENT),
    (0.70, OEELevel.GOOD),
    (0.50, OEELevel.ACCEPTABLE),
)

LEVEL_COLORS: dict[OEELevel, str] = {
    OEELevel.EXCELLENT: "#00ff9d",
    OEELevel.GOOD: "#00d4ff",
    OEELevel.ACCEPTABLE: "#ffb800",
    OEELevel.POOR: "#ff4757",
}

LEVEL_LABELS: dict[OEELevel, str] = {
    OEELevel.EXCELLENT: "Excellent",
    OEELevel.GOOD: "Good",
    OEELevel.ACCEPTABLE: "Acceptable",
    OEELevel.POOR: "Critical",
}


def _ratio(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return min(max(numerator / denominator, 0.0), 1.0)


def compute_metrics(
    operative_time: float,
    planned_time: float,
    total_production: float,
    defects: float,
    ideal_speed: float,
) -> MetricResult:
    """
    Compute Availability, Performance, Quality and OEE from raw shift counters.

    Parameters
    ----------
    operative_time:
        Minutes the machine ran.
    planned_time:
        Minutes planned for production.
    total_production:
        Units produced (good + defective).
    defects:
        Defective units.
    ideal_speed:
        Theoretical output in units per minute.

    Returns
    -------
    MetricResult
        Every factor clamped to ``[0, 1]``. Zero planned time, zero ideal output or zero
        production give a zero factor instead of raising; overtime beyond the plan and
        output above ideal capacity both cap at 1.
    """

    availability = _ratio(operative_time, planned_time)
    ideal_production = ideal_speed * operative_time
    performance = _ratio(total_production, ideal_production)
    good_units = total_production - defects
    quality = _ratio(good_units, total_production)
    oee = availability * performance * quality
    return MetricResult(
        availability=max(0.0, availability),
        performance=max(0.0, performance),
        quality=max(0.0, quality),
        oee=max(0.0, oee),
    )


def compute_record_metrics(record: ShiftRecord, machine: MachineSpec) -> MetricResult:
    """Metrics for a single shift record against its machine's per-shift capacity."""

    return compute_metrics(
        record.operative_time,
        machine.planned_time,
        record.total_production,
        record.defects,
        machine.ideal_speed,
    )


def classify_level(oee: float) -> OEELevel:
    """Map an OEE fraction onto the excellent/good/acceptable/poor bands."""

    for lower_bound, level in LEVEL_THRESHOLDS:
        if oee >= lower_bound:
            return level
    return OEELevel.POOR


def _as_level(value: OEELevel | float) -> OEELevel:
    if isinstance(value, OEELevel):
        return value
    return classify_level(float(value))


def level_color(value: OEELevel | float) -> str:
    """Display colour (hex) for a level or a raw OEE fraction."""

    return LEVEL_COLORS[_as_level(value)]


def level_label(value: OEELevel | float) -> str:
    return LEVEL_LABELS[_as_level(value)]
