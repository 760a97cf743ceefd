"""Input contract models (Pydantic schemas, validators)."""

from .models import (
    DEFAULT_SHIFTS,
    CostConfig,
    MachineSpec,
    PlantConfig,
    PlantDataset,
    ShiftRecord,
    StoppageRecord,
    StoppageType,
    coerce_day,
)

__all__ = [
    "DEFAULT_SHIFTS",
    "StoppageType",
    "ShiftRecord",
    "StoppageRecord",
    "MachineSpec",
    "CostConfig",
    "PlantConfig",
    "PlantDataset",
    "coerce_day",
]
