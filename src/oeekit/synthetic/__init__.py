"""Synthetic plant dataset generation."""

from .generator import (
    REFERENCE_MACHINES,
    REFERENCE_STOP_REASONS,
    MachineProfile,
    SyntheticPlantBundle,
    SyntheticPlantConfig,
    generate_plant_dataset,
)

__all__ = [
    "MachineProfile",
    "REFERENCE_MACHINES",
    "REFERENCE_STOP_REASONS",
    "SyntheticPlantConfig",
    "SyntheticPlantBundle",
    "generate_plant_dataset",
]
