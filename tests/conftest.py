from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from oeekit.contract.models import CostConfig, MachineSpec, ShiftRecord, StoppageRecord
from tests.builders import shift, stop

FIXTURE_PLANT = Path(__file__).parent / "fixtures" / "plant" / "plant.yaml"


@pytest.fixture
def fixture_plant_path() -> Path:
    return FIXTURE_PLANT


@pytest.fixture
def plant_copy(tmp_path: Path) -> Path:
    """Writable copy of the fixture bundle; returns its plant.yaml."""
    target = tmp_path / "plant"
    shutil.copytree(FIXTURE_PLANT.parent, target)
    return target / "plant.yaml"


@pytest.fixture
def reference_cost() -> CostConfig:
    return CostConfig(
        stop_cost_per_minute=50.0,
        defect_cost_per_unit=15.0,
        production_value_per_unit=25.0,
        oee_goal=0.85,
    )


@pytest.fixture
def machines() -> list[MachineSpec]:
    return [
        MachineSpec(id="M1", name="Line A", area="Assembly", ideal_speed=8.0, planned_time=480.0),
        MachineSpec(id="M2", name="Press", area="Stamping", ideal_speed=10.0, planned_time=480.0),
        MachineSpec(id="M3", name="Spare", ideal_speed=5.0, planned_time=480.0, active=False),
    ]


@pytest.fixture
def production() -> list[ShiftRecord]:
    return [
        shift("M1", "2024-05-01", 432, 2880, 58),
        shift("M1", "2024-05-01", 400, 2800, 40, shift_label="AFTERNOON"),
        shift("M2", "2024-05-01", 300, 2400, 100),
        shift("M3", "2024-05-02", 100, 100, 0),
        shift("M1", "2024-05-03", 450, 3000, 30),
        shift("M2", "2024-05-03", 480, 4000, 0, shift_label="NIGHT"),
    ]


@pytest.fixture
def stoppages() -> list[StoppageRecord]:
    return [
        stop("M1", "2024-05-01", "Mechanical failure", 48),
        stop("M1", "2024-05-01", "Format changeover", 20, "PLANNED"),
        stop("M2", "2024-05-01", "Mechanical failure", 60),
        stop("M2", "2024-05-03", "Material shortage", 30.5),
        stop("M1", "2024-05-03", "Preventive maintenance", 30, "PLANNED"),
    ]
