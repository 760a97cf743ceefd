from __future__ import annotations

import datetime as dt

import pytest

from oeekit.contract.models import PlantConfig, ShiftRecord, StoppageRecord
from oeekit.core.errors import InvalidRecordError, OEEValueError
from oeekit.validation import (
    find_invalid_records,
    require_valid_shift_record,
    shift_record_problem,
    validate_labels,
)
from tests.builders import machine, shift, stop


def _unchecked_shift(**overrides) -> ShiftRecord:
    payload = dict(
        machine_id="M1",
        date=dt.date(2024, 5, 1),
        shift="MORNING",
        operative_time=100.0,
        total_production=10.0,
        defects=0.0,
    )
    payload.update(overrides)
    return ShiftRecord.model_construct(**payload)


def test_shift_record_problem_flags_constructed_records():
    assert shift_record_problem(shift("M1", "2024-05-01", 100, 10, 2)) is None
    assert shift_record_problem(_unchecked_shift(defects=11.0)) == (
        "defects exceed total_production"
    )
    assert shift_record_problem(_unchecked_shift(operative_time=-1.0)) == (
        "negative operative_time"
    )


def test_require_valid_shift_record_raises_with_context():
    lookup = {"M1": machine("M1")}
    record = shift("MX", "2024-05-01", 100, 10)

    with pytest.raises(InvalidRecordError) as excinfo:
        require_valid_shift_record(record, lookup)

    assert excinfo.value.record is record
    assert excinfo.value.reason == "unknown machine_id 'MX'"
    assert isinstance(excinfo.value, OEEValueError)
    assert isinstance(excinfo.value, ValueError)
    assert require_valid_shift_record(shift("M1", "2024-05-01", 1, 1), lookup).id == "M1"


def test_find_invalid_records_collects_every_problem():
    bad_stop = StoppageRecord.model_construct(
        machine_id="M1",
        date=dt.date(2024, 5, 1),
        reason="Other",
        type="UNPLANNED",
        duration_minutes=-3.0,
        observations=None,
    )
    issues = find_invalid_records(
        production=[shift("M1", "2024-05-01", 100, 10), _unchecked_shift(defects=20.0)],
        stoppages=[stop("M9", "2024-05-01", "Other", 5), bad_stop],
        machines=[machine("M1")],
    )

    assert [(issue.kind, issue.reason) for issue in issues] == [
        ("production", "defects exceed total_production"),
        ("stoppage", "unknown machine_id 'M9'"),
        ("stoppage", "negative duration_minutes"),
    ]


def test_validate_labels_reports_unknown_shift_and_reason():
    config = PlantConfig(shifts=("MORNING",), stop_reasons=("Mechanical failure",))
    warnings = validate_labels(
        [shift("M1", "2024-05-01", 1, 1), shift("M1", "2024-05-01", 1, 1, shift_label="NIGHT")],
        [stop("M1", "2024-05-01", "Coffee break", 5)],
        config,
    )
    assert len(warnings) == 2
    assert "NIGHT" in warnings[0]
    assert "Coffee break" in warnings[1]


def test_validate_labels_empty_sets_disable_checks():
    config = PlantConfig(shifts=(), stop_reasons=())
    assert validate_labels([shift("M1", "2024-05-01", 1, 1, shift_label="X")], [], config) == []
