from __future__ import annotations

import json

import pytest

from oeekit.contract.models import StoppageType
from oeekit.costing import sum_losses
from oeekit.evaluation import (
    RecordFilter,
    aggregate_by_machine,
    build_dashboard,
    machine_losses,
    summarise_plant,
    summarise_stoppages,
)


def test_build_dashboard_overview(production, stoppages, machines, reference_cost):
    summary = build_dashboard(production, stoppages, machines, reference_cost)

    assert summary.total_machines == 2
    assert summary.critical_machines == 0
    assert summary.oee_goal == 0.85
    assert [row.machine_id for row in summary.ranking] == ["M1", "M2"]
    assert summary.top_reasons[0].reason == "Mechanical failure"
    assert len(summary.trend) == 2
    assert summary.stoppages.events == 5
    assert summary.stoppages.planned_events == 2
    assert summary.stoppages.unplanned_events == 3
    assert summary.stoppages.total_minutes == pytest.approx(188.5)

    aggregates = aggregate_by_machine(production, stoppages, machines)
    expected = sum_losses(aggregate.losses(reference_cost) for aggregate in aggregates)
    assert summary.losses == expected
    assert sum(share.value for share in summary.loss_shares) == pytest.approx(
        expected.stoppage_loss + expected.production_loss + expected.defect_loss
    )
    assert sum(share.percentage for share in summary.loss_shares) == pytest.approx(100.0)


def test_build_dashboard_respects_filters(production, stoppages, machines, reference_cost):
    summary = build_dashboard(
        production,
        stoppages,
        machines,
        reference_cost,
        filters=RecordFilter(machine_id="M1"),
        top_reasons=1,
    )
    assert summary.total_machines == 1
    assert summary.stoppages.events == 3
    assert [entry.reason for entry in summary.top_reasons] == ["Mechanical failure"]
    assert summary.filters.machine_id == "M1"


def test_dashboard_to_dict_is_json_ready(production, stoppages, machines, reference_cost):
    payload = build_dashboard(production, stoppages, machines, reference_cost).to_dict()
    decoded = json.loads(json.dumps(payload))

    assert decoded["ranking"][0]["level"] == "good"
    assert decoded["trend"][0]["date"] == "2024-05-01"
    assert decoded["filters"] == {
        "machine_id": None,
        "shift": None,
        "date_from": None,
        "date_to": None,
    }
    assert decoded["losses"]["total_loss"] > 0


def test_build_dashboard_is_repeatable(production, stoppages, machines, reference_cost):
    first = build_dashboard(production, stoppages, machines, reference_cost)
    second = build_dashboard(production, stoppages, machines, reference_cost)
    assert first.to_dict() == second.to_dict()


def test_machine_losses_sorted_descending(production, stoppages, machines, reference_cost):
    aggregates = aggregate_by_machine(production, stoppages, machines)
    rows = machine_losses(aggregates, reference_cost)
    totals = [row.losses.total_loss for row in rows]
    assert totals == sorted(totals, reverse=True)
    assert sum(totals) == pytest.approx(
        summarise_plant(aggregates, reference_cost).losses.total_loss
    )


def test_summarise_stoppages_by_type(stoppages):
    planned = summarise_stoppages(stoppages, stop_type=StoppageType.PLANNED)
    assert planned.events == 2
    assert planned.unplanned_events == 0
    assert planned.total_minutes == pytest.approx(50)

    empty = summarise_stoppages([])
    assert empty.events == 0
    assert empty.total_minutes == 0.0
