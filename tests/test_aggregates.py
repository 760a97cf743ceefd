from __future__ import annotations

import datetime as dt

import pandas as pd
import pytest

from oeekit.core.errors import InvalidRecordError
from oeekit.evaluation import (
    DAY_SUMMARY_COLUMNS,
    MACHINE_SUMMARY_COLUMNS,
    RecordFilter,
    aggregate_by_day,
    aggregate_by_machine,
    aggregate_global,
    day_dataframe,
    machine_dataframe,
    records_dataframe,
)
from tests.builders import shift


def _by_id(aggregates):
    return {aggregate.machine_id: aggregate for aggregate in aggregates}


def test_aggregate_by_machine_totals(production, stoppages, machines):
    aggregates = aggregate_by_machine(production, stoppages, machines)

    assert [aggregate.machine_id for aggregate in aggregates] == ["M1", "M2"]
    m1 = _by_id(aggregates)["M1"].totals
    assert m1.records == 3
    assert m1.operative_time == pytest.approx(1282)
    # one planned-time quota per shift record
    assert m1.planned_time == pytest.approx(3 * 480)
    assert m1.total_production == pytest.approx(8680)
    assert m1.defects == pytest.approx(128)
    assert m1.good_units == pytest.approx(8552)
    assert m1.stop_duration == pytest.approx(98)
    assert m1.planned_stop_duration == pytest.approx(50)
    assert m1.unplanned_stop_duration == pytest.approx(48)
    assert m1.stop_events == 3

    metrics = _by_id(aggregates)["M1"].metrics()
    assert metrics.availability == pytest.approx(1282 / 1440)
    assert metrics.performance == pytest.approx(8680 / (8 * 1282))
    assert metrics.quality == pytest.approx(8552 / 8680)


def test_inactive_machines_are_opt_in(production, stoppages, machines):
    aggregates = aggregate_by_machine(production, stoppages, machines, include_inactive=True)
    assert [aggregate.machine_id for aggregate in aggregates] == ["M1", "M2", "M3"]
    assert _by_id(aggregates)["M3"].totals.records == 1


def test_shift_filter_keeps_all_stoppages(production, stoppages, machines):
    flt = RecordFilter(shift="MORNING")
    aggregates = _by_id(aggregate_by_machine(production, stoppages, machines, filters=flt))

    assert aggregates["M1"].totals.records == 2
    assert aggregates["M1"].totals.operative_time == pytest.approx(432 + 450)
    assert aggregates["M1"].totals.stop_duration == pytest.approx(98)
    assert aggregates["M2"].totals.records == 1


def test_single_date_bounds_apply_on_their_own(production, stoppages, machines):
    since = _by_id(
        aggregate_by_machine(
            production, stoppages, machines, filters=RecordFilter(date_from=dt.date(2024, 5, 2))
        )
    )
    assert since["M1"].totals.records == 1
    assert since["M1"].totals.stop_duration == pytest.approx(30)

    until = _by_id(
        aggregate_by_machine(
            production, stoppages, machines, filters=RecordFilter(date_to=dt.date(2024, 5, 1))
        )
    )
    assert until["M1"].totals.records == 2
    assert until["M1"].totals.stop_duration == pytest.approx(68)


def test_machine_filter_narrows_output(production, stoppages, machines):
    aggregates = aggregate_by_machine(
        production, stoppages, machines, filters=RecordFilter(machine_id="M2")
    )
    assert [aggregate.machine_id for aggregate in aggregates] == ["M2"]
    assert aggregates[0].totals.stop_duration == pytest.approx(90.5)


def test_empty_window_yields_zero_metrics(production, stoppages, machines, reference_cost):
    flt = RecordFilter(date_from=dt.date(2024, 6, 1), date_to=dt.date(2024, 6, 30))
    aggregates = aggregate_by_machine(production, stoppages, machines, filters=flt)

    assert len(aggregates) == 2
    for aggregate in aggregates:
        result = aggregate.metrics()
        assert (result.availability, result.performance, result.quality, result.oee) == (
            0.0,
            0.0,
            0.0,
            0.0,
        )
        losses = aggregate.losses(reference_cost)
        assert losses.total_loss == 0.0
        assert losses.potential_gain == 0.0
    assert aggregate_by_day(production, stoppages, machines, filters=flt) == []


def test_unknown_machine_raises_only_when_matched(machines):
    production = [shift("M1", "2024-05-01", 100, 100), shift("MX", "2024-05-02", 100, 100)]

    with pytest.raises(InvalidRecordError):
        aggregate_by_machine(production, [], machines)

    filtered = aggregate_by_machine(
        production, [], machines, filters=RecordFilter(date_to=dt.date(2024, 5, 1))
    )
    assert _by_id(filtered)["M1"].totals.records == 1
    by_machine = aggregate_by_machine(
        production, [], machines, filters=RecordFilter(machine_id="M1")
    )
    assert len(by_machine) == 1


def test_aggregate_by_day_is_sparse_and_ascending(production, stoppages, machines):
    days = aggregate_by_day(list(reversed(production)), stoppages, machines)

    assert [day.day for day in days] == [dt.date(2024, 5, 1), dt.date(2024, 5, 3)]
    first = days[0].totals
    assert first.records == 3
    assert first.planned_time == pytest.approx(3 * 480)
    assert first.ideal_production == pytest.approx(8 * 432 + 8 * 400 + 10 * 300)
    assert first.stop_duration == pytest.approx(128)
    assert days[0].metrics().performance == pytest.approx(8080 / 9656)

    with_inactive = aggregate_by_day(production, stoppages, machines, include_inactive=True)
    assert [day.day for day in with_inactive] == [
        dt.date(2024, 5, 1),
        dt.date(2024, 5, 2),
        dt.date(2024, 5, 3),
    ]


def test_aggregate_global_sums_machine_totals(production, stoppages, machines):
    total = aggregate_global(aggregate_by_machine(production, stoppages, machines))
    assert total.records == 5
    assert total.total_production == pytest.approx(8680 + 6400)
    assert total.stop_duration == pytest.approx(98 + 90.5)
    assert 0.0 < total.metrics().oee < 1.0


def test_aggregation_is_repeatable(production, stoppages, machines):
    first = aggregate_by_machine(production, stoppages, machines)
    second = aggregate_by_machine(production, stoppages, machines)
    assert first == second
    assert [a.metrics() for a in first] == [a.metrics() for a in second]
    assert aggregate_by_day(production, stoppages, machines) == aggregate_by_day(
        production, stoppages, machines
    )


def test_dataframe_views(production, stoppages, machines, reference_cost):
    aggregates = aggregate_by_machine(production, stoppages, machines)
    df = machine_dataframe(aggregates, reference_cost)
    assert list(df.columns) == MACHINE_SUMMARY_COLUMNS
    assert df["machine_id"].tolist() == ["M1", "M2"]
    assert (df["total_loss"] > 0).all()

    without_cost = machine_dataframe(aggregates)
    assert without_cost["total_loss"].isna().all()

    days = day_dataframe(aggregate_by_day(production, stoppages, machines))
    assert list(days.columns) == DAY_SUMMARY_COLUMNS
    assert len(days) == 2

    assert machine_dataframe([]).empty
    records = records_dataframe(stoppages)
    assert set(records["type"]) == {"PLANNED", "UNPLANNED"}
    assert isinstance(records, pd.DataFrame)
