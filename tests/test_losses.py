from __future__ import annotations

import pytest
from hypothesis import given, settings, strategies as st

from oeekit.contract.models import CostConfig
from oeekit.costing import LossResult, compute_losses, compute_losses_with, sum_losses


def _reference(**overrides):
    params = dict(
        stop_duration=120.0,
        defects=50.0,
        total_production=2000.0,
        planned_time=480.0,
        ideal_speed=8.0,
        stop_cost_per_minute=50.0,
        defect_cost_per_unit=15.0,
        production_value_per_unit=25.0,
        oee_goal=0.85,
    )
    params.update(overrides)
    return compute_losses(**params)


def test_compute_losses_reference_case():
    result = _reference()

    assert result.stoppage_loss == pytest.approx(6000.0)
    assert result.production_loss == pytest.approx(46000.0)
    assert result.defect_loss == pytest.approx(750.0)
    assert result.total_loss == pytest.approx(52750.0)
    assert result.potential_gain == pytest.approx(32850.0)


def test_compute_losses_with_cost_config(reference_cost: CostConfig):
    result = compute_losses_with(
        reference_cost,
        stop_duration=120.0,
        defects=50.0,
        total_production=2000.0,
        planned_time=480.0,
        ideal_speed=8.0,
    )
    assert result == _reference()


def test_output_above_capacity_has_no_production_loss():
    result = _reference(total_production=5000.0, defects=0.0)
    assert result.production_loss == 0.0
    assert result.potential_gain == 0.0
    assert result.total_loss == pytest.approx(result.stoppage_loss)


def test_zero_costs_give_zero_losses():
    result = _reference(
        stop_cost_per_minute=0.0, defect_cost_per_unit=0.0, production_value_per_unit=0.0
    )
    assert result == LossResult()


def test_zero_goal_removes_potential_gain():
    assert _reference(oee_goal=0.0).potential_gain == 0.0


def test_sum_losses_adds_each_category():
    first = _reference()
    second = _reference(stop_duration=10.0)
    total = sum_losses([first, second])
    assert total.stoppage_loss == pytest.approx(6000.0 + 500.0)
    assert total.total_loss == pytest.approx(first.total_loss + second.total_loss)
    assert sum_losses([]) == LossResult()
    assert first + LossResult() == first


@settings(max_examples=150, deadline=None)
@given(
    stop_duration=st.floats(min_value=0, max_value=10_000, allow_nan=False),
    extra_stop=st.floats(min_value=0, max_value=1_000, allow_nan=False),
    total_production=st.floats(min_value=0, max_value=50_000, allow_nan=False),
    defect_share=st.floats(min_value=0, max_value=1, allow_nan=False),
    extra_defect_share=st.floats(min_value=0, max_value=1, allow_nan=False),
)
def test_losses_non_negative_and_monotonic(
    stop_duration, extra_stop, total_production, defect_share, extra_defect_share
):
    defects = total_production * defect_share * 0.5
    more_defects = defects + (total_production - defects) * extra_defect_share
    base = _reference(
        stop_duration=stop_duration, total_production=total_production, defects=defects
    )
    longer_stops = _reference(
        stop_duration=stop_duration + extra_stop,
        total_production=total_production,
        defects=defects,
    )
    worse_quality = _reference(
        stop_duration=stop_duration, total_production=total_production, defects=more_defects
    )

    for result in (base, longer_stops, worse_quality):
        assert result.stoppage_loss >= 0
        assert result.production_loss >= 0
        assert result.defect_loss >= 0
        assert result.potential_gain >= 0
        assert result.total_loss == pytest.approx(
            result.stoppage_loss + result.production_loss + result.defect_loss
        )
    assert longer_stops.stoppage_loss >= base.stoppage_loss
    assert longer_stops.total_loss >= base.total_loss
    assert worse_quality.defect_loss >= base.defect_loss
    assert worse_quality.total_loss >= base.total_loss


@settings(max_examples=150, deadline=None)
@given(
    total_production=st.floats(min_value=0, max_value=50_000, allow_nan=False),
    defect_share=st.floats(min_value=0, max_value=1, allow_nan=False),
    cut_share=st.floats(min_value=0, max_value=1, allow_nan=False),
    extra_plan=st.floats(min_value=0, max_value=600, allow_nan=False),
    extra_speed=st.floats(min_value=0, max_value=20, allow_nan=False),
)
def test_losses_grow_with_the_production_gap(
    total_production, defect_share, cut_share, extra_plan, extra_speed
):
    defects = total_production * defect_share
    fewer_units = total_production - (total_production - defects) * cut_share
    base = _reference(total_production=total_production, defects=defects)
    lower_output = _reference(total_production=fewer_units, defects=defects)
    longer_plan = _reference(
        total_production=total_production, defects=defects, planned_time=480.0 + extra_plan
    )
    faster_line = _reference(
        total_production=total_production, defects=defects, ideal_speed=8.0 + extra_speed
    )

    for widened in (lower_output, longer_plan, faster_line):
        assert widened.defect_loss == base.defect_loss
        assert widened.stoppage_loss == base.stoppage_loss
        assert widened.production_loss >= base.production_loss
        assert widened.total_loss >= base.total_loss
