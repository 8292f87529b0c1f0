"""Tests for the market condition lifecycle."""
from __future__ import annotations

import pytest

from escape_velocity.catalog import get_catalog
from escape_velocity.market import MarketSimulator, cycle_position, market_status
from escape_velocity.models import MarketConditionInstance


def _condition(**overrides) -> MarketConditionInstance:
    values = dict(
        id="test",
        name="Test",
        category="Economic",
        intensity=50.0,
        duration_weeks=4,
        started_week=0,
    )
    values.update(overrides)
    return MarketConditionInstance(**values)


def test_cycle_position_wraps_every_two_years():
    assert cycle_position(0) == 0.0
    assert cycle_position(52) == pytest.approx(0.5)
    assert cycle_position(104) == 0.0


def test_recession_spawns_only_in_low_phase(indie_state, fixed_rng):
    simulator = MarketSimulator(get_catalog())
    indie_state.week = 105

    spawned = simulator.spawn(indie_state, fixed_rng(0.0))

    assert [condition.id for condition in spawned] == ["recession"]
    assert indie_state.active_market_conditions == spawned


def test_no_cycle_conditions_mid_cycle(indie_state, fixed_rng):
    indie_state.week = 160
    assert MarketSimulator(get_catalog()).spawn(indie_state, fixed_rng(0.0)) == []


def test_similar_condition_is_suppressed(indie_state, fixed_rng):
    simulator = MarketSimulator(get_catalog())
    indie_state.week = 105
    simulator.spawn(indie_state, fixed_rng(0.0))

    assert simulator.spawn(indie_state, fixed_rng(0.0)) == []
    assert len(indie_state.active_market_conditions) == 1


def test_stat_driven_intensity_is_capped(indie_state, fixed_rng):
    indie_state.reputation = 95.0
    indie_state.week = 10

    spawned = MarketSimulator(get_catalog()).spawn(indie_state, fixed_rng(0.0))

    hype = next(condition for condition in spawned if condition.id == "industry_hype")
    assert hype.intensity == 90.0


def test_multipliers_compose(indie_state):
    indie_state.active_market_conditions = [
        _condition(growth_multiplier=0.7, funding_multiplier=0.5),
        _condition(id="other", category="Competitive", growth_multiplier=1.2, churn_multiplier=1.5),
    ]

    MarketSimulator.refresh_multipliers(indie_state)

    assert indie_state.market_growth_multiplier == pytest.approx(0.84)
    assert indie_state.market_churn_multiplier == pytest.approx(1.5)
    assert indie_state.market_funding_multiplier == pytest.approx(0.5)


def test_conditions_expire_and_multipliers_reset(indie_state, fixed_rng):
    simulator = MarketSimulator(get_catalog())
    indie_state.active_market_conditions = [_condition(duration_weeks=1, growth_multiplier=0.5)]
    indie_state.market_growth_multiplier = 0.5

    simulator.step(indie_state, fixed_rng(0.99))

    assert indie_state.active_market_conditions == []
    assert indie_state.market_growth_multiplier == 1.0


def test_drift_is_additive(indie_state):
    indie_state.active_market_conditions = [
        _condition(reputation_drift=-1.0, morale_drift=-0.5),
        _condition(id="b", category="Regulatory", reputation_drift=-1.0),
    ]

    effects = MarketSimulator.apply_drift(indie_state)

    assert indie_state.reputation == pytest.approx(48.0)
    assert indie_state.morale == pytest.approx(79.5)
    assert len(effects) == 2


def test_market_status_reports_climate(indie_state):
    indie_state.market_growth_multiplier = 0.7
    indie_state.market_funding_multiplier = 0.5
    indie_state.active_market_conditions = [_condition(category="Regulatory")]

    status = market_status(indie_state)

    assert status.sentiment == "bearish"
    assert status.funding_environment == "tight"
    assert status.regulatory_pressure == "high"
    assert status.active_conditions == 1
