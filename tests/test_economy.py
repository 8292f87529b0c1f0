"""Tests for the weekly passive tick."""
from __future__ import annotations

import math

import pytest

from escape_velocity.economy import churn_target, mrr_churn, nps_target, passive_tick, weekly_cash_flow


def test_passive_tick_advances_week_and_moves_cash(indie_state, settings, fixed_rng):
    passive_tick(indie_state, settings, fixed_rng(0.99))

    assert indie_state.week == 1
    assert indie_state.bank == pytest.approx(48_000.0)
    assert indie_state.morale == pytest.approx(79.5)
    assert indie_state.runway_months == pytest.approx(48_000.0 / 8_000.0)


def test_nps_drifts_ten_percent_toward_target(indie_state, settings, fixed_rng):
    passive_tick(indie_state, settings, fixed_rng(0.99))

    assert indie_state.nps == pytest.approx(nps_target(indie_state) * 0.1)


def test_mrr_churn_scales_with_market_pressure(indie_state):
    indie_state.mrr = 10_000.0
    indie_state.churn_rate = 6.0
    indie_state.market_churn_multiplier = 1.5

    assert mrr_churn(indie_state) == pytest.approx(75.0)


def test_weekly_cash_flow(indie_state):
    indie_state.mrr = 12_000.0
    assert weekly_cash_flow(indie_state) == pytest.approx(1_000.0)


@pytest.mark.parametrize(
    ("nps", "incidents", "expected"),
    [(60, 0, 3.0), (30, 0, 4.0), (0, 0, 5.0), (-30, 0, 7.0), (0, 20, 20.0)],
)
def test_churn_target(nps, incidents, expected):
    assert churn_target(nps, incidents) == pytest.approx(expected)


def test_realized_growth_replaces_planned_rate(indie_state, settings, fixed_rng):
    indie_state.wau = 1_000
    indie_state.wau_growth_rate = 10.0
    indie_state.market_growth_multiplier = 0.5

    passive_tick(indie_state, settings, fixed_rng(0.99))

    assert indie_state.wau == 1_050
    assert indie_state.wau_growth_rate == pytest.approx(5.0)


def test_high_debt_can_cause_incident(indie_state, settings, fixed_rng):
    indie_state.tech_debt = 90.0
    passive_tick(indie_state, settings, fixed_rng(0.0))
    assert indie_state.incident_count == 1


def test_fast_team_accrues_debt(indie_state, settings, fixed_rng):
    indie_state.velocity = 1.5
    passive_tick(indie_state, settings, fixed_rng(0.99))
    assert indie_state.tech_debt == pytest.approx(10.5)


def test_zero_burn_means_infinite_runway(indie_state, settings, fixed_rng):
    indie_state.burn = 0.0
    passive_tick(indie_state, settings, fixed_rng(0.99))
    assert math.isinf(indie_state.runway_months)
