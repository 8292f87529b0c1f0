"""Tests for terminal outcomes and the escape velocity streak."""
from __future__ import annotations

import pytest

from escape_velocity.victory import VictoryEvaluator, failure_reason, update_streak, valuation


def _healthy(state):
    state.mrr = 10_000.0
    state.burn = 8_000.0
    state.wau_growth_rate = 12.0
    state.nps = 35.0
    state.morale = 60.0
    return state


@pytest.mark.parametrize(
    ("stat", "value", "reason"),
    [
        ("bank", 0.0, "Ran out of money"),
        ("morale", 0.0, "Team morale collapsed"),
        ("reputation", 10.0, "Reputation destroyed"),
        ("compliance_risk", 100.0, "Compliance violations shut down the company"),
    ],
)
def test_failure_reasons(indie_state, stat, value, reason):
    setattr(indie_state, stat, value)
    assert failure_reason(indie_state) == reason


def test_streak_counts_consecutive_weeks(indie_state):
    _healthy(indie_state)
    update_streak(indie_state)
    update_streak(indie_state)
    assert indie_state.escape_velocity_progress.streak_weeks == 2

    indie_state.nps = 29.0
    update_streak(indie_state)
    progress = indie_state.escape_velocity_progress
    assert progress.streak_weeks == 0
    assert not progress.customer_love
    assert progress.revenue_covers_burn


def test_twelfth_week_wins(indie_state, settings):
    _healthy(indie_state)
    indie_state.escape_velocity_progress.streak_weeks = 11

    VictoryEvaluator(settings).evaluate(indie_state)

    assert indie_state.game_over
    assert indie_state.victory
    assert indie_state.outcome_reason == "Reached escape velocity"


def test_failure_is_checked_before_victory(indie_state, settings):
    _healthy(indie_state)
    indie_state.escape_velocity_progress.streak_weeks = 11
    indie_state.bank = 0.0

    VictoryEvaluator(settings).evaluate(indie_state)

    assert indie_state.game_over
    assert not indie_state.victory
    assert indie_state.outcome_reason == "Ran out of money"
    assert indie_state.escape_velocity_progress.streak_weeks == 11


def test_passing_ipo_deadline_only_affects_progress(indie_state, settings):
    indie_state.week = 105

    conditions = VictoryEvaluator(settings).evaluate(indie_state)

    assert not indie_state.game_over
    assert indie_state.outcome_reason is None
    ipo = next(condition for condition in conditions if condition.id == "ipo_ready")
    assert ipo.progress == 0.0
    assert not ipo.achieved


def test_ongoing_game_reports_progress(indie_state, settings):
    conditions = VictoryEvaluator(settings).evaluate(indie_state)

    assert not indie_state.game_over
    ids = [condition.id for condition in conditions]
    assert {"revenue_milestone", "sustainable_growth", "ipo_ready", "indie_success"} <= set(ids)
    assert "vc_exit" not in ids
    assert all(0.0 <= condition.progress <= 100.0 for condition in conditions)
    assert not any(condition.achieved for condition in conditions)


def test_progress_conditions_are_not_terminal(indie_state, settings):
    indie_state.wau = 20_000
    conditions = VictoryEvaluator(settings).evaluate(indie_state)

    fit = next(condition for condition in conditions if condition.id == "product_market_fit")
    assert fit.achieved
    assert not indie_state.game_over


def test_valuation_has_a_floor(indie_state):
    assert valuation(indie_state) == 1_000_000.0
    indie_state.mrr = 1_000_000.0
    indie_state.wau_growth_rate = 20.0
    assert valuation(indie_state) > 1_000_000.0
