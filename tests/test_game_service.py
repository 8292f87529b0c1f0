"""Tests for the weekly resolution pipeline."""
from __future__ import annotations

import json
import math
import sqlite3
from pathlib import Path

import pytest

from escape_velocity.actions import Hire, TakeBreak
from escape_velocity.errors import (
    ActionNotUnlockedError,
    GameOverError,
    InsufficientFocusError,
    InvalidEventChoiceError,
    UnknownActionVariantError,
)
from escape_velocity.models import (
    STAT_BOUNDS,
    ActionType,
    Difficulty,
    MarketConditionInstance,
    PendingEvent,
    TurnResult,
)
from escape_velocity.service import GameService
from escape_velocity.telemetry import TelemetryCollector


def _effect(effects, stat, description=None):
    return next(
        effect
        for effect in effects
        if effect.stat_name == stat and (description is None or effect.description == description)
    )


def _dump(result) -> str:
    return json.dumps(result.to_dict(), default=str, sort_keys=True)


def test_new_game_uses_difficulty_preset(service):
    state = service.new_game("IndieBootstrap", seed=1234)

    assert state.game_id == "indiebootstrap-000004d2"
    assert state.difficulty is Difficulty.INDIE_BOOTSTRAP
    assert (state.bank, state.burn, state.week) == (50_000, 8_000, 0)
    assert state.runway_months == pytest.approx(6.25)
    assert state.momentum == pytest.approx(0.8)
    assert len(state.history) == 1
    assert ActionType.TAKE_BREAK in state.unlocked_actions
    assert not state.is_unlocked(ActionType.PAID_ADS)
    assert [competitor.name for competitor in state.competitors] == ["TechCorp", "StartupXYZ"]
    assert len(state.customer_segments) == 4


@pytest.mark.parametrize(
    ("difficulty", "bank", "compliance"),
    [("VCTrack", 1_000_000, 30), ("RegulatedFintech", 500_000, 80), (Difficulty.INFRA_DEV_TOOL, 300_000, 40)],
)
def test_new_game_presets(service, difficulty, bank, compliance):
    state = service.new_game(difficulty, seed=1)
    assert state.bank == bank
    assert state.compliance_risk == compliance


def test_new_game_rejects_unknown_difficulty(service):
    with pytest.raises(ValueError):
        service.new_game("Hobby")


def test_new_game_without_seed_draws_one(service):
    state = service.new_game("VCTrack")
    assert 0 <= state.seed < 2**32


def test_take_break_turn(service, indie_state):
    result = service.process_week(indie_state, [TakeBreak()])

    action = result.action_results[0]
    assert action.action == "TakeBreak"
    assert _effect(action.effects, "morale").delta == pytest.approx(15.0)
    assert _effect(action.effects, "wau_growth_rate").delta == pytest.approx(-2.0)
    assert _effect(result.effects, "morale", "Weekly grind").delta == pytest.approx(-0.5)
    assert result.state.week == 1
    assert len(result.state.history) == 2


def test_process_week_leaves_input_untouched(service, indie_state):
    before = indie_state.to_dict()

    result = service.process_week(indie_state, ["ShipFeature", "FounderLedSales"])

    assert indie_state.to_dict() == before
    assert result.state is not indie_state
    assert result.state.week == indie_state.week + 1


def test_same_inputs_same_turn(service, indie_state):
    actions = ["ShipFeature", {"FounderLedSales": {"call_count": 3}}]

    first = service.process_week(indie_state, actions)
    second = service.process_week(indie_state, actions)

    assert _dump(first) == _dump(second)


def test_injected_rng_is_used(service, indie_state, fixed_rng):
    result = service.process_week(indie_state, [{"type": "FounderLedSales", "call_count": 2}], rng=fixed_rng(0.0))

    assert result.action_results[0].success
    assert result.state.mrr > 0


def test_insufficient_focus_rejected_without_side_effects(service, indie_state):
    before = indie_state.to_dict()

    with pytest.raises(InsufficientFocusError) as excinfo:
        service.process_week(indie_state, [Hire(), "Fundraise"])

    assert excinfo.value.required == 4
    assert excinfo.value.available == 3
    assert indie_state.to_dict() == before


def test_locked_action_rejected(service, indie_state):
    with pytest.raises(ActionNotUnlockedError):
        service.process_week(indie_state, ["PaidAds"])


def test_unknown_action_rejected(service, indie_state):
    with pytest.raises(UnknownActionVariantError):
        service.process_week(indie_state, ["Teleport"])


def test_stats_stay_in_bounds(service, indie_state):
    indie_state.morale = 99.0
    indie_state.tech_debt = 0.5
    state = indie_state
    for _ in range(3):
        state = service.process_week(state, ["TakeBreak", "ShipFeature", "FounderLedSales"]).state

    for stat, (low, high) in STAT_BOUNDS.items():
        assert low <= getattr(state, stat) <= high
    assert state.mrr >= 0 and state.burn >= 0 and state.wau >= 0


def test_history_is_capped_fifo(indie_state):
    indie_state.history = []
    for week in range(5):
        indie_state.week = week
        indie_state.record_history(3)

    assert [snapshot.week for snapshot in indie_state.history] == [2, 3, 4]


def test_a_year_of_turns_keeps_52_snapshots(service, indie_state):
    state = indie_state
    assert [snapshot.week for snapshot in state.history] == [0]
    for _ in range(53):
        state.bank = 10_000_000.0
        state.morale = 80.0
        state.reputation = 50.0
        state.compliance_risk = 10.0
        state = service.process_week(state, []).state

    weeks = [snapshot.week for snapshot in state.history]
    assert len(weeks) == 52
    assert weeks[0] == 2
    assert weeks[-1] == 53


def test_ipo_deadline_does_not_end_the_game(service):
    state = service.new_game("VCTrack", seed=99)
    state.week = 77
    state.bank = 5_000_000.0
    state.morale = 90.0
    state.reputation = 70.0

    result = service.process_week(state, [])

    assert result.state.week == 78
    assert not result.state.game_over
    assert result.state.outcome_reason is None


def test_market_drift_and_compounding_are_clamped_once(service, indie_state, fixed_rng):
    indie_state.reputation = 2.0
    indie_state.tech_debt = 10.0
    indie_state.nps = 30.0
    indie_state.active_market_conditions = [
        MarketConditionInstance(
            id="bad_press",
            name="Bad Press",
            category="Economic",
            intensity=50.0,
            duration_weeks=4,
            started_week=0,
            reputation_drift=-3.0,
        )
    ]
    result = TurnResult(state=indie_state)

    service._apply_market_and_compounding(indie_state, fixed_rng(0.99), result)

    reputation = [effect for effect in result.effects if effect.stat_name == "reputation"]
    assert len(reputation) == 1
    # -3 drift and +1.5 quality bonus net out before the floor at 0 applies
    assert indie_state.reputation == pytest.approx(0.5)
    assert "quality_reputation" in indie_state.compounding_states


def test_actions_unlock_over_time(service, indie_state):
    state = indie_state
    unlocked = []
    for _ in range(5):
        result = service.process_week(state, ["TakeBreak"])
        unlocked.extend(result.unlocked_actions)
        state = result.state

    assert ActionType.REFACTOR_CODE in unlocked
    assert state.is_unlocked(ActionType.REFACTOR_CODE)


def test_action_history_window(service, indie_state):
    state = indie_state
    for _ in range(14):
        state = service.process_week(state, ["TakeBreak"]).state

    weeks = [record.week for record in state.action_history]
    assert len(weeks) == 12
    assert weeks[-1] == state.week


def test_escape_velocity_victory_ends_game(service, indie_state):
    state = indie_state
    state.mrr = 20_000.0
    state.wau = 1_000
    state.wau_growth_rate = 20.0
    state.nps = 60.0
    state.escape_velocity_progress.streak_weeks = 11

    result = service.process_week(state, [])

    assert result.state.victory
    assert result.state.game_over
    assert any(condition.id == "sustainable_growth" for condition in result.victory_conditions)
    with pytest.raises(GameOverError):
        service.process_week(result.state, [])


def test_bankruptcy_ends_game(service, indie_state):
    indie_state.bank = 1_000.0

    result = service.process_week(indie_state, [])

    assert result.state.game_over
    assert not result.state.victory
    assert result.state.outcome_reason == "Ran out of money"
    assert result.events == []


def test_pending_event_blocks_new_events(service, indie_state):
    indie_state.pending_event = PendingEvent("regulatory_scrutiny", 0)

    result = service.process_week(indie_state, [])

    assert result.events == []
    assert result.state.pending_event == PendingEvent("regulatory_scrutiny", 0)


def test_apply_event_choice(service, indie_state):
    indie_state.pending_event = PendingEvent("regulatory_scrutiny", 0)

    state = service.apply_event_choice(indie_state, "regulatory_scrutiny", 0)

    assert state.pending_event is None
    assert indie_state.pending_event is not None
    with pytest.raises(InvalidEventChoiceError):
        service.apply_event_choice(indie_state, "regulatory_scrutiny", 7)


def test_turn_result_carries_diagnostics(service, indie_state):
    indie_state.bank = 15_000.0

    result = service.process_week(indie_state, ["ShipFeature"])

    assert 0.0 <= result.risk_score <= 100.0
    assert "cash_runway_critical" in [warning.id for warning in result.warnings]
    assert result.insights
    assert math.isfinite(result.state.runway_months)


def test_telemetry_records_turns_and_errors(tmp_path: Path, indie_state):
    db_path = tmp_path / "telemetry.db"
    telemetry = TelemetryCollector(db_path)
    service = GameService(telemetry=telemetry)

    state = service.process_week(indie_state, ["TakeBreak"]).state
    service.process_week(state, ["TakeBreak"])
    with pytest.raises(InsufficientFocusError):
        service.process_week(state, ["Hire", "Fundraise"])
    telemetry.flush()

    summary = telemetry.get_turn_summary(indie_state.game_id)
    assert summary["turns"] == 2
    assert summary["outcomes"] == {"ongoing": 2}
    assert summary["last_week"] == 2
    with sqlite3.connect(db_path) as conn:
        errors = conn.execute(
            "SELECT COUNT(*) FROM metrics WHERE metric_type = 'error_rate' AND name = ?",
            ("InsufficientFocusError",),
        ).fetchone()[0]
    assert errors == 1
