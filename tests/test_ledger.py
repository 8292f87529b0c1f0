"""Tests for accumulating stat changes."""
from __future__ import annotations

import pytest

from escape_velocity.ledger import StatLedger
from escape_velocity.models import Difficulty, GameState


def test_overlapping_changes_are_summed_before_clamping():
    state = GameState(game_id="t", difficulty=Difficulty.VC_TRACK, seed=0, morale=95.0)
    ledger = StatLedger()
    ledger.add("morale", 10, "Offsite")
    ledger.add("morale", -8, "Crunch")

    effects = ledger.apply(state)

    assert state.morale == pytest.approx(97.0)
    assert len(effects) == 1
    assert effects[0].description == "Offsite; Crunch"
    assert not ledger


def test_merge_keeps_notes():
    first = StatLedger()
    first.add("reputation", 2, "Talk")
    second = StatLedger()
    second.add("reputation", 3, "Blog")
    first.merge(second)

    assert first.deltas() == {"reputation": 5}


def test_unknown_stat_rejected():
    with pytest.raises(ValueError):
        StatLedger().add("runway_months", 1)
