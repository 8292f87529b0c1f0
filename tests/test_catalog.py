"""Tests for the YAML rule catalogs."""
from __future__ import annotations

from pathlib import Path

import pytest

from escape_velocity.catalog import Catalog, Condition, StatChange, get_catalog
from escape_velocity.ledger import StatLedger
from escape_velocity.models import ActionType, Difficulty, GameState


def _state(**overrides) -> GameState:
    state = GameState(game_id="test", difficulty=Difficulty.INDIE_BOOTSTRAP, seed=1)
    for key, value in overrides.items():
        setattr(state, key, value)
    return state


def test_bundled_catalog_loads_every_table():
    catalog = get_catalog()

    assert len(catalog.synergies) == 9
    assert len(catalog.compounding) >= 12
    assert {archetype.id for archetype in catalog.market_archetypes} >= {"recession", "boom"}
    assert len(catalog.events) >= 10
    assert len(catalog.milestones) == 25
    assert len(catalog.segments) == 4
    assert len(catalog.seasonal_challenges) == 3
    assert catalog.event("market_boom") is not None
    assert catalog.event("missing") is None


def test_synergy_triggers_are_action_types():
    for synergy in get_catalog().synergies:
        assert all(isinstance(trigger, ActionType) for trigger in synergy.triggers)
        assert synergy.required_count >= 2


def test_missing_files_give_empty_catalog(tmp_path: Path):
    catalog = Catalog.load(tmp_path)

    assert catalog.synergies == ()
    assert catalog.events == ()
    assert catalog.competitor_names == ()


def test_condition_compares_against_number_or_stat():
    state = _state(mrr=5_000.0, burn=4_000.0)

    assert Condition.parse(["mrr", ">=", 5000]).holds(state)
    assert Condition.parse(["mrr", ">", "burn"]).holds(state)
    assert not Condition.parse(["mrr", "<", "burn"]).holds(state)


def test_condition_rejects_unknown_operator():
    with pytest.raises(ValueError):
        Condition.parse(["mrr", "=>", 1])


def test_stat_change_rejects_derived_stats():
    with pytest.raises(ValueError):
        StatChange.parse({"stat": "momentum", "delta": 1})


def test_stat_change_records_fraction_and_delta():
    state = _state(mrr=1_000.0)
    ledger = StatLedger()

    StatChange.parse({"stat": "mrr", "fraction": 0.1, "delta": 50}).record(ledger, state)

    assert ledger.deltas() == {"mrr": pytest.approx(150.0)}
