"""Tests for the competitor simulation."""
from __future__ import annotations

import pytest

from escape_velocity.competitors import (
    CompetitorSimulator,
    competitive_landscape,
    entry_probability,
    player_share,
    threat_level,
)
from escape_velocity.models import Competitor, ThreatLevel


def _rival(**overrides) -> Competitor:
    values = dict(
        id="rival",
        name="Rival",
        market_share=10.0,
        funding=1_000_000.0,
        reputation=50.0,
        product_quality=50.0,
        marketing_budget=0.0,
    )
    values.update(overrides)
    return Competitor(**values)


@pytest.mark.parametrize(
    ("score", "expected"),
    [
        (1.6, ThreatLevel.CRITICAL),
        (1.5, ThreatLevel.HIGH),
        (1.2, ThreatLevel.HIGH),
        (0.8, ThreatLevel.MEDIUM),
        (0.5, ThreatLevel.LOW),
    ],
)
def test_threat_level_bands(score, expected):
    assert threat_level(score) is expected


def test_market_share_is_capped(indie_state, fixed_rng):
    indie_state.competitors = [_rival(market_share=59.0, funding=1_000_000_000.0)]

    CompetitorSimulator([]).step(indie_state, fixed_rng(0.5))

    assert indie_state.competitors[0].market_share == 60.0


def test_negligible_rivals_are_pruned(indie_state, fixed_rng):
    indie_state.competitors = [_rival(market_share=0.05, funding=0.0, reputation=0.0), _rival(id="big")]

    CompetitorSimulator([]).step(indie_state, fixed_rng(0.5))

    assert [competitor.id for competitor in indie_state.competitors] == ["big"]


def test_new_entrant_joins_a_maturing_market(indie_state, fixed_rng):
    indie_state.week = 52
    indie_state.reputation = 100.0
    before = len(indie_state.competitors)

    entrant = CompetitorSimulator(["Alpha", "Beta", "Gamma", "Delta"]).step(indie_state, fixed_rng(0.0))

    assert entrant is not None
    assert entrant.name == "Delta"
    assert entrant.founded_week == 52
    assert len(indie_state.competitors) == before + 1
    assert all(competitor.threat_score > 0 for competitor in indie_state.competitors)


def test_no_entrants_without_traction(indie_state):
    indie_state.week = 52
    indie_state.reputation = 30.0
    assert entry_probability(indie_state, indie_state.competitors) == 0.0


@pytest.mark.parametrize(("wau", "expected"), [(100, 0.1), (20_000, 10.0), (500_000, 50.0)])
def test_player_share(indie_state, wau, expected):
    indie_state.wau = wau
    assert player_share(indie_state) == pytest.approx(expected)


def test_landscape_summary(indie_state):
    landscape = competitive_landscape(indie_state)

    assert landscape.competitor_count == 2
    assert landscape.total_market_share == pytest.approx(40.0)
    assert landscape.summary.startswith("Facing 2 competitors")
    assert 0.0 <= landscape.competitive_pressure <= 100.0

    indie_state.competitors = []
    empty = competitive_landscape(indie_state)
    assert empty.top_threat is None
    assert empty.summary == "No significant competitors in your market yet."
