"""Rival companies competing for the same market."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .models import Competitor, GameState, ThreatLevel, clamp
from .rng import RandomSource

logger = logging.getLogger(__name__)

MIN_MARKET_SHARE = 0.1
MAX_MARKET_SHARE = 60.0
MAX_COMPETITORS = 10
ACTION_CHANCE = 0.1
FUNDING_ROUND_CHANCE = 0.05
FUNDING_ROUND_CEILING = 10_000_000


@dataclass
class CompetitiveLandscape:
    competitor_count: int
    total_market_share: float
    player_market_share: float
    competitive_intensity: float
    competitive_pressure: float
    top_threat: Optional[str]
    summary: str


def player_share(state: GameState) -> float:
    """Rough market share proxy from active users."""

    return min(50.0, max(0.1, state.wau / 2000.0))


def threat_score(competitor: Competitor, state: GameState) -> float:
    market_factor = competitor.market_share / 10.0
    funding_factor = min(1.0, competitor.funding / 5_000_000)
    reputation_factor = competitor.reputation / 100.0
    quality_factor = competitor.product_quality / 100.0
    relative_market = competitor.market_share / max(1.0, state.wau / 1000.0)
    return (
        market_factor * 0.3
        + funding_factor * 0.25
        + reputation_factor * 0.2
        + quality_factor * 0.15
        + relative_market * 0.1
    )


def threat_level(score: float) -> ThreatLevel:
    if score > 1.5:
        return ThreatLevel.CRITICAL
    if score > 1.0:
        return ThreatLevel.HIGH
    if score > 0.7:
        return ThreatLevel.MEDIUM
    return ThreatLevel.LOW


def entry_probability(state: GameState, competitors: Sequence[Competitor]) -> float:
    """Chance of a new entrant: rises with reputation and time, falls with crowding."""

    success = max(0.0, (state.reputation - 30.0) / 70.0)
    elapsed = min(1.0, state.week / 52.0)
    density = len(competitors) / MAX_COMPETITORS
    return max(0.0, success * elapsed * (1.0 - density) * 0.1)


class CompetitorSimulator:
    def __init__(self, names: Sequence[str]) -> None:
        self._names = list(names)

    def step(self, state: GameState, rng: RandomSource) -> Optional[Competitor]:
        """Advance every rival one week; returns the new entrant, if any."""

        for competitor in state.competitors:
            growth = (
                competitor.funding / 1_000_000 * 0.01
                + competitor.reputation / 100.0 * 0.005
                + (rng.random() - 0.5) * 0.02
            )
            competitor.market_share = clamp(
                competitor.market_share * (1.0 + growth), 0.0, MAX_MARKET_SHARE
            )
        self._take_actions(state, rng)
        entrant = None
        if rng.random() < entry_probability(state, state.competitors):
            entrant = self._new_entrant(state, rng)
            state.competitors.append(entrant)
            logger.debug("Week %s: %s entered the market", state.week, entrant.name)
        for competitor in state.competitors:
            competitor.threat_score = threat_score(competitor, state)
            competitor.threat_level = threat_level(competitor.threat_score)
        state.competitors = [
            competitor
            for competitor in state.competitors
            if competitor.market_share >= MIN_MARKET_SHARE
        ]
        state.player_market_share = player_share(state)
        return entrant

    @staticmethod
    def _take_actions(state: GameState, rng: RandomSource) -> None:
        for competitor in state.competitors:
            if rng.random() >= ACTION_CHANCE:
                continue
            competitor.market_share = clamp(
                competitor.market_share + competitor.marketing_budget / 100_000,
                0.0,
                MAX_MARKET_SHARE,
            )
            if rng.random() < FUNDING_ROUND_CHANCE and competitor.funding < FUNDING_ROUND_CEILING:
                competitor.funding += competitor.funding * rng.uniform(0.5, 1.5)
                competitor.reputation = min(100.0, competitor.reputation + 5.0)
                logger.debug("Week %s: %s closed a funding round", state.week, competitor.name)

    def _new_entrant(self, state: GameState, rng: RandomSource) -> Competitor:
        number = len(state.competitors) + 1
        name = self._names[number % len(self._names)] if self._names else "Competitor"
        if number > len(self._names):
            name = f"{name} {number}"
        return Competitor(
            id=f"competitor_{state.week}_{number}",
            name=name,
            market_share=rng.uniform(0.5, 2.5),
            funding=rng.uniform(500_000, 2_500_000),
            reputation=rng.uniform(30.0, 70.0),
            product_quality=rng.uniform(40.0, 80.0),
            marketing_budget=rng.uniform(5_000, 20_000),
            founded_week=state.week,
        )


def competitive_landscape(state: GameState) -> CompetitiveLandscape:
    competitors = state.competitors
    total = sum(competitor.market_share for competitor in competitors)
    intensity = min(
        100.0, len(competitors) * 10 + total * 2 + (20 if state.reputation > 60 else 0)
    )
    pressure = intensity
    pressure += 5 * sum(1 for competitor in competitors if competitor.funding > 1_000_000)
    pressure += 3 * sum(1 for competitor in competitors if competitor.reputation > 70)
    if state.reputation > 80:
        pressure += 10
    pressure = clamp(pressure, 0.0, 100.0)

    top = max(competitors, key=lambda competitor: competitor.threat_score, default=None)
    if not competitors:
        summary = "No significant competitors in your market yet."
    else:
        serious = sum(
            1
            for competitor in competitors
            if competitor.threat_level in (ThreatLevel.HIGH, ThreatLevel.CRITICAL)
        )
        summary = f"Facing {len(competitors)} competitor{'s' if len(competitors) > 1 else ''}"
        if serious:
            summary += f", with {serious} posing significant threats"
        if intensity > 70:
            summary += ". Market is highly competitive."
        elif intensity > 40:
            summary += ". Market competition is moderate."
        else:
            summary += ". Market competition is light."
    return CompetitiveLandscape(
        competitor_count=len(competitors),
        total_market_share=total,
        player_market_share=state.player_market_share,
        competitive_intensity=intensity,
        competitive_pressure=pressure,
        top_threat=top.name if top is not None else None,
        summary=summary,
    )


__all__ = [
    "CompetitiveLandscape",
    "CompetitorSimulator",
    "competitive_landscape",
    "entry_probability",
    "player_share",
    "threat_level",
    "threat_score",
]
