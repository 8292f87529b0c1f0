"""Market condition lifecycle: spawn, age, expire and apply modifiers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .catalog import Catalog, MarketArchetype, conditions_hold
from .ledger import StatLedger
from .models import Effect, GameState, MarketConditionInstance
from .rng import RandomSource

logger = logging.getLogger(__name__)

# Two-year economic cycle; recessions start in the low phase, booms in the high phase.
CYCLE_WEEKS = 104
LOW_PHASE = 0.3
HIGH_PHASE = 0.7
SIMILAR_INTENSITY = 20.0
MAX_STAT_INTENSITY = 90.0


@dataclass
class MarketStatus:
    sentiment: str
    funding_environment: str
    competitive_pressure: str
    regulatory_pressure: str
    active_conditions: int


def cycle_position(week: int) -> float:
    return (week % CYCLE_WEEKS) / CYCLE_WEEKS


def _phase_allows(archetype: MarketArchetype, week: int) -> bool:
    if archetype.cycle_phase is None:
        return True
    position = cycle_position(week)
    if archetype.cycle_phase == "low":
        return position < LOW_PHASE
    if archetype.cycle_phase == "high":
        return position > HIGH_PHASE
    raise ValueError(f"Unknown cycle phase: {archetype.cycle_phase}")


class MarketSimulator:
    """Owns the weekly lifecycle of external market conditions."""

    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog

    def step(
        self,
        state: GameState,
        rng: RandomSource,
        ledger: Optional[StatLedger] = None,
    ) -> Tuple[List[MarketConditionInstance], List[Effect]]:
        """Age, spawn, then refresh multipliers and apply drift.

        Returns the conditions spawned this week and the drift effects. When
        ``ledger`` is given the drift is recorded there and left for the caller
        to apply, so no effects are returned.
        """

        self.age(state)
        spawned = self.spawn(state, rng)
        self.refresh_multipliers(state)
        return spawned, self.apply_drift(state, ledger)

    def age(self, state: GameState) -> None:
        remaining: List[MarketConditionInstance] = []
        for condition in state.active_market_conditions:
            condition.duration_weeks -= 1
            if condition.duration_weeks > 0:
                remaining.append(condition)
            else:
                logger.debug("Week %s: market condition %s ended", state.week, condition.id)
        state.active_market_conditions = remaining

    def spawn(self, state: GameState, rng: RandomSource) -> List[MarketConditionInstance]:
        spawned: List[MarketConditionInstance] = []
        for archetype in self._catalog.market_archetypes:
            if not conditions_hold(archetype.conditions, state):
                continue
            if not _phase_allows(archetype, state.week):
                continue
            if rng.random() >= archetype.probability:
                continue
            intensity = self._roll_intensity(archetype, state, rng)
            if self._suppressed(state, archetype.category, intensity):
                continue
            condition = MarketConditionInstance(
                id=archetype.id,
                name=archetype.name,
                category=archetype.category,
                intensity=intensity,
                duration_weeks=rng.randint(*archetype.duration),
                started_week=state.week,
                growth_multiplier=archetype.growth_multiplier,
                churn_multiplier=archetype.churn_multiplier,
                funding_multiplier=archetype.funding_multiplier,
                reputation_drift=archetype.reputation_drift,
                morale_drift=archetype.morale_drift,
            )
            state.active_market_conditions.append(condition)
            spawned.append(condition)
            logger.debug(
                "Week %s: market condition %s started (intensity %.0f, %s weeks)",
                state.week,
                condition.id,
                condition.intensity,
                condition.duration_weeks,
            )
        return spawned

    @staticmethod
    def _roll_intensity(archetype: MarketArchetype, state: GameState, rng: RandomSource) -> float:
        low, high = archetype.intensity
        if archetype.intensity_stat:
            base = float(getattr(state, archetype.intensity_stat))
            return min(MAX_STAT_INTENSITY, base + rng.uniform(low, high))
        return rng.uniform(low, high)

    @staticmethod
    def _suppressed(state: GameState, category: str, intensity: float) -> bool:
        return any(
            active.category == category and abs(active.intensity - intensity) <= SIMILAR_INTENSITY
            for active in state.active_market_conditions
        )

    @staticmethod
    def refresh_multipliers(state: GameState) -> None:
        """Overlapping conditions compose multiplicatively."""

        growth = churn = funding = 1.0
        for condition in state.active_market_conditions:
            growth *= condition.growth_multiplier
            churn *= condition.churn_multiplier
            funding *= condition.funding_multiplier
        state.market_growth_multiplier = growth
        state.market_churn_multiplier = churn
        state.market_funding_multiplier = funding

    @staticmethod
    def apply_drift(state: GameState, ledger: Optional[StatLedger] = None) -> List[Effect]:
        deferred = ledger is not None
        ledger = ledger if ledger is not None else StatLedger()
        for condition in state.active_market_conditions:
            if condition.reputation_drift:
                ledger.add("reputation", condition.reputation_drift, condition.name)
            if condition.morale_drift:
                ledger.add("morale", condition.morale_drift, condition.name)
        return [] if deferred else ledger.apply(state)


def market_status(state: GameState) -> MarketStatus:
    """Summarise the market for reporting."""

    growth = state.market_growth_multiplier
    funding = state.market_funding_multiplier
    if growth > 1.05:
        sentiment = "bullish"
    elif growth < 0.95:
        sentiment = "bearish"
    else:
        sentiment = "neutral"
    if funding >= 1.2:
        funding_environment = "hot"
    elif funding <= 0.8:
        funding_environment = "tight"
    else:
        funding_environment = "normal"
    categories = [condition.category for condition in state.active_market_conditions]
    crowded = categories.count("Competitive") + len(state.competitors) // 3
    competitive = "high" if crowded >= 2 else "medium" if crowded == 1 else "low"
    regulatory = "high" if "Regulatory" in categories else "elevated" if state.compliance_risk > 60 else "low"
    return MarketStatus(
        sentiment=sentiment,
        funding_environment=funding_environment,
        competitive_pressure=competitive,
        regulatory_pressure=regulatory,
        active_conditions=len(categories),
    )


__all__ = ["MarketSimulator", "MarketStatus", "cycle_position", "market_status"]
