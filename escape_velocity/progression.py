"""Milestones, action unlocks, scheduled events, seasonal challenges and specialization."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .catalog import Catalog, MilestoneDefinition, conditions_hold
from .ledger import StatLedger
from .models import (
    ActionType,
    ActiveChallenge,
    Effect,
    GameState,
    MilestoneCompletion,
    MilestoneEvent,
    SpecializationBonus,
)

logger = logging.getLogger(__name__)

LEVEL_NAMES = (
    "Startup",
    "Growing",
    "Established",
    "Scaling",
    "Mature",
    "Industry Leader",
    "Legendary",
)
MILESTONES_PER_LEVEL = 5
CHALLENGE_WEEKS = 13
SPECIALIZATION_WINDOW = 8
SPECIALIZATION_SHARE = 0.6
SPECIALIZATION_MIN_ACTIONS = 5

ACTION_CATEGORIES: Dict[ActionType, str] = {
    ActionType.SHIP_FEATURE: "product",
    ActionType.REFACTOR_CODE: "product",
    ActionType.RUN_EXPERIMENT: "product",
    ActionType.CONTENT_LAUNCH: "growth",
    ActionType.DEV_REL: "growth",
    ActionType.PAID_ADS: "growth",
    ActionType.HIRE: "ops",
    ActionType.FUNDRAISE: "ops",
    ActionType.COACH: "ops",
    ActionType.FIRE: "ops",
    ActionType.COMPLIANCE_WORK: "ops",
    ActionType.INCIDENT_RESPONSE: "ops",
    ActionType.PROCESS_IMPROVEMENT: "ops",
    ActionType.FOUNDER_LED_SALES: "customer",
}


@dataclass
class ProgressionReport:
    milestones: List[MilestoneCompletion] = field(default_factory=list)
    unlocked_actions: List[ActionType] = field(default_factory=list)
    milestone_event: Optional[MilestoneEvent] = None
    specialization_bonus: Optional[SpecializationBonus] = None
    challenge_started: Optional[ActiveChallenge] = None


def level(completed: int) -> int:
    return completed // MILESTONES_PER_LEVEL + 1


def level_name(value: int) -> str:
    return LEVEL_NAMES[min(max(value, 1), len(LEVEL_NAMES)) - 1]


def _reward_effects(definition: MilestoneDefinition, state: GameState) -> List[Effect]:
    value = definition.reward_value
    description = f"Milestone: {definition.name}"
    reward = definition.reward
    if reward == "cash_bonus":
        return [state.apply_delta("bank", value, description)]
    if reward == "morale_boost":
        return [state.apply_delta("morale", value, description)]
    if reward in ("reputation_boost", "better_fundraising"):
        return [state.apply_delta("reputation", value, description)]
    if reward == "velocity_boost":
        return [state.apply_delta("velocity", value, description)]
    if reward == "reduced_churn":
        return [state.apply_delta("churn_rate", -value, description)]
    if reward == "improved_efficiency":
        return [state.apply_delta("burn", -state.burn * value, description)]
    if reward == "extra_focus":
        state.focus_slots += int(value)
        return []
    raise ValueError(f"Unknown milestone reward: {reward}")


class ProgressionTracker:
    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog
        self._specializations = {entry.category: entry for entry in catalog.specializations}

    def step(self, state: GameState) -> ProgressionReport:
        report = ProgressionReport()
        report.milestones = self.check_milestones(state)
        report.unlocked_actions = self.check_unlocks(state)
        report.milestone_event = self.milestone_event(state)
        report.challenge_started = self.update_challenge(state)
        report.specialization_bonus = self.apply_specialization(state)
        return report

    def check_milestones(self, state: GameState) -> List[MilestoneCompletion]:
        completed: List[MilestoneCompletion] = []
        for definition in self._catalog.milestones:
            if definition.id in state.completed_milestones:
                continue
            if definition.difficulty and definition.difficulty != state.difficulty.value:
                continue
            if not conditions_hold(definition.conditions, state):
                continue
            state.completed_milestones.append(definition.id)
            effects = _reward_effects(definition, state)
            completed.append(
                MilestoneCompletion(
                    id=definition.id,
                    name=definition.name,
                    category=definition.category,
                    reward=definition.reward,
                    effects=effects,
                )
            )
            logger.debug("Week %s: milestone %s completed", state.week, definition.id)
        return completed

    def check_unlocks(self, state: GameState) -> List[ActionType]:
        return [
            rule.action
            for rule in self._catalog.unlocks
            if not state.is_unlocked(rule.action)
            and conditions_hold(rule.conditions, state)
            and state.unlock(rule.action)
        ]

    def milestone_event(self, state: GameState) -> Optional[MilestoneEvent]:
        for scheduled in self._catalog.milestone_events:
            if scheduled.week != state.week:
                continue
            ledger = StatLedger()
            for change in scheduled.effects:
                change.record(ledger, state)
            return MilestoneEvent(
                week=scheduled.week,
                title=scheduled.title,
                description=scheduled.description,
                effects=ledger.apply(state),
            )
        return None

    def update_challenge(self, state: GameState) -> Optional[ActiveChallenge]:
        current = state.seasonal_challenge
        if current is not None and state.week - current.started_week >= CHALLENGE_WEEKS:
            state.seasonal_challenge = None
        for challenge in self._catalog.seasonal_challenges:
            if challenge.week == state.week:
                state.seasonal_challenge = ActiveChallenge(
                    name=challenge.name,
                    target=challenge.target,
                    multiplier=challenge.multiplier,
                    started_week=state.week,
                )
                logger.debug("Week %s: seasonal challenge %s started", state.week, challenge.name)
                return state.seasonal_challenge
        return None

    def detect_specialization(self, state: GameState) -> Optional[str]:
        """Dominant strategy over the recent action history, if any."""

        earliest = state.week - SPECIALIZATION_WINDOW
        counts: Counter = Counter()
        for record in state.action_history:
            if record.week <= earliest:
                continue
            for name in record.actions:
                category = ACTION_CATEGORIES.get(ActionType(name))
                if category:
                    counts[category] += 1
        total = sum(counts.values())
        if total < SPECIALIZATION_MIN_ACTIONS:
            return None
        category, count = counts.most_common(1)[0]
        if count / total < SPECIALIZATION_SHARE:
            return None
        definition = self._specializations.get(category)
        return definition.path if definition else None

    def apply_specialization(self, state: GameState) -> Optional[SpecializationBonus]:
        detected = self.detect_specialization(state)
        if detected is not None and detected != state.specialization:
            logger.debug("Week %s: specialization %s", state.week, detected)
            state.specialization = detected
        if state.specialization is None:
            return None
        definition = next(
            (entry for entry in self._catalog.specializations if entry.path == state.specialization),
            None,
        )
        if definition is None:
            return None
        ledger = StatLedger()
        for change in definition.effects:
            change.record(ledger, state)
        return SpecializationBonus(
            path=definition.path,
            description=definition.description,
            effects=ledger.apply(state),
        )


__all__ = [
    "ACTION_CATEGORIES",
    "LEVEL_NAMES",
    "ProgressionReport",
    "ProgressionTracker",
    "level",
    "level_name",
]
