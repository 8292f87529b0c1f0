"""Detects qualifying action combinations and applies their bonuses."""
from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

from .catalog import Catalog, SynergyDefinition
from .ledger import StatLedger
from .models import ActionRecord, ActionType, Effect, GameState, SynergyActivation, SynergyState

logger = logging.getLogger(__name__)


def _count_matches(definition: SynergyDefinition, action_types: Iterable[str]) -> int:
    triggers = {trigger.value for trigger in definition.triggers}
    return sum(1 for action_type in action_types if action_type in triggers)


def _window_count(
    definition: SynergyDefinition, history: Sequence[ActionRecord], turn_week: int
) -> int:
    earliest = turn_week - definition.time_window_weeks
    return sum(
        _count_matches(definition, record.actions)
        for record in history
        if record.week > earliest
    )


class SynergyDetector:
    """Matches this turn's actions and the recent action history against the synergy catalog."""

    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog

    def expire(self, state: GameState, turn_week: int) -> None:
        """Deactivate synergies whose window has passed since they last fired."""

        for definition in self._catalog.synergies:
            status = state.synergy_states.get(definition.id)
            if status is None or not status.active or status.last_triggered is None:
                continue
            if turn_week - status.last_triggered >= definition.time_window_weeks:
                status.active = False

    def detect(
        self, state: GameState, actions: Sequence[ActionType], turn_week: int
    ) -> Tuple[List[SynergyActivation], List[Effect]]:
        """Activate qualifying synergies and apply their combined bonus once."""

        self.expire(state, turn_week)
        chosen = [action.value for action in actions]
        ledger = StatLedger()
        activations: List[SynergyActivation] = []
        for definition in self._catalog.synergies:
            status = state.synergy_states.setdefault(definition.id, SynergyState())
            if status.active:
                continue
            if _count_matches(definition, chosen) < definition.required_count:
                continue
            # Earlier turns inside the window must reach the count on their own.
            if _window_count(definition, state.action_history, turn_week) < definition.required_count:
                continue
            status.active = True
            status.last_triggered = turn_week
            status.times_triggered += 1
            own = StatLedger()
            for change in definition.effects:
                change.record(own, state)
            activations.append(
                SynergyActivation(
                    id=definition.id,
                    name=definition.name,
                    description=definition.description,
                    magnitude=definition.magnitude,
                    bonuses=own.deltas(),
                )
            )
            ledger.merge(own)
            logger.debug("Week %s: synergy %s triggered", turn_week, definition.id)
        effects = ledger.apply(state) if ledger else []
        return activations, effects


__all__ = ["SynergyDetector"]
