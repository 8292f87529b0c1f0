"""State-threshold bonuses that persist across turns."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .catalog import Catalog, CompoundingDefinition, conditions_hold
from .ledger import StatLedger
from .models import CompoundingState, Effect, GameState

logger = logging.getLogger(__name__)


class CompoundingEngine:
    """Activates, ages, expires and applies compounding effects.

    Permanent effects (``duration_weeks == -1``) stay in the active set and
    apply on every turn their trigger still holds. Temporary effects apply
    every turn until their age reaches the duration, then move to
    ``GameState.expired_compounding`` and never come back.
    """

    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog
        self._by_id = {definition.id: definition for definition in catalog.compounding}

    def step(
        self, state: GameState, ledger: Optional[StatLedger] = None
    ) -> Tuple[List[CompoundingDefinition], List[Effect]]:
        """Returns the definitions newly activated this week and the applied effects.

        With a shared ``ledger`` the bonuses are only recorded.
        """

        self._age_and_expire(state)
        activated = self._activate(state)
        deferred = ledger is not None
        ledger = ledger if ledger is not None else StatLedger()
        for effect_id in list(state.compounding_states):
            definition = self._by_id.get(effect_id)
            if definition is None:
                continue
            if definition.permanent and not conditions_hold(definition.conditions, state):
                continue
            for change in definition.effects:
                change.record(ledger, state)
        return activated, [] if deferred else ledger.apply(state)

    def _age_and_expire(self, state: GameState) -> None:
        for effect_id, status in list(state.compounding_states.items()):
            status.weeks_active += 1
            definition = self._by_id.get(effect_id)
            if definition is None or definition.permanent:
                continue
            if status.weeks_active >= definition.duration_weeks:
                del state.compounding_states[effect_id]
                state.expired_compounding.append(effect_id)
                logger.debug("Week %s: compounding effect %s expired", state.week, effect_id)

    def _activate(self, state: GameState) -> List[CompoundingDefinition]:
        activated: List[CompoundingDefinition] = []
        for definition in self._catalog.compounding:
            if definition.id in state.compounding_states:
                continue
            if definition.id in state.expired_compounding:
                continue
            if not conditions_hold(definition.conditions, state):
                continue
            state.compounding_states[definition.id] = CompoundingState(activated_week=state.week)
            activated.append(definition)
            logger.debug("Week %s: compounding effect %s activated", state.week, definition.id)
        return activated

    def active(self, state: GameState) -> List[CompoundingDefinition]:
        return [self._by_id[key] for key in state.compounding_states if key in self._by_id]


__all__ = ["CompoundingEngine"]
