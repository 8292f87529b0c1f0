"""Narrative events: automatic surprises and dilemmas awaiting a choice."""
from __future__ import annotations

import logging
from typing import List, Optional

from .catalog import Catalog, EventDefinition, conditions_hold
from .errors import InvalidEventChoiceError
from .ledger import StatLedger
from .models import Effect, EventChoiceView, GameEvent, GameState, PendingEvent
from .rng import RandomSource

logger = logging.getLogger(__name__)


def event_view(definition: EventDefinition, week: int, effects: Optional[List[Effect]] = None) -> GameEvent:
    return GameEvent(
        id=definition.id,
        week=week,
        title=definition.title,
        description=definition.description,
        category=definition.category,
        automatic=definition.automatic,
        choices=[
            EventChoiceView(
                id=choice.id,
                text=choice.text,
                description=choice.description,
                effects=[change.as_dict() for change in choice.effects],
            )
            for choice in definition.choices
        ],
        effects=list(effects or []),
    )


class EventDirector:
    """Surfaces at most one event per week."""

    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog

    def eligible(self, state: GameState) -> List[EventDefinition]:
        return [
            definition
            for definition in self._catalog.events
            if state.event_cooldowns.get(definition.id, 0) <= state.week
            and conditions_hold(definition.conditions, state)
        ]

    def check(self, state: GameState, rng: RandomSource) -> Optional[GameEvent]:
        """Roll for this week's event.

        Automatic events apply immediately. Dilemmas are stored as
        ``pending_event`` and nothing new triggers until they are resolved.
        """

        if state.pending_event is not None:
            return None
        for definition in self.eligible(state):
            if rng.random() * 100.0 >= definition.probability:
                continue
            state.event_cooldowns[definition.id] = state.week + definition.cooldown_weeks
            if definition.automatic:
                ledger = StatLedger()
                for change in definition.effects:
                    change.record(ledger, state)
                effects = ledger.apply(state)
                logger.debug("Week %s: event %s applied", state.week, definition.id)
                return event_view(definition, state.week, effects)
            state.pending_event = PendingEvent(event_id=definition.id, week=state.week)
            logger.debug("Week %s: dilemma %s awaiting a choice", state.week, definition.id)
            return event_view(definition, state.week)
        return None

    def resolve(self, state: GameState, event_id: str, choice_index: int) -> List[Effect]:
        """Apply the chosen branch of the pending dilemma to ``state``."""

        pending = state.pending_event
        if pending is None or pending.event_id != event_id:
            raise InvalidEventChoiceError(f"Event {event_id!r} is not awaiting a choice")
        definition = self._catalog.event(event_id)
        if definition is None:
            raise InvalidEventChoiceError(f"Unknown event {event_id!r}")
        if not 0 <= choice_index < len(definition.choices):
            raise InvalidEventChoiceError(
                f"Choice {choice_index} is not valid for event {event_id!r}"
                f" ({len(definition.choices)} choices)"
            )
        choice = definition.choices[choice_index]
        ledger = StatLedger()
        for change in choice.effects:
            change.record(ledger, state)
        effects = ledger.apply(state)
        state.pending_event = None
        logger.debug("Week %s: event %s resolved with %s", state.week, event_id, choice.id)
        return effects


__all__ = ["EventDirector", "event_view"]
