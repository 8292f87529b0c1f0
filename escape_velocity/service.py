"""Game orchestration: new games, weekly resolution and event choices."""
from __future__ import annotations

import copy
import logging
import time
from typing import Any, List, Optional, Sequence

from .actions import Action, ActionResolver, parse_action, total_focus_cost
from .catalog import Catalog, get_catalog
from .compounding import CompoundingEngine
from .competitors import CompetitorSimulator, player_share
from .config import Settings, get_settings
from .customers import CustomerModel, initial_segments
from .diagnostics import diagnose
from .economy import passive_tick
from .errors import (
    ActionNotUnlockedError,
    EngineError,
    GameOverError,
    InsufficientFocusError,
)
from .events import EventDirector
from .ledger import StatLedger
from .market import MarketSimulator
from .models import (
    ActionRecord,
    ActionType,
    Competitor,
    Difficulty,
    GameState,
    TurnResult,
)
from .progression import ProgressionTracker
from .rng import RandomSource, entropy_seed, turn_rng
from .synergies import SynergyDetector
from .telemetry import TelemetryCollector
from .victory import VictoryEvaluator

logger = logging.getLogger(__name__)

_INTEGER_STATS = ("wau", "team_size", "incident_count")


class GameService:
    """Runs the weekly resolution pipeline.

    The service holds no per-game state: every call takes a ``GameState`` and
    returns a new one, leaving the input untouched. Validation runs before the
    working copy is made, so a rejected call never changes anything.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        catalog: Catalog | None = None,
        telemetry: TelemetryCollector | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.catalog = catalog or get_catalog()
        self._telemetry = telemetry
        self.resolver = ActionResolver(self.settings)
        self.synergies = SynergyDetector(self.catalog)
        self.market = MarketSimulator(self.catalog)
        self.compounding = CompoundingEngine(self.catalog)
        self.competitors = CompetitorSimulator(self.catalog.competitor_names)
        self.customers = CustomerModel(self.catalog.segments)
        self.victory = VictoryEvaluator(self.settings)
        self.progression = ProgressionTracker(self.catalog)
        self.events = EventDirector(self.catalog)

    # ------------------------------------------------------------------
    def new_game(self, difficulty: Difficulty | str, seed: Optional[int] = None) -> GameState:
        """Build the starting state for ``difficulty``."""

        mode = Difficulty.parse(difficulty)
        preset = self.settings.preset(mode.value)
        if seed is None:
            seed = entropy_seed()
        state = GameState(
            game_id=f"{mode.value.lower()}-{seed & 0xFFFFFFFF:08x}",
            difficulty=mode,
            seed=seed,
            focus_slots=self.settings.focus_slots,
            bank=preset.bank,
            burn=preset.burn,
            compliance_risk=preset.compliance_risk,
        )
        for stat, value in self.settings.starting_stats.items():
            setattr(state, stat, int(value) if stat in _INTEGER_STATS else value)
        state.unlocked_actions = [ActionType(name) for name in self.settings.starting_actions]
        state.competitors = [Competitor(**entry) for entry in self.settings.starting_competitors]
        state.customer_segments = initial_segments(self.catalog.segments)
        state.player_market_share = player_share(state)
        state.recompute_derived()
        state.clamp()
        state.record_history(self.settings.history_limit)
        logger.info("New %s game %s (seed %s)", mode.value, state.game_id, seed)
        return state

    # ------------------------------------------------------------------
    def validate_actions(self, state: GameState, actions: Sequence[Any]) -> List[Action]:
        """Parse ``actions`` and check unlocks and focus cost without mutating anything."""

        if state.game_over:
            raise GameOverError(f"Game {state.game_id} has ended: {state.outcome_reason}")
        parsed = [parse_action(payload) for payload in actions]
        for action in parsed:
            if not state.is_unlocked(action.action_type):
                raise ActionNotUnlockedError(action.action_type.value)
        required = total_focus_cost(parsed)
        if required > state.focus_slots:
            raise InsufficientFocusError(required, state.focus_slots)
        return parsed

    def process_week(
        self,
        state: GameState,
        actions: Sequence[Any],
        rng: RandomSource | None = None,
    ) -> TurnResult:
        """Resolve one week and return the new state with its diagnostics.

        Without an explicit ``rng`` the turn draws from a generator derived
        from the game seed and week, so identical inputs give identical output.
        """

        started = time.perf_counter()
        try:
            parsed = self.validate_actions(state, actions)
        except EngineError as exc:
            if self._telemetry is not None:
                self._telemetry.track_error(type(exc).__name__, state.game_id, str(exc))
            raise

        working = copy.deepcopy(state)
        rng = rng if rng is not None else turn_rng(state.seed, state.week)
        turn_week = working.week + 1
        result = TurnResult(state=working)

        for action in parsed:
            outcome = self.resolver.resolve(working, action, rng)
            result.action_results.append(outcome)
            result.effects.extend(outcome.effects)

        action_types = [action.action_type for action in parsed]
        result.synergies, synergy_effects = self.synergies.detect(working, action_types, turn_week)
        result.effects.extend(synergy_effects)
        self._record_actions(working, action_types, turn_week)

        result.effects.extend(passive_tick(working, self.settings, rng))

        self._apply_market_and_compounding(working, rng, result)

        self.competitors.step(working, rng)
        self.customers.step(working, parsed)
        working.recompute_derived()
        working.clamp()

        result.victory_conditions = self.victory.evaluate(working)

        progress = self.progression.step(working)
        result.milestones = progress.milestones
        result.unlocked_actions = progress.unlocked_actions
        result.milestone_event = progress.milestone_event
        result.specialization_bonus = progress.specialization_bonus
        for completion in progress.milestones:
            result.effects.extend(completion.effects)
        if progress.milestone_event is not None:
            result.effects.extend(progress.milestone_event.effects)
        if progress.specialization_bonus is not None:
            result.effects.extend(progress.specialization_bonus.effects)

        if not working.game_over:
            event = self.events.check(working, rng)
            if event is not None:
                result.events.append(event)
                result.effects.extend(event.effects)
        working.recompute_derived()
        working.clamp()

        report = diagnose(state, working)
        result.insights = report.insights
        result.warnings = report.warnings
        result.risk_score = report.risk_score
        result.compounding_bonuses = report.compounding_bonuses

        working.record_history(self.settings.history_limit)
        self._track_turn(result, (time.perf_counter() - started) * 1000)
        return result

    def _apply_market_and_compounding(
        self, state: GameState, rng: RandomSource, result: TurnResult
    ) -> None:
        """Market drift and compounding bonuses share one ledger and a single clamp."""

        overlay = StatLedger()
        self.market.step(state, rng, overlay)
        result.market_conditions = list(state.active_market_conditions)
        state.recompute_derived()
        self.compounding.step(state, overlay)
        result.effects.extend(overlay.apply(state))
        state.recompute_derived()
        state.clamp()

    def _record_actions(self, state: GameState, action_types: List[ActionType], turn_week: int) -> None:
        state.action_history.append(ActionRecord(turn_week, [action.value for action in action_types]))
        earliest = turn_week - self.settings.action_history_weeks
        state.action_history = [record for record in state.action_history if record.week > earliest]

    # ------------------------------------------------------------------
    def apply_event_choice(self, state: GameState, event_id: str, choice_index: int) -> GameState:
        """Resolve the pending dilemma and return the updated state."""

        working = copy.deepcopy(state)
        self.events.resolve(working, event_id, choice_index)
        working.recompute_derived()
        working.clamp()
        if self._telemetry is not None:
            self._telemetry.track_game_progression(
                "event_choice", float(choice_index), working.game_id, {"event_id": event_id}
            )
        return working

    def _track_turn(self, result: TurnResult, duration_ms: float) -> None:
        if self._telemetry is None:
            return
        state = result.state
        if state.victory:
            outcome = "victory"
        elif state.game_over:
            outcome = "defeat"
        else:
            outcome = "ongoing"
        self._telemetry.track_turn(
            state.game_id,
            state.difficulty.value,
            state.week,
            outcome,
            duration_ms=duration_ms,
            details={
                "synergies": len(result.synergies),
                "milestones": len(result.milestones),
                "risk_score": result.risk_score,
            },
        )
        for synergy in result.synergies:
            self._telemetry.track_game_progression("synergy", synergy.magnitude, state.game_id, {"id": synergy.id})
        for milestone in result.milestones:
            self._telemetry.track_game_progression("milestone", 1.0, state.game_id, {"id": milestone.id})


__all__ = ["GameService"]
