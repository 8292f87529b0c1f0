"""Headless playthrough simulator for balancing runs."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..actions import (
    Action,
    Coach,
    ComplianceWork,
    ContentLaunch,
    ContentType,
    DevRel,
    ExperimentCategory,
    FeatureQuality,
    FounderLedSales,
    Fundraise,
    IncidentResponse,
    PaidAds,
    ProcessImprovement,
    RefactorCode,
    RunExperiment,
    ShipFeature,
    TakeBreak,
)
from ..competitors import competitive_landscape
from ..customers import customer_metrics
from ..market import market_status
from ..models import GameState
from ..progression import level, level_name
from ..service import GameService
from ..telemetry import TelemetryCollector
from ..victory import valuation

logger = logging.getLogger(__name__)

STRATEGIES: Dict[str, List[Action]] = {
    "balanced": [
        ShipFeature(FeatureQuality.BALANCED),
        FounderLedSales(),
        Coach(),
        ContentLaunch(),
        RefactorCode(),
        ProcessImprovement(),
    ],
    "growth": [
        FounderLedSales(call_count=8),
        ShipFeature(FeatureQuality.QUICK),
        PaidAds(),
        ContentLaunch(ContentType.CASE_STUDY),
        DevRel(),
    ],
    "product": [
        ShipFeature(FeatureQuality.POLISH),
        RefactorCode(),
        RunExperiment(ExperimentCategory.ONBOARDING),
        ProcessImprovement(),
        FounderLedSales(call_count=3),
    ],
    "cautious": [
        ShipFeature(FeatureQuality.BALANCED),
        FounderLedSales(call_count=3),
        TakeBreak(),
    ],
}


def choose_actions(state: GameState, strategy: str) -> List[Action]:
    """Greedy pick from the strategy's preferences, with a few reflexes."""

    preferences: List[Action] = []
    if state.incident_count > 0:
        preferences.append(IncidentResponse())
    if state.compliance_risk > 60:
        preferences.append(ComplianceWork())
    if state.morale < 45:
        preferences.append(TakeBreak())
    if state.tech_debt > 60:
        preferences.append(RefactorCode())
    if state.runway_months < 4 and state.mrr < state.burn:
        preferences.append(Fundraise())
    preferences.extend(STRATEGIES[strategy])

    chosen: List[Action] = []
    budget = state.focus_slots
    for action in preferences:
        if action.focus_cost > budget or not state.is_unlocked(action.action_type):
            continue
        if any(existing.action_type == action.action_type for existing in chosen):
            continue
        chosen.append(action)
        budget -= action.focus_cost
    return chosen


def _timeline_entry(result) -> Dict[str, Any]:
    state = result.state
    return {
        "week": state.week,
        "actions": [outcome.action for outcome in result.action_results],
        "bank": round(state.bank, 2),
        "mrr": round(state.mrr, 2),
        "wau": state.wau,
        "morale": round(state.morale, 2),
        "reputation": round(state.reputation, 2),
        "tech_debt": round(state.tech_debt, 2),
        "streak_weeks": state.escape_velocity_progress.streak_weeks,
        "risk_score": round(result.risk_score, 2),
        "synergies": [synergy.id for synergy in result.synergies],
        "events": [event.id for event in result.events],
        "milestones": [milestone.id for milestone in result.milestones],
        "unlocked": [action.value for action in result.unlocked_actions],
        "market_conditions": [condition.id for condition in result.market_conditions],
    }


def run_simulation(
    *,
    difficulty: str,
    weeks: int,
    seed: int,
    strategy: str = "balanced",
    output_dir: Optional[Path] = None,
    telemetry_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """Play ``weeks`` turns with a scripted strategy returning timeline + summary."""

    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown strategy {strategy!r}; choose from {sorted(STRATEGIES)}")
    telemetry = TelemetryCollector(telemetry_path) if telemetry_path is not None else None
    service = GameService(telemetry=telemetry)
    state = service.new_game(difficulty, seed=seed)

    timeline: List[Dict[str, Any]] = []
    for _ in range(weeks):
        if state.game_over:
            break
        result = service.process_week(state, choose_actions(state, strategy))
        state = result.state
        timeline.append(_timeline_entry(result))
        if state.pending_event is not None:
            state = service.apply_event_choice(state, state.pending_event.event_id, 0)
    if telemetry is not None:
        telemetry.flush()

    player_level = level(len(state.completed_milestones))
    summary = {
        "game_id": state.game_id,
        "final_week": state.week,
        "game_over": state.game_over,
        "victory": state.victory,
        "outcome_reason": state.outcome_reason,
        "valuation": round(valuation(state), 2),
        "level": player_level,
        "level_name": level_name(player_level),
        "specialization": state.specialization,
        "milestones": list(state.completed_milestones),
        "market": asdict(market_status(state)),
        "competition": asdict(competitive_landscape(state)),
        "customers": asdict(customer_metrics(state)),
    }
    result_payload: Dict[str, Any] = {
        "config": {"difficulty": difficulty, "weeks": weeks, "seed": seed, "strategy": strategy},
        "timeline": timeline,
        "summary": summary,
    }

    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        output_path = output_dir / f"run_{strategy}_{seed}_{timestamp}.json"
        output_path.write_text(json.dumps(result_payload, indent=2), encoding="utf-8")
        result_payload["output_path"] = str(output_path)
        logger.info("Wrote simulation to %s", output_path)

    return result_payload


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play a scripted Escape Velocity run.")
    parser.add_argument("--difficulty", default="IndieBootstrap", help="Difficulty preset name.")
    parser.add_argument("--weeks", type=int, default=52, help="Maximum number of weeks to play.")
    parser.add_argument("--seed", type=int, default=7, help="Game seed.")
    parser.add_argument("--strategy", choices=sorted(STRATEGIES), default="balanced")
    parser.add_argument("--output-dir", type=Path, default=Path("simulation_runs"))
    parser.add_argument("--telemetry-db", type=Path, help="Optional SQLite telemetry path.")
    return parser.parse_args()


def main() -> None:  # pragma: no cover - CLI entry point
    args = _parse_args()
    logging.basicConfig(level=logging.INFO)
    result = run_simulation(
        difficulty=args.difficulty,
        weeks=args.weeks,
        seed=args.seed,
        strategy=args.strategy,
        output_dir=args.output_dir,
        telemetry_path=args.telemetry_db,
    )
    summary = result["summary"]
    print(
        f"{summary['game_id']}: week {summary['final_week']}, "
        f"victory={summary['victory']}, outcome={summary['outcome_reason']}"
    )
    if "output_path" in result:
        print(f"Timeline written to {result['output_path']}")


if __name__ == "__main__":
    main()
