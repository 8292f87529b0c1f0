"""Terminal outcomes, the escape velocity streak and progress reporting."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from .config import Settings
from .models import Difficulty, GameState, VictoryCondition

logger = logging.getLogger(__name__)

GROWTH_THRESHOLD = 10.0
NPS_THRESHOLD = 30.0
MORALE_THRESHOLD = 40.0
REPUTATION_FLOOR = 10.0
SUSTAINABLE_WEEKS = 12


def failure_reason(state: GameState) -> Optional[str]:
    if state.bank <= 0:
        return "Ran out of money"
    if state.morale <= 0:
        return "Team morale collapsed"
    if state.reputation <= REPUTATION_FLOOR:
        return "Reputation destroyed"
    if state.compliance_risk >= 100:
        return "Compliance violations shut down the company"
    return None


def update_streak(state: GameState) -> None:
    """Re-evaluate the four escape velocity conditions for this week."""

    progress = state.escape_velocity_progress
    progress.revenue_covers_burn = state.mrr >= state.burn
    progress.growth_sustained = state.wau_growth_rate >= GROWTH_THRESHOLD
    progress.customer_love = state.nps >= NPS_THRESHOLD
    progress.founder_healthy = state.morale > MORALE_THRESHOLD
    if progress.all_met():
        progress.streak_weeks += 1
    else:
        progress.streak_weeks = 0


def valuation(state: GameState) -> float:
    """Revenue-multiple valuation with a one million floor."""

    multiple = state.reputation / 10.0
    growth = max(0.1, state.wau_growth_rate / 100.0)
    risk = 1.0 - state.tech_debt / 200.0 - state.compliance_risk / 200.0
    return max(1_000_000.0, state.mrr * 12 * multiple * growth * risk)


def ipo_ready(state: GameState) -> bool:
    return (
        state.mrr >= 10_000_000
        and state.wau >= 100_000
        and state.reputation >= 90
        and state.tech_debt <= 30
        and state.compliance_risk <= 15
        and state.nps >= 30
    )


def _ratio(value: float, target: float) -> float:
    return max(0.0, min(100.0, value / target * 100.0))


def _cash_positive_weeks(state: GameState) -> int:
    if state.mrr < state.burn:
        return 0
    weeks = 1
    for snapshot in reversed(state.history):
        if snapshot.mrr < snapshot.burn or weeks >= SUSTAINABLE_WEEKS:
            break
        weeks += 1
    return weeks


_Check = Tuple[str, str, str, Callable[[GameState], float]]

_GENERAL: List[_Check] = [
    ("revenue_milestone", "Revenue Milestone", "Reach $1M MRR", lambda s: _ratio(s.mrr, 1_000_000)),
    ("scale_revenue", "Scale Revenue", "Reach $10M MRR", lambda s: _ratio(s.mrr, 10_000_000)),
    ("product_market_fit", "Product-Market Fit", "Reach 10K WAU", lambda s: _ratio(s.wau, 10_000)),
    ("scale_users", "Scale Users", "Reach 100K WAU", lambda s: _ratio(s.wau, 100_000)),
    ("industry_recognition", "Industry Recognition", "Reach 80 reputation", lambda s: _ratio(s.reputation, 80)),
    ("market_leadership", "Market Leadership", "Reach 95 reputation", lambda s: _ratio(s.reputation, 95)),
    (
        "sustainable_growth",
        "Sustainable Growth",
        "Revenue covers burn for 12 straight weeks",
        lambda s: _ratio(_cash_positive_weeks(s), SUSTAINABLE_WEEKS),
    ),
]

_BY_DIFFICULTY = {
    Difficulty.INDIE_BOOTSTRAP: (
        "indie_success",
        "Indie Success",
        "Reach $100K MRR while keeping 95% equity",
        lambda s: min(_ratio(s.mrr, 100_000), 100.0 if s.founder_equity >= 95 else 99.0),
    ),
    Difficulty.VC_TRACK: (
        "vc_exit",
        "VC Exit",
        "Reach a $50M valuation",
        lambda s: _ratio(valuation(s), 50_000_000),
    ),
    Difficulty.REGULATED_FINTECH: (
        "fintech_compliance",
        "Fintech Compliance",
        "Reach $5M MRR with compliance risk at or below 20",
        lambda s: min(
            _ratio(s.mrr, 5_000_000),
            100.0 if s.compliance_risk <= 20 else max(0.0, 100.0 - s.compliance_risk),
        ),
    ),
    Difficulty.INFRA_DEV_TOOL: (
        "enterprise_adoption",
        "Enterprise Adoption",
        "Reach 50K WAU with reputation 85",
        lambda s: min(_ratio(s.wau, 50_000), _ratio(s.reputation, 85)),
    ),
}


class VictoryEvaluator:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def evaluate(self, state: GameState) -> List[VictoryCondition]:
        """Apply terminal rules to ``state`` and report progress conditions."""

        reason = failure_reason(state)
        if reason is not None:
            self._finish(state, victory=False, reason=reason)
            return self.conditions(state)

        update_streak(state)
        if state.escape_velocity_progress.streak_weeks >= self._settings.victory_streak_weeks:
            self._finish(state, victory=True, reason="Reached escape velocity")
        return self.conditions(state)

    def conditions(self, state: GameState) -> List[VictoryCondition]:
        checks = list(_GENERAL)
        checks.append(self._ipo_check(state))
        specific = _BY_DIFFICULTY.get(state.difficulty)
        if specific is not None:
            checks.append(specific)
        reports = []
        for condition_id, name, description, progress in checks:
            value = progress(state)
            reports.append(VictoryCondition(condition_id, name, description, value, value >= 100.0))
        return reports

    def _deadline(self, state: GameState) -> int:
        return self._settings.preset(state.difficulty.value).ipo_deadline_weeks

    def _ipo_check(self, state: GameState) -> _Check:
        deadline = self._deadline(state)

        def progress(s: GameState) -> float:
            if s.week > deadline:
                return 0.0
            if ipo_ready(s):
                return 100.0
            return min((deadline - s.week) / deadline * 100.0, 50.0)

        return ("ipo_ready", "IPO Ready", f"Reach IPO metrics within {deadline} weeks", progress)

    @staticmethod
    def _finish(state: GameState, victory: bool, reason: str) -> None:
        if state.game_over:
            return
        state.game_over = True
        state.victory = victory
        state.outcome_reason = reason
        logger.info("Game %s ended in week %s: %s", state.game_id, state.week, reason)


__all__ = ["VictoryEvaluator", "failure_reason", "ipo_ready", "update_streak", "valuation"]
