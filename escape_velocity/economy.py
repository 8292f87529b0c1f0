"""Weekly passive tick: cash flow, churn, growth and drift."""
from __future__ import annotations

import logging
from typing import List

from .config import Settings
from .models import Effect, GameState
from .rng import RandomSource

logger = logging.getLogger(__name__)


def weekly_cash_flow(state: GameState) -> float:
    """Net weekly change in bank from the monthly burn and revenue figures."""

    return state.mrr / 4.0 - state.burn / 4.0


def mrr_churn(state: GameState) -> float:
    """Revenue lost to churn this week, after market churn pressure."""

    churn_rate = state.churn_rate * state.market_churn_multiplier
    return state.mrr * (churn_rate / 100.0) / 12.0


def nps_target(state: GameState) -> float:
    """NPS the product drifts toward: between -20 and 40."""

    quality = (100.0 - state.tech_debt) / 100.0
    satisfaction = state.morale / 100.0
    return quality * satisfaction * 60.0 - 20.0


def churn_target(nps: float, incident_count: int) -> float:
    """Monthly churn the customer base drifts toward."""

    if nps > 50:
        nps_modifier = -2.0
    elif nps > 20:
        nps_modifier = -1.0
    elif nps < -20:
        nps_modifier = 2.0
    else:
        nps_modifier = 0.0
    return max(1.0, min(20.0, 5.0 + nps_modifier + incident_count * 1.0))


def passive_tick(state: GameState, settings: Settings, rng: RandomSource) -> List[Effect]:
    """Advance the week and apply every change not tied to an action."""

    state.week += 1
    effects: List[Effect] = [
        state.apply_delta("bank", -state.burn / 4.0, "Weekly burn"),
        state.apply_delta("bank", state.mrr / 4.0, "Weekly revenue"),
    ]
    churned = mrr_churn(state)
    if churned:
        effects.append(state.apply_delta("mrr", -churned, "Customer churn"))

    previous_wau = state.wau
    planned_rate = state.wau_growth_rate * state.market_growth_multiplier
    effects.append(
        state.apply_delta("wau", previous_wau * planned_rate / 100.0, "Organic growth")
    )
    if previous_wau > 0:
        realized = (state.wau - previous_wau) / previous_wau * 100.0
        effects.append(
            state.apply_delta("wau_growth_rate", realized - state.wau_growth_rate, "Realized growth")
        )

    effects.append(state.apply_delta("morale", -settings.morale_decay, "Weekly grind"))
    if state.velocity > settings.tech_debt_creep_velocity:
        effects.append(
            state.apply_delta("tech_debt", settings.tech_debt_creep, "Moving fast")
        )
    if state.tech_debt > settings.incident_tech_debt and rng.random() < settings.incident_chance:
        state.incident_count += 1
        logger.debug("Week %s: production incident (tech debt %.1f)", state.week, state.tech_debt)

    nps_shift = (nps_target(state) - state.nps) * settings.nps_drift_rate
    effects.append(state.apply_delta("nps", nps_shift, "Customer sentiment"))
    churn_shift = (churn_target(state.nps, state.incident_count) - state.churn_rate) * settings.churn_drift_rate
    effects.append(state.apply_delta("churn_rate", churn_shift, "Retention trend"))

    state.recompute_derived()
    state.clamp()
    return [effect for effect in effects if effect.delta]


__all__ = ["churn_target", "mrr_churn", "nps_target", "passive_tick", "weekly_cash_flow"]
