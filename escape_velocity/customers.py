"""Customer segment dynamics: satisfaction, churn and acquisition."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Sequence

from .actions import Action, ContentLaunch, DevRel, FounderLedSales, PaidAds
from .catalog import SegmentDefinition
from .models import CustomerSegmentState, GameState, clamp

logger = logging.getLogger(__name__)

# Notional marketing value of the non-paid channels.
CONTENT_MARKETING_VALUE = 2_000.0
DEVREL_MARKETING_VALUE = 4_000.0
SALES_EFFORT_PER_CALL = 10.0


@dataclass
class CustomerMetrics:
    total_customers: int
    active_customers: int
    monthly_revenue: float
    churn_rate: float
    acquisition_cost: float
    lifetime_value: float
    health_score: float


def initial_segments(definitions: Sequence[SegmentDefinition]) -> List[CustomerSegmentState]:
    return [
        CustomerSegmentState(
            id=definition.id,
            name=definition.name,
            size=definition.size,
            conversion_rate=definition.conversion_rate,
            lifetime_value=definition.lifetime_value,
            churn_rate=definition.churn_rate,
            satisfaction=definition.satisfaction,
        )
        for definition in definitions
    ]


def marketing_effort(actions: Sequence[Action]) -> Dict[str, float]:
    """Marketing spend and sales effort put in this turn."""

    spend = 0.0
    sales = 0.0
    for action in actions:
        if isinstance(action, PaidAds):
            spend += action.budget
        elif isinstance(action, ContentLaunch):
            spend += CONTENT_MARKETING_VALUE
        elif isinstance(action, DevRel):
            spend += DEVREL_MARKETING_VALUE
        elif isinstance(action, FounderLedSales):
            sales += action.call_count * SALES_EFFORT_PER_CALL
    return {"marketing_spend": spend, "sales_effort": sales}


class CustomerModel:
    """Per-segment satisfaction and churn, recomputed from base rates each week."""

    def __init__(self, definitions: Sequence[SegmentDefinition]) -> None:
        self._definitions = {definition.id: definition for definition in definitions}

    def step(self, state: GameState, actions: Sequence[Action]) -> int:
        """Update every segment and return the customers acquired this week."""

        if not state.customer_segments:
            state.customer_segments = initial_segments(list(self._definitions.values()))
        satisfaction = clamp(
            (100.0 - state.tech_debt) / 100.0 * 40.0
            + state.reputation / 100.0 * 30.0
            + state.morale / 100.0 * 20.0
            + state.nps * 0.1,
            0.0,
            100.0,
        )
        for segment in state.customer_segments:
            definition = self._definitions.get(segment.id)
            if definition is None:
                continue
            segment.satisfaction = satisfaction
            segment.churn_rate = definition.churn_rate * (1.0 + (100.0 - satisfaction) / 100.0)
            churned = math.floor(segment.active_customers * segment.churn_rate / 100.0)
            segment.active_customers = max(0, segment.active_customers - churned)
            segment.conversion_rate = min(
                0.5, definition.conversion_rate * (1.0 + state.reputation / 200.0)
            )
        effort = marketing_effort(actions)
        acquired = self._acquire(state, effort["marketing_spend"], effort["sales_effort"])
        if acquired:
            logger.debug("Week %s: acquired %s customers", state.week, acquired)
        return acquired

    @staticmethod
    def _acquire(state: GameState, marketing_spend: float, sales_effort: float) -> int:
        marketing = min(1.0, marketing_spend / 10_000.0)
        sales = min(1.0, sales_effort / 100.0)
        total = 0
        for segment in state.customer_segments:
            penetration = segment.acquired / segment.size if segment.size else 1.0
            rate = segment.conversion_rate * max(0.1, 1.0 - penetration) * (marketing + sales)
            gained = min(math.floor(segment.size * rate * 0.01), segment.size - segment.acquired)
            if gained <= 0:
                continue
            segment.acquired += gained
            segment.active_customers += gained
            total += gained
        return total


def customer_metrics(state: GameState) -> CustomerMetrics:
    segments = state.customer_segments
    total = sum(segment.acquired for segment in segments)
    active = sum(segment.active_customers for segment in segments)
    if active:
        churn = sum(s.churn_rate * s.active_customers for s in segments) / active
        ltv = sum(s.lifetime_value * s.active_customers for s in segments) / active
    else:
        churn = 0.0
        ltv = 0.0
    cac = state.burn * 0.3 / (state.wau * 0.1) if state.wau > 0 else 0.0
    retention_score = max(0.0, 100.0 - churn * 5.0)
    growth_score = min(100.0, total / 100.0)
    satisfaction_score = state.nps + 50.0
    efficiency_score = min(100.0, ltv / cac * 10.0) if cac > 0 else 0.0
    health = clamp(
        (retention_score + growth_score + satisfaction_score + efficiency_score) / 4.0, 0.0, 100.0
    )
    return CustomerMetrics(
        total_customers=total,
        active_customers=active,
        monthly_revenue=active * ltv / 12.0,
        churn_rate=churn,
        acquisition_cost=cac,
        lifetime_value=ltv,
        health_score=health,
    )


__all__ = ["CustomerMetrics", "CustomerModel", "customer_metrics", "initial_segments", "marketing_effort"]
