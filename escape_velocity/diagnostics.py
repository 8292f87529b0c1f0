"""Read-only analysis of a turn: insights, failure warnings and risk score.

Every function here is a pure function of its inputs. Nothing mutates the
states passed in and nothing draws randomness, so calling the generator
repeatedly with the same inputs yields identical output.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List

from .models import (
    CompoundingBonus,
    FailureWarning,
    GameState,
    Insight,
    RiskSeverity,
    Severity,
    clamp,
)

SEVERITY_WEIGHTS = {
    RiskSeverity.CRITICAL: 4,
    RiskSeverity.HIGH: 3,
    RiskSeverity.MEDIUM: 2,
    RiskSeverity.LOW: 1,
}

HIGH_MOMENTUM = 1.5


@dataclass
class DiagnosticsReport:
    insights: List[Insight] = field(default_factory=list)
    warnings: List[FailureWarning] = field(default_factory=list)
    risk_score: float = 0.0
    compounding_bonuses: List[CompoundingBonus] = field(default_factory=list)


def diagnose(previous: GameState, current: GameState) -> DiagnosticsReport:
    warnings = failure_warnings(current)
    return DiagnosticsReport(
        insights=metric_insights(previous, current) + trend_insights(current) + strategic_insights(current),
        warnings=warnings,
        risk_score=risk_score(warnings, current),
        compounding_bonuses=compounding_bonuses(current),
    )


def metric_insights(previous: GameState, current: GameState) -> List[Insight]:
    """Observations about week-over-week changes that crossed a threshold."""

    insights: List[Insight] = []
    revenue_change = current.mrr - previous.mrr
    if revenue_change and abs(revenue_change) > previous.mrr * 0.1:
        if revenue_change > 0:
            insights.append(Insight(
                "Revenue", "Revenue Growth", f"MRR increased by ${revenue_change:,.0f}",
                "Recent actions are driving revenue growth",
                "Continue focusing on revenue-generating activities",
                Severity.INFO, "MRR", current.mrr,
            ))
        else:
            insights.append(Insight(
                "Revenue", "Revenue Decline", f"MRR decreased by ${-revenue_change:,.0f}",
                "Revenue is declining; investigate churn or pricing",
                "Run pricing experiments or improve product quality",
                Severity.WARNING, "MRR", current.mrr,
            ))

    user_change = current.wau - previous.wau
    if user_change and abs(user_change) > previous.wau * 0.05:
        if user_change > 0:
            insights.append(Insight(
                "Users", "User Growth", f"WAU increased by {user_change}",
                "User acquisition is working well",
                "Scale successful acquisition channels",
                Severity.INFO, "WAU", float(current.wau),
            ))
        else:
            insights.append(Insight(
                "Users", "User Decline", f"WAU decreased by {-user_change}",
                "Users are leaving; check product quality and competition",
                "Investigate churn reasons and improve the product",
                Severity.WARNING, "WAU", float(current.wau),
            ))

    morale_change = current.morale - previous.morale
    if morale_change < -5:
        insights.append(Insight(
            "Team", "Morale Decline", f"Team morale dropped by {-morale_change:.1f} points",
            "The team is becoming demotivated",
            "Consider coaching, process improvements or a break",
            Severity.WARNING, "Morale", current.morale,
        ))
    elif morale_change > 5:
        insights.append(Insight(
            "Team", "Morale Boost", f"Team morale rose by {morale_change:.1f} points",
            "The team is energized and productive",
            "Maintain the positive momentum",
            Severity.INFO, "Morale", current.morale,
        ))

    debt_change = current.tech_debt - previous.tech_debt
    if debt_change > 5:
        insights.append(Insight(
            "Technical", "Tech Debt Increase", f"Technical debt rose by {debt_change:.1f} points",
            "Code quality is deteriorating",
            "Schedule refactoring time",
            Severity.WARNING, "Tech Debt", current.tech_debt,
        ))
    return insights


def trend_insights(state: GameState) -> List[Insight]:
    insights: List[Insight] = []
    if state.wau_growth_rate > 15:
        insights.append(Insight(
            "Growth", "Strong Growth Momentum", f"WAU growth rate is {state.wau_growth_rate:.1f}%",
            "The product has strong market traction",
            "Consider scaling operations and hiring",
            Severity.INFO,
        ))
    elif state.wau_growth_rate < 5:
        insights.append(Insight(
            "Growth", "Slow Growth", f"WAU growth rate is only {state.wau_growth_rate:.1f}%",
            "Growth has stalled",
            "Experiment with new channels or product features",
            Severity.WARNING,
        ))
    if state.burn > 0 and state.bank < state.burn * 3:
        insights.append(Insight(
            "Finance", "Cash Runway Concern", f"Only {state.runway_months:.1f} months of runway",
            "The cash position is precarious",
            "Focus on revenue growth or consider fundraising",
            Severity.CRITICAL, "Bank", state.bank,
        ))
    if state.reputation > 75:
        insights.append(Insight(
            "Reputation", "Strong Market Position", f"Reputation score of {state.reputation:.1f}",
            "The company has established credibility",
            "Leverage reputation for partnerships and hiring",
            Severity.INFO,
        ))
    if state.compliance_risk > 50:
        insights.append(Insight(
            "Compliance", "High Compliance Risk", f"Compliance risk at {state.compliance_risk:.1f}%",
            "Regulatory issues could threaten the business",
            "Prioritize compliance work",
            Severity.CRITICAL, "Compliance Risk", state.compliance_risk,
        ))
    if state.nps < 0:
        insights.append(Insight(
            "Customer", "Poor Customer Satisfaction", f"NPS is {state.nps:.1f}",
            "Customers are unhappy with the product",
            "Focus on product quality and customer support",
            Severity.WARNING, "NPS", state.nps,
        ))
    return insights


def strategic_insights(state: GameState) -> List[Insight]:
    insights: List[Insight] = []
    if state.reputation > 70 and state.bank > state.burn * 6:
        insights.append(Insight(
            "Strategy", "Fundraising Opportunity", "Strong reputation and a healthy cash position",
            "Conditions are favorable for fundraising",
            "Consider raising capital to accelerate growth",
            Severity.INFO,
        ))
    if state.tech_debt > 40 and state.velocity < 0.8:
        insights.append(Insight(
            "Strategy", "Technical Debt Drag", "High tech debt is slowing delivery",
            "Development speed has dropped significantly",
            "Prioritize refactoring",
            Severity.CRITICAL,
        ))
    if state.morale > 80 and state.velocity > 1.2:
        insights.append(Insight(
            "Strategy", "High Performance Period", "The team is motivated and productive",
            "A good time for ambitious projects",
            "Tackle complex features or strategic initiatives",
            Severity.INFO,
        ))
    if state.wau > 50_000 and state.mrr / state.wau < 10:
        insights.append(Insight(
            "Strategy", "Monetization Opportunity", f"ARPU is only ${state.mrr / state.wau:.2f}",
            "Large user base with low revenue per user",
            "Experiment with pricing tiers or upselling",
            Severity.INFO,
        ))
    return insights


def _runway_weeks(state: GameState) -> int:
    if state.burn <= 0:
        return 0
    return max(0, math.floor(state.bank / state.burn * 4))


def failure_warnings(state: GameState) -> List[FailureWarning]:
    """Forward-looking risks with a rough time to failure in weeks."""

    warnings: List[FailureWarning] = []
    runway = state.bank / state.burn if state.burn > 0 else math.inf
    if runway < 3:
        severity = (
            RiskSeverity.CRITICAL if runway < 1 else RiskSeverity.HIGH if runway < 2 else RiskSeverity.MEDIUM
        )
        warnings.append(FailureWarning(
            "cash_runway_critical", "Finance", "Critical Cash Runway",
            f"Only {runway:.1f} months of cash runway remaining", severity,
            max(20.0, 100.0 - runway * 25.0), _runway_weeks(state),
            ["Cut non-essential expenses", "Accelerate revenue growth", "Secure emergency funding"],
        ))
    if state.burn > state.mrr * 1.5 and state.wau_growth_rate < 10:
        warnings.append(FailureWarning(
            "burn_growth_mismatch", "Finance", "Burn Rate Mismatch",
            "High burn with slow growth creates funding pressure", RiskSeverity.HIGH,
            60.0, _runway_weeks(state),
            ["Optimize unit economics", "Implement cost controls", "Accelerate product-market fit"],
        ))
    if state.morale < 30:
        severity = (
            RiskSeverity.CRITICAL if state.morale < 10
            else RiskSeverity.HIGH if state.morale < 20 else RiskSeverity.MEDIUM
        )
        warnings.append(FailureWarning(
            "morale_collapse", "Team", "Team Morale Crisis",
            f"Team morale at {state.morale:.1f}; risk of mass exodus", severity,
            max(15.0, 50.0 - state.morale), math.floor(state.morale / 5),
            ["Take a break", "Provide coaching and support", "Clarify company vision"],
        ))
    if state.morale < 50 and state.velocity < 0.7:
        warnings.append(FailureWarning(
            "team_burnout", "Team", "Team Burnout",
            "Low morale combined with low velocity indicates burnout", RiskSeverity.HIGH,
            45.0, 8,
            ["Reduce workload", "Take a break", "Improve processes"],
        ))
    if state.tech_debt > 70:
        severity = (
            RiskSeverity.CRITICAL if state.tech_debt > 90
            else RiskSeverity.HIGH if state.tech_debt > 80 else RiskSeverity.MEDIUM
        )
        warnings.append(FailureWarning(
            "tech_debt_crisis", "Technical", "Technical Debt Crisis",
            f"Technical debt at {state.tech_debt:.1f}; development is severely impacted", severity,
            min(80.0, state.tech_debt - 20.0), math.floor((100.0 - state.tech_debt) / 10),
            ["Refactor code", "Pause feature work", "Respond to incidents"],
        ))
    if state.tech_debt > 60 and state.reputation > 60:
        warnings.append(FailureWarning(
            "incident_risk", "Technical", "High Incident Risk",
            "Technical debt increases the likelihood of outages", RiskSeverity.MEDIUM,
            min(60.0, state.tech_debt / 2.0), 4,
            ["Refactor code", "Improve monitoring"],
        ))
    if state.compliance_risk > 60:
        severity = (
            RiskSeverity.CRITICAL if state.compliance_risk > 80
            else RiskSeverity.HIGH if state.compliance_risk > 70 else RiskSeverity.MEDIUM
        )
        warnings.append(FailureWarning(
            "compliance_failure", "Compliance", "Compliance Failure Risk",
            f"Compliance risk at {state.compliance_risk:.1f}%; regulatory action possible", severity,
            min(70.0, state.compliance_risk), math.floor((100.0 - state.compliance_risk) / 5),
            ["Do compliance work", "Conduct a legal review"],
        ))
    if state.reputation > 70 and state.wau > 20_000:
        warnings.append(FailureWarning(
            "competitive_response", "Market", "Competitive Response",
            "Market success attracts competitor attention", RiskSeverity.MEDIUM,
            40.0, 12,
            ["Strengthen differentiation", "Deepen customer relationships"],
        ))
    if state.churn_rate > 12:
        warnings.append(FailureWarning(
            "churn_crisis", "Market", "Customer Churn Crisis",
            f"Monthly churn at {state.churn_rate:.1f}% is unsustainable", RiskSeverity.HIGH,
            55.0, max(1, math.floor(12 / state.churn_rate)),
            ["Improve product quality", "Run retention experiments"],
        ))
    if state.wau > 50_000 and state.velocity < 0.8:
        warnings.append(FailureWarning(
            "scaling_issues", "Operations", "Scaling Challenges",
            "User growth is outpacing operational capacity", RiskSeverity.HIGH,
            50.0, 6,
            ["Hire", "Improve processes", "Refactor code"],
        ))
    return warnings


def risk_score(warnings: List[FailureWarning], state: GameState) -> float:
    """Aggregate 0..100 risk from warnings plus state modifiers."""

    total = sum(
        warning.probability / 100.0 * SEVERITY_WEIGHTS[warning.severity] * 10.0
        for warning in warnings
    )
    if state.bank < state.burn * 2:
        total += 20
    if state.morale < 40:
        total += 15
    if state.tech_debt > 60:
        total += 15
    if state.compliance_risk > 50:
        total += 20
    if state.churn_rate > 10:
        total += 10
    return clamp(total, 0.0, 100.0)


def compounding_bonuses(state: GameState) -> List[CompoundingBonus]:
    bonuses: List[CompoundingBonus] = []
    if state.reputation > 60:
        bonuses.append(CompoundingBonus(
            "Reputation", "Reputation Flywheel",
            "High reputation attracts better talent and customers",
            "+0.5 reputation and +1 morale per week", -1,
        ))
    if state.wau > 10_000:
        bonuses.append(CompoundingBonus(
            "Scale", "Network Effects", "A large user base creates network effects",
            "Extra organic growth every week", -1,
        ))
    if state.tech_debt < 20:
        bonuses.append(CompoundingBonus(
            "Quality", "Quality Advantage", "Low technical debt enables fast, reliable development",
            "Higher velocity and steadier NPS", -1,
        ))
    if state.morale > 70:
        bonuses.append(CompoundingBonus(
            "Team", "High Morale Bonus", "A motivated team performs at a higher level",
            "Velocity gains while morale stays high", -1,
        ))
    if state.momentum > HIGH_MOMENTUM:
        bonuses.append(CompoundingBonus(
            "Momentum", "Momentum Advantage", "Strong momentum attracts investors and talent",
            "Better fundraising odds", 12,
        ))
    return bonuses


__all__ = [
    "DiagnosticsReport",
    "compounding_bonuses",
    "diagnose",
    "failure_warnings",
    "metric_insights",
    "risk_score",
    "strategic_insights",
    "trend_insights",
]
