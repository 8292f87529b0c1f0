"""Core data models for Escape Velocity."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Difficulty(str, Enum):
    INDIE_BOOTSTRAP = "IndieBootstrap"
    VC_TRACK = "VCTrack"
    REGULATED_FINTECH = "RegulatedFintech"
    INFRA_DEV_TOOL = "InfraDevTool"

    @classmethod
    def parse(cls, value: "Difficulty | str") -> "Difficulty":
        if isinstance(value, Difficulty):
            return value
        for member in cls:
            if value in (member.value, member.name):
                return member
        raise ValueError(f"Unknown difficulty: {value!r}")


class ActionType(str, Enum):
    SHIP_FEATURE = "ShipFeature"
    FOUNDER_LED_SALES = "FounderLedSales"
    HIRE = "Hire"
    FUNDRAISE = "Fundraise"
    REFACTOR_CODE = "RefactorCode"
    RUN_EXPERIMENT = "RunExperiment"
    CONTENT_LAUNCH = "ContentLaunch"
    DEV_REL = "DevRel"
    PAID_ADS = "PaidAds"
    COACH = "Coach"
    FIRE = "Fire"
    COMPLIANCE_WORK = "ComplianceWork"
    INCIDENT_RESPONSE = "IncidentResponse"
    PROCESS_IMPROVEMENT = "ProcessImprovement"
    TAKE_BREAK = "TakeBreak"


class ThreatLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class Severity(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    CRITICAL = "Critical"


class RiskSeverity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


# Inclusive ranges for every bounded stat.
STAT_BOUNDS: Dict[str, Tuple[float, float]] = {
    "morale": (0.0, 100.0),
    "reputation": (0.0, 100.0),
    "compliance_risk": (0.0, 100.0),
    "tech_debt": (0.0, 100.0),
    "nps": (-100.0, 100.0),
    "velocity": (0.1, 3.0),
    "churn_rate": (0.0, 100.0),
    "founder_equity": (0.0, 100.0),
    "option_pool": (0.0, 100.0),
    "wau_growth_rate": (-50.0, 50.0),
}

NON_NEGATIVE_STATS = ("burn", "mrr", "wau")

# Stats that effects may target. Derived values (momentum, runway) are excluded.
EFFECT_STATS = (
    "bank",
    "burn",
    "mrr",
    "wau",
    "wau_growth_rate",
    "churn_rate",
    "nps",
    "morale",
    "reputation",
    "compliance_risk",
    "tech_debt",
    "velocity",
    "founder_equity",
    "option_pool",
)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class Effect:
    """Audit record of one stat change."""

    stat_name: str
    old_value: float
    new_value: float
    delta: float
    description: str = ""


@dataclass
class WeekSnapshot:
    week: int
    bank: float
    mrr: float
    burn: float
    wau: int
    morale: float
    reputation: float
    momentum: float


@dataclass
class EscapeVelocityProgress:
    revenue_covers_burn: bool = False
    growth_sustained: bool = False
    customer_love: bool = False
    founder_healthy: bool = False
    streak_weeks: int = 0

    def all_met(self) -> bool:
        return (
            self.revenue_covers_burn
            and self.growth_sustained
            and self.customer_love
            and self.founder_healthy
        )


@dataclass
class Competitor:
    id: str
    name: str
    market_share: float
    funding: float
    reputation: float
    product_quality: float
    marketing_budget: float
    threat_level: ThreatLevel = ThreatLevel.LOW
    threat_score: float = 0.0
    founded_week: int = 0


@dataclass
class MarketConditionInstance:
    """An active market condition spawned from a catalog archetype."""

    id: str
    name: str
    category: str
    intensity: float
    duration_weeks: int
    started_week: int
    growth_multiplier: float = 1.0
    churn_multiplier: float = 1.0
    funding_multiplier: float = 1.0
    reputation_drift: float = 0.0
    morale_drift: float = 0.0


@dataclass
class SynergyState:
    active: bool = False
    last_triggered: Optional[int] = None
    times_triggered: int = 0


@dataclass
class CompoundingState:
    activated_week: int
    weeks_active: int = 0


@dataclass
class ActionRecord:
    week: int
    actions: List[str]


@dataclass
class CustomerSegmentState:
    id: str
    name: str
    size: int
    conversion_rate: float
    lifetime_value: float
    churn_rate: float
    satisfaction: float
    active_customers: int = 0
    acquired: int = 0


@dataclass
class ActiveChallenge:
    """Seasonal challenge scaling one mechanic until the next one starts."""

    name: str
    target: str
    multiplier: float
    started_week: int


@dataclass
class PendingEvent:
    event_id: str
    week: int


@dataclass
class GameState:
    game_id: str
    difficulty: Difficulty
    seed: int
    week: int = 0
    focus_slots: int = 3
    # Financial (burn and mrr are monthly figures)
    bank: float = 0.0
    burn: float = 0.0
    mrr: float = 0.0
    runway_months: float = math.inf
    # Growth
    wau: int = 100
    wau_growth_rate: float = 0.0
    churn_rate: float = 5.0
    nps: float = 0.0
    # Health
    morale: float = 80.0
    reputation: float = 50.0
    compliance_risk: float = 0.0
    # Technical
    tech_debt: float = 10.0
    velocity: float = 1.0
    # Ownership
    founder_equity: float = 100.0
    option_pool: float = 0.0
    # Derived composite
    momentum: float = 0.0
    team_size: int = 1
    incident_count: int = 0
    player_market_share: float = 0.1
    market_growth_multiplier: float = 1.0
    market_churn_multiplier: float = 1.0
    market_funding_multiplier: float = 1.0
    history: List[WeekSnapshot] = field(default_factory=list)
    unlocked_actions: List[ActionType] = field(default_factory=list)
    active_market_conditions: List[MarketConditionInstance] = field(default_factory=list)
    competitors: List[Competitor] = field(default_factory=list)
    escape_velocity_progress: EscapeVelocityProgress = field(default_factory=EscapeVelocityProgress)
    synergy_states: Dict[str, SynergyState] = field(default_factory=dict)
    compounding_states: Dict[str, CompoundingState] = field(default_factory=dict)
    expired_compounding: List[str] = field(default_factory=list)
    action_history: List[ActionRecord] = field(default_factory=list)
    completed_milestones: List[str] = field(default_factory=list)
    customer_segments: List[CustomerSegmentState] = field(default_factory=list)
    pending_event: Optional[PendingEvent] = None
    event_cooldowns: Dict[str, int] = field(default_factory=dict)
    specialization: Optional[str] = None
    seasonal_challenge: Optional[ActiveChallenge] = None
    game_over: bool = False
    victory: bool = False
    outcome_reason: Optional[str] = None

    def is_unlocked(self, action_type: ActionType) -> bool:
        return action_type in self.unlocked_actions

    def unlock(self, action_type: ActionType) -> bool:
        if action_type in self.unlocked_actions:
            return False
        self.unlocked_actions.append(action_type)
        return True

    def challenge_multiplier(self, target: str) -> float:
        challenge = self.seasonal_challenge
        if challenge is None or challenge.target != target:
            return 1.0
        return challenge.multiplier

    def apply_delta(self, stat: str, delta: float, description: str = "") -> Effect:
        """Add ``delta`` to ``stat``, clamp it and return the audit record."""

        if stat not in EFFECT_STATS:
            raise ValueError(f"Unknown stat: {stat}")
        old_value = getattr(self, stat)
        new_value = old_value + delta
        if stat == "wau":
            new_value = int(math.floor(new_value))
        new_value = _bounded(stat, new_value)
        setattr(self, stat, new_value)
        return Effect(stat, old_value, new_value, new_value - old_value, description)

    def clamp(self) -> None:
        for stat, (low, high) in STAT_BOUNDS.items():
            setattr(self, stat, clamp(getattr(self, stat), low, high))
        for stat in NON_NEGATIVE_STATS:
            if getattr(self, stat) < 0:
                setattr(self, stat, 0 if stat == "wau" else 0.0)

    def recompute_derived(self) -> None:
        """Refresh runway and momentum from their inputs."""

        self.runway_months = self.bank / self.burn if self.burn > 0 else math.inf
        self.momentum = (
            (self.wau_growth_rate / 100.0 + 1.0) * self.velocity * (self.morale / 100.0)
        )

    def snapshot(self) -> WeekSnapshot:
        return WeekSnapshot(
            week=self.week,
            bank=self.bank,
            mrr=self.mrr,
            burn=self.burn,
            wau=self.wau,
            morale=self.morale,
            reputation=self.reputation,
            momentum=self.momentum,
        )

    def record_history(self, limit: int) -> None:
        self.history.append(self.snapshot())
        if len(self.history) > limit:
            del self.history[: len(self.history) - limit]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _bounded(stat: str, value: float) -> float:
    bounds = STAT_BOUNDS.get(stat)
    if bounds is not None:
        return clamp(value, *bounds)
    if stat in NON_NEGATIVE_STATS and value < 0:
        return 0 if stat == "wau" else 0.0
    return value


@dataclass
class ActionResult:
    action: str
    success: bool
    message: str
    effects: List[Effect] = field(default_factory=list)


@dataclass
class SynergyActivation:
    id: str
    name: str
    description: str
    magnitude: float
    bonuses: Dict[str, float] = field(default_factory=dict)


@dataclass
class CompoundingBonus:
    """Descriptor of a standing bonus surfaced to the player."""

    category: str
    title: str
    description: str
    effect: str
    duration_weeks: int


@dataclass
class Insight:
    category: str
    title: str
    observation: str
    insight: str
    action_suggestion: str
    severity: Severity
    metric: Optional[str] = None
    current_value: Optional[float] = None


@dataclass
class FailureWarning:
    id: str
    category: str
    title: str
    description: str
    severity: RiskSeverity
    probability: float
    time_to_failure: int
    suggested_actions: List[str] = field(default_factory=list)


@dataclass
class EventChoiceView:
    id: str
    text: str
    description: str
    effects: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class GameEvent:
    """An event surfaced this week, either applied or awaiting a choice."""

    id: str
    week: int
    title: str
    description: str
    category: str
    automatic: bool
    choices: List[EventChoiceView] = field(default_factory=list)
    effects: List[Effect] = field(default_factory=list)


@dataclass
class MilestoneEvent:
    week: int
    title: str
    description: str
    effects: List[Effect] = field(default_factory=list)


@dataclass
class SpecializationBonus:
    path: str
    description: str
    effects: List[Effect] = field(default_factory=list)


@dataclass
class MilestoneCompletion:
    id: str
    name: str
    category: str
    reward: str
    effects: List[Effect] = field(default_factory=list)


@dataclass
class VictoryCondition:
    id: str
    name: str
    description: str
    progress: float
    achieved: bool


@dataclass
class TurnResult:
    state: GameState
    action_results: List[ActionResult] = field(default_factory=list)
    insights: List[Insight] = field(default_factory=list)
    warnings: List[FailureWarning] = field(default_factory=list)
    risk_score: float = 0.0
    compounding_bonuses: List[CompoundingBonus] = field(default_factory=list)
    events: List[GameEvent] = field(default_factory=list)
    synergies: List[SynergyActivation] = field(default_factory=list)
    market_conditions: List[MarketConditionInstance] = field(default_factory=list)
    unlocked_actions: List[ActionType] = field(default_factory=list)
    milestones: List[MilestoneCompletion] = field(default_factory=list)
    milestone_event: Optional[MilestoneEvent] = None
    specialization_bonus: Optional[SpecializationBonus] = None
    victory_conditions: List[VictoryCondition] = field(default_factory=list)
    effects: List[Effect] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "ActionRecord",
    "ActiveChallenge",
    "ActionResult",
    "ActionType",
    "CompoundingBonus",
    "CompoundingState",
    "Competitor",
    "CustomerSegmentState",
    "Difficulty",
    "EFFECT_STATS",
    "Effect",
    "EscapeVelocityProgress",
    "EventChoiceView",
    "FailureWarning",
    "GameEvent",
    "GameState",
    "Insight",
    "MarketConditionInstance",
    "MilestoneCompletion",
    "MilestoneEvent",
    "PendingEvent",
    "RiskSeverity",
    "STAT_BOUNDS",
    "Severity",
    "SpecializationBonus",
    "SynergyActivation",
    "SynergyState",
    "ThreatLevel",
    "TurnResult",
    "VictoryCondition",
    "WeekSnapshot",
    "clamp",
]
