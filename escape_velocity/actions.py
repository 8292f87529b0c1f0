"""Player actions and their resolution against game state."""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Type, Union

from .config import Settings
from .errors import UnknownActionVariantError
from .models import ActionResult, ActionType, Effect, GameState
from .rng import RandomSource

logger = logging.getLogger(__name__)


class FeatureQuality(str, Enum):
    QUICK = "Quick"
    BALANCED = "Balanced"
    POLISH = "Polish"


class RefactorDepth(str, Enum):
    SURFACE = "Surface"
    MEDIUM = "Medium"
    DEEP = "Deep"


class ExperimentCategory(str, Enum):
    PRICING = "Pricing"
    ONBOARDING = "Onboarding"
    CHANNEL = "Channel"


class ContentType(str, Enum):
    BLOG_POST = "BlogPost"
    TUTORIAL = "Tutorial"
    CASE_STUDY = "CaseStudy"
    WHITEPAPER = "Whitepaper"


class DevRelEvent(str, Enum):
    CONFERENCE = "Conference"
    PODCAST = "Podcast"
    OPEN_SOURCE = "OpenSource"
    MEETUP = "Meetup"


class AdChannel(str, Enum):
    GOOGLE = "Google"
    SOCIAL = "Social"
    DISPLAY = "Display"
    INFLUENCER = "Influencer"


class CoachingFocus(str, Enum):
    SKILLS = "Skills"
    MORALE = "Morale"
    ALIGNMENT = "Alignment"
    PERFORMANCE = "Performance"


class FireReason(str, Enum):
    PERFORMANCE = "Performance"
    CULTURE = "Culture"
    BUDGET = "Budget"


@dataclass(frozen=True)
class ShipFeature:
    quality: FeatureQuality = FeatureQuality.BALANCED
    action_type: ClassVar[ActionType] = ActionType.SHIP_FEATURE
    focus_cost: ClassVar[int] = 1


@dataclass(frozen=True)
class FounderLedSales:
    call_count: int = 5
    action_type: ClassVar[ActionType] = ActionType.FOUNDER_LED_SALES
    focus_cost: ClassVar[int] = 1


@dataclass(frozen=True)
class Hire:
    action_type: ClassVar[ActionType] = ActionType.HIRE
    focus_cost: ClassVar[int] = 2


@dataclass(frozen=True)
class Fundraise:
    target: float = 250_000.0
    action_type: ClassVar[ActionType] = ActionType.FUNDRAISE
    focus_cost: ClassVar[int] = 2


@dataclass(frozen=True)
class RefactorCode:
    depth: RefactorDepth = RefactorDepth.MEDIUM
    action_type: ClassVar[ActionType] = ActionType.REFACTOR_CODE
    focus_cost: ClassVar[int] = 1


@dataclass(frozen=True)
class RunExperiment:
    category: ExperimentCategory = ExperimentCategory.PRICING
    action_type: ClassVar[ActionType] = ActionType.RUN_EXPERIMENT
    focus_cost: ClassVar[int] = 1


@dataclass(frozen=True)
class ContentLaunch:
    content_type: ContentType = ContentType.BLOG_POST
    action_type: ClassVar[ActionType] = ActionType.CONTENT_LAUNCH
    focus_cost: ClassVar[int] = 1


@dataclass(frozen=True)
class DevRel:
    event: DevRelEvent = DevRelEvent.CONFERENCE
    action_type: ClassVar[ActionType] = ActionType.DEV_REL
    focus_cost: ClassVar[int] = 2


@dataclass(frozen=True)
class PaidAds:
    budget: float = 5_000.0
    channel: AdChannel = AdChannel.GOOGLE
    action_type: ClassVar[ActionType] = ActionType.PAID_ADS
    focus_cost: ClassVar[int] = 2


@dataclass(frozen=True)
class Coach:
    focus: CoachingFocus = CoachingFocus.SKILLS
    action_type: ClassVar[ActionType] = ActionType.COACH
    focus_cost: ClassVar[int] = 1


@dataclass(frozen=True)
class Fire:
    reason: FireReason = FireReason.PERFORMANCE
    action_type: ClassVar[ActionType] = ActionType.FIRE
    focus_cost: ClassVar[int] = 1


@dataclass(frozen=True)
class ComplianceWork:
    hours: int = 4
    action_type: ClassVar[ActionType] = ActionType.COMPLIANCE_WORK
    focus_cost: ClassVar[int] = 2


@dataclass(frozen=True)
class IncidentResponse:
    action_type: ClassVar[ActionType] = ActionType.INCIDENT_RESPONSE
    focus_cost: ClassVar[int] = 1


@dataclass(frozen=True)
class ProcessImprovement:
    action_type: ClassVar[ActionType] = ActionType.PROCESS_IMPROVEMENT
    focus_cost: ClassVar[int] = 1


@dataclass(frozen=True)
class TakeBreak:
    action_type: ClassVar[ActionType] = ActionType.TAKE_BREAK
    focus_cost: ClassVar[int] = 1


Action = Union[
    ShipFeature,
    FounderLedSales,
    Hire,
    Fundraise,
    RefactorCode,
    RunExperiment,
    ContentLaunch,
    DevRel,
    PaidAds,
    Coach,
    Fire,
    ComplianceWork,
    IncidentResponse,
    ProcessImprovement,
    TakeBreak,
]

ACTION_CLASSES: Dict[ActionType, Type[Any]] = {
    cls.action_type: cls
    for cls in (
        ShipFeature,
        FounderLedSales,
        Hire,
        Fundraise,
        RefactorCode,
        RunExperiment,
        ContentLaunch,
        DevRel,
        PaidAds,
        Coach,
        Fire,
        ComplianceWork,
        IncidentResponse,
        ProcessImprovement,
        TakeBreak,
    )
}

_ACTION_INSTANCES = tuple(ACTION_CLASSES.values())


def parse_action(payload: Any) -> Action:
    """Build an action from an instance, a type name or a mapping.

    Mappings may be flat (``{"type": "PaidAds", "budget": 5000}``) or tagged
    (``{"PaidAds": {"budget": 5000}}``). Omitted parameters take defaults.
    """

    if isinstance(payload, _ACTION_INSTANCES):
        return payload
    if isinstance(payload, (str, ActionType)):
        return _build(payload, {})
    if isinstance(payload, Mapping):
        if "type" in payload:
            params = {key: value for key, value in payload.items() if key != "type"}
            return _build(payload["type"], params)
        if len(payload) == 1:
            (name, params), = payload.items()
            if params is None:
                params = {}
            if not isinstance(params, Mapping):
                raise UnknownActionVariantError(f"Parameters for {name!r} must be a mapping")
            return _build(name, params)
    raise UnknownActionVariantError(f"Cannot interpret action payload: {payload!r}")


def _build(name: Any, params: Mapping[str, Any]) -> Action:
    try:
        action_type = ActionType(name)
    except ValueError as exc:
        raise UnknownActionVariantError(f"Unknown action type: {name!r}") from exc
    cls = ACTION_CLASSES[action_type]
    known = {field.name: field for field in fields(cls)}
    unexpected = set(params) - set(known)
    if unexpected:
        raise UnknownActionVariantError(
            f"Unexpected parameters for {action_type.value}: {sorted(unexpected)}"
        )
    kwargs: Dict[str, Any] = {}
    for key, raw in params.items():
        default = getattr(cls, key)
        try:
            if isinstance(default, Enum):
                kwargs[key] = type(default)(raw)
            elif isinstance(default, int) and not isinstance(raw, bool):
                if isinstance(raw, float) and not raw.is_integer():
                    raise ValueError(raw)
                kwargs[key] = int(raw)
            elif isinstance(default, float) and not isinstance(raw, bool):
                kwargs[key] = float(raw)
            else:
                raise ValueError(raw)
        except (TypeError, ValueError) as exc:
            raise UnknownActionVariantError(
                f"Invalid value {raw!r} for {action_type.value}.{key}"
            ) from exc
    action = cls(**kwargs)
    _check_ranges(action)
    return action


def _check_ranges(action: Action) -> None:
    if isinstance(action, FounderLedSales) and action.call_count < 1:
        raise UnknownActionVariantError("FounderLedSales needs at least one call")
    if isinstance(action, Fundraise) and action.target <= 0:
        raise UnknownActionVariantError("Fundraise target must be positive")
    if isinstance(action, PaidAds) and action.budget <= 0:
        raise UnknownActionVariantError("PaidAds budget must be positive")
    if isinstance(action, ComplianceWork) and action.hours < 1:
        raise UnknownActionVariantError("ComplianceWork needs at least one hour")


def total_focus_cost(actions: List[Action]) -> int:
    return sum(action.focus_cost for action in actions)


_SHIP_FEATURE = {
    # quality: (wau %, tech debt, morale, jitter on each)
    FeatureQuality.QUICK: (3.0, 6.0, -1.0, (1.0, 1.0, 0.5)),
    FeatureQuality.BALANCED: (4.0, 2.0, 1.0, (0.5, 0.5, 0.5)),
    FeatureQuality.POLISH: (2.0, -3.0, 3.0, (0.5, 0.5, 0.5)),
}
_REFACTOR = {
    RefactorDepth.SURFACE: (10.0, 0.05, 2.0),
    RefactorDepth.MEDIUM: (20.0, 0.12, 5.0),
    RefactorDepth.DEEP: (35.0, 0.2, 10.0),
}
_CONTENT = {
    ContentType.BLOG_POST: (2.0, 2.0),
    ContentType.TUTORIAL: (4.0, 3.0),
    ContentType.CASE_STUDY: (3.0, 4.0),
    ContentType.WHITEPAPER: (5.0, 5.0),
}
_DEVREL_REPUTATION = {
    DevRelEvent.CONFERENCE: 12.0,
    DevRelEvent.PODCAST: 8.0,
    DevRelEvent.OPEN_SOURCE: 6.0,
    DevRelEvent.MEETUP: 10.0,
}
_AD_EFFICIENCY = {
    AdChannel.GOOGLE: 0.8,
    AdChannel.SOCIAL: 1.0,
    AdChannel.DISPLAY: 0.6,
    AdChannel.INFLUENCER: 1.2,
}
_COACHING = {
    CoachingFocus.SKILLS: (0.08, 2.0),
    CoachingFocus.MORALE: (0.02, 8.0),
    CoachingFocus.ALIGNMENT: (0.05, 4.0),
    CoachingFocus.PERFORMANCE: (0.1, 3.0),
}
_FIRING = {
    FireReason.PERFORMANCE: (-8.0, -0.05),
    FireReason.CULTURE: (-12.0, -0.08),
    FireReason.BUDGET: (-5.0, -0.02),
}

EXPERIMENT_SUCCESS_RATE = 0.6
HIRE_BURN = 10_000.0
FIRE_BURN_SAVING = 8_000.0
AVERAGE_DEAL = 500.0


class ActionResolver:
    """Applies one chosen action to the state with bounded randomness."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._handlers: Dict[ActionType, Callable[[GameState, Any, RandomSource], ActionResult]] = {
            ActionType.SHIP_FEATURE: self._ship_feature,
            ActionType.FOUNDER_LED_SALES: self._founder_led_sales,
            ActionType.HIRE: self._hire,
            ActionType.FUNDRAISE: self._fundraise,
            ActionType.REFACTOR_CODE: self._refactor_code,
            ActionType.RUN_EXPERIMENT: self._run_experiment,
            ActionType.CONTENT_LAUNCH: self._content_launch,
            ActionType.DEV_REL: self._dev_rel,
            ActionType.PAID_ADS: self._paid_ads,
            ActionType.COACH: self._coach,
            ActionType.FIRE: self._fire,
            ActionType.COMPLIANCE_WORK: self._compliance_work,
            ActionType.INCIDENT_RESPONSE: self._incident_response,
            ActionType.PROCESS_IMPROVEMENT: self._process_improvement,
            ActionType.TAKE_BREAK: self._take_break,
        }

    def resolve(self, state: GameState, action: Action, rng: RandomSource) -> ActionResult:
        result = self._handlers[action.action_type](state, action, rng)
        logger.debug(
            "Week %s %s -> success=%s (%d effects)",
            state.week,
            action.action_type.value,
            result.success,
            len(result.effects),
        )
        return result

    def fundraise_probability(self, state: GameState) -> float:
        base = 0.3 + state.reputation / 200.0 + state.momentum / 100.0
        probability = base * state.market_funding_multiplier
        return max(0.0, min(self._settings.fundraise_max_probability, probability))

    def _ship_feature(self, state: GameState, action: ShipFeature, rng: RandomSource) -> ActionResult:
        wau_pct, debt, morale, (wau_j, debt_j, morale_j) = _SHIP_FEATURE[action.quality]
        wau_pct = (wau_pct + rng.uniform(-wau_j, wau_j)) * state.challenge_multiplier("ship_wau")
        debt += rng.uniform(-debt_j, debt_j)
        morale += rng.uniform(-morale_j, morale_j)
        effects = [
            state.apply_delta("wau", state.wau * wau_pct / 100.0, "Feature adoption"),
            state.apply_delta("tech_debt", debt, "Shipping trade-offs"),
            state.apply_delta("morale", morale, "Shipping"),
        ]
        # Full recompute so repeated releases cannot compound velocity.
        effects.append(
            state.apply_delta(
                "velocity", (1.0 - state.tech_debt / 200.0) - state.velocity, "Codebase health"
            )
        )
        return ActionResult(
            action.action_type.value,
            True,
            f"Shipped a {action.quality.value.lower()} feature",
            effects,
        )

    def _founder_led_sales(
        self, state: GameState, action: FounderLedSales, rng: RandomSource
    ) -> ActionResult:
        conversion = 0.05 + state.reputation / 200.0
        deals = 0
        new_mrr = 0.0
        for _ in range(action.call_count):
            if rng.random() < conversion:
                deals += 1
                new_mrr += AVERAGE_DEAL * rng.uniform(0.8, 1.2)
        effects: List[Effect] = []
        if new_mrr:
            effects.append(state.apply_delta("mrr", new_mrr, f"{deals} deals closed"))
        effects.append(state.apply_delta("morale", -0.5 * action.call_count, "Sales grind"))
        effects.append(state.apply_delta("reputation", 1.0, "Founder visibility"))
        message = (
            f"Closed {deals} of {action.call_count} sales calls"
            if deals
            else f"No deals from {action.call_count} sales calls"
        )
        return ActionResult(action.action_type.value, deals > 0, message, effects)

    def _hire(self, state: GameState, action: Hire, rng: RandomSource) -> ActionResult:
        burn = HIRE_BURN * state.challenge_multiplier("hire_burn")
        effects = [
            state.apply_delta("burn", burn, "New salary"),
            state.apply_delta("velocity", 0.1, "Extra capacity"),
            state.apply_delta("morale", 5.0, "Team growing"),
        ]
        state.team_size += 1
        return ActionResult(action.action_type.value, True, "Hired a new team member", effects)

    def _fundraise(self, state: GameState, action: Fundraise, rng: RandomSource) -> ActionResult:
        probability = self.fundraise_probability(state)
        if rng.random() < probability:
            dilution = (
                action.target
                * self._settings.fundraise_dilution_percent
                / self._settings.fundraise_dilution_reference
            ) * state.challenge_multiplier("fundraise_dilution")
            effects = [
                state.apply_delta("bank", action.target, "Round closed"),
                state.apply_delta("founder_equity", -dilution, "Dilution"),
            ]
            return ActionResult(
                action.action_type.value, True, f"Raised ${action.target:,.0f}", effects
            )
        effects = [state.apply_delta("morale", -10.0, "Investor rejections")]
        return ActionResult(
            action.action_type.value, False, "Fundraise failed: investors passed", effects
        )

    def _refactor_code(self, state: GameState, action: RefactorCode, rng: RandomSource) -> ActionResult:
        reduction, velocity_gain, morale_cost = _REFACTOR[action.depth]
        if state.tech_debt > 50:
            reduction *= 1.2
        reduction *= rng.uniform(0.8, 1.2)
        velocity_gain *= rng.uniform(0.9, 1.1)
        morale_cost *= rng.uniform(0.9, 1.1)
        effects = [
            state.apply_delta("tech_debt", -reduction, "Refactoring"),
            state.apply_delta("velocity", velocity_gain, "Cleaner code"),
            state.apply_delta("morale", -morale_cost, "Refactoring slog"),
        ]
        return ActionResult(
            action.action_type.value,
            True,
            f"{action.depth.value} refactor reduced tech debt by {reduction:.1f}",
            effects,
        )

    def _run_experiment(self, state: GameState, action: RunExperiment, rng: RandomSource) -> ActionResult:
        if rng.random() >= EXPERIMENT_SUCCESS_RATE:
            effects = [state.apply_delta("morale", -2.0, "Failed experiment")]
            return ActionResult(
                action.action_type.value,
                False,
                "Experiment failed - learned what not to do",
                effects,
            )
        jitter = rng.uniform(0.8, 1.2)
        if action.category is ExperimentCategory.PRICING:
            effects = [state.apply_delta("mrr", state.mrr * 0.05 * jitter, "Pricing tier")]
            message = "Found optimal pricing tier"
        elif action.category is ExperimentCategory.ONBOARDING:
            effects = [
                state.apply_delta("wau", state.wau * 0.03 * jitter, "Smoother onboarding"),
                state.apply_delta("churn_rate", -0.05 * state.churn_rate, "Better activation"),
            ]
            message = "Streamlined onboarding"
        else:
            effects = [state.apply_delta("reputation", 5.0 * jitter, "New channel")]
            message = "Discovered high-converting channel"
        return ActionResult(action.action_type.value, True, message, effects)

    def _content_launch(self, state: GameState, action: ContentLaunch, rng: RandomSource) -> ActionResult:
        wau_pct, reputation = _CONTENT[action.content_type]
        wau_pct *= (0.8 + state.reputation / 100.0) * rng.uniform(0.8, 1.2)
        reputation *= rng.uniform(0.9, 1.1)
        effects = [
            state.apply_delta("wau", state.wau * wau_pct / 100.0, "Content reach"),
            state.apply_delta("reputation", reputation, "Thought leadership"),
        ]
        return ActionResult(
            action.action_type.value,
            True,
            f"Launched {action.content_type.value} content",
            effects,
        )

    def _dev_rel(self, state: GameState, action: DevRel, rng: RandomSource) -> ActionResult:
        reputation = _DEVREL_REPUTATION[action.event] * rng.uniform(0.9, 1.1)
        wau_pct = reputation * 0.5 * rng.uniform(0.8, 1.2)
        morale = 5.0 * rng.uniform(0.9, 1.1)
        effects = [
            state.apply_delta("reputation", reputation, "Developer community"),
            state.apply_delta("wau", state.wau * wau_pct / 100.0, "Developer signups"),
            state.apply_delta("morale", morale, "Team on stage"),
        ]
        return ActionResult(
            action.action_type.value, True, f"Participated in a {action.event.value} event", effects
        )

    def _paid_ads(self, state: GameState, action: PaidAds, rng: RandomSource) -> ActionResult:
        efficiency = _AD_EFFICIENCY[action.channel] * rng.uniform(0.8, 1.2)
        wau_pct = efficiency * action.budget / 10_000.0
        effects = [
            state.apply_delta("wau", state.wau * wau_pct / 100.0, "Paid acquisition"),
            state.apply_delta("bank", -action.budget, "Ad spend"),
        ]
        return ActionResult(
            action.action_type.value,
            True,
            f"Ran {action.channel.value} ads with ${action.budget:,.0f}",
            effects,
        )

    def _coach(self, state: GameState, action: Coach, rng: RandomSource) -> ActionResult:
        velocity, morale = _COACHING[action.focus]
        effects = [
            state.apply_delta("velocity", velocity * rng.uniform(0.9, 1.1), "Coaching"),
            state.apply_delta("morale", morale * rng.uniform(0.9, 1.1), "Coaching"),
        ]
        return ActionResult(
            action.action_type.value, True, f"Coached the team on {action.focus.value.lower()}", effects
        )

    def _fire(self, state: GameState, action: Fire, rng: RandomSource) -> ActionResult:
        morale, velocity = _FIRING[action.reason]
        saving = FIRE_BURN_SAVING * rng.uniform(0.8, 1.2)
        effects = [
            state.apply_delta("burn", -saving, "Salary saved"),
            state.apply_delta("morale", morale, "Team shaken"),
            state.apply_delta("velocity", velocity, "Lost capacity"),
        ]
        state.team_size = max(1, state.team_size - 1)
        return ActionResult(
            action.action_type.value,
            True,
            f"Let a team member go ({action.reason.value.lower()})",
            effects,
        )

    def _compliance_work(self, state: GameState, action: ComplianceWork, rng: RandomSource) -> ActionResult:
        effects = [
            state.apply_delta(
                "compliance_risk", -action.hours * 2.0 * rng.uniform(0.9, 1.1), "Compliance work"
            ),
            state.apply_delta("morale", -action.hours * 0.3 * rng.uniform(0.9, 1.1), "Paperwork"),
        ]
        return ActionResult(
            action.action_type.value,
            True,
            f"Spent {action.hours} hours on compliance",
            effects,
        )

    def _incident_response(
        self, state: GameState, action: IncidentResponse, rng: RandomSource
    ) -> ActionResult:
        effects = [
            state.apply_delta("reputation", -5.0 * rng.uniform(0.8, 1.2), "Public incident"),
            state.apply_delta("morale", -15.0 * rng.uniform(0.9, 1.1), "Firefighting"),
            state.apply_delta("tech_debt", -5.0, "Post-mortem fixes"),
        ]
        state.incident_count = max(0, state.incident_count - 1)
        return ActionResult(action.action_type.value, True, "Responded to the incident", effects)

    def _process_improvement(
        self, state: GameState, action: ProcessImprovement, rng: RandomSource
    ) -> ActionResult:
        effects = [
            state.apply_delta("velocity", 0.08 * rng.uniform(0.9, 1.1), "Better process"),
            state.apply_delta("morale", 3.0 * rng.uniform(0.9, 1.1), "Less friction"),
        ]
        return ActionResult(action.action_type.value, True, "Improved team processes", effects)

    def _take_break(self, state: GameState, action: TakeBreak, rng: RandomSource) -> ActionResult:
        effects = [
            state.apply_delta("morale", 15.0, "Rest"),
            state.apply_delta("wau_growth_rate", -2.0, "Slower week"),
        ]
        return ActionResult(action.action_type.value, True, "Took a week to recharge", effects)


__all__ = [
    "ACTION_CLASSES",
    "Action",
    "ActionResolver",
    "AdChannel",
    "Coach",
    "CoachingFocus",
    "ComplianceWork",
    "ContentLaunch",
    "ContentType",
    "DevRel",
    "DevRelEvent",
    "ExperimentCategory",
    "FeatureQuality",
    "Fire",
    "FireReason",
    "FounderLedSales",
    "Fundraise",
    "Hire",
    "IncidentResponse",
    "PaidAds",
    "ProcessImprovement",
    "RefactorCode",
    "RefactorDepth",
    "RunExperiment",
    "ShipFeature",
    "TakeBreak",
    "parse_action",
    "total_focus_cost",
]
