"""Static rule catalogs loaded from the bundled YAML data files.

Catalog records are immutable and shared by every game in the process.
Per-game progress (active flags, ages, cooldowns) is stored on
:class:`~escape_velocity.models.GameState`, keyed by the catalog id.
"""
from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

import yaml

from .ledger import StatLedger
from .models import EFFECT_STATS, ActionType, GameState

logger = logging.getLogger(__name__)

_DATA_PATH = Path(__file__).parent / "data"

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}


def _load_yaml_resource(filename: str, data_path: Path = _DATA_PATH) -> Dict[str, Any]:
    path = data_path / filename
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


@dataclass(frozen=True)
class Condition:
    """``stat op value`` where ``value`` is a number or another stat name."""

    stat: str
    op: str
    value: Any

    @classmethod
    def parse(cls, raw: Sequence[Any]) -> "Condition":
        stat, op, value = raw
        if op not in _OPERATORS:
            raise ValueError(f"Unsupported operator {op!r} in condition {raw!r}")
        return cls(str(stat), op, value)

    def holds(self, state: GameState) -> bool:
        left = getattr(state, self.stat)
        right = getattr(state, self.value) if isinstance(self.value, str) else self.value
        return _OPERATORS[self.op](left, right)


def conditions_hold(conditions: Sequence[Condition], state: GameState) -> bool:
    return all(condition.holds(state) for condition in conditions)


def _parse_conditions(raw: Optional[Sequence[Sequence[Any]]]) -> Tuple[Condition, ...]:
    return tuple(Condition.parse(entry) for entry in raw or [])


@dataclass(frozen=True)
class StatChange:
    """A fixed delta, or a change proportional to the stat's current value."""

    stat: str
    delta: float = 0.0
    fraction: float = 0.0
    description: str = ""

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> "StatChange":
        stat = raw["stat"]
        if stat not in EFFECT_STATS:
            raise ValueError(f"Unknown stat {stat!r} in catalog effect")
        return cls(
            stat=stat,
            delta=float(raw.get("delta", 0.0)),
            fraction=float(raw.get("fraction", 0.0)),
            description=str(raw.get("description", "")),
        )

    def record(self, ledger: StatLedger, state: GameState, factor: float = 1.0) -> None:
        if self.fraction:
            ledger.scale(state, self.stat, self.fraction * factor, self.description)
        if self.delta:
            ledger.add(self.stat, self.delta * factor, self.description)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "stat": self.stat,
            "delta": self.delta,
            "fraction": self.fraction,
            "description": self.description,
        }


def _parse_changes(raw: Optional[Sequence[Mapping[str, Any]]]) -> Tuple[StatChange, ...]:
    return tuple(StatChange.parse(entry) for entry in raw or [])


@dataclass(frozen=True)
class SynergyDefinition:
    id: str
    name: str
    description: str
    triggers: Tuple[ActionType, ...]
    required_count: int
    time_window_weeks: int
    magnitude: float
    effects: Tuple[StatChange, ...]


@dataclass(frozen=True)
class CompoundingDefinition:
    id: str
    name: str
    description: str
    category: str
    conditions: Tuple[Condition, ...]
    duration_weeks: int
    magnitude: float
    effects: Tuple[StatChange, ...]

    @property
    def permanent(self) -> bool:
        return self.duration_weeks < 0


@dataclass(frozen=True)
class MarketArchetype:
    id: str
    name: str
    category: str
    description: str
    probability: float
    conditions: Tuple[Condition, ...]
    intensity: Tuple[float, float]
    duration: Tuple[int, int]
    growth_multiplier: float = 1.0
    churn_multiplier: float = 1.0
    funding_multiplier: float = 1.0
    reputation_drift: float = 0.0
    morale_drift: float = 0.0
    # "low" or "high" half of the two-year economic cycle
    cycle_phase: Optional[str] = None
    # intensity tracks this stat plus a random spread when set
    intensity_stat: Optional[str] = None


@dataclass(frozen=True)
class EventChoice:
    id: str
    text: str
    description: str
    effects: Tuple[StatChange, ...]


@dataclass(frozen=True)
class EventDefinition:
    id: str
    title: str
    description: str
    category: str
    probability: float
    conditions: Tuple[Condition, ...]
    choices: Tuple[EventChoice, ...]
    effects: Tuple[StatChange, ...]
    cooldown_weeks: int

    @property
    def automatic(self) -> bool:
        return not self.choices


@dataclass(frozen=True)
class MilestoneDefinition:
    id: str
    name: str
    description: str
    category: str
    conditions: Tuple[Condition, ...]
    reward: str
    reward_value: float
    difficulty: Optional[str] = None


@dataclass(frozen=True)
class UnlockRule:
    action: ActionType
    conditions: Tuple[Condition, ...]


@dataclass(frozen=True)
class ScheduledEvent:
    week: int
    title: str
    description: str
    effects: Tuple[StatChange, ...]


@dataclass(frozen=True)
class SeasonalChallenge:
    week: int
    name: str
    description: str
    target: str
    multiplier: float


@dataclass(frozen=True)
class SpecializationDefinition:
    path: str
    category: str
    description: str
    effects: Tuple[StatChange, ...]


@dataclass(frozen=True)
class SegmentDefinition:
    id: str
    name: str
    size: int
    conversion_rate: float
    lifetime_value: float
    churn_rate: float
    satisfaction: float


@dataclass(frozen=True)
class Catalog:
    """Every static rule table the engine consults."""

    synergies: Tuple[SynergyDefinition, ...]
    compounding: Tuple[CompoundingDefinition, ...]
    market_archetypes: Tuple[MarketArchetype, ...]
    events: Tuple[EventDefinition, ...]
    milestones: Tuple[MilestoneDefinition, ...]
    unlocks: Tuple[UnlockRule, ...]
    milestone_events: Tuple[ScheduledEvent, ...]
    seasonal_challenges: Tuple[SeasonalChallenge, ...]
    specializations: Tuple[SpecializationDefinition, ...]
    segments: Tuple[SegmentDefinition, ...]
    competitor_names: Tuple[str, ...]

    def event(self, event_id: str) -> Optional[EventDefinition]:
        for entry in self.events:
            if entry.id == event_id:
                return entry
        return None

    @classmethod
    def load(cls, data_path: Path = _DATA_PATH) -> "Catalog":
        synergies = _load_yaml_resource("synergies.yaml", data_path).get("synergies", [])
        compounding = _load_yaml_resource("compounding.yaml", data_path).get("compounding_effects", [])
        market = _load_yaml_resource("market_conditions.yaml", data_path).get("archetypes", [])
        events = _load_yaml_resource("events.yaml", data_path).get("events", [])
        progression = _load_yaml_resource("progression.yaml", data_path)
        market_data = _load_yaml_resource("market.yaml", data_path)
        catalog = cls(
            synergies=tuple(_parse_synergy(entry) for entry in synergies),
            compounding=tuple(_parse_compounding(entry) for entry in compounding),
            market_archetypes=tuple(_parse_archetype(entry) for entry in market),
            events=tuple(_parse_event(entry) for entry in events),
            milestones=tuple(_parse_milestone(entry) for entry in progression.get("milestones", [])),
            unlocks=tuple(
                UnlockRule(ActionType(entry["action"]), _parse_conditions(entry.get("when")))
                for entry in progression.get("unlocks", [])
            ),
            milestone_events=tuple(
                ScheduledEvent(
                    week=int(entry["week"]),
                    title=entry["title"],
                    description=entry.get("description", ""),
                    effects=_parse_changes(entry.get("effects")),
                )
                for entry in progression.get("milestone_events", [])
            ),
            seasonal_challenges=tuple(
                SeasonalChallenge(
                    week=int(entry["week"]),
                    name=entry["name"],
                    description=entry.get("description", ""),
                    target=entry["target"],
                    multiplier=float(entry.get("multiplier", 1.0)),
                )
                for entry in progression.get("seasonal_challenges", [])
            ),
            specializations=tuple(
                SpecializationDefinition(
                    path=entry["path"],
                    category=entry["category"],
                    description=entry.get("description", ""),
                    effects=_parse_changes(entry.get("effects")),
                )
                for entry in progression.get("specializations", [])
            ),
            segments=tuple(
                SegmentDefinition(
                    id=entry["id"],
                    name=entry["name"],
                    size=int(entry["size"]),
                    conversion_rate=float(entry["conversion_rate"]),
                    lifetime_value=float(entry["lifetime_value"]),
                    churn_rate=float(entry["churn_rate"]),
                    satisfaction=float(entry["satisfaction"]),
                )
                for entry in market_data.get("customer_segments", [])
            ),
            competitor_names=tuple(market_data.get("competitor_names", [])),
        )
        logger.debug(
            "Loaded catalog: %d synergies, %d compounding effects, %d events, %d milestones",
            len(catalog.synergies),
            len(catalog.compounding),
            len(catalog.events),
            len(catalog.milestones),
        )
        return catalog


def _parse_synergy(entry: Mapping[str, Any]) -> SynergyDefinition:
    return SynergyDefinition(
        id=entry["id"],
        name=entry["name"],
        description=entry.get("description", ""),
        triggers=tuple(ActionType(value) for value in entry["triggers"]),
        required_count=int(entry["required_count"]),
        time_window_weeks=int(entry["time_window_weeks"]),
        magnitude=float(entry.get("magnitude", 0)),
        effects=_parse_changes(entry.get("effects")),
    )


def _parse_compounding(entry: Mapping[str, Any]) -> CompoundingDefinition:
    return CompoundingDefinition(
        id=entry["id"],
        name=entry["name"],
        description=entry.get("description", ""),
        category=entry["category"],
        conditions=_parse_conditions(entry.get("when")),
        duration_weeks=int(entry.get("duration_weeks", -1)),
        magnitude=float(entry.get("magnitude", 0)),
        effects=_parse_changes(entry.get("effects")),
    )


def _parse_archetype(entry: Mapping[str, Any]) -> MarketArchetype:
    modifiers = entry.get("modifiers", {})
    return MarketArchetype(
        id=entry["id"],
        name=entry["name"],
        category=entry["category"],
        description=entry.get("description", ""),
        probability=float(entry["probability"]),
        conditions=_parse_conditions(entry.get("when")),
        intensity=tuple(float(v) for v in entry["intensity"]),
        duration=tuple(int(v) for v in entry["duration_weeks"]),
        growth_multiplier=float(modifiers.get("growth", 1.0)),
        churn_multiplier=float(modifiers.get("churn", 1.0)),
        funding_multiplier=float(modifiers.get("funding", 1.0)),
        reputation_drift=float(modifiers.get("reputation", 0.0)),
        morale_drift=float(modifiers.get("morale", 0.0)),
        cycle_phase=entry.get("cycle_phase"),
        intensity_stat=entry.get("intensity_stat"),
    )


def _parse_event(entry: Mapping[str, Any]) -> EventDefinition:
    choices = tuple(
        EventChoice(
            id=choice["id"],
            text=choice["text"],
            description=choice.get("description", ""),
            effects=_parse_changes(choice.get("effects")),
        )
        for choice in entry.get("choices", [])
    )
    return EventDefinition(
        id=entry["id"],
        title=entry["title"],
        description=entry.get("description", ""),
        category=entry["category"],
        probability=float(entry["probability"]),
        conditions=_parse_conditions(entry.get("when")),
        choices=choices,
        effects=_parse_changes(entry.get("effects")),
        cooldown_weeks=int(entry.get("cooldown_weeks", 0)),
    )


def _parse_milestone(entry: Mapping[str, Any]) -> MilestoneDefinition:
    reward = entry["reward"]
    return MilestoneDefinition(
        id=entry["id"],
        name=entry["name"],
        description=entry.get("description", ""),
        category=entry["category"],
        conditions=_parse_conditions(entry.get("when")),
        reward=reward["kind"],
        reward_value=float(reward.get("value", 0)),
        difficulty=entry.get("difficulty"),
    )


_CATALOG: Optional[Catalog] = None


def get_catalog() -> Catalog:
    """Process-wide catalog, loaded on first use."""

    global _CATALOG
    if _CATALOG is None:
        _CATALOG = Catalog.load()
    return _CATALOG


__all__ = [
    "Catalog",
    "CompoundingDefinition",
    "Condition",
    "EventChoice",
    "EventDefinition",
    "MarketArchetype",
    "MilestoneDefinition",
    "ScheduledEvent",
    "SeasonalChallenge",
    "SegmentDefinition",
    "SpecializationDefinition",
    "StatChange",
    "SynergyDefinition",
    "UnlockRule",
    "conditions_hold",
    "get_catalog",
]
