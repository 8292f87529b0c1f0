"""Configuration loading utilities for Escape Velocity."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml


DEFAULT_SETTINGS_PATH = Path(__file__).parent / "data" / "settings.yaml"


@dataclass(frozen=True)
class DifficultyPreset:
    """Starting conditions for one difficulty mode."""

    bank: float
    burn: float
    compliance_risk: float
    ipo_deadline_weeks: int


@dataclass(frozen=True)
class Settings:
    """Typed view over the settings YAML file."""

    focus_slots: int
    history_limit: int
    action_history_weeks: int
    victory_streak_weeks: int
    morale_decay: float
    tech_debt_creep: float
    tech_debt_creep_velocity: float
    nps_drift_rate: float
    churn_drift_rate: float
    incident_tech_debt: float
    incident_chance: float
    fundraise_dilution_reference: float
    fundraise_dilution_percent: float
    fundraise_max_probability: float
    starting_stats: Dict[str, float]
    starting_actions: list[str]
    starting_competitors: list[Dict[str, Any]]
    difficulties: Dict[str, DifficultyPreset]

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Settings":
        turn = data.get("turn", {})
        passive = data.get("passive", {})
        fundraise = data.get("fundraise", {})
        difficulties = {
            name: DifficultyPreset(
                bank=float(entry["bank"]),
                burn=float(entry["burn"]),
                compliance_risk=float(entry["compliance_risk"]),
                ipo_deadline_weeks=int(entry.get("ipo_deadline_weeks", 104)),
            )
            for name, entry in data["difficulties"].items()
        }
        return Settings(
            focus_slots=int(turn.get("focus_slots", 3)),
            history_limit=int(turn.get("history_limit", 52)),
            action_history_weeks=int(turn.get("action_history_weeks", 12)),
            victory_streak_weeks=int(turn.get("victory_streak_weeks", 12)),
            morale_decay=float(passive.get("morale_decay", 0.5)),
            tech_debt_creep=float(passive.get("tech_debt_creep", 0.5)),
            tech_debt_creep_velocity=float(passive.get("tech_debt_creep_velocity", 1.2)),
            nps_drift_rate=float(passive.get("nps_drift_rate", 0.1)),
            churn_drift_rate=float(passive.get("churn_drift_rate", 0.1)),
            incident_tech_debt=float(passive.get("incident_tech_debt", 80)),
            incident_chance=float(passive.get("incident_chance", 0.1)),
            fundraise_dilution_reference=float(fundraise.get("dilution_reference", 5_000_000)),
            fundraise_dilution_percent=float(fundraise.get("dilution_percent", 20)),
            fundraise_max_probability=float(fundraise.get("max_probability", 0.8)),
            starting_stats={k: float(v) for k, v in data.get("starting_stats", {}).items()},
            starting_actions=list(data.get("starting_actions", [])),
            starting_competitors=[dict(entry) for entry in data.get("starting_competitors", [])],
            difficulties=difficulties,
        )

    def preset(self, difficulty: str) -> DifficultyPreset:
        return self.difficulties[str(difficulty)]


class SettingsLoader:
    """Loads and caches settings from YAML configuration files."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_SETTINGS_PATH
        self._cache: Settings | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self, force: bool = False) -> Settings:
        if self._cache is not None and not force:
            return self._cache
        with self._path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
        self._cache = Settings.from_dict(data)
        return self._cache


_DEFAULT_LOADER = SettingsLoader()


def get_settings() -> Settings:
    """Convenience accessor for default settings."""

    return _DEFAULT_LOADER.load()


__all__ = ["DifficultyPreset", "Settings", "SettingsLoader", "get_settings"]
