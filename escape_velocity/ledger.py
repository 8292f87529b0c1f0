"""Accumulate stat changes from several sources and apply them once."""
from __future__ import annotations

from typing import Dict, List

from .models import EFFECT_STATS, Effect, GameState


class StatLedger:
    """Sums deltas per stat so overlapping sources do not overwrite each other."""

    def __init__(self) -> None:
        self._deltas: Dict[str, float] = {}
        self._notes: Dict[str, List[str]] = {}

    def __bool__(self) -> bool:
        return bool(self._deltas)

    def add(self, stat: str, delta: float, description: str = "") -> None:
        if stat not in EFFECT_STATS:
            raise ValueError(f"Unknown stat: {stat}")
        self._deltas[stat] = self._deltas.get(stat, 0.0) + delta
        if description:
            self._notes.setdefault(stat, []).append(description)

    def scale(self, state: GameState, stat: str, fraction: float, description: str = "") -> None:
        """Record a change of ``fraction`` times the stat's current value."""

        self.add(stat, getattr(state, stat) * fraction, description)

    def merge(self, other: "StatLedger") -> None:
        for stat, delta in other._deltas.items():
            self.add(stat, delta)
            self._notes.setdefault(stat, []).extend(other._notes.get(stat, []))

    def deltas(self) -> Dict[str, float]:
        return dict(self._deltas)

    def apply(self, state: GameState) -> List[Effect]:
        effects = [
            state.apply_delta(stat, delta, "; ".join(self._notes.get(stat, [])))
            for stat, delta in self._deltas.items()
        ]
        self._deltas.clear()
        self._notes.clear()
        return effects


__all__ = ["StatLedger"]
