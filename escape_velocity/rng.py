"""Deterministic random utilities."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Protocol, Sequence, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    """Methods the engine draws randomness through."""

    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...

    def randint(self, a: int, b: int) -> int: ...

    def choice(self, seq: Sequence[T]) -> T: ...


@dataclass
class SeedSequence:
    """Deterministic seed sequence built from a game seed and counter."""

    game_seed: int
    counter: int = 0

    def spawn(self, index: int | None = None) -> "SeedSequence":
        if index is None:
            index = self.counter
            self.counter += 1
        return SeedSequence((self.game_seed ^ (index * 0x9E3779B9)) & 0xFFFFFFFF, 0)

    def rng(self) -> "DeterministicRNG":
        return DeterministicRNG(self.game_seed ^ (self.counter * 0x9E3779B9))


class DeterministicRNG:
    """Wraps :mod:`random` with deterministic replay support."""

    def __init__(self, seed: int) -> None:
        self._seed = seed & 0xFFFFFFFF
        # nosec B311 - deterministic pseudo-RNG acceptable for game mechanics
        self._random = random.Random(self._seed)

    @property
    def seed(self) -> int:
        return self._seed

    def random(self) -> float:
        return self._random.random()

    def choice(self, seq):
        return self._random.choice(seq)

    def randint(self, a: int, b: int) -> int:
        return self._random.randint(a, b)

    def uniform(self, a: float, b: float) -> float:
        return self._random.uniform(a, b)


def entropy_seed() -> int:
    """Seed drawn from the operating system for production games."""

    return random.SystemRandom().randrange(0, 2**32)


def turn_rng(game_seed: int, week: int) -> DeterministicRNG:
    """Generator for the turn that advances ``week``."""

    return SeedSequence(game_seed).spawn(week).rng()


__all__ = ["DeterministicRNG", "RandomSource", "SeedSequence", "entropy_seed", "turn_rng"]
