"""Shared fixtures for engine tests."""
from __future__ import annotations

import pytest

from escape_velocity.config import get_settings
from escape_velocity.service import GameService


class FixedRNG:
    """Random source that always returns the same draw.

    ``random`` returns ``value``; ranged draws return the midpoint or the
    lower bound so results can be computed by hand.
    """

    def __init__(self, value: float = 0.0) -> None:
        self.value = value

    def random(self) -> float:
        return self.value

    def uniform(self, a: float, b: float) -> float:
        return (a + b) / 2.0

    def randint(self, a: int, b: int) -> int:
        return a

    def choice(self, seq):
        return seq[0]


@pytest.fixture
def fixed_rng():
    return FixedRNG


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def service() -> GameService:
    return GameService()


@pytest.fixture
def indie_state(service):
    return service.new_game("IndieBootstrap", seed=1234)
