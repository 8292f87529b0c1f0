"""Typed failures raised before a turn mutates any state."""
from __future__ import annotations


class EngineError(RuntimeError):
    """Base class for rejected engine calls."""


class InsufficientFocusError(EngineError):
    """Raised when the chosen actions cost more focus than is available."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(f"Actions need {required} focus slots but only {available} are available")
        self.required = required
        self.available = available


class ActionNotUnlockedError(EngineError):
    """Raised when an action type has not been unlocked yet."""

    def __init__(self, action_type: str) -> None:
        super().__init__(f"Action {action_type} is not unlocked")
        self.action_type = action_type


class UnknownActionVariantError(EngineError):
    """Raised when an action payload does not describe a known variant."""


class InvalidEventChoiceError(EngineError):
    """Raised when an event id or choice index does not match the pending event."""


class GameOverError(EngineError):
    """Raised when a turn is submitted for a game that has already ended."""


__all__ = [
    "ActionNotUnlockedError",
    "EngineError",
    "GameOverError",
    "InsufficientFocusError",
    "InvalidEventChoiceError",
    "UnknownActionVariantError",
]
