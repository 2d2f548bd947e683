"""Gesture-driven chapter navigation."""

from .state_machine import (
    ChapterNavigator,
    GestureEvent,
    GestureThresholds,
    NavigationPhase,
    NavigationState,
    release,
    select_chapter,
    step,
)

__all__ = [
    "ChapterNavigator",
    "GestureEvent",
    "GestureThresholds",
    "NavigationPhase",
    "NavigationState",
    "release",
    "select_chapter",
    "step",
]
