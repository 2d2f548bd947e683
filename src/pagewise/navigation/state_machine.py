"""Swipe-driven chapter navigation.

``step`` is a pure function over an immutable ``NavigationState`` so the
transition rule can be exercised without a gesture runtime. A gesture may
change the chapter at most once: after a transition the state stays locked
until the pointer lands further than ``new_gesture_distance`` from the
recorded origin, or the gesture is released.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from pagewise.config import DEFAULT_NEW_GESTURE_DISTANCE, DEFAULT_SWIPE_DISTANCE, DEFAULT_SWIPE_VELOCITY, ReaderSettings


class NavigationPhase(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"


@dataclass(frozen=True, slots=True)
class GestureThresholds:
    velocity: float = DEFAULT_SWIPE_VELOCITY
    translation: float = DEFAULT_SWIPE_DISTANCE
    new_gesture_distance: float = DEFAULT_NEW_GESTURE_DISTANCE

    @classmethod
    def from_settings(cls, settings: ReaderSettings) -> "GestureThresholds":
        return cls(
            velocity=settings.swipe_velocity,
            translation=settings.swipe_distance,
            new_gesture_distance=settings.new_gesture_distance,
        )


@dataclass(frozen=True, slots=True)
class GestureEvent:
    velocity_x: float
    velocity_y: float
    translation_x: float
    absolute_x: float


@dataclass(frozen=True, slots=True)
class NavigationState:
    chapter_index: int = 0
    gesture_origin_x: float | None = None
    chapter_locked: bool = False

    @property
    def phase(self) -> NavigationPhase:
        if self.gesture_origin_x is not None and not self.chapter_locked:
            return NavigationPhase.TRACKING
        return NavigationPhase.IDLE


@dataclass(frozen=True, slots=True)
class NavigationStep:
    state: NavigationState
    previous_index: int

    @property
    def changed(self) -> bool:
        return self.state.chapter_index != self.previous_index


def step(
    state: NavigationState,
    event: GestureEvent,
    chapter_count: int,
    thresholds: GestureThresholds = GestureThresholds(),
) -> NavigationStep:
    """Apply one gesture update and return the next state."""

    if abs(event.velocity_y) > abs(event.velocity_x):
        return NavigationStep(state=state, previous_index=state.chapter_index)

    if (
        state.gesture_origin_x is None
        or abs(event.absolute_x - state.gesture_origin_x) > thresholds.new_gesture_distance
    ):
        state = replace(state, gesture_origin_x=event.absolute_x, chapter_locked=False)

    previous = state.chapter_index
    if state.chapter_locked:
        return NavigationStep(state=state, previous_index=previous)

    meets_threshold = (
        abs(event.velocity_x) > thresholds.velocity and abs(event.translation_x) > thresholds.translation
    )
    if not meets_threshold:
        return NavigationStep(state=state, previous_index=previous)

    if event.translation_x > 0 and previous > 0:
        state = replace(state, chapter_index=previous - 1, chapter_locked=True)
    elif event.translation_x < 0 and previous < chapter_count - 1:
        state = replace(state, chapter_index=previous + 1, chapter_locked=True)
    return NavigationStep(state=state, previous_index=previous)


def release(state: NavigationState) -> NavigationState:
    """End the current gesture: forget the origin and release the lock."""

    return replace(state, gesture_origin_x=None, chapter_locked=False)


def select_chapter(state: NavigationState, index: int, chapter_count: int) -> NavigationState:
    """Jump directly to *index*, e.g. from a table of contents."""

    if not 0 <= index < chapter_count:
        raise ValueError(f"Chapter index {index} outside 0..{chapter_count - 1}")
    return replace(state, chapter_index=index)


class ChapterNavigator:
    """Stateful wrapper used on the gesture-delivery thread; never does I/O."""

    def __init__(
        self,
        chapter_count: int,
        *,
        thresholds: GestureThresholds | None = None,
        initial_index: int = 0,
    ) -> None:
        if chapter_count < 0:
            raise ValueError("chapter_count cannot be negative")
        self._chapter_count = chapter_count
        self._thresholds = thresholds or GestureThresholds()
        self._state = NavigationState()
        if chapter_count:
            self._state = select_chapter(self._state, initial_index, chapter_count)

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def chapter_index(self) -> int:
        return self._state.chapter_index

    @property
    def chapter_count(self) -> int:
        return self._chapter_count

    def handle_gesture(self, event: GestureEvent) -> int | None:
        """Feed one gesture update; returns the new index when it changed."""

        result = step(self._state, event, self._chapter_count, self._thresholds)
        self._state = result.state
        return result.state.chapter_index if result.changed else None

    def release(self) -> None:
        self._state = release(self._state)

    def select(self, index: int) -> int:
        self._state = select_chapter(self._state, index, self._chapter_count)
        return self._state.chapter_index
