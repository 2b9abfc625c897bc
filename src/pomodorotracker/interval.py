"""Interval records and the configuration shared by the scheduler and timer."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .repository import Repository


DEFAULTS = {
    "intervals": 8,
    "focus_minutes": 25,
    "short_break_minutes": 5,
    "long_break_minutes": 15,
}


class Category(str, Enum):
    POMODORO = "Pomodoro"
    SHORT_BREAK = "ShortBreak"
    LONG_BREAK = "LongBreak"

    @property
    def is_break(self) -> bool:
        return self is not Category.POMODORO


class State(IntEnum):
    NOT_STARTED = 0
    RUNNING = 1
    PAUSED = 2
    DONE = 3
    CANCELLED = 4


TERMINAL_STATES = frozenset({State.DONE, State.CANCELLED})


@dataclass
class Interval:
    """One timed work or break segment.

    Durations are whole seconds. ``id`` stays 0 until the repository
    assigns one.
    """

    category: Category
    planned_duration: int
    id: int = 0
    start_time: Optional[datetime] = None
    actual_duration: int = 0
    state: int = State.NOT_STARTED

    @property
    def remaining(self) -> int:
        return max(self.planned_duration - self.actual_duration, 0)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def snapshot(self) -> "Interval":
        return dataclasses.replace(self)

    def as_dict(self) -> Dict[str, Any]:
        try:
            state = State(self.state).name
        except ValueError:
            state = str(self.state)
        return {
            "id": self.id,
            "category": self.category.value,
            "state": state,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "planned_duration": self.planned_duration,
            "actual_duration": self.actual_duration,
        }


@dataclass(frozen=True)
class IntervalConfig:
    """Repository handle plus the planned duration of each category.

    ``second_length`` is how many real seconds one tick lasts; it is 1.0
    outside of demos and tests.
    """

    repo: "Repository"
    pomodoro_duration: int = DEFAULTS["focus_minutes"] * 60
    short_break_duration: int = DEFAULTS["short_break_minutes"] * 60
    long_break_duration: int = DEFAULTS["long_break_minutes"] * 60
    second_length: float = 1.0

    @classmethod
    def create(
        cls,
        repo: "Repository",
        pomodoro: int = 0,
        short_break: int = 0,
        long_break: int = 0,
        *,
        second_length: float = 1.0,
    ) -> "IntervalConfig":
        """Build a config, falling back to the defaults for durations <= 0.

        Args:
            repo: Where intervals are persisted.
            pomodoro: Seconds per focus interval.
            short_break: Seconds per short break.
            long_break: Seconds per long break.
            second_length: Real seconds per tick.
        """
        if second_length <= 0:
            raise ValueError("second_length must be positive")

        values = {}
        if pomodoro > 0:
            values["pomodoro_duration"] = pomodoro
        if short_break > 0:
            values["short_break_duration"] = short_break
        if long_break > 0:
            values["long_break_duration"] = long_break
        return cls(repo=repo, second_length=second_length, **values)

    def duration_for(self, category: Category) -> int:
        if category is Category.POMODORO:
            return self.pomodoro_duration
        if category is Category.SHORT_BREAK:
            return self.short_break_duration
        return self.long_break_duration
