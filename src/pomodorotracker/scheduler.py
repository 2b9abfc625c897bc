"""Pomodoro schedule helpers.

The next category is derived from interval history alone::

    Pomodoro -> short -> Pomodoro -> short -> Pomodoro -> short -> Pomodoro -> long

After every break comes a Pomodoro. After a Pomodoro comes a short break,
unless the three most recent breaks are all short, in which case it is
time for the long one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .errors import ErrorKind, IntervalError
from .interval import Category, Interval, IntervalConfig, State
from .repository import Repository

logger = logging.getLogger(__name__)

BREAKS_PER_CYCLE = 3


def _category_after(last: Optional[Category], recent_breaks: Sequence[Category]) -> Category:
    if last is None or last.is_break:
        return Category.POMODORO
    if len(recent_breaks) < BREAKS_PER_CYCLE:
        return Category.SHORT_BREAK
    if Category.LONG_BREAK in recent_breaks[:BREAKS_PER_CYCLE]:
        return Category.SHORT_BREAK
    return Category.LONG_BREAK


def next_category(repo: Repository) -> Category:
    """Return the category the next created interval should have."""
    try:
        last = repo.last()
    except IntervalError as exc:
        if exc.kind is ErrorKind.NO_INTERVALS:
            return Category.POMODORO
        raise

    if last.category.is_break:
        return Category.POMODORO

    recent = [interval.category for interval in repo.breaks(BREAKS_PER_CYCLE)]
    return _category_after(last.category, recent)


def get_interval(config: IntervalConfig) -> Interval:
    """Return the interval to run next.

    The most recent interval is handed back as-is while it can still be
    resumed. Once it is done or cancelled a new one is created with the
    next category in the cycle.
    """
    try:
        last = config.repo.last()
    except IntervalError as exc:
        if exc.kind is not ErrorKind.NO_INTERVALS:
            raise
    else:
        if not last.is_terminal:
            logger.debug("resuming interval %d", last.id)
            return last

    return _new_interval(config)


def _new_interval(config: IntervalConfig) -> Interval:
    category = next_category(config.repo)
    interval = Interval(
        category=category,
        planned_duration=config.duration_for(category),
        state=State.NOT_STARTED,
    )
    interval.id = config.repo.create(interval)
    logger.info(
        "created interval %d: %s for %ds",
        interval.id,
        category.value,
        interval.planned_duration,
    )
    return interval


@dataclass(frozen=True)
class PlanItem:
    """One upcoming focus or break interval."""

    kind: Category
    label: str
    duration_seconds: int


@dataclass
class PomodoroPlan:
    """Holds the upcoming part of a Pomodoro schedule."""

    intervals: List[PlanItem]

    @property
    def total_seconds(self) -> int:
        return sum(item.duration_seconds for item in self.intervals)

    def __iter__(self) -> Iterable[PlanItem]:
        return iter(self.intervals)


def preview(config: IntervalConfig, count: int) -> PomodoroPlan:
    """Show what the next ``count`` calls to :func:`get_interval` would return.

    The repository is only read. A resumable interval comes first with
    its remaining time.
    """
    if count < 0:
        raise ValueError("count must not be negative")

    try:
        last: Optional[Interval] = config.repo.last()
    except IntervalError as exc:
        if exc.kind is not ErrorKind.NO_INTERVALS:
            raise
        last = None

    breaks = [interval.category for interval in config.repo.breaks(BREAKS_PER_CYCLE)]
    items: List[PlanItem] = []
    focus = 0
    short = 0

    previous = last.category if last else None
    if last is not None and not last.is_terminal and count:
        items.append(PlanItem(last.category, f"Resume {last.category.value}", last.remaining))

    while len(items) < count:
        category = _category_after(previous, breaks)
        if category is Category.POMODORO:
            focus += 1
            label = f"Focus {focus}"
        elif category is Category.SHORT_BREAK:
            short += 1
            label = f"Short break {short}"
        else:
            label = "Long break"
        if category.is_break:
            breaks = [category] + breaks[: BREAKS_PER_CYCLE - 1]
        items.append(PlanItem(category, label, config.duration_for(category)))
        previous = category

    return PomodoroPlan(items)
