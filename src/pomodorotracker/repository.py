"""Interval persistence: the repository protocol and an in-memory store."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Protocol

from .errors import ErrorKind, IntervalError
from .interval import Category, Interval

logger = logging.getLogger(__name__)


class Repository(Protocol):
    def create(self, interval: Interval) -> int:
        ...

    def update(self, interval: Interval) -> None:
        ...

    def by_id(self, interval_id: int) -> Interval:
        ...

    def last(self) -> Interval:
        ...

    def breaks(self, n: int) -> List[Interval]:
        ...


class _ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def reading(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def writing(self) -> Iterator[None]:
        # readers are not queued behind a waiting writer, so a steady read load can starve it
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class InMemoryRepository:
    """Keeps intervals in a list where ``id`` is the 1-based index.

    Records go in and come out as copies, so a caller holding an
    ``Interval`` only changes stored state through :meth:`update`.
    """

    def __init__(self) -> None:
        self._lock = _ReadWriteLock()
        self._intervals: List[Interval] = []

    def __len__(self) -> int:
        with self._lock.reading():
            return len(self._intervals)

    def create(self, interval: Interval) -> int:
        with self._lock.writing():
            record = interval.snapshot()
            record.id = len(self._intervals) + 1
            self._intervals.append(record)
        logger.debug("created interval %d (%s)", record.id, record.category.value)
        return record.id

    def update(self, interval: Interval) -> None:
        with self._lock.writing():
            self._check_id(interval.id)
            self._intervals[interval.id - 1] = interval.snapshot()
        logger.debug(
            "updated interval %d state=%s actual=%ds",
            interval.id,
            interval.state,
            interval.actual_duration,
        )

    def by_id(self, interval_id: int) -> Interval:
        with self._lock.reading():
            self._check_id(interval_id)
            return self._intervals[interval_id - 1].snapshot()

    def last(self) -> Interval:
        with self._lock.reading():
            if not self._intervals:
                raise IntervalError(ErrorKind.NO_INTERVALS)
            return self._intervals[-1].snapshot()

    def breaks(self, n: int) -> List[Interval]:
        found: List[Interval] = []
        if n <= 0:
            return found
        with self._lock.reading():
            for record in reversed(self._intervals):
                if record.category is Category.POMODORO:
                    continue
                found.append(record.snapshot())
                if len(found) == n:
                    break
        return found

    def all(self) -> List[Interval]:
        with self._lock.reading():
            return [record.snapshot() for record in self._intervals]

    def _check_id(self, interval_id: int) -> None:
        # callers hold the lock
        if interval_id < 1:
            raise IntervalError(ErrorKind.INVALID_ID, str(interval_id))
        if interval_id > len(self._intervals):
            raise IntervalError(ErrorKind.INVALID_ID, f"{interval_id} not found")
