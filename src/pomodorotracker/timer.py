"""Interval timer: start, pause and the tick loop that drives a running interval.

All progress goes through the repository. The loop reloads the interval
on every tick, which is how a pause issued from another thread (or from
an ``on_tick`` callback) is noticed.
"""
from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional, Set, Tuple

from .errors import ErrorKind, IntervalError
from .interval import Interval, IntervalConfig, State

logger = logging.getLogger(__name__)

Callback = Callable[[Interval], None]


def _noop(interval: Interval) -> None:
    pass


class CancelToken:
    """Cancellation signal checked by the tick loop once per iteration."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


# (repository identity, interval id) pairs with a live tick loop
_ticking: Set[Tuple[int, int]] = set()
_ticking_lock = threading.Lock()


@contextmanager
def _claim(config: IntervalConfig, interval_id: int) -> Iterator[None]:
    key = (id(config.repo), interval_id)
    with _ticking_lock:
        if key in _ticking:
            raise IntervalError(ErrorKind.ALREADY_RUNNING, str(interval_id))
        _ticking.add(key)
    try:
        yield
    finally:
        with _ticking_lock:
            _ticking.discard(key)


def start(
    interval: Interval,
    config: IntervalConfig,
    on_start: Optional[Callback] = None,
    on_tick: Optional[Callback] = None,
    on_expire: Optional[Callback] = None,
    cancel: Optional[CancelToken] = None,
) -> Optional[Interval]:
    """Run ``interval`` until it expires, is paused or is cancelled.

    Blocks the calling thread; see :class:`IntervalRunner` for running it in
    the background. The passed object is not modified.

    Args:
        interval: A not started or paused interval.
        config: Repository and durations.
        on_start: Called once with the running interval before the first tick.
        on_tick: Called after every persisted tick.
        on_expire: Called with the finished interval once it is stored as done.
        cancel: Token that stops the loop and marks the interval cancelled.

    Returns:
        The last stored state of the interval, or ``None`` when it was
        already running and nothing happened.
    """
    if not _startable(interval):
        return None

    with _claim(config, interval.id):
        # the caller's object may be stale; the stored record decides
        running = config.repo.by_id(interval.id)
        if not _startable(running):
            return None
        if running.state == State.NOT_STARTED:
            running.start_time = datetime.now()
        running.state = State.RUNNING
        config.repo.update(running)
        logger.info("interval %d (%s) running", running.id, running.category.value)

        return _tick(
            running.id,
            config,
            on_start or _noop,
            on_tick or _noop,
            on_expire or _noop,
            cancel or CancelToken(),
        )


def _startable(interval: Interval) -> bool:
    """False for a running interval; raises for one that cannot start."""
    state = interval.state
    if state == State.RUNNING:
        return False
    if state in (State.DONE, State.CANCELLED):
        logger.warning("refusing to start interval %d in state %s", interval.id, State(state).name)
        raise IntervalError(ErrorKind.INTERVAL_COMPLETED, "cannot start")
    if state not in (State.NOT_STARTED, State.PAUSED):
        logger.warning("interval %d has unknown state %r", interval.id, state)
        raise IntervalError(ErrorKind.INVALID_STATE, str(state))
    return True


def _tick(
    interval_id: int,
    config: IntervalConfig,
    on_start: Callback,
    on_tick: Callback,
    on_expire: Callback,
    cancel: CancelToken,
) -> Interval:
    repo = config.repo
    second = config.second_length

    interval = repo.by_id(interval_id)
    remaining = interval.remaining
    began = time.monotonic()
    ticks = 0

    on_start(interval.snapshot())

    while True:
        if cancel.is_set():
            interval = repo.by_id(interval_id)
            interval.state = State.CANCELLED
            repo.update(interval)
            logger.info("interval %d cancelled after %ds", interval_id, interval.actual_duration)
            return interval

        # a tick due at the same moment as expiry is counted first
        tick_due = ticks + 1 <= remaining
        due_in = (ticks + 1 if tick_due else remaining) * second
        wait = began + due_in - time.monotonic()
        if wait > 0 and cancel.wait(wait):
            continue

        if tick_due:
            ticks += 1
            interval = repo.by_id(interval_id)
            if interval.state == State.PAUSED:
                logger.info("interval %d paused at %ds", interval_id, interval.actual_duration)
                return interval
            interval.actual_duration += 1
            # a pause stored after the reload above is overwritten here
            repo.update(interval)
            logger.debug(
                "interval %d tick %d/%d",
                interval_id,
                interval.actual_duration,
                interval.planned_duration,
            )
            on_tick(interval.snapshot())
            continue

        interval = repo.by_id(interval_id)
        interval.state = State.DONE
        repo.update(interval)
        logger.info("interval %d (%s) done", interval_id, interval.category.value)
        on_expire(interval.snapshot())
        return interval


def pause(interval: Interval, config: IntervalConfig) -> None:
    """Mark a running interval as paused.

    The tick loop stops on its next tick. Progress is taken from the stored
    record so a stale ``interval`` never rolls back ``actual_duration``.
    """
    if interval.state != State.RUNNING:
        raise IntervalError(ErrorKind.INTERVAL_NOT_RUNNING)

    current = config.repo.by_id(interval.id)
    if current.state != State.RUNNING:
        raise IntervalError(ErrorKind.INTERVAL_NOT_RUNNING)

    current.state = State.PAUSED
    config.repo.update(current)
    logger.info("interval %d pause requested", interval.id)


class IntervalRunner:
    """Runs :func:`start` on a daemon thread.

    ``join`` re-raises whatever the loop raised.
    """

    def __init__(
        self,
        interval: Interval,
        config: IntervalConfig,
        on_start: Optional[Callback] = None,
        on_tick: Optional[Callback] = None,
        on_expire: Optional[Callback] = None,
    ) -> None:
        self.interval = interval
        self.config = config
        self.cancel_token = CancelToken()
        self.result: Optional[Interval] = None
        self.error: Optional[BaseException] = None
        self._callbacks = (on_start, on_tick, on_expire)
        self._thread = threading.Thread(
            target=self._run,
            name=f"interval-{interval.id}",
            daemon=True,
        )

    def start(self) -> "IntervalRunner":
        self._thread.start()
        return self

    def _run(self) -> None:
        on_start, on_tick, on_expire = self._callbacks
        try:
            self.result = start(
                self.interval,
                self.config,
                on_start,
                on_tick,
                on_expire,
                cancel=self.cancel_token,
            )
        except Exception as exc:
            logger.debug("interval %d loop failed: %s", self.interval.id, exc)
            self.error = exc

    def cancel(self) -> None:
        self.cancel_token.cancel()

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> Optional[Interval]:
        self._thread.join(timeout)
        if self.error is not None:
            raise self.error
        return self.result
