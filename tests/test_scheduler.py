import pytest

from pomodorotracker import scheduler, timer
from pomodorotracker.errors import ErrorKind, IntervalError
from pomodorotracker.interval import Category, Interval, IntervalConfig, State
from pomodorotracker.repository import InMemoryRepository

P, S, L = Category.POMODORO, Category.SHORT_BREAK, Category.LONG_BREAK
TICK = 0.01


def make_config(repo=None):
    return IntervalConfig.create(repo if repo is not None else InMemoryRepository(), 3, 1, 2, second_length=TICK)


def add(repo, category, state=State.DONE):
    interval = Interval(category=category, planned_duration=1, state=state)
    interval.id = repo.create(interval)
    return interval


def test_first_interval_is_a_pomodoro():
    assert scheduler.next_category(InMemoryRepository()) is P


@pytest.mark.parametrize(
    "history, expected",
    [
        ([P], S),
        ([P, S], P),
        ([P, S, P, L], P),
        ([P, S, P, S, P], S),
        ([P, S, P, S, P, S, P], L),
        ([P, S, P, S, P, S, P, L, P], S),
        ([P, L, P, S, P, S, P], S),
    ],
)
def test_next_category_from_history(history, expected):
    repo = InMemoryRepository()
    for category in history:
        add(repo, category)
    assert scheduler.next_category(repo) is expected


def test_repository_errors_propagate():
    class BrokenRepository(InMemoryRepository):
        def last(self):
            raise IntervalError(ErrorKind.INVALID_ID, "disk on fire")

    config = make_config(BrokenRepository())
    with pytest.raises(IntervalError) as excinfo:
        scheduler.next_category(config.repo)
    assert excinfo.value.kind is ErrorKind.INVALID_ID
    with pytest.raises(IntervalError):
        scheduler.get_interval(config)


def test_sixteen_intervals_follow_the_cycle():
    config = make_config()
    expected = [P, S, P, S, P, S, P, L] * 2
    durations = {P: 3, S: 1, L: 2}

    for position, category in enumerate(expected, start=1):
        interval = scheduler.get_interval(config)
        assert interval.id == position
        assert interval.category is category
        assert interval.planned_duration == durations[category]
        assert interval.state == State.NOT_STARTED

        timer.start(interval, config)

        stored = config.repo.by_id(interval.id)
        assert stored.state == State.DONE
        assert stored.actual_duration == durations[category]


def test_get_interval_resumes_unfinished_interval():
    config = make_config()
    paused = add(config.repo, P, state=State.PAUSED)
    assert scheduler.get_interval(config) == config.repo.by_id(paused.id)
    assert len(config.repo) == 1


@pytest.mark.parametrize("terminal", [State.DONE, State.CANCELLED])
def test_get_interval_after_terminal_creates_next_id(terminal):
    config = make_config()
    previous = add(config.repo, P, state=terminal)
    interval = scheduler.get_interval(config)
    assert interval.id == previous.id + 1
    assert interval.category is S
    assert interval.state == State.NOT_STARTED


def test_preview_lists_cycle_without_writing():
    config = make_config()
    plan = scheduler.preview(config, 8)
    labels = [item.label for item in plan]
    assert labels == [
        "Focus 1",
        "Short break 1",
        "Focus 2",
        "Short break 2",
        "Focus 3",
        "Short break 3",
        "Focus 4",
        "Long break",
    ]
    assert plan.total_seconds == 4 * 3 + 3 * 1 + 2
    assert len(config.repo) == 0


def test_preview_starts_with_resumable_interval():
    config = make_config()
    add(config.repo, P)
    add(config.repo, S, state=State.PAUSED)
    plan = scheduler.preview(config, 2)
    assert [item.kind for item in plan] == [S, P]
    assert plan.intervals[0].label == "Resume ShortBreak"


def test_preview_rejects_negative_count():
    with pytest.raises(ValueError):
        scheduler.preview(make_config(), -1)
