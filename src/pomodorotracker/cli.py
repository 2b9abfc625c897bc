"""Command line interface for the Pomodoro tracker."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, Optional

from . import scheduler, timer
from .interval import DEFAULTS, Interval, IntervalConfig
from .logging_setup import configure_logging
from .repository import InMemoryRepository

logger = logging.getLogger(__name__)

BANNER = r"""
 ____   ___  __  __  ___   ___   ___   ____   ____   __   ____   ____
(  _ \ / __)(  )(  )/ __) / __) / __) (_  _) (_  _) / _\ (  _ \ / ___)
 )   /( (__  )(__)( \__ \( (__ ( (__    )(     )(  /    \ )   / \___ \
(__\_) \___)(______)(___/ \___) \___)  (__)   (__) \_/\_/(__\_) (____/
"""

JOIN_POLL_SECONDS = 0.2


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a simple Pomodoro timer in your terminal.")
    parser.add_argument("--intervals", type=int, default=DEFAULTS["intervals"], help="number of focus and break intervals to run")
    parser.add_argument("--focus-minutes", type=int, default=DEFAULTS["focus_minutes"], help="minutes per focus session (0 for the default)")
    parser.add_argument("--short-break-minutes", type=int, default=DEFAULTS["short_break_minutes"], help="minutes per short break (0 for the default)")
    parser.add_argument("--long-break-minutes", type=int, default=DEFAULTS["long_break_minutes"], help="minutes per long break (0 for the default)")
    parser.add_argument("--fast", action="store_true", help="treat one real second as one Pomodoro minute (handy for demos)")
    parser.add_argument("--dry-run", action="store_true", help="show the schedule without running timers")
    parser.add_argument("--log-level", default="WARNING", help="logging level, e.g. INFO or DEBUG")
    return parser.parse_args(argv)


def format_time(seconds: int) -> str:
    minutes, remainder = divmod(seconds, 60)
    return f"{minutes:02d}:{remainder:02d}"


def build_config(args: argparse.Namespace, repo: Optional[InMemoryRepository] = None) -> IntervalConfig:
    return IntervalConfig.create(
        repo if repo is not None else InMemoryRepository(),
        pomodoro=args.focus_minutes * 60,
        short_break=args.short_break_minutes * 60,
        long_break=args.long_break_minutes * 60,
        second_length=1 / 60 if args.fast else 1.0,
    )


def _show_start(interval: Interval) -> None:
    print(f"\n▶ {interval.category.value} #{interval.id} — {format_time(interval.remaining)}")


def _show_tick(interval: Interval) -> None:
    sys.stdout.write(f"\r{format_time(interval.remaining)} remaining")
    sys.stdout.flush()


def _show_expire(interval: Interval) -> None:
    print("\n✓ Done!")


def run_interval(config: IntervalConfig) -> Interval:
    """Fetch the next interval and tick it to the end.

    Ctrl+C cancels the interval; the KeyboardInterrupt is re-raised once
    the cancellation is stored.
    """
    interval = scheduler.get_interval(config)
    runner = timer.IntervalRunner(interval, config, _show_start, _show_tick, _show_expire).start()
    try:
        while runner.is_alive():
            runner.join(JOIN_POLL_SECONDS)
    except KeyboardInterrupt:
        runner.cancel()
        runner.join()
        raise
    result = runner.join()
    return result if result is not None else config.repo.by_id(interval.id)


def print_summary(repo: InMemoryRepository) -> None:
    print("\nIntervals:")
    for interval in repo.all():
        row = interval.as_dict()
        print(
            f"- #{row['id']} {row['category']}: "
            f"{format_time(row['actual_duration'])} / {format_time(row['planned_duration'])} "
            f"{row['state'].lower()}"
        )


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging(args.log_level)

    if args.intervals < 1:
        raise SystemExit("--intervals must be at least 1")

    repo = InMemoryRepository()
    config = build_config(args, repo)

    print(BANNER)
    print("Intervals :", args.intervals)
    print("Focus     :", config.pomodoro_duration // 60, "minute(s)")
    print("Short br. :", config.short_break_duration // 60, "minute(s)")
    print("Long br.  :", config.long_break_duration // 60, "minute(s)")
    print()

    if args.dry_run:
        print("Planned intervals:")
        for item in scheduler.preview(config, args.intervals):
            print(f"- {item.label}: {item.duration_seconds // 60} minute(s)")
        return

    print("Press Ctrl+C to exit early. Running timers…")
    try:
        for _ in range(args.intervals):
            run_interval(config)
    except KeyboardInterrupt:
        print("\nSession interrupted. See you next time!")
    print_summary(repo)


if __name__ == "__main__":  # pragma: no cover
    main()
