"""Error kinds raised by the interval timer."""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    NO_INTERVALS = "No intervals"
    INTERVAL_NOT_RUNNING = "Interval not running"
    INTERVAL_COMPLETED = "Interval is completed or cancelled"
    INVALID_STATE = "Invalid state"
    INVALID_ID = "Invalid ID"
    ALREADY_RUNNING = "Interval is already ticking"


class IntervalError(Exception):
    """Raised by the repository, the scheduler and the timer.

    Callers branch on ``kind`` rather than on the exception instance.
    """

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None) -> None:
        self.kind = kind
        self.detail = detail
        message = kind.value if detail is None else f"{kind.value}: {detail}"
        super().__init__(message)
