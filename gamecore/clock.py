"""Elapsed-time clock owned by a puzzle session."""

from __future__ import annotations

import math
import time
from typing import Callable


class SessionClock:
    """Start/stop stopwatch measured on a monotonic time source."""

    def __init__(self, now: Callable[[], float] = time.monotonic):
        self._now = now
        self._started_at: float | None = None
        self._stopped_at: float | None = None

    @property
    def running(self) -> bool:
        return self._started_at is not None and self._stopped_at is None

    @property
    def started(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        """Start the clock; a running or stopped clock is left untouched."""
        if self._started_at is None:
            self._started_at = self._now()

    def stop(self) -> None:
        if self.running:
            self._stopped_at = self._now()

    def reset(self) -> None:
        self._started_at = None
        self._stopped_at = None

    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._stopped_at if self._stopped_at is not None else self._now()
        return max(0.0, end - self._started_at)

    def elapsed_seconds(self) -> int:
        """Whole seconds elapsed, floored."""
        return math.floor(self.elapsed())

    def elapsed_ms(self) -> int:
        return int(self.elapsed() * 1000)
