"""Trusted clock sources for the execution environment."""

import time


class SystemClock:
    """Wall clock in whole Unix seconds."""

    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Manually controlled clock for tests and simulations."""

    def __init__(self, start: int = 0):
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = int(timestamp)

    def advance(self, seconds: int) -> int:
        """Move the clock forward and return the new time."""
        self._now += int(seconds)
        return self._now
