from __future__ import annotations

"""
Clock sources. The engine reads time once at the start of each operation
and never sleeps; passing time is whatever the clock reports next.
"""

import time


class SystemClock:
    def __call__(self) -> int:
        return int(time.time())


class ManualClock:
    """Clock driven by hand, for simulations and tests."""

    def __init__(self, start: int = 0) -> None:
        self.now = int(start)

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self.now += int(seconds)
        return self.now

    def set(self, timestamp: int) -> int:
        if timestamp < self.now:
            raise ValueError("clock cannot move backwards")
        self.now = int(timestamp)
        return self.now
