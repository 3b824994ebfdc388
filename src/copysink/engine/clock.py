# src/copysink/engine/clock.py
"""Time source for group ages.

GroupStore stamps created_at and last_touched_at from a Clock, and the idle
reaper compares those stamps against the idle timeout. Injecting MockClock
lets tests age a group past the timeout without sleeping.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Source of monotonic seconds for group timestamps."""

    def monotonic(self) -> float:
        """Seconds on a clock that never goes backwards.

        Wall-clock jumps must not make a group look idle early.
        """
        ...


class SystemClock:
    """time.monotonic(); the store's default."""

    def monotonic(self) -> float:
        return time.monotonic()


class MockClock:
    """Manually advanced clock for idle-timeout tests.

    Example:
        clock = MockClock(start=0.0)
        store = GroupStore(clock=clock)

        store.append("events", record)
        clock.advance(5.0)
        assert [g.key for g in store.idle_groups(5.0)] == ["events"]
    """

    def __init__(self, start: float = 0.0) -> None:
        self._current = start

    def monotonic(self) -> float:
        return self._current

    def advance(self, seconds: float) -> None:
        """Move time forward, ageing every group in stores using this clock.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += seconds


DEFAULT_CLOCK: Clock = SystemClock()
