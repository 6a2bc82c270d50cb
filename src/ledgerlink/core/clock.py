# src/ledgerlink/core/clock.py
"""Time source for authentication retry windows.

Sessions read time through a Clock so backoff can be tested without
sleeping: SystemClock in production, MockClock in tests. A Deadline is a
reading on one clock's timeline, e.g. "no new authentication before t".
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol


class Clock(Protocol):
    def monotonic(self) -> float:
        """Seconds on a clock that never goes backwards.

        Only differences between readings are meaningful.
        """
        ...


class SystemClock:
    def monotonic(self) -> float:
        return time.monotonic()


@dataclass(frozen=True, slots=True)
class Deadline:
    """A point in time on a Clock's timeline.

    Example:
        window = Deadline.after(clock, 5.0)
        if not window.passed(clock):
            raise AuthenticationBackoffError(5.0)
    """

    at: float

    @classmethod
    def after(cls, clock: Clock, seconds: float) -> Deadline:
        return cls(clock.monotonic() + seconds)

    def passed(self, clock: Clock) -> bool:
        return clock.monotonic() >= self.at

    def remaining(self, clock: Clock) -> float:
        """Seconds left, never negative."""
        return max(0.0, self.at - clock.monotonic())


class MockClock:
    """Clock that only moves when a test moves it.

    Example:
        clock = MockClock(start=100.0)
        session = ApiSession(client, account, credentials=creds, clock=clock)
        # a failed authentication opens a 5s window at t=100
        clock.advance(5.0)
        # the next call may authenticate again
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def monotonic(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._now += seconds

    def set(self, value: float) -> None:
        """Jump to an absolute reading; earlier readings are allowed."""
        self._now = value


DEFAULT_CLOCK: Clock = SystemClock()
