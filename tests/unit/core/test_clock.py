# tests/unit/core/test_clock.py
"""Tests for the clock abstraction."""

import time

import pytest

from ledgerlink.core.clock import DEFAULT_CLOCK, Clock, Deadline, MockClock, SystemClock


class TestSystemClock:
    def test_matches_time_monotonic(self) -> None:
        """SystemClock reads time.monotonic()."""
        before = time.monotonic()
        reading = SystemClock().monotonic()
        after = time.monotonic()

        assert before <= reading <= after

    def test_default_clock_is_system_clock(self) -> None:
        """Production code uses the system clock unless told otherwise."""
        assert isinstance(DEFAULT_CLOCK, SystemClock)


class TestMockClock:
    def test_starts_at_given_value(self) -> None:
        """The start value is the first reading."""
        assert MockClock(start=42.0).monotonic() == 42.0

    def test_advance(self) -> None:
        """advance() moves time forward by the given amount."""
        clock = MockClock()
        clock.advance(1.5)
        clock.advance(0.5)

        assert clock.monotonic() == 2.0

    def test_advance_rejects_negative(self) -> None:
        """Time never goes backwards through advance()."""
        with pytest.raises(ValueError, match="negative"):
            MockClock().advance(-1)

    def test_set_allows_any_value(self) -> None:
        """set() jumps to an absolute time."""
        clock = MockClock(start=10.0)
        clock.set(3.0)

        assert clock.monotonic() == 3.0

    def test_satisfies_protocol(self) -> None:
        """MockClock can be passed wherever a Clock is expected."""
        clock: Clock = MockClock()

        assert clock.monotonic() == 0.0


class TestDeadline:
    def test_after_is_relative_to_the_clock(self) -> None:
        """A deadline is set from the clock's current reading."""
        clock = MockClock(start=100.0)

        assert Deadline.after(clock, 5.0) == Deadline(at=105.0)

    def test_passed_at_and_after_the_reading(self) -> None:
        clock = MockClock(start=10.0)
        deadline = Deadline.after(clock, 2.0)

        assert not deadline.passed(clock)
        clock.advance(2.0)
        assert deadline.passed(clock)

    def test_remaining_never_negative(self) -> None:
        clock = MockClock()
        deadline = Deadline.after(clock, 1.5)

        assert deadline.remaining(clock) == 1.5
        clock.advance(10)
        assert deadline.remaining(clock) == 0.0

    def test_zero_length_deadline_has_already_passed(self) -> None:
        """A zero retry interval never blocks."""
        clock = MockClock(start=3.0)

        assert Deadline.after(clock, 0).passed(clock)
