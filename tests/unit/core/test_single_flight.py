# tests/unit/core/test_single_flight.py
"""Tests for SingleFlight call coalescing."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from ledgerlink.core.single_flight import SingleFlight, SingleFlightTimeout


class TestSingleFlight:
    """Leader/waiter behaviour."""

    def test_sequential_calls_each_execute(self) -> None:
        """Without overlap every call runs the function."""
        flight: SingleFlight[int] = SingleFlight()
        calls = []

        def fn() -> int:
            calls.append(1)
            return len(calls)

        assert flight.run(fn, timeout=1) == 1
        assert flight.run(fn, timeout=1) == 2
        assert not flight.in_flight

    def test_concurrent_callers_share_one_execution(self) -> None:
        """Callers arriving during an execution get its value."""
        flight: SingleFlight[str] = SingleFlight()
        started = threading.Event()
        release = threading.Event()
        calls = []

        def fn() -> str:
            calls.append(1)
            started.set()
            release.wait(timeout=5)
            return "token"

        with ThreadPoolExecutor(max_workers=10) as pool:
            leader = pool.submit(flight.run, fn, 5)
            assert started.wait(timeout=5)
            assert flight.in_flight
            waiters = [pool.submit(flight.run, fn, 5) for _ in range(9)]
            time.sleep(0.2)
            release.set()
            results = [leader.result(timeout=5)] + [w.result(timeout=5) for w in waiters]

        assert results == ["token"] * 10
        assert len(calls) == 1
        assert not flight.in_flight

    def test_exception_reaches_every_waiter(self) -> None:
        """A failing execution raises the same exception in all its callers."""
        flight: SingleFlight[str] = SingleFlight()
        started = threading.Event()
        release = threading.Event()
        error = RuntimeError("boom")

        def fn() -> str:
            started.set()
            release.wait(timeout=5)
            raise error

        with ThreadPoolExecutor(max_workers=2) as pool:
            leader = pool.submit(flight.run, fn, 5)
            assert started.wait(timeout=5)
            waiter = pool.submit(flight.run, lambda: "unused", 5)
            time.sleep(0.2)
            release.set()
            leader_error = leader.exception(timeout=5)
            waiter_error = waiter.exception(timeout=5)

        assert leader_error is error
        assert waiter_error is error
        assert not flight.in_flight

    def test_waiter_times_out(self) -> None:
        """A waiter gives up after its timeout; the leader is unaffected."""
        flight: SingleFlight[str] = SingleFlight()
        started = threading.Event()
        release = threading.Event()

        def fn() -> str:
            started.set()
            release.wait(timeout=5)
            return "late"

        with ThreadPoolExecutor(max_workers=1) as pool:
            leader = pool.submit(flight.run, fn, 5)
            assert started.wait(timeout=5)
            try:
                with pytest.raises(SingleFlightTimeout) as exc_info:
                    flight.run(fn, timeout=0.05)
            finally:
                release.set()

            assert leader.result(timeout=5) == "late"

        assert exc_info.value.timeout == 0.05

    def test_next_call_after_failure_runs_again(self) -> None:
        """A failed execution is not cached."""
        flight: SingleFlight[str] = SingleFlight()

        def failing() -> str:
            raise ValueError("nope")

        with pytest.raises(ValueError):
            flight.run(failing, timeout=1)

        assert flight.run(lambda: "ok", timeout=1) == "ok"
