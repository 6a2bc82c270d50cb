# src/ledgerlink/core/single_flight.py
"""Coalesce concurrent calls of one function into a single execution.

The first caller to arrive becomes the leader and runs the function.
Callers that arrive while it is running wait on the leader's pending
result and receive the same value, or the same exception. Once the
leader finishes, the next caller starts a fresh execution.

The internal lock only guards the pending-result slot; it is never held
while the function runs, so a slow function blocks only its waiters.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class SingleFlightTimeout(Exception):
    """A waiter gave up before the leader's execution finished."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout:g}s waiting for in-flight call")
        self.timeout = timeout


class _Pending(Generic[T]):
    """Result slot shared between a leader and its waiters."""

    __slots__ = ("_done", "_error", "_value")

    def __init__(self) -> None:
        self._done = threading.Event()
        self._value: T | None = None
        self._error: BaseException | None = None

    def resolve(self, value: T) -> None:
        self._value = value
        self._done.set()

    def reject(self, error: BaseException) -> None:
        self._error = error
        self._done.set()

    def wait(self, timeout: float) -> T:
        if not self._done.wait(timeout):
            raise SingleFlightTimeout(timeout)
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]


class SingleFlight(Generic[T]):
    """Single-flight coordinator for one logical operation.

    Example:
        flight: SingleFlight[str] = SingleFlight()

        # 30 threads call this concurrently; fetch_token runs once
        token = flight.run(fetch_token, timeout=15.0)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: _Pending[T] | None = None

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._pending is not None

    def run(self, fn: Callable[[], T], timeout: float) -> T:
        """Run fn, or join the execution already in flight.

        Args:
            fn: Function to execute if no execution is in flight
            timeout: Seconds a waiter blocks before giving up; the leader
                itself is not bounded by it

        Returns:
            The value produced by the (possibly shared) execution

        Raises:
            SingleFlightTimeout: If this caller waited longer than timeout
            Exception: Whatever fn raised, re-raised in every caller
        """
        with self._lock:
            pending = self._pending
            leader = pending is None
            if pending is None:
                pending = _Pending()
                self._pending = pending

        if not leader:
            return pending.wait(timeout)

        try:
            value = fn()
        except BaseException as exc:
            # Slot is cleared first so callers woken by reject() that retry
            # start a new execution instead of joining the finished one
            self._clear(pending)
            pending.reject(exc)
            raise
        self._clear(pending)
        pending.resolve(value)
        return value

    def _clear(self, pending: _Pending[T]) -> None:
        with self._lock:
            if self._pending is pending:
                self._pending = None
