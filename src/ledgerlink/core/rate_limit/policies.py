# src/ledgerlink/core/rate_limit/policies.py
"""Rate limiter policies invoked around every physical API call.

The gateway calls ``before_call`` immediately before sending,
``after_call`` with the quota headers of each response, and
``on_capacity_exceeded`` when the remote rejects a call because the
account's request cap was hit. Hooks are never called around merging or
reconciliation, only around network I/O.
"""

from __future__ import annotations

import threading
from types import TracebackType
from typing import Protocol, runtime_checkable

from ledgerlink.contracts.account import Account
from ledgerlink.core.config import RateLimitSettings
from ledgerlink.core.rate_limit.throttle import AccountThrottle


@runtime_checkable
class RateLimiter(Protocol):
    """Hooks a rate limiting policy implements.

    Implementations are shared by every caller of a client and must be
    thread-safe.
    """

    def before_call(self, account: Account) -> None:
        """Called before a request is sent; may block to pace requests."""
        ...

    def after_call(self, account: Account, requests_remaining: int, next_throttle_period_ms: int) -> None:
        """Called with the remote's quota feedback after a response arrives."""
        ...

    def on_capacity_exceeded(self, account: Account) -> None:
        """Called when the remote rejected a request because the cap was hit."""
        ...

    def close(self) -> None: ...


class NoOpRateLimiter:
    """Rate limiter used when pacing is disabled.

    All hooks return immediately.
    """

    def before_call(self, account: Account) -> None:
        pass

    def after_call(self, account: Account, requests_remaining: int, next_throttle_period_ms: int) -> None:
        pass

    def on_capacity_exceeded(self, account: Account) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> NoOpRateLimiter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


class ConstantWaitRateLimiter:
    """Paces requests so no account receives more than a fixed number per minute.

    Each account gets its own AccountThrottle, created on first use. A call
    that follows the previous call to the same account too closely sleeps
    for the remainder of the interval (300ms at the default 200 per minute).
    Feedback from response headers and capacity rejections does not change
    the pacing; a constant wait should keep the cap from being reached.

    Example:
        limiter = ConstantWaitRateLimiter(requests_per_minute=200)
        limiter.before_call(account)   # may sleep
        response = send()
        limiter.close()
    """

    def __init__(self, requests_per_minute: int = 200, max_delay_seconds: float = 60.0) -> None:
        if requests_per_minute <= 0:
            raise ValueError(f"requests_per_minute must be positive, got {requests_per_minute}")
        if max_delay_seconds <= 0:
            raise ValueError(f"max_delay_seconds must be positive, got {max_delay_seconds}")
        self._minimum_interval_ms = max(1, 60_000 // requests_per_minute)
        self._max_delay_ms = max(1, int(max_delay_seconds * 1000))
        self._throttles: dict[str, AccountThrottle] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: RateLimitSettings) -> ConstantWaitRateLimiter:
        return cls(requests_per_minute=settings.requests_per_minute, max_delay_seconds=settings.max_delay_seconds)

    @property
    def minimum_interval_ms(self) -> int:
        return self._minimum_interval_ms

    def _throttle_for(self, account: Account) -> AccountThrottle:
        with self._lock:
            throttle = self._throttles.get(account.code)
            if throttle is None:
                throttle = AccountThrottle(
                    account.code,
                    minimum_interval_ms=self._minimum_interval_ms,
                    max_delay_ms=self._max_delay_ms,
                )
                self._throttles[account.code] = throttle
            return throttle

    def before_call(self, account: Account) -> None:
        # Acquire outside the registry lock so one account's wait never
        # delays calls to another account
        self._throttle_for(account).acquire()

    def after_call(self, account: Account, requests_remaining: int, next_throttle_period_ms: int) -> None:
        pass

    def on_capacity_exceeded(self, account: Account) -> None:
        pass

    def close(self) -> None:
        """Close all throttles. Safe to call more than once."""
        with self._lock:
            for throttle in self._throttles.values():
                throttle.close()
            self._throttles.clear()

    def __enter__(self) -> ConstantWaitRateLimiter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def build_rate_limiter(settings: RateLimitSettings) -> RateLimiter:
    """Create the limiter described by settings (NoOp when disabled)."""
    if not settings.enabled:
        return NoOpRateLimiter()
    return ConstantWaitRateLimiter.from_settings(settings)
