# src/ledgerlink/core/rate_limit/throttle.py
"""Per-account pacing built on pyrate-limiter."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from pyrate_limiter import (  # type: ignore[attr-defined]
    BucketFullException,
    InMemoryBucket,
    Limiter,
    LimiterDelayException,
    Rate,
)

from ledgerlink.contracts.errors import CapacityExceededError

if TYPE_CHECKING:
    from types import TracebackType

# Track original thread excepthook
_original_excepthook = threading.excepthook

# Leaker threads registered by AccountThrottle.close(), by ident
_suppressed_thread_idents: set[int] = set()
_suppressed_lock = threading.Lock()


def _custom_excepthook(args: threading.ExceptHookArgs) -> None:
    """Suppress the benign AssertionError pyrate-limiter's Leaker thread can
    raise when its last bucket is disposed.

    Only threads registered by AccountThrottle.close() are affected, and only
    for AssertionError. Everything else goes to the original hook.
    """
    import structlog

    logger = structlog.get_logger(__name__)

    thread_ident = args.thread.ident if args.thread else None

    with _suppressed_lock:
        if thread_ident is not None and thread_ident in _suppressed_thread_idents and args.exc_type is AssertionError:
            _suppressed_thread_idents.discard(thread_ident)
            logger.debug(
                "suppressed_limiter_cleanup_exception",
                thread_ident=thread_ident,
                thread_name=args.thread.name if args.thread else None,
            )
            return

    _original_excepthook(args)


threading.excepthook = _custom_excepthook


class AccountThrottle:
    """Spaces calls to one account by a constant minimum interval.

    A bucket holding one slot per interval means a call that arrives too
    soon after the previous one blocks for the remainder of the interval,
    instead of bursting up to a per-minute cap.

    Example:
        with AccountThrottle("acme", minimum_interval_ms=300, max_delay_ms=60_000) as throttle:
            throttle.acquire()
            send_request()
    """

    def __init__(self, account_code: str, minimum_interval_ms: int, max_delay_ms: int) -> None:
        """Initialize throttle.

        Args:
            account_code: Bucket key
            minimum_interval_ms: Gap enforced between two acquisitions
            max_delay_ms: Longest acquire() may block

        Raises:
            ValueError: If either duration is not positive.
        """
        if minimum_interval_ms <= 0:
            raise ValueError(f"minimum_interval_ms must be positive, got {minimum_interval_ms}")
        if max_delay_ms <= 0:
            raise ValueError(f"max_delay_ms must be positive, got {max_delay_ms}")

        self.account_code = account_code
        self._bucket = InMemoryBucket([Rate(1, minimum_interval_ms)])
        self._limiter = Limiter(self._bucket, max_delay=max_delay_ms, raise_when_fail=True)

    def acquire(self) -> None:
        """Block until this account may be called again.

        Raises:
            CapacityExceededError: If the wait would exceed max_delay_ms.
        """
        try:
            self._limiter.try_acquire(self.account_code)
        except (BucketFullException, LimiterDelayException) as e:
            raise CapacityExceededError(f"Local request pacing for account {self.account_code!r} exceeded its maximum delay") from e

    def close(self) -> None:
        """Dispose the bucket and let the leaker thread exit."""
        leaker = self._limiter.bucket_factory._leaker
        if leaker is not None and leaker.is_alive() and leaker.ident is not None:
            with _suppressed_lock:
                _suppressed_thread_idents.add(leaker.ident)
        else:
            leaker = None

        self._limiter.dispose(self._bucket)

        if leaker is not None:
            leaker.join(timeout=0.05)

    def __enter__(self) -> AccountThrottle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
