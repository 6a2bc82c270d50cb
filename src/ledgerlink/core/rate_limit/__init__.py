"""Client-side request pacing.

Uses pyrate-limiter for per-account constant-wait buckets.
"""

from ledgerlink.core.rate_limit.policies import (
    ConstantWaitRateLimiter,
    NoOpRateLimiter,
    RateLimiter,
    build_rate_limiter,
)
from ledgerlink.core.rate_limit.throttle import AccountThrottle

__all__ = ["AccountThrottle", "ConstantWaitRateLimiter", "NoOpRateLimiter", "RateLimiter", "build_rate_limiter"]
