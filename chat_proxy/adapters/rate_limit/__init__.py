"""Rate limiting adapters.

The proxy starts with an in-memory, per-instance limiter. Anything that
implements ``AbstractRateLimiter`` can be plugged in instead.
"""

from chat_proxy.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from chat_proxy.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitResult",
]
