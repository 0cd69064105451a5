"""Rate limiter interfaces.

The HTTP layer depends on this abstraction only, so the in-process limiter
can be replaced by one backed by a shared store (e.g., Redis with atomic
increment-and-expire) when the proxy runs as more than one instance.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a consume operation.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window.
        count: Requests counted against the key in the current window,
            including this one.
        remaining: Requests left in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the key's window expires.
        retry_after_seconds: Whole seconds to wait before retrying, only set
            when blocked.
    """

    allowed: bool
    limit: int
    count: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Count a request against ``key`` and decide whether to admit it.

        Args:
            key: Caller identity (e.g., ``ip:203.0.113.7``).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError
