"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers or instances multiplies the
  effective limit.
- Thread-safe: one lock guards the whole lookup-check-increment sequence.
- Windows are anchored to each key's first request, not to wall-clock
  boundaries, so two bursts straddling a window edge can admit up to twice
  the nominal rate.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from chat_proxy.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


@dataclass
class RateLimitRecord:
    count: int
    window_start: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per key over a fixed window.

    Every call counts, including rejected ones: a caller hammering the
    endpoint keeps its window saturated until the window itself expires.

    Records are bounded two ways. Expired records are swept at most once per
    ``sweep_interval_seconds``, inline with a ``consume`` call, and the map
    never holds more than ``max_keys`` records; the least recently seen key
    is dropped first, which resets its count.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
        max_keys: int | None = 10000,
        sweep_interval_seconds: float | None = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum number of admitted units per window.
            window_seconds: Window length in seconds.
            clock: Time source returning UNIX time in seconds.
            max_keys: Upper bound on stored records (None for unbounded).
            sweep_interval_seconds: Minimum time between sweeps of expired
                records; defaults to the window length.

        Raises:
            ValueError: If any bound is invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if max_keys is not None and max_keys < 1:
            raise ValueError("max_keys must be >= 1")

        self._limit = limit
        self._window = float(window_seconds)
        self._clock = clock
        self._max_keys = max_keys
        self._sweep_interval = (
            self._window if sweep_interval_seconds is None else float(sweep_interval_seconds)
        )
        self._lock = threading.RLock()
        self._records: OrderedDict[str, RateLimitRecord] = OrderedDict()
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window

    def _is_expired(self, record: RateLimitRecord, now: float) -> bool:
        return now - record.window_start > self._window

    def _sweep(self, now: float) -> None:
        """Drop every record whose window has expired. Caller holds the lock."""
        expired = [k for k, r in self._records.items() if self._is_expired(r, now)]
        for key in expired:
            del self._records[key]
        self._last_sweep = now
        if expired:
            logger.debug(
                "rate_limit.swept",
                extra={"evicted": len(expired), "tracked": len(self._records)},
            )

    def _touch(self, key: str, now: float) -> RateLimitRecord:
        """Fetch (or create) the record for key and mark it most recently used."""
        record = self._records.get(key)
        if record is None:
            record = RateLimitRecord(count=0, window_start=now)
            self._records[key] = record
            if self._max_keys is not None and len(self._records) > self._max_keys:
                self._records.popitem(last=False)
        else:
            self._records.move_to_end(key)

        if self._is_expired(record, now):
            record.count = 0
            record.window_start = now
        return record

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Count a request for key and return the admission decision.

        Args:
            key: Caller identity.
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult; blocked results carry ``retry_after_seconds``
            rounded up to whole seconds.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep(now)

            record = self._touch(key, now)
            record.count += cost

            elapsed = now - record.window_start
            reset_at = int(math.ceil(record.window_start + self._window))
            remaining = max(0, self._limit - record.count)

            if record.count <= self._limit:
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    count=record.count,
                    remaining=remaining,
                    reset_at=reset_at,
                    retry_after_seconds=None,
                )

            retry_after = int(math.ceil(max(0.0, self._window - elapsed)))
            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                count=record.count,
                remaining=0,
                reset_at=reset_at,
                retry_after_seconds=retry_after,
            )
