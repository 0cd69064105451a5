"""Unit tests for the in-memory rate limiter adapter."""

import threading
from unittest.mock import Mock

import pytest

from chat_proxy.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter


def test_allows_up_to_limit_in_same_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=3, window_seconds=60, clock=clock)

    assert limiter.consume("k").allowed is True
    assert limiter.consume("k").allowed is True
    result = limiter.consume("k")
    assert result.allowed is True
    assert result.count == 3
    assert result.remaining == 0


def test_blocks_when_over_limit_with_retry_hint() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    limiter.consume("k")
    clock.return_value = 1010.5
    limiter.consume("k")

    blocked = limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    # 60 - 10.5 = 49.5, rounded up
    assert blocked.retry_after_seconds == 50
    assert blocked.reset_at == 1060


def test_retry_after_never_exceeds_window() -> None:
    clock = Mock(return_value=500.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    limiter.consume("k")
    blocked = limiter.consume("k")

    assert blocked.allowed is False
    assert 0 <= blocked.retry_after_seconds <= 60


def test_window_is_anchored_to_first_request() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    assert limiter.consume("k").allowed is True
    assert limiter.consume("k").allowed is False

    # Exactly one window later is still inside the window
    clock.return_value = 1010.0
    assert limiter.consume("k").allowed is False

    clock.return_value = 1010.001
    fresh = limiter.consume("k")
    assert fresh.allowed is True
    assert fresh.count == 1


def test_rejected_requests_still_count() -> None:
    clock = Mock(return_value=0.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    for _ in range(5):
        limiter.consume("k")

    assert limiter.consume("k").count == 6


def test_isolated_by_key() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.consume("k1").allowed is True
    assert limiter.consume("k1").allowed is False

    assert limiter.consume("k2").allowed is True


def test_sweeps_expired_records() -> None:
    clock = Mock(return_value=0.0)
    limiter = InMemoryFixedWindowRateLimiter(
        limit=5, window_seconds=10, clock=clock, sweep_interval_seconds=10
    )

    for key in ("a", "b", "c"):
        limiter.consume(key)
    assert len(limiter) == 3

    clock.return_value = 25.0
    limiter.consume("d")

    assert len(limiter) == 1


def test_lru_cap_evicts_least_recently_seen_key() -> None:
    clock = Mock(return_value=0.0)
    limiter = InMemoryFixedWindowRateLimiter(
        limit=1, window_seconds=60, clock=clock, max_keys=2
    )

    limiter.consume("a")
    limiter.consume("b")
    limiter.consume("a")  # "a" becomes most recent
    limiter.consume("c")  # evicts "b"

    assert len(limiter) == 2
    # "a" kept its exhausted window; "b" starts over
    assert limiter.consume("a").allowed is False
    assert limiter.consume("b").allowed is True


def test_concurrent_consumers_never_exceed_limit() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=50, window_seconds=60)
    admitted: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(20):
            result = limiter.consume("shared")
            with lock:
                admitted.append(result.allowed)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert admitted.count(True) == 50
    assert len(admitted) == 200


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
        {"limit": 1, "window_seconds": 60, "max_keys": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemoryFixedWindowRateLimiter(**kwargs)


def test_invalid_consume_args() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        limiter.consume("")

    with pytest.raises(ValueError):
        limiter.consume("k", cost=0)
