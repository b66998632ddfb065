"""
Tests for the sliding window rate limiter.
"""

import threading

import pytest

from shuttle.config import settings
from shuttle.exceptions import ThrottledError
from shuttle.security.dependencies import enforce_rate_limit
from shuttle.security.rate_limiter import RateLimiter, RateLimiterRegistry


def test_allows_up_to_max_requests_then_refuses(fake_clock):
    limiter = RateLimiter(max_requests=5, window_seconds=60, clock=fake_clock)

    results = [limiter.allow("10.0.0.1") for _ in range(6)]

    assert results == [True, True, True, True, True, False]


def test_key_allowed_again_once_window_passes(fake_clock):
    limiter = RateLimiter(max_requests=2, window_seconds=60, clock=fake_clock)
    assert limiter.allow("client")
    fake_clock.advance(10)
    assert limiter.allow("client")
    assert not limiter.allow("client")

    # First request leaves the window; only one slot frees up
    fake_clock.advance(50.5)
    assert limiter.allow("client")
    assert not limiter.allow("client")

    fake_clock.advance(60)
    assert limiter.allow("client")


def test_refused_requests_are_not_recorded(fake_clock):
    limiter = RateLimiter(max_requests=1, window_seconds=10, clock=fake_clock)
    assert limiter.allow("client")

    for _ in range(5):
        fake_clock.advance(1)
        assert not limiter.allow("client")

    # Only the accepted request at t=0 counts, so t=10.5 is free again
    fake_clock.advance(5.5)
    assert limiter.allow("client")


def test_keys_are_independent(fake_clock):
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock)

    assert limiter.allow("a")
    assert not limiter.allow("a")
    assert limiter.allow("b")
    assert limiter.allow("c")


def test_retry_after_counts_down(fake_clock):
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock)
    assert limiter.retry_after("client") == 0

    limiter.allow("client")
    assert limiter.retry_after("client") == 60

    fake_clock.advance(45.2)
    assert limiter.retry_after("client") == 15


def test_expired_keys_purged_when_map_outgrows_ceiling(fake_clock):
    limiter = RateLimiter(max_requests=1, window_seconds=60, max_tracked_keys=3, clock=fake_clock)
    for key in ("a", "b", "c"):
        limiter.allow(key)
    assert limiter.tracked_keys() == 3

    fake_clock.advance(61)
    limiter.allow("d")

    assert limiter.tracked_keys() == 1


def test_live_keys_survive_purge(fake_clock):
    limiter = RateLimiter(max_requests=1, window_seconds=60, max_tracked_keys=2, clock=fake_clock)
    limiter.allow("old")
    fake_clock.advance(59)
    limiter.allow("recent")
    fake_clock.advance(2)
    limiter.allow("new")

    assert limiter.tracked_keys() == 2
    assert not limiter.allow("recent")


def test_concurrent_calls_never_exceed_limit():
    limiter = RateLimiter(max_requests=10, window_seconds=60)
    results = []
    lock = threading.Lock()

    def hit():
        allowed = limiter.allow("shared")
        with lock:
            results.append(allowed)

    threads = [threading.Thread(target=hit) for _ in range(50)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 10


@pytest.mark.parametrize("max_requests,window", [(0, 60), (1, 0), (1, -5)])
def test_rejects_invalid_configuration(max_requests, window):
    with pytest.raises(ValueError):
        RateLimiter(max_requests=max_requests, window_seconds=window)


def test_registry_uses_configured_budgets(fake_clock):
    registry = RateLimiterRegistry.from_settings(settings, clock=fake_clock)

    assert registry.registration.max_requests == 5
    assert registry.login.max_requests == 5
    assert registry.admin_login.max_requests == 3
    assert registry.admin_login_failure.max_requests == 1
    assert registry.admin_login_failure.window_seconds == 300
    assert registry.booking.max_requests == 10


def test_enforce_rate_limit_raises_throttled_with_retry_after(fake_clock):
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock)
    enforce_rate_limit(limiter, "client")

    with pytest.raises(ThrottledError) as exc_info:
        enforce_rate_limit(limiter, "client")

    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 60
