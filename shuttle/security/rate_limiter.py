"""
Rate Limiter - in-process sliding window request limiting.

Each limiter tracks, per client identifier, the instants of the requests accepted inside
the trailing window. A request is allowed while fewer than ``max_requests`` instants remain
after purging everything older than ``window_seconds``.

Design:
- Sliding window algorithm (counts only the trailing interval, no calendar buckets)
- Single-process state; no coordination between server instances
- One lock around the window map: keys are logically independent, but concurrent
  requests from different clients serialize on the lock for the short critical section
- Keys whose whole window expired are dropped once the map outgrows ``max_tracked_keys``

Usage:
    limiter = RateLimiter(max_requests=10, window_seconds=60)
    if not limiter.allow(client_id):
        raise ThrottledError()
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List

from shuttle.config import Settings


class RateLimiter:
    """Sliding-window request counter keyed by client identifier."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        max_tracked_keys: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ):
        """
        Args:
            max_requests: Requests allowed inside one window
            window_seconds: Length of the trailing window
            max_tracked_keys: Map size above which expired keys are purged
            clock: Source of "now" in seconds (monotonic by default, injectable for tests)
            name: Label used in logs
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_tracked_keys = max_tracked_keys
        self.name = name
        self._clock = clock
        self._windows: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        """Record a request for ``key`` and report whether it fits in the window.

        A refused request is not recorded, so a throttled client regains access as soon
        as its oldest accepted request leaves the window.
        """
        with self._lock:
            now = self._clock()
            cutoff = now - self.window_seconds
            recent = [instant for instant in self._windows.get(key, []) if instant > cutoff]

            if len(recent) >= self.max_requests:
                self._windows[key] = recent
                return False

            recent.append(now)
            self._windows[key] = recent

            if len(self._windows) > self.max_tracked_keys:
                self._purge_expired(cutoff)

            return True

    def retry_after(self, key: str) -> int:
        """Whole seconds until ``key`` may be allowed again (0 when it already may)."""
        with self._lock:
            now = self._clock()
            recent = [i for i in self._windows.get(key, []) if i > now - self.window_seconds]
            if len(recent) < self.max_requests:
                return 0
            oldest = recent[-self.max_requests]
            return max(1, math.ceil(oldest + self.window_seconds - now))

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _purge_expired(self, cutoff: float) -> None:
        expired = [
            key for key, instants in self._windows.items()
            if all(instant <= cutoff for instant in instants)
        ]
        for key in expired:
            del self._windows[key]


@dataclass
class RateLimiterRegistry:
    """The limiters used by the public endpoints, built once per application."""

    registration: RateLimiter
    login: RateLimiter
    admin_login: RateLimiter
    admin_login_failure: RateLimiter
    booking: RateLimiter

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
    ) -> "RateLimiterRegistry":
        keys = settings.RATE_LIMIT_MAX_TRACKED_KEYS
        return cls(
            registration=RateLimiter(
                settings.REGISTER_RATE_LIMIT,
                settings.REGISTER_RATE_WINDOW_SECONDS,
                keys, clock, name="registration",
            ),
            login=RateLimiter(
                settings.LOGIN_RATE_LIMIT,
                settings.LOGIN_RATE_WINDOW_SECONDS,
                keys, clock, name="login",
            ),
            admin_login=RateLimiter(
                settings.ADMIN_LOGIN_RATE_LIMIT,
                settings.ADMIN_LOGIN_RATE_WINDOW_SECONDS,
                keys, clock, name="admin_login",
            ),
            admin_login_failure=RateLimiter(
                settings.ADMIN_LOGIN_FAILURE_RATE_LIMIT,
                settings.ADMIN_LOGIN_FAILURE_RATE_WINDOW_SECONDS,
                keys, clock, name="admin_login_failure",
            ),
            booking=RateLimiter(
                settings.BOOKING_RATE_LIMIT,
                settings.BOOKING_RATE_WINDOW_SECONDS,
                keys, clock, name="booking",
            ),
        )
