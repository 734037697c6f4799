"""
auth/ratelimit.py -- Fixed-window, per-client admission control.

Counting is done by the limits package (the engine under slowapi) with its
FixedWindowRateLimiter strategy. The storage backend comes from a URI, as in
slowapi's Limiter: "memory://" keeps counters in-process; any other limits
storage URI (redis://, memcached://) shares them between workers.

Policy: each client key owns one counter. The first request of a window
starts it at 1 and sets its expiry to now + window_seconds. Later requests
inside the window are admitted while count < limit and denied (without
incrementing) afterwards. The window is over once now >= window_start +
window_seconds: a request arriving exactly on that second already opens a
fresh window. Bursts of up to 2x the nominal rate straddling a window
boundary are an accepted property of fixed-window counting.

Concurrency: limits increments atomically, but "deny without incrementing"
needs a test() before the hit(). Both run under one lock, so two concurrent
requests can never both take the last remaining slot.

Memory: an elapsed counter is expired by the storage itself, lazily when the
key is read and by the memory backend's expiry timer. Expiring an elapsed
window is indistinguishable from the reset the next request would perform
anyway, so an active key is never affected.

State is advisory: with the memory backend a restart resets every counter.

Layer rule: no imports from api/ or inventory/.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass

from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter

logger = logging.getLogger("inventory.ratelimit")

DEFAULT_LIMIT = 10
DEFAULT_WINDOW_SECONDS = 60
DEFAULT_STORAGE_URI = "memory://"


@dataclass(frozen=True)
class RateDecision:
    """Result of one admission check. retry_after is 0 when allowed."""

    allowed: bool
    remaining: int
    retry_after: int


class RateLimiter:
    """Thread-safe fixed-window rate limiter keyed by client identity.

    Usage:
        limiter = RateLimiter(limit=10, window_seconds=60)
        if not limiter.allow(request.client.host):
            ...  # respond 429
    """

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        storage_uri: str = DEFAULT_STORAGE_URI,
    ) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(limit, window_seconds, namespace="inventory")
        self._storage = storage_from_string(storage_uri)
        self._strategy = FixedWindowRateLimiter(self._storage)
        self._lock = threading.Lock()

    def allow(self, client_key: str) -> bool:
        """Count one request for client_key and return whether it is admitted."""
        return self.hit(client_key).allowed

    def hit(self, client_key: str) -> RateDecision:
        with self._lock:
            if not self._strategy.test(self._item, client_key):
                reset_at, _ = self._strategy.get_window_stats(self._item, client_key)
                retry_after = max(1, math.ceil(reset_at - time.time()))
                logger.debug("Denied %s, window resets in %ds", client_key, retry_after)
                return RateDecision(allowed=False, remaining=0, retry_after=retry_after)

            self._strategy.hit(self._item, client_key)
            _, remaining = self._strategy.get_window_stats(self._item, client_key)
            return RateDecision(allowed=True, remaining=remaining, retry_after=0)

    def count(self, client_key: str) -> int:
        """Requests counted for client_key in its current window (0 once it has elapsed)."""
        _, remaining = self._strategy.get_window_stats(self._item, client_key)
        return self.limit - remaining

    def reset(self) -> None:
        """Forget all counters, as a process restart would."""
        with self._lock:
            self._storage.reset()
