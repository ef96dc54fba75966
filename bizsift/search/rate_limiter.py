"""
Rate limiting for outbound search requests.
"""

import threading
import time


class RateLimiter:
    """
    Enforce a minimum interval between requests across threads.

    Callers reserve the next free slot under a lock and sleep outside it,
    so concurrent lookups in a batch are spaced out rather than serialized
    behind one sleeping thread.
    """

    def __init__(self, rate_limit: float):
        """
        Initialize the rate limiter.

        Args:
            rate_limit: Maximum requests per second (0.0 = no limit)
        """
        self.rate_limit = max(0.0, rate_limit)
        self.min_interval = 1.0 / self.rate_limit if self.rate_limit > 0 else 0.0
        self._next_slot = 0.0
        self._lock = threading.Lock()

    def wait_if_needed(self) -> None:
        """
        Wait if necessary to maintain the rate limit.

        Call this before each request.
        """
        if self.rate_limit <= 0:
            return

        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.min_interval

        if slot > now:
            time.sleep(slot - now)
