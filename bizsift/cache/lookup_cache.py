"""
In-memory cache of website lookups with per-entry expiry.
"""

import logging
import re
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional, Tuple

from bizsift.core.models import LookupResult


logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600

_WHITESPACE = re.compile(r'\s+')


def make_key(business_name: str, location: str) -> str:
    """Build the ``name|location`` cache key for a lookup."""
    def clean(value: str) -> str:
        return _WHITESPACE.sub(' ', (value or '').strip().lower())
    return f"{clean(business_name)}|{clean(location)}"


class _KeyLock:
    """A lock plus the number of threads holding or waiting on it."""

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class LookupCache:
    """
    Thread-safe store of lookup results keyed by business and location.

    One instance is created per process and shared by every lookup;
    nothing is persisted across restarts. Expired entries are swept from
    ``set`` at most once per TTL period, and a key's in-flight lock only
    lives while some thread holds or waits on it.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize the cache.

        Args:
            ttl_seconds: Default lifetime of an entry
            clock: Monotonic time source (seconds)

        Raises:
            ValueError: If ttl_seconds is not positive
        """
        if ttl_seconds <= 0:
            raise ValueError("Cache TTL must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[LookupResult, float]] = {}
        self._key_locks: Dict[str, _KeyLock] = {}
        self._lock = threading.Lock()
        self._next_purge = clock() + ttl_seconds

    def get(self, key: str) -> Optional[LookupResult]:
        """Return the live entry for ``key``, evicting it if expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: LookupResult, ttl: Optional[float] = None) -> None:
        lifetime = self.ttl_seconds if ttl is None else ttl
        now = self._clock()
        with self._lock:
            self._entries[key] = (value, now + lifetime)
            sweep_due = now >= self._next_purge
        if sweep_due:
            self.purge_expired()

    @contextmanager
    def key_lock(self, key: str) -> Iterator[None]:
        """Hold the lock serializing in-flight lookups for ``key``."""
        with self._lock:
            key_lock = self._key_locks.get(key)
            if key_lock is None:
                key_lock = self._key_locks[key] = _KeyLock()
            key_lock.users += 1

        key_lock.lock.acquire()
        try:
            yield
        finally:
            key_lock.lock.release()
            with self._lock:
                key_lock.users -= 1
                if key_lock.users == 0 and self._key_locks.get(key) is key_lock:
                    del self._key_locks[key]

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
            self._next_purge = now + self.ttl_seconds
        if expired:
            logger.debug(f"Purged {len(expired)} expired lookup(s)")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
