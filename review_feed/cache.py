"""
Short-lived in-memory cache for aggregation results.

The feed always covers the same fixed app set, so in practice a single key
(CACHE_KEY) is used and every refresh overwrites it wholesale.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from review_feed.config import CACHE_DURATION_SECONDS
from review_feed.models import AggregationResult, CacheEntry, utcnow

CACHE_KEY = "reviews"


class ReviewCache:
    """Time-expiring memo with an injectable clock."""

    def __init__(self, duration: timedelta = timedelta(seconds=CACHE_DURATION_SECONDS),
                 clock: Callable[[], datetime] = utcnow):
        self.duration = duration
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def read(self, key: str = CACHE_KEY) -> Optional[CacheEntry]:
        """Return the entry only while it is younger than the cache duration."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() - entry.timestamp < self.duration:
            return entry
        return None

    def read_stale(self, key: str = CACHE_KEY) -> Optional[CacheEntry]:
        """Return the entry regardless of age. Used when a refresh has failed."""
        return self._entries.get(key)

    def write(self, key: str, value: AggregationResult,
              timestamp: Optional[datetime] = None) -> CacheEntry:
        entry = CacheEntry(value=value, timestamp=timestamp or self.clock())
        self._entries[key] = entry
        return entry

    def clear(self) -> None:
        self._entries.clear()
