"""
Review service — decides whether a request is served from cache, from a fresh
aggregation, or from a stale cache entry after a failed refresh.
"""

import enum
import logging
from typing import Awaitable, Callable, Optional

from review_feed.aggregator import aggregate_reviews
from review_feed.cache import CACHE_KEY, ReviewCache
from review_feed.errors import AggregationError
from review_feed.models import AggregationResult

logger = logging.getLogger(__name__)


class ServedFrom(str, enum.Enum):
    CACHE = "HIT"
    FRESH = "MISS"
    STALE = "STALE"


class ReviewFeed:
    def __init__(self, cache: Optional[ReviewCache] = None,
                 aggregate: Callable[[], Awaitable[AggregationResult]] = aggregate_reviews):
        self.cache = cache if cache is not None else ReviewCache()
        self.aggregate = aggregate

    async def get_reviews(self) -> tuple[AggregationResult, ServedFrom]:
        """
        Return the current review feed and where it came from.

        Raises:
            AggregationError: the refresh failed and nothing was ever cached.
        """
        entry = self.cache.read(CACHE_KEY)
        if entry is not None:
            logger.info("Returning cached results")
            return entry.value, ServedFrom.CACHE

        logger.info("Cache miss, fetching fresh reviews")
        try:
            result = await self.aggregate()
        except AggregationError as e:
            return self._serve_stale(e)
        except Exception as e:
            logger.exception("Unexpected error while aggregating reviews")
            return self._serve_stale(AggregationError(str(e) or type(e).__name__, cause=e))

        self.cache.write(CACHE_KEY, result)
        logger.info("Cached %d fresh reviews", result.total)
        return result, ServedFrom.FRESH

    def _serve_stale(self, error: AggregationError) -> tuple[AggregationResult, ServedFrom]:
        previous = self.cache.read_stale(CACHE_KEY)
        if previous is None:
            raise error
        logger.warning("Refresh failed (%s); serving stale results from %s",
                       error, previous.timestamp.isoformat())
        return previous.value.as_stale(), ServedFrom.STALE
