"""
Aggregator — fans out to every (app, store) pair, then merges, filters,
ranks and truncates the results into one AggregationResult.

Key design decisions:
    1. All fetches start before any is awaited; output order comes from the
       sort, never from which fetch finished first.
    2. Store scrapers are blocking, so each store gets its own small thread
       pool and every fetch its own timeout. A hung store can only exhaust
       its own pool.
    3. A timed-out fetch keeps its thread until the scraper returns. While
       it does, the same (app, store) pair is not fetched again.
    4. A failed pair contributes nothing. Only when every pair fails does the
       aggregation itself fail.
"""

import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Iterable, Mapping, Optional

from review_feed.config import (
    APPS,
    FETCH_TIMEOUT_SECONDS,
    FETCH_WORKERS_PER_STORE,
    MAX_REVIEWS,
    MIN_REVIEW_LENGTH,
    REVIEWS_PER_SOURCE,
)
from review_feed.errors import AggregationError, SourceFetchError
from review_feed.models import AggregationResult, AppConfig, FetchOutcome, ReviewRecord, utcnow
from review_feed.scraper import SOURCES

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

Fetcher = Callable[[AppConfig, int], FetchOutcome]


def filter_noise(records: Iterable[ReviewRecord],
                 min_length: int = MIN_REVIEW_LENGTH) -> list[ReviewRecord]:
    """Drop reviews whose text (whitespace stripped) is shorter than min_length."""
    return [r for r in records if len(r.review_text.strip()) >= min_length]


def _sort_key(record: ReviewRecord) -> tuple[int, datetime]:
    return record.rating, record.date or EPOCH


def rank_reviews(records: Iterable[ReviewRecord], limit: int = MAX_REVIEWS) -> list[ReviewRecord]:
    """Highest rating first, newest first within a rating, cut to `limit` overall."""
    return sorted(records, key=_sort_key, reverse=True)[:limit]


class FetchRunner:
    """
    Runs blocking store fetches in one thread pool per store and remembers
    which (app, store) fetches are still running.
    """

    def __init__(self, workers_per_store: int = FETCH_WORKERS_PER_STORE):
        self.workers_per_store = workers_per_store
        self._pools: dict[str, ThreadPoolExecutor] = {}
        self._in_flight: dict[tuple[str, str], Future] = {}
        self._lock = threading.Lock()

    def _pool(self, store: str) -> ThreadPoolExecutor:
        pool = self._pools.get(store)
        if pool is None:
            pool = ThreadPoolExecutor(max_workers=self.workers_per_store,
                                      thread_name_prefix=f"fetch-{store}")
            self._pools[store] = pool
        return pool

    def submit(self, fetch: Fetcher, app: AppConfig, store: str, count: int) -> Optional[Future]:
        """Start a fetch, or return None if the previous one for this pair hasn't finished."""
        key = (app.name, store)
        with self._lock:
            previous = self._in_flight.get(key)
            if previous is not None and not previous.done():
                return None
            future = self._pool(store).submit(fetch, app, count)
            self._in_flight[key] = future
        return future

    async def run(self, fetch: Fetcher, app: AppConfig, store: str,
                  count: int, timeout: float) -> FetchOutcome:
        try:
            future = self.submit(fetch, app, store, count)
            if future is None:
                error = SourceFetchError(app.name, store, "previous fetch still running")
            else:
                return await asyncio.wait_for(asyncio.wrap_future(future), timeout)
        except asyncio.TimeoutError:
            error = SourceFetchError(app.name, store, f"timed out after {timeout:g}s")
        except Exception as e:
            # adapters are meant to catch their own failures; this covers ones that don't
            error = SourceFetchError(app.name, store, str(e) or type(e).__name__)
        logger.warning("%s", error)
        return FetchOutcome(app=app.name, store=store, error=error)

    def shutdown(self) -> None:
        with self._lock:
            pools, self._pools = self._pools, {}
            self._in_flight.clear()
        for pool in pools.values():
            pool.shutdown(wait=False, cancel_futures=True)


default_runner = FetchRunner()


async def aggregate_reviews(
    apps: Iterable[AppConfig] = APPS,
    sources: Mapping[str, Fetcher] = SOURCES,
    *,
    per_source: int = REVIEWS_PER_SOURCE,
    limit: int = MAX_REVIEWS,
    min_length: int = MIN_REVIEW_LENGTH,
    timeout: float = FETCH_TIMEOUT_SECONDS,
    clock: Callable[[], datetime] = utcnow,
    runner: Optional[FetchRunner] = None,
) -> AggregationResult:
    """
    Build one AggregationResult for the whole app set.

    Raises:
        AggregationError: every (app, store) fetch failed.
    """
    runner = runner if runner is not None else default_runner
    apps = tuple(apps)
    tasks = [
        runner.run(fetch, app, store, per_source, timeout)
        for app in apps
        for store, fetch in sources.items()
    ]
    logger.info("Fetching reviews: %d apps x %d stores", len(apps), len(sources))
    outcomes: list[FetchOutcome] = await asyncio.gather(*tasks)

    failed = [o for o in outcomes if not o.ok]
    if outcomes and len(failed) == len(outcomes):
        raise AggregationError(
            f"All {len(outcomes)} review sources failed",
            cause=failed[0].error,
        )

    merged = [record for outcome in outcomes for record in outcome.reviews]
    kept = filter_noise(merged, min_length)
    top = rank_reviews(kept, limit)

    logger.info(
        "Aggregated %d reviews (%d fetched, %d after filter, %d failed sources)",
        len(top), len(merged), len(kept), len(failed),
    )
    return AggregationResult(
        reviews=tuple(top),
        apps=tuple(app.name for app in apps),
        stores=tuple(sources),
        last_updated=clock(),
    )
