"""Shared pytest fixtures for the review feed test suite."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from review_feed.aggregator import FetchRunner
from review_feed.config import APPLE_APP_STORE, APPS, GOOGLE_PLAY_STORE
from review_feed.models import FetchOutcome, ReviewRecord

START = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """A clock tests can move forward by hand."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeSource:
    """
    Stands in for one store adapter. Returns canned reviews per app, or a
    failed FetchOutcome for apps listed in `failing`.
    """

    def __init__(self, store: str, reviews_by_app: dict | None = None, failing=()):
        self.store = store
        self.reviews_by_app = reviews_by_app or {}
        self.failing = set(failing)
        self.calls: list[tuple[str, int]] = []
        self._lock = threading.Lock()

    def __call__(self, app, count):
        with self._lock:
            self.calls.append((app.name, count))
        if app.name in self.failing:
            return FetchOutcome(app=app.name, store=self.store,
                                error=RuntimeError(f"{self.store} down"))
        return FetchOutcome(app=app.name, store=self.store,
                            reviews=list(self.reviews_by_app.get(app.name, []))[:count])


def make_review(app="Meesho", store=GOOGLE_PLAY_STORE, rating=5,
                text="Really useful app for shopping", date=START, **kwargs) -> ReviewRecord:
    return ReviewRecord(app=app, store=store, rating=rating, review_text=text, date=date, **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def runner():
    """A private FetchRunner, so slow fetches don't linger in the shared one."""
    fetch_runner = FetchRunner()
    yield fetch_runner
    fetch_runner.shutdown()


@pytest.fixture
def sample_reviews():
    """A few reviews per app per store with mixed ratings and dates."""
    out = {}
    for store in (GOOGLE_PLAY_STORE, APPLE_APP_STORE):
        out[store] = {
            app.name: [
                make_review(app=app.name, store=store, rating=(i % 5) + 1,
                            text=f"{app.name} review number {i} from {store}",
                            date=START - timedelta(days=i),
                            review_id=f"{app.key}-{store[:5]}-{i}")
                for i in range(6)
            ]
            for app in APPS
        }
    return out


@pytest.fixture
def sources(sample_reviews):
    return {
        GOOGLE_PLAY_STORE: FakeSource(GOOGLE_PLAY_STORE, sample_reviews[GOOGLE_PLAY_STORE]),
        APPLE_APP_STORE: FakeSource(APPLE_APP_STORE, sample_reviews[APPLE_APP_STORE]),
    }
