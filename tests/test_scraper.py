"""Tests for the store adapters and their normalization rules."""

from datetime import datetime, timezone

import pytest
import requests

from review_feed import scraper
from review_feed.config import APPLE_APP_STORE, APPS, GOOGLE_PLAY_STORE
from review_feed.errors import SourceFetchError

MEESHO = APPS[0]


def _apple_entry(i, rating="4", text="Delivery was quick and easy", updated="2025-02-03T04:05:06-07:00"):
    return {
        "author": {"name": {"label": f"user{i}"}},
        "im:version": {"label": "12.3"},
        "im:rating": {"label": rating},
        "id": {"label": f"apple-{i}"},
        "content": {"label": text},
        "updated": {"label": updated},
        "im:voteSum": {"label": "2"},
    }


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class TestNormalizePlayReview:
    def test_full_review(self):
        raw = {
            "reviewId": "gp-1",
            "userName": "Asha",
            "content": "Great deals every day",
            "score": 5,
            "thumbsUpCount": 7,
            "reviewCreatedVersion": "9.1",
            "at": datetime(2025, 1, 2, 3, 4, 5),
            "replyContent": "Thanks!",
        }
        record = scraper.normalize_play_review(MEESHO, raw)

        assert record.app == "Meesho"
        assert record.store == GOOGLE_PLAY_STORE
        assert record.username == "Asha"
        assert record.rating == 5
        assert record.thumbs_up == 7
        assert record.version == "9.1"
        assert record.reply == "Thanks!"
        assert record.review_id == "gp-1"
        assert record.date == datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert record.to_dict()["date"] == "2025-01-02T03:04:05.000Z"

    def test_missing_fields_take_defaults(self):
        record = scraper.normalize_play_review(MEESHO, {"userName": None, "content": None})

        assert record.username == "Anonymous"
        assert record.rating == 0
        assert record.review_text == ""
        assert record.date is None
        assert record.version is None
        assert record.thumbs_up == 0
        assert record.review_id is None
        assert record.to_dict()["date"] is None

    def test_rating_is_clamped(self):
        assert scraper.normalize_play_review(MEESHO, {"score": 9}).rating == 5
        assert scraper.normalize_play_review(MEESHO, {"score": -2}).rating == 0


class TestNormalizeAppStoreEntry:
    def test_full_entry(self):
        record = scraper.normalize_app_store_entry(MEESHO, _apple_entry(1))

        assert record.store == APPLE_APP_STORE
        assert record.username == "user1"
        assert record.rating == 4
        assert record.version == "12.3"
        assert record.thumbs_up == 2
        assert record.reply is None
        # -07:00 offset converted to UTC
        assert record.date == datetime(2025, 2, 3, 11, 5, 6, tzinfo=timezone.utc)

    def test_bad_values_take_defaults(self):
        record = scraper.normalize_app_store_entry(MEESHO, {"im:rating": {"label": "x"},
                                                            "updated": {"label": "not a date"}})
        assert record.rating == 0
        assert record.date is None
        assert record.username == "Anonymous"
        assert record.review_text == ""


class TestScrapeGooglePlay:
    def test_requests_newest_first_page(self, monkeypatch):
        captured = {}

        def fake_reviews(app_id, **kwargs):
            captured["app_id"] = app_id
            captured.update(kwargs)
            return [{"reviewId": str(i), "content": "Fine app overall", "score": 3}
                    for i in range(30)], "token"

        monkeypatch.setattr(scraper, "reviews", fake_reviews)
        records = scraper.scrape_google_play(MEESHO, 19)

        assert captured["app_id"] == "com.meesho.supply"
        assert captured["sort"] == scraper.Sort.NEWEST
        assert captured["count"] == 19
        assert len(records) == 19
        assert all(r.store == GOOGLE_PLAY_STORE for r in records)


class TestScrapeAppleAppStore:
    def test_skips_metadata_and_truncates(self, monkeypatch):
        captured = {}
        entries = [{"im:name": {"label": "Meesho"}}] + [_apple_entry(i) for i in range(50)]

        def fake_get(url, timeout):
            captured["url"] = url
            return FakeResponse({"feed": {"entry": entries}})

        monkeypatch.setattr(scraper.requests, "get", fake_get)
        records = scraper.scrape_apple_app_store(MEESHO, 19)

        assert "/in/rss/customerreviews/" in captured["url"]
        assert "id=1457958492" in captured["url"]
        assert len(records) == 19
        assert records[0].review_id == "apple-0"

    def test_single_entry_feed(self, monkeypatch):
        monkeypatch.setattr(scraper.requests, "get",
                            lambda url, timeout: FakeResponse({"feed": {"entry": _apple_entry(7)}}))
        records = scraper.scrape_apple_app_store(MEESHO, 19)
        assert [r.review_id for r in records] == ["apple-7"]

    def test_empty_feed(self, monkeypatch):
        monkeypatch.setattr(scraper.requests, "get", lambda url, timeout: FakeResponse({"feed": {}}))
        assert scraper.scrape_apple_app_store(MEESHO, 19) == []

    def test_http_error_raises(self, monkeypatch):
        monkeypatch.setattr(scraper.requests, "get", lambda url, timeout: FakeResponse({}, status=503))
        with pytest.raises(requests.HTTPError):
            scraper.scrape_apple_app_store(MEESHO, 19)


class TestAdapters:
    def test_failure_becomes_empty_outcome(self, monkeypatch):
        def boom(app_id, **kwargs):
            raise ConnectionError("network unreachable")

        monkeypatch.setattr(scraper, "reviews", boom)
        outcome = scraper.fetch_google_play_reviews(MEESHO, 19)

        assert not outcome.ok
        assert outcome.reviews == []
        assert isinstance(outcome.error, SourceFetchError)
        assert outcome.error.store == GOOGLE_PLAY_STORE
        assert "network unreachable" in str(outcome.error)

    def test_success_outcome(self, monkeypatch):
        monkeypatch.setattr(scraper.requests, "get",
                            lambda url, timeout: FakeResponse({"feed": {"entry": [_apple_entry(1)]}}))
        outcome = scraper.fetch_apple_app_store_reviews(MEESHO, 19)

        assert outcome.ok
        assert outcome.store == APPLE_APP_STORE
        assert len(outcome.reviews) == 1

    def test_sources_cover_both_stores(self):
        assert list(scraper.SOURCES) == [GOOGLE_PLAY_STORE, APPLE_APP_STORE]
