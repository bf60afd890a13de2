"""
Review scraper — the source adapters.
Fetches the newest reviews from Google Play Store and Apple App Store and
normalizes both shapes into ReviewRecord.

Each store has two layers:
    scrape_*  talks to the store and raises on failure.
    fetch_*   wraps it and always returns a FetchOutcome, so one store's
              outage never takes the whole feed down.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import requests
from dateutil import parser as date_parser
from google_play_scraper import Sort, reviews

from review_feed.config import (
    APPLE_APP_STORE,
    FETCH_TIMEOUT_SECONDS,
    GOOGLE_PLAY_STORE,
    PLAY_STORE_COUNTRY,
    PLAY_STORE_LANG,
)
from review_feed.errors import SourceFetchError
from review_feed.models import AppConfig, FetchOutcome, ReviewRecord

logger = logging.getLogger(__name__)

APP_STORE_RSS_URL = (
    "https://itunes.apple.com/{country}/rss/customerreviews/"
    "page=1/id={app_id}/sortby=mostrecent/json"
)


# ============================================================
# Normalization helpers
# ============================================================

def _clamp_rating(value) -> int:
    try:
        rating = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, min(5, rating))


def _non_negative(value) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # google-play-scraper hands back naive datetimes that are already UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return _as_utc(date_parser.isoparse(value))
    except (ValueError, OverflowError):
        logger.debug("Unparseable review date: %r", value)
        return None


def _label(entry: dict, key: str) -> Optional[str]:
    """Apple wraps every scalar as {"label": value}."""
    node = entry.get(key)
    if isinstance(node, dict):
        return node.get("label")
    return None


def normalize_play_review(app: AppConfig, raw: dict) -> ReviewRecord:
    """Convert one google-play-scraper review dict into a ReviewRecord."""
    at = raw.get("at")
    review_id = raw.get("reviewId")
    return ReviewRecord(
        app=app.name,
        store=GOOGLE_PLAY_STORE,
        username=raw.get("userName") or "Anonymous",
        rating=_clamp_rating(raw.get("score")),
        review_text=raw.get("content") or "",
        date=_as_utc(at) if isinstance(at, datetime) else None,
        version=raw.get("reviewCreatedVersion") or raw.get("appVersion") or None,
        thumbs_up=_non_negative(raw.get("thumbsUpCount")),
        reply=raw.get("replyContent") or None,
        review_id=str(review_id) if review_id else None,
    )


def normalize_app_store_entry(app: AppConfig, entry: dict) -> ReviewRecord:
    """Convert one entry of Apple's customer-reviews RSS feed into a ReviewRecord."""
    author = entry.get("author") or {}
    return ReviewRecord(
        app=app.name,
        store=APPLE_APP_STORE,
        username=_label(author, "name") or "Anonymous",
        rating=_clamp_rating(_label(entry, "im:rating")),
        review_text=_label(entry, "content") or "",
        date=_parse_date(_label(entry, "updated")),
        version=_label(entry, "im:version") or None,
        thumbs_up=_non_negative(_label(entry, "im:voteSum")),
        # the public feed carries no developer replies
        reply=None,
        review_id=_label(entry, "id") or None,
    )


# ============================================================
# Store calls (these raise)
# ============================================================

def scrape_google_play(app: AppConfig, count: int,
                       lang: str = PLAY_STORE_LANG,
                       country: str = PLAY_STORE_COUNTRY) -> list[ReviewRecord]:
    """
    Fetch the newest reviews for an app from Google Play Store.

    Args:
        app:     Registry entry; its play_store_id is the package name.
        count:   How many reviews to ask for. Only the first page is read.
        lang:    Review language.
        country: Storefront country.

    Returns:
        Normalized reviews, newest first as the store supplies them.
    """
    logger.info("Scraping Play Store for %s (%s)", app.name, app.play_store_id)
    result, _ = reviews(
        app.play_store_id,
        lang=lang,
        country=country,
        sort=Sort.NEWEST,
        count=count,
    )
    return [normalize_play_review(app, raw) for raw in result[:count]]


def scrape_apple_app_store(app: AppConfig, count: int,
                           timeout: float = FETCH_TIMEOUT_SECONDS) -> list[ReviewRecord]:
    """
    Fetch the newest reviews for an app from Apple App Store using the public
    iTunes RSS API.

    Note:
        Apple's feed returns 50 reviews per page. We only read page 1 and
        keep the first `count` of them.
    """
    url = APP_STORE_RSS_URL.format(country=app.app_store_country, app_id=app.app_store_id)
    logger.info("Scraping App Store for %s (id=%s)", app.name, app.app_store_id)

    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    data = response.json()

    entries = (data.get("feed") or {}).get("entry") or []
    # A feed with a single entry comes back as a bare object
    if isinstance(entries, dict):
        entries = [entries]

    records = []
    for entry in entries:
        # The first entry is sometimes the app's own metadata, not a review
        if "im:rating" not in entry:
            continue
        records.append(normalize_app_store_entry(app, entry))
        if len(records) >= count:
            break

    return records


# ============================================================
# Adapters (these never raise)
# ============================================================

def _fetch(store: str, scrape: Callable[[AppConfig, int], list[ReviewRecord]],
           app: AppConfig, count: int) -> FetchOutcome:
    try:
        records = scrape(app, count)
    except Exception as e:
        error = SourceFetchError(app.name, store, str(e) or type(e).__name__)
        logger.warning("%s", error)
        return FetchOutcome(app=app.name, store=store, error=error)

    logger.info("%s: %d reviews for %s", store, len(records), app.name)
    return FetchOutcome(app=app.name, store=store, reviews=records)


def fetch_google_play_reviews(app: AppConfig, count: int) -> FetchOutcome:
    return _fetch(GOOGLE_PLAY_STORE, scrape_google_play, app, count)


def fetch_apple_app_store_reviews(app: AppConfig, count: int) -> FetchOutcome:
    return _fetch(APPLE_APP_STORE, scrape_apple_app_store, app, count)


# Store name -> adapter. Order here is the order stores are listed in results.
SOURCES: dict[str, Callable[[AppConfig, int], FetchOutcome]] = {
    GOOGLE_PLAY_STORE: fetch_google_play_reviews,
    APPLE_APP_STORE: fetch_apple_app_store_reviews,
}
