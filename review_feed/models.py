"""
Data models — the structure of our data.
Every review, no matter which store it comes from, gets converted into these shapes.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Render an aware datetime as UTC ISO-8601 with a trailing Z."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class AppConfig:
    """A registry entry: one app and how each store identifies it."""
    key: str                    # e.g., "meesho"
    name: str                   # display name, e.g., "Meesho"
    play_store_id: str          # package name, e.g., "com.meesho.supply"
    app_store_id: int           # numeric id from the App Store URL
    app_store_country: str      # two-letter storefront code


@dataclass(frozen=True)
class ReviewRecord:
    """A single user review from either store, normalized."""
    app: str
    store: str                  # "Google Play Store" or "Apple App Store"
    username: str = "Anonymous"
    rating: int = 0             # 0 to 5 stars
    review_text: str = ""
    date: Optional[datetime] = None     # always UTC-aware when present
    version: Optional[str] = None
    thumbs_up: int = 0
    reply: Optional[str] = None
    review_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "app": self.app,
            "store": self.store,
            "username": self.username,
            "rating": self.rating,
            "reviewText": self.review_text,
            "date": to_iso(self.date),
            "version": self.version,
            "thumbsUp": self.thumbs_up,
            "reply": self.reply,
            "reviewId": self.review_id,
        }


@dataclass
class FetchOutcome:
    """
    What one adapter call produced for one (app, store) pair.
    A failed fetch carries the error and an empty review list instead of raising.
    """
    app: str
    store: str
    reviews: list[ReviewRecord] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AggregationResult:
    """The merged, ranked review list plus summary metadata."""
    reviews: tuple[ReviewRecord, ...]
    apps: tuple[str, ...]
    stores: tuple[str, ...]
    last_updated: datetime
    success: bool = True
    stale: bool = False

    @property
    def total(self) -> int:
        return len(self.reviews)

    def as_stale(self) -> "AggregationResult":
        return replace(self, stale=True)

    def to_dict(self) -> dict:
        payload = {
            "success": self.success,
            "total": self.total,
            "apps": list(self.apps),
            "stores": list(self.stores),
            "lastUpdated": to_iso(self.last_updated),
            "reviews": [r.to_dict() for r in self.reviews],
        }
        if self.stale:
            payload["stale"] = True
        return payload


@dataclass(frozen=True)
class CacheEntry:
    value: AggregationResult
    timestamp: datetime
