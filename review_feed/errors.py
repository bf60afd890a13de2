"""
Error types shared across the pipeline.
"""

from typing import Optional


class ReviewFeedError(Exception):
    """Base class for everything this package raises."""


class SourceFetchError(ReviewFeedError):
    """One store failed for one app. Recorded on the fetch outcome, never raised past the adapter."""

    def __init__(self, app: str, store: str, reason: str):
        self.app = app
        self.store = store
        self.reason = reason
        super().__init__(f"{store} fetch failed for {app}: {reason}")


class AggregationError(ReviewFeedError):
    """The pipeline produced nothing usable."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
