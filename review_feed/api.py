"""
FastAPI application — the single reviews endpoint.

GET     /api/reviews   merged review feed (cached for CACHE_DURATION_SECONDS)
OPTIONS /api/reviews   CORS preflight, empty 200
other   /api/reviews   405
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from review_feed.config import ENVIRONMENT
from review_feed.errors import AggregationError
from review_feed.models import to_iso, utcnow
from review_feed.service import ReviewFeed

logger = logging.getLogger(__name__)

REVIEWS_PATH = "/api/reviews"
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _json(body: dict, status_code: int = 200, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code,
                        headers={**CORS_HEADERS, **(headers or {})})


def _timestamp() -> str:
    return to_iso(utcnow())


def create_app(feed: Optional[ReviewFeed] = None, environment: str = ENVIRONMENT) -> FastAPI:
    """Build the app around a ReviewFeed. Tests pass their own feed."""
    feed = feed if feed is not None else ReviewFeed()
    app = FastAPI(title="Review Feed", description="Merged app store reviews")
    app.state.feed = feed

    @app.api_route(REVIEWS_PATH, methods=ALL_METHODS)
    async def reviews(request: Request):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        if request.method != "GET":
            return _json({"success": False, "error": "Method not allowed"}, status_code=405,
                         headers={"Allow": "GET, OPTIONS"})

        try:
            result, served_from = await feed.get_reviews()
        except AggregationError as e:
            logger.error("Review feed unavailable: %s", e)
            message = "Review sources are temporarily unavailable" if environment == "production" else str(e)
            return _json(
                {
                    "success": False,
                    "error": "Failed to fetch reviews",
                    "message": message,
                    "timestamp": _timestamp(),
                },
                status_code=500,
            )

        return _json(result.to_dict(), headers={"X-Cache": served_from.value})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
