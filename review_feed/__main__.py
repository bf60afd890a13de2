"""
Review Feed — Web Server Entry Point

Run this to start the API:
    python -m review_feed

Then open http://127.0.0.1:8000/api/reviews in your browser.
"""

import logging

import uvicorn

from review_feed.config import HOST, LOG_LEVEL, PORT


def main():
    """Start the web server."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "review_feed.api:app",
        host=HOST,
        port=PORT,
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
