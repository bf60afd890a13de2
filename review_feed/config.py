"""
Configuration loader.
Reads settings from .env file and makes them available to the rest of the app.
"""

import math
import os
from dotenv import load_dotenv

from review_feed.models import AppConfig

load_dotenv()

# Store display names, used verbatim in every review record
GOOGLE_PLAY_STORE = "Google Play Store"
APPLE_APP_STORE = "Apple App Store"

# The fixed set of apps we aggregate. Adding an app means adding an entry here.
APPS = (
    AppConfig(
        key="meesho",
        name="Meesho",
        play_store_id="com.meesho.supply",
        app_store_id=1457958492,
        app_store_country="in",
    ),
    AppConfig(
        key="cred",
        name="CRED",
        play_store_id="com.dreamplug.androidapp",
        app_store_id=1343011398,
        app_store_country="in",
    ),
)

# Cache settings
CACHE_DURATION_SECONDS = int(os.getenv("CACHE_DURATION_SECONDS", "600"))

# Result shaping
MAX_REVIEWS = int(os.getenv("MAX_REVIEWS", "75"))
# Spread the total evenly over every app × store pair (~19 each)
REVIEWS_PER_SOURCE = math.ceil(MAX_REVIEWS / (len(APPS) * 2))
# Reviews shorter than this (after stripping whitespace) are treated as noise
MIN_REVIEW_LENGTH = int(os.getenv("MIN_REVIEW_LENGTH", "10"))

# Source settings
FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "15"))
# One pool per store; a hung store can hold at most one thread per app
FETCH_WORKERS_PER_STORE = int(os.getenv("FETCH_WORKERS_PER_STORE", str(len(APPS))))
PLAY_STORE_LANG = os.getenv("PLAY_STORE_LANG", "en")
PLAY_STORE_COUNTRY = os.getenv("PLAY_STORE_COUNTRY", "in")

# Server settings
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
