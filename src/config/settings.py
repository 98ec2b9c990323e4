# src/config/settings.py

"""Central configuration for the price_watch engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the price_watch engine."""

    # --- Fetching ---
    REQUEST_TIMEOUT: int = 15           # Seconds before a page fetch times out
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Scheduling ---
    CHECK_SCHEDULE: str = "0 6,22 * * *"   # 06:00 and 22:00 every day
    SCHEDULE_TIMEZONE: str = os.getenv("PRICE_WATCH_TZ", "UTC")

    # --- Conversation ---
    SESSION_TTL: float | None = None    # Seconds; None keeps sessions forever

    # --- Telegram ---
    TELEGRAM_BOT_TOKEN: str | None = os.getenv("TELEGRAM_BOT_TOKEN")
    PARSE_MODE: str = "HTML"

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = BASE_DIR / "src" / "config" / "selectors.json"
    WATCHLIST_DB_PATH: Path = BASE_DIR / "data" / "price_tracker.db"
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Sites (registry for future extensibility) ---
    AVAILABLE_SITES: list[dict[str, str]] = [
        {
            "id": "amazon",
            "label": "Amazon",
            "extractor": "src.extractors.amazon_extractor.AmazonExtractor",
        },
    ]
