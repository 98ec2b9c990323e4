# src/fetching/page_fetcher.py

"""Async product page fetcher with browser impersonation."""

import asyncio
import logging
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi.requests import AsyncSession

from src.config.settings import Settings
from src.errors import FetchError

logger = logging.getLogger("price_watch.fetcher")


class PageFetcher:
    """Fetches product pages for the add flow and the polling loop.

    Requests go through a single curl_cffi :class:`AsyncSession`
    impersonating a desktop browser, bounded by ``REQUEST_TIMEOUT``.
    A Cloudflare or CAPTCHA interstitial gets one cloudscraper request
    before the fetch is declared failed.  Nothing is retried.
    """

    # Cloudflare challenge page markers (checked before keyword scan)
    _CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def __init__(self, timeout: int | None = None) -> None:
        self.settings = Settings()
        self._timeout: int = timeout or self.settings.REQUEST_TIMEOUT
        self._session: AsyncSession | None = None

    def _get_session(self) -> AsyncSession:
        if self._session is None:
            self._session = AsyncSession(
                impersonate=self.settings.IMPERSONATE_BROWSER
            )
        return self._session

    async def close(self) -> None:
        """Release the underlying HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    def is_challenge(self, text: str) -> bool:
        """True when *text* looks like a bot challenge instead of a page."""
        lower = text.lower()
        for marker in self._CF_CHALLENGE_MARKERS:
            if marker in lower:
                logger.warning(
                    "Cloudflare challenge detected (marker: '%s')",
                    marker,
                )
                return True

        # Real product pages mention "captcha" in scripts; only trust the
        # keyword scan on short bodies
        has_body_content = "<body" in lower and len(text) > 5000
        if not has_body_content:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    logger.warning(
                        "CAPTCHA keyword '%s' detected", keyword,
                    )
                    return True
        return False

    def _headers(self, referer: str | None) -> dict[str, str]:
        headers = dict(self.settings.DEFAULT_HEADERS)
        if referer:
            headers["Referer"] = referer
        return headers

    async def fetch(self, url: str, referer: str | None = None) -> str:
        """Return the markup at *url*.

        Raises:
            FetchError: transport failure, non-200 status, or an
                unsolved challenge page.
        """
        headers = self._headers(referer)
        try:
            resp = await self._get_session().get(
                url,
                headers=headers,
                timeout=self._timeout,
            )
        except Exception as exc:
            raise FetchError(url, str(exc)) from exc

        if resp.status_code != 200:
            raise FetchError(url, f"HTTP {resp.status_code}")

        text: str = resp.text
        if not self.is_challenge(text):
            return text

        logger.info(
            "Challenge page for %s, falling back to cloudscraper", url,
        )
        return await asyncio.to_thread(
            self._fetch_with_cloudscraper, url, headers,
        )

    def _fetch_with_cloudscraper(
        self, url: str, headers: dict[str, str],
    ) -> str:
        """Blocking cloudscraper GET, run in a worker thread."""
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url,
                headers=headers,
                timeout=self._timeout,
            )
        except Exception as exc:
            raise FetchError(url, f"cloudscraper: {exc}") from exc

        if resp.status_code != 200:
            raise FetchError(
                url, f"cloudscraper HTTP {resp.status_code}"
            )
        text = str(resp.text)
        if self.is_challenge(text):
            raise FetchError(url, "challenge page not solved")
        return text
