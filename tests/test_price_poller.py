# tests/test_price_poller.py

"""Tests for PricePoller firings with stubbed fetching and transport."""

import asyncio
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, patch

from src.errors import FetchError, PersistenceError
from src.extractors.pipeline import ExtractionPipeline
from src.services.price_poller import (
    FAILED,
    NOTIFIED,
    UNCHANGED,
    UPDATED,
    PricePoller,
)
from src.storage.watchlist_db import WatchlistDB


def _amazon_page(whole: str, symbol: str = "₹") -> str:
    return (
        "<html><body>"
        f'<span class="a-price-symbol">{symbol}</span>'
        f'<span class="a-price-whole">{whole}</span>'
        "</body></html>"
    )


class _StubFetcher:
    """Serves canned markup (or raises) per URL."""

    def __init__(self, pages: dict[str, str | Exception]) -> None:
        self.pages = pages
        self.calls: list[str] = []

    async def fetch(self, url: str, referer: str | None = None) -> str:
        self.calls.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return page


class TestPricePoller(unittest.IsolatedAsyncioTestCase):
    """run_firing() isolation, persistence and notification rules."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.mkdtemp()
        self.store = WatchlistDB(db_path=Path(self.tmp_dir) / "test.db")
        self.transport = AsyncMock()
        self.pipeline = ExtractionPipeline()

    def tearDown(self) -> None:
        self.store.close()

    def _track(
        self, url: str, price: str, owner: int = 42, site: str = "amazon",
    ) -> int:
        return self.store.insert(owner, url, site, Decimal(price), "₹")

    def _poller(self, fetcher: object) -> PricePoller:
        return PricePoller(
            self.store, fetcher, self.pipeline, self.transport,  # type: ignore[arg-type]
        )

    async def test_empty_watchlist_is_noop(self) -> None:
        fetcher = _StubFetcher({})
        result = await self._poller(fetcher).run_firing()
        self.assertEqual(result.outcomes, [])
        self.assertEqual(fetcher.calls, [])
        self.transport.send.assert_not_awaited()

    async def test_failing_item_does_not_stop_siblings(self) -> None:
        """Item 2's fetch error leaves items 1 and 3 fully processed."""
        id1 = self._track("https://a.example/1", "500")
        id2 = self._track("https://a.example/2", "500")
        id3 = self._track("https://a.example/3", "500")
        fetcher = _StubFetcher({
            "https://a.example/1": _amazon_page("450"),
            "https://a.example/2": FetchError(
                "https://a.example/2", "timed out"
            ),
            "https://a.example/3": _amazon_page("650"),
        })

        result = await self._poller(fetcher).run_firing()

        by_id = {o.item_id: o for o in result.outcomes}
        self.assertEqual(by_id[id1].status, NOTIFIED)
        self.assertEqual(by_id[id2].status, FAILED)
        self.assertIn("timed out", by_id[id2].error)
        self.assertEqual(by_id[id3].status, UPDATED)

        prices = {i.id: i.last_price for i in self.store.list_all()}
        self.assertEqual(prices[id1], Decimal("450"))
        self.assertEqual(prices[id2], Decimal("500"))
        self.assertEqual(prices[id3], Decimal("650"))

    async def test_unexpected_exception_is_contained(self) -> None:
        id1 = self._track("https://a.example/1", "500")
        id2 = self._track("https://a.example/2", "500")
        fetcher = _StubFetcher({
            "https://a.example/1": RuntimeError("boom"),
            "https://a.example/2": _amazon_page("400"),
        })
        result = await self._poller(fetcher).run_firing()
        by_id = {o.item_id: o for o in result.outcomes}
        self.assertEqual(by_id[id1].status, FAILED)
        self.assertEqual(by_id[id2].status, NOTIFIED)

    async def test_unsupported_site_fails_only_that_item(self) -> None:
        bad = self._track("https://b.example/1", "10", site="nowhere")
        good = self._track("https://a.example/1", "10")
        fetcher = _StubFetcher({"https://a.example/1": _amazon_page("10")})
        result = await self._poller(fetcher).run_firing()
        by_id = {o.item_id: o for o in result.outcomes}
        self.assertEqual(by_id[bad].status, FAILED)
        self.assertEqual(by_id[good].status, UNCHANGED)
        self.assertNotIn("https://b.example/1", fetcher.calls)

    async def test_price_drop_notifies_owner(self) -> None:
        self._track("https://a.example/1", "1299", owner=7)
        fetcher = _StubFetcher({"https://a.example/1": _amazon_page("999")})
        await self._poller(fetcher).run_firing()

        self.transport.send.assert_awaited_once()
        owner, text, formatting = self.transport.send.await_args.args
        self.assertEqual(owner, 7)
        self.assertIn("https://a.example/1", text)
        self.assertIn("Old: ₹1299", text)
        self.assertIn("New: ₹999", text)
        self.assertEqual(formatting, "HTML")

    async def test_price_rise_is_stored_silently(self) -> None:
        self._track("https://a.example/1", "100")
        fetcher = _StubFetcher({"https://a.example/1": _amazon_page("120")})
        result = await self._poller(fetcher).run_firing()
        self.assertEqual(result.outcomes[0].status, UPDATED)
        self.transport.send.assert_not_awaited()
        self.assertEqual(
            self.store.list_all()[0].last_price, Decimal("120")
        )

    async def test_second_firing_without_change_writes_nothing(self) -> None:
        self._track("https://a.example/1", "100")
        fetcher = _StubFetcher({"https://a.example/1": _amazon_page("80")})
        poller = self._poller(fetcher)
        await poller.run_firing()
        self.transport.send.reset_mock()

        with patch.object(
            self.store, "update_price", wraps=self.store.update_price,
        ) as spy:
            result = await poller.run_firing()

        spy.assert_not_called()
        self.transport.send.assert_not_awaited()
        self.assertEqual(result.outcomes[0].status, UNCHANGED)

    async def test_missing_price_stores_zero(self) -> None:
        """Page drift reads as price 0 and is stored like any change."""
        self._track("https://a.example/1", "100")
        fetcher = _StubFetcher({
            "https://a.example/1": "<html><body>gone</body></html>",
        })
        await self._poller(fetcher).run_firing()
        self.assertEqual(self.store.list_all()[0].last_price, Decimal(0))

    async def test_notification_failure_keeps_new_price(self) -> None:
        self._track("https://a.example/1", "100")
        self.transport.send.side_effect = ConnectionError("telegram down")
        fetcher = _StubFetcher({"https://a.example/1": _amazon_page("90")})
        result = await self._poller(fetcher).run_firing()
        self.assertEqual(result.outcomes[0].status, UPDATED)
        self.assertIn("notification failed", result.outcomes[0].error)
        self.assertEqual(self.store.list_all()[0].last_price, Decimal("90"))

    async def test_store_write_failure_is_per_item(self) -> None:
        self._track("https://a.example/1", "100")
        fetcher = _StubFetcher({"https://a.example/1": _amazon_page("90")})
        with patch.object(
            self.store,
            "update_price",
            side_effect=PersistenceError("locked"),
        ):
            result = await self._poller(fetcher).run_firing()
        self.assertEqual(result.outcomes[0].status, FAILED)
        self.transport.send.assert_not_awaited()

    async def test_unreadable_watchlist_reports_error(self) -> None:
        with patch.object(
            self.store, "list_all", side_effect=PersistenceError("gone"),
        ):
            result = await self._poller(_StubFetcher({})).run_firing()
        self.assertEqual(result.error, "gone")
        self.assertEqual(result.outcomes, [])

    async def test_items_are_fetched_concurrently(self) -> None:
        """A slow first item does not block the second from starting."""
        self._track("https://a.example/1", "100")
        self._track("https://a.example/2", "100")
        second_started = asyncio.Event()

        class _Blocking(_StubFetcher):
            async def fetch(
                self, url: str, referer: str | None = None,
            ) -> str:
                if url.endswith("/1"):
                    await second_started.wait()
                else:
                    second_started.set()
                return await super().fetch(url, referer)

        fetcher = _Blocking({
            "https://a.example/1": _amazon_page("100"),
            "https://a.example/2": _amazon_page("100"),
        })
        result = await asyncio.wait_for(
            self._poller(fetcher).run_firing(), timeout=5,
        )
        self.assertEqual(result.count(UNCHANGED), 2)


if __name__ == "__main__":
    unittest.main()
