# tests/test_cli_runner.py

"""Tests for the one-shot CLI modes (no network, temp database)."""

import io
import unittest
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from rich.console import Console

from main import _build_parser
from src.cli import runner
from src.config.settings import Settings
from src.services.price_poller import FAILED, UPDATED, FiringResult, ItemOutcome
from src.storage.watchlist_db import WatchlistDB


class TestParser(unittest.TestCase):

    def test_no_args_runs_bot(self) -> None:
        args = _build_parser().parse_args([])
        self.assertFalse(args.check_now)
        self.assertIsNone(args.list_owner)
        self.assertFalse(args.sites)

    def test_list_takes_owner_id(self) -> None:
        args = _build_parser().parse_args(["--list", "42"])
        self.assertEqual(args.list_owner, 42)

    def test_modes_are_exclusive(self) -> None:
        with self.assertRaises(SystemExit):
            _build_parser().parse_args(["--check-now", "--sites"])


class TestRunList(unittest.TestCase):

    def test_empty_watchlist(self) -> None:
        self.assertEqual(runner.run_list(42), 0)

    def test_prints_items(self) -> None:
        db = WatchlistDB()
        db.insert(42, "https://www.amazon.in/dp/B001", "amazon",
                  Decimal("1299"), "₹")
        db.close()
        with patch.object(runner, "print_watchlist") as printer:
            self.assertEqual(runner.run_list(42), 0)
        owner, items = printer.call_args.args
        self.assertEqual(owner, 42)
        self.assertEqual(items[0].last_price, Decimal("1299"))


class TestRunCheckNow(unittest.IsolatedAsyncioTestCase):

    async def test_empty_watchlist_exits_cleanly(self) -> None:
        self.assertEqual(await runner.run_check_now(), 0)

    async def test_failed_items_give_non_zero_exit(self) -> None:
        result = FiringResult(started_at=datetime.now())
        result.outcomes = [
            ItemOutcome(1, 42, "https://a.example/1", UPDATED),
            ItemOutcome(2, 42, "https://a.example/2", FAILED, error="x"),
        ]
        poller = MagicMock()
        poller.return_value.run_firing = AsyncMock(return_value=result)
        with patch.object(runner, "PricePoller", poller), \
                patch.object(runner, "print_firing") as printer:
            self.assertEqual(await runner.run_check_now(), 1)
        printer.assert_called_once_with(result)


class TestPrintFiring(unittest.TestCase):

    def test_error_text_with_brackets_is_shown_verbatim(self) -> None:
        result = FiringResult(started_at=datetime.now())
        result.outcomes = [
            ItemOutcome(
                3, 42, "https://a.example/3", FAILED,
                error="[Errno 111] Connection refused",
            ),
        ]
        console = Console(file=io.StringIO(), width=200, record=True)
        with patch.object(runner, "Console", return_value=console):
            runner.print_firing(result)
        self.assertIn("[Errno 111] Connection refused", console.export_text())


class TestRunBot(unittest.TestCase):

    def test_missing_token_fails_fast(self) -> None:
        with patch.object(Settings, "TELEGRAM_BOT_TOKEN", None):
            self.assertEqual(runner.run_bot(), 1)


class TestRunSites(unittest.TestCase):

    def test_lists_amazon(self) -> None:
        with patch.object(runner, "Console") as console_cls:
            self.assertEqual(runner.run_sites(), 0)
        printed = console_cls.return_value.print.call_args.args[0]
        self.assertIn("amazon", printed)


if __name__ == "__main__":
    unittest.main()
