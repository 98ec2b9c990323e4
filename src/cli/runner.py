# src/cli/runner.py

"""Process wiring for the bot and the one-shot CLI modes."""

import logging
from decimal import Decimal

from rich.console import Console
from rich.table import Table
from rich.text import Text

from src.bot.command_router import CommandRouter
from src.bot.console_transport import ConsoleTransport
from src.config.settings import Settings
from src.errors import PersistenceError
from src.extractors.pipeline import ExtractionPipeline
from src.fetching.page_fetcher import PageFetcher
from src.models.tracked_item import TrackedItem
from src.services.conversation import ConversationStateMachine, SessionStore
from src.services.price_poller import (
    FAILED,
    NOTIFIED,
    UPDATED,
    FiringResult,
    PricePoller,
)
from src.services.scheduler import build_scheduler
from src.storage.watchlist_db import WatchlistDB

logger = logging.getLogger("price_watch.cli")

# Stderr console for status messages so stdout stays clean for tables
_err = Console(stderr=True)

_STATUS_STYLES: dict[str, str] = {
    UPDATED: "yellow",
    NOTIFIED: "green",
    FAILED: "red",
}


def _price(value: Decimal | None) -> str:
    return "-" if value is None else str(value)


def print_firing(result: FiringResult) -> None:
    """Render a Rich table of per-item firing outcomes to stdout."""
    table = Table(
        title=f"Price check {result.started_at:%Y-%m-%d %H:%M:%S}",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Owner", style="magenta")
    table.add_column("Old", justify="right")
    table.add_column("New", justify="right", style="green")
    table.add_column("Status", justify="center")
    table.add_column("URL / error", overflow="fold", style="dim")

    for o in sorted(result.outcomes, key=lambda o: o.item_id):
        style = _STATUS_STYLES.get(o.status, "")
        table.add_row(
            str(o.item_id),
            str(o.owner),
            _price(o.old_price),
            _price(o.new_price),
            f"[{style}]{o.status}[/{style}]" if style else o.status,
            Text(o.error or o.url),
        )
    Console().print(table)


def print_watchlist(owner: int, items: list[TrackedItem]) -> None:
    """Render one owner's watchlist as a Rich table."""
    table = Table(
        title=f"Watchlist for {owner}",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Site", style="magenta")
    table.add_column("Last price", justify="right", style="green")
    table.add_column("URL", overflow="fold", style="dim")
    for item in items:
        table.add_row(
            str(item.id),
            item.site,
            f"{item.currency}{item.last_price}",
            Text(item.url),
        )
    Console().print(table)


async def run_check_now() -> int:
    """Run one firing immediately, printing alerts to the console."""
    store = WatchlistDB()
    fetcher = PageFetcher()
    try:
        poller = PricePoller(
            store, fetcher, ExtractionPipeline(), ConsoleTransport(),
        )
        result = await poller.run_firing()
    finally:
        await fetcher.close()
        store.close()

    if result.error:
        _err.print(f"[red]Firing failed: {result.error}[/red]")
        return 1
    if not result.outcomes:
        _err.print("[yellow]Watchlist is empty.[/yellow]")
        return 0
    print_firing(result)
    return 1 if result.count(FAILED) else 0


def run_list(owner: int) -> int:
    """Print *owner*'s watchlist."""
    store = WatchlistDB()
    try:
        items = store.list_by_owner(owner)
    except PersistenceError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        store.close()

    if not items:
        _err.print(f"[yellow]No items tracked for {owner}.[/yellow]")
        return 0
    print_watchlist(owner, items)
    return 0


def run_sites() -> int:
    """Print every site the extraction pipeline supports."""
    pipeline = ExtractionPipeline()
    labels = {s["id"]: s["label"] for s in Settings.AVAILABLE_SITES}
    for site_id in pipeline.site_ids():
        Console().print(f"{site_id}\t{labels.get(site_id, site_id)}")
    return 0


def run_bot() -> int:
    """Start the Telegram bot and the twice-daily price checks."""
    from src.bot.telegram_transport import TelegramTransport

    token = Settings.TELEGRAM_BOT_TOKEN
    if not token:
        _err.print(
            "[red]TELEGRAM_BOT_TOKEN is missing in environment "
            "variables.[/red]"
        )
        return 1

    store = WatchlistDB()
    fetcher = PageFetcher()
    pipeline = ExtractionPipeline()
    transport = TelegramTransport(token)
    router = CommandRouter(
        transport,
        store,
        fetcher,
        pipeline,
        ConversationStateMachine(SessionStore()),
    )
    transport.attach(router)
    poller = PricePoller(store, fetcher, pipeline, transport)

    async def cleanup() -> None:
        await fetcher.close()
        store.close()

    transport.run(lambda: build_scheduler(poller), cleanup=cleanup)
    return 0
