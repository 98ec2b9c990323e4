# src/bot/command_router.py

"""Transport-neutral handling of chat commands, menu taps and free text."""

import asyncio
import html
import logging

from src.bot.transport import MenuOptions, Transport
from src.config.settings import Settings
from src.errors import (
    FetchError,
    ParseError,
    PersistenceError,
    UnknownSessionStepError,
    UnsupportedSiteError,
)
from src.extractors.pipeline import ExtractionPipeline
from src.fetching.page_fetcher import PageFetcher
from src.models.price_reading import PriceReading
from src.services.conversation import ConversationStateMachine, SessionStep
from src.storage.watchlist_db import WatchlistDB

logger = logging.getLogger("price_watch.commands")

START_MENU: MenuOptions = [
    ("Add Product", "add"),
    ("List Watchlist", "list"),
    ("Remove Product", "remove"),
    ("Clear All", "clear"),
    ("Help", "help"),
]

HELP_TEXT = (
    "Available Commands:\n\n"
    "<b>/start</b> - Start the bot and see options\n"
    "<b>/add &lt;URL&gt; &lt;SITE&gt;</b> - Add a product to your watchlist\n"
    "<b>/add</b> - Add a product step by step\n"
    "<b>/list</b> - List all products in your watchlist\n"
    "<b>/remove &lt;ID&gt;</b> - Remove a product from your watchlist by ID\n"
    "<b>/clear</b> - Clear all products from your watchlist\n"
    "<b>/help</b> - Show this help message"
)

ADD_PROMPT = (
    "Please send the product info in this format:\n<b>url - site</b>\n\n"
    "Example: https://amazon.in/product-123 - amazon"
)


def parse_add_payload(text: str) -> tuple[str, str] | None:
    """Split ``'<url> - <site>'`` on its last hyphen.

    Site ids never contain hyphens while URLs often do, so the last one
    is the separator.  Returns ``None`` when either half is missing.
    """
    url, sep, site = text.strip().rpartition("-")
    url, site = url.strip(), site.strip()
    if not sep or not url or not site:
        return None
    return url, site


class CommandRouter:
    """Maps chat input from one owner to watchlist operations.

    Every public handler runs under the owner's session lock, so two
    messages from the same owner never read the same pending session.
    """

    def __init__(
        self,
        transport: Transport,
        store: WatchlistDB,
        fetcher: PageFetcher,
        pipeline: ExtractionPipeline,
        conversation: ConversationStateMachine,
    ) -> None:
        self.transport = transport
        self.store = store
        self.fetcher = fetcher
        self.pipeline = pipeline
        self.conversation = conversation

    async def _reply(
        self, owner: int, text: str, html_mode: bool = False,
    ) -> None:
        await self.transport.send(
            owner, text, Settings.PARSE_MODE if html_mode else None,
        )

    # ── Entry points ─────────────────────────────────────

    async def handle_command(
        self, owner: int, name: str, args: list[str],
    ) -> None:
        """Dispatch a slash command such as ``/add <url> <site>``."""
        async with self.conversation.store.lock(owner):
            logger.debug("Owner %s command /%s %s", owner, name, args)
            if name == "start":
                await self._start(owner)
            elif name == "add":
                if not args:
                    await self._begin_add(owner)
                elif len(args) >= 2:
                    await self._add(owner, args[0], args[1])
                else:
                    await self._reply(
                        owner,
                        "❌ Use <b>/add &lt;URL&gt; &lt;SITE&gt;</b> "
                        "or just /add.",
                        html_mode=True,
                    )
            elif name == "list":
                await self._list(owner)
            elif name == "remove":
                if args:
                    await self._remove(owner, args[0])
                else:
                    await self._begin_remove(owner)
            elif name == "clear":
                await self._clear(owner)
            elif name == "help":
                await self._reply(owner, HELP_TEXT, html_mode=True)
            else:
                await self._reply(
                    owner, "❌ Unknown command. Type /help for options.",
                )

    async def handle_menu_selection(self, owner: int, key: str) -> None:
        """React to a tap on one of the start menu buttons."""
        async with self.conversation.store.lock(owner):
            logger.debug("Owner %s selected menu '%s'", owner, key)
            if key == "add":
                await self._begin_add(owner)
            elif key == "list":
                await self._list(owner)
            elif key == "remove":
                await self._begin_remove(owner)
            elif key == "clear":
                await self._clear(owner)
            elif key == "help":
                await self._reply(owner, HELP_TEXT, html_mode=True)
            else:
                await self._reply(
                    owner,
                    "❌ Unknown command. Please input a valid command.",
                )

    async def handle_text(self, owner: int, text: str) -> None:
        """Route free text to the owner's pending step, if any."""
        async with self.conversation.store.lock(owner):
            step = self.conversation.resolve(owner)
            if step is None:
                return
            if step is SessionStep.AWAITING_ADD_PAYLOAD:
                await self._continue_add(owner, text)
            elif step is SessionStep.AWAITING_REMOVE_ID:
                await self._remove(owner, text.strip())
            else:
                raise UnknownSessionStepError(
                    f"No continuation for step {step!r}"
                )

    # ── Flows ────────────────────────────────────────────

    async def _start(self, owner: int) -> None:
        await self.transport.send_menu(
            owner,
            "👋 Hi! Welcome to <b>Smart Price Monitor</b>! "
            "Use following options to start tracking prices:",
            START_MENU,
            Settings.PARSE_MODE,
        )

    async def _begin_add(self, owner: int) -> None:
        self.conversation.begin_add(owner)
        await self._reply(owner, ADD_PROMPT, html_mode=True)

    async def _continue_add(self, owner: int, text: str) -> None:
        payload = parse_add_payload(text)
        if payload is None:
            await self._reply(
                owner,
                "❌ Invalid message format. Use <b>url - site</b>.",
                html_mode=True,
            )
            return
        url, site = payload
        await self._add(owner, url, site)

    async def _add(self, owner: int, raw_url: str, site: str) -> None:
        """Read the current price and only then store the item."""
        url = raw_url.strip()
        if not url.startswith(("http://", "https://")):
            await self._reply(
                owner,
                f"❌ <b>{html.escape(raw_url)}</b> is not a valid product URL.",
                html_mode=True,
            )
            return

        await self._reply(
            owner, "Fetching price and adding to your watchlist... Please wait.",
        )
        try:
            reading = await self._read_price(url, site)
            await asyncio.to_thread(
                self.store.insert,
                owner,
                url,
                site,
                reading.price,
                reading.currency,
            )
        except UnsupportedSiteError:
            supported = ", ".join(self.pipeline.site_ids()) or "none"
            await self._reply(
                owner,
                f"❌ Site <b>{html.escape(site)}</b> is not supported.\n"
                f"Supported sites: {html.escape(supported)}",
                html_mode=True,
            )
            return
        except FetchError as exc:
            logger.warning("Add failed for owner %s: %s", owner, exc)
            await self._reply(
                owner,
                "❌ Could not load that page. Please check the URL "
                "and try again.",
            )
            return
        except ParseError as exc:
            logger.warning("Add failed for owner %s: %s", owner, exc)
            await self._reply(
                owner, "❌ Could not read a price from that page.",
            )
            return
        except PersistenceError as exc:
            logger.error(
                "Add failed for owner %s: %s", owner, exc, exc_info=True,
            )
            await self._reply(
                owner, "❌ Something went wrong. Please try again.",
            )
            return

        await self._reply(
            owner,
            "✅ Product added to your watchlist!\n"
            f"<b>Current price is {html.escape(reading.display())}</b>.",
            html_mode=True,
        )

    async def _read_price(self, url: str, site: str) -> PriceReading:
        referer = self.pipeline.homepage(site)
        markup = await self.fetcher.fetch(url, referer=referer)
        return self.pipeline.extract(markup, site)

    async def _list(self, owner: int) -> None:
        try:
            items = await asyncio.to_thread(self.store.list_by_owner, owner)
        except PersistenceError as exc:
            logger.error(
                "List failed for owner %s: %s", owner, exc, exc_info=True,
            )
            await self._reply(
                owner, "❌ Something went wrong. Please try again.",
            )
            return

        if not items:
            await self._reply(
                owner, "Your watchlist is empty. Use /add to add products.",
            )
            return

        await self._reply(
            owner, "Here are your current products in your watchlist:",
        )
        for item in items:
            await self._reply(
                owner,
                f"<b>ID: {item.id}</b>\n"
                f"URL: {html.escape(item.url)}\n"
                f"Site: {html.escape(item.site)}\n"
                f"<b>Last Price: {html.escape(item.currency)}"
                f"{item.last_price}</b>",
                html_mode=True,
            )

    async def _begin_remove(self, owner: int) -> None:
        self.conversation.begin_remove(owner)
        await self._reply(
            owner,
            "Send the <b>ID</b> of the product you want to remove "
            "from the watchlist:",
            html_mode=True,
        )

    async def _remove(self, owner: int, raw_id: str) -> None:
        shown = html.escape(raw_id)
        await self._reply(
            owner,
            f"Removing product with <b>ID: {shown}</b> from your watchlist...",
            html_mode=True,
        )
        try:
            item_id = int(raw_id)
        except ValueError:
            removed = 0
        else:
            try:
                removed = await asyncio.to_thread(
                    self.store.delete_by_id, owner, item_id,
                )
            except PersistenceError as exc:
                logger.error(
                    "Remove failed for owner %s: %s",
                    owner,
                    exc,
                    exc_info=True,
                )
                await self._reply(
                    owner, "❌ Something went wrong. Please try again.",
                )
                return

        if removed > 0:
            await self._reply(
                owner,
                f"✅ Product with <b>ID: {shown}</b> has been removed "
                "from your watchlist.",
                html_mode=True,
            )
        else:
            await self._reply(
                owner,
                f"❌ No product found with <b>ID: {shown}</b> "
                "in your watchlist.",
                html_mode=True,
            )

    async def _clear(self, owner: int) -> None:
        await self._reply(
            owner, "Clearing all products from your watchlist...",
        )
        try:
            removed = await asyncio.to_thread(
                self.store.delete_by_owner, owner,
            )
        except PersistenceError as exc:
            logger.error(
                "Clear failed for owner %s: %s", owner, exc, exc_info=True,
            )
            await self._reply(
                owner, "❌ Something went wrong. Please try again.",
            )
            return
        await self._reply(
            owner,
            "✅ All products have been removed from your watchlist.\n"
            f"<b>Total removed: {removed}</b>.",
            html_mode=True,
        )
