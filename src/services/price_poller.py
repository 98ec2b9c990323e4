# src/services/price_poller.py

"""One scheduled pass over the whole watchlist."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.bot.transport import Transport
from src.config.settings import Settings
from src.errors import PersistenceError, PriceWatchError
from src.extractors.pipeline import ExtractionPipeline
from src.fetching.page_fetcher import PageFetcher
from src.models.tracked_item import TrackedItem
from src.services.notification_evaluator import evaluate, format_price_drop
from src.storage.watchlist_db import WatchlistDB

logger = logging.getLogger("price_watch.poller")

UNCHANGED = "unchanged"
UPDATED = "updated"
NOTIFIED = "notified"
FAILED = "failed"


@dataclass
class ItemOutcome:
    """What happened to one item during a firing."""

    item_id: int
    owner: int
    url: str
    status: str
    old_price: Decimal | None = None
    new_price: Decimal | None = None
    error: str = ""


@dataclass
class FiringResult:
    """Container for a completed firing across the whole watchlist."""

    started_at: datetime
    outcomes: list[ItemOutcome] = field(
        default_factory=lambda: list[ItemOutcome]()
    )
    error: str = ""

    def count(self, status: str) -> int:
        """Number of outcomes with *status*."""
        return sum(1 for o in self.outcomes if o.status == status)


class PricePoller:
    """Refreshes every tracked price and alerts owners on drops.

    Items are checked concurrently; each item's failure is logged and
    recorded in its :class:`ItemOutcome` without touching the others.
    The next scheduled firing is the only retry.
    """

    def __init__(
        self,
        store: WatchlistDB,
        fetcher: PageFetcher,
        pipeline: ExtractionPipeline,
        transport: Transport,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.pipeline = pipeline
        self.transport = transport

    async def _check_item(self, item: TrackedItem) -> ItemOutcome:
        """Fetch, extract, compare and (maybe) persist/notify one item."""
        outcome = ItemOutcome(
            item_id=item.id,
            owner=item.owner,
            url=item.url,
            status=UNCHANGED,
            old_price=item.last_price,
        )
        logger.debug("Checking price for item %d: %s", item.id, item.url)

        try:
            referer = self.pipeline.homepage(item.site)
            markup = await self.fetcher.fetch(item.url, referer=referer)
            reading = self.pipeline.extract(markup, item.site)
        except PriceWatchError as exc:
            logger.error(
                "Error checking item %d (%s): %s",
                item.id,
                item.url,
                exc,
                exc_info=True,
            )
            outcome.status = FAILED
            outcome.error = str(exc)
            return outcome

        outcome.new_price = reading.price
        verdict = evaluate(item, reading)
        if not verdict.should_persist:
            logger.debug("No price change for item %d", item.id)
            return outcome

        try:
            await asyncio.to_thread(
                self.store.update_price,
                item.id,
                reading.price,
                reading.currency,
            )
        except PersistenceError as exc:
            logger.error(
                "Could not store new price for item %d: %s",
                item.id,
                exc,
                exc_info=True,
            )
            outcome.status = FAILED
            outcome.error = str(exc)
            return outcome

        outcome.status = UPDATED
        logger.info(
            "Item %d price %s%s -> %s",
            item.id,
            item.currency,
            item.last_price,
            reading.display(),
        )

        if verdict.should_notify:
            try:
                await self.transport.send(
                    item.owner,
                    format_price_drop(item, reading),
                    Settings.PARSE_MODE,
                )
            except Exception as exc:
                # Price is already stored; the alert is lost, not retried
                logger.error(
                    "Price drop alert for item %d not delivered: %s",
                    item.id,
                    exc,
                    exc_info=True,
                )
                outcome.error = f"notification failed: {exc}"
                return outcome
            outcome.status = NOTIFIED
            logger.info(
                "Price drop alert sent to owner %s for item %d",
                item.owner,
                item.id,
            )
        return outcome

    async def run_firing(self) -> FiringResult:
        """Check every watchlist item and wait for all of them."""
        result = FiringResult(started_at=datetime.now())
        try:
            items = await asyncio.to_thread(self.store.list_all)
        except PersistenceError as exc:
            logger.error("Firing aborted, watchlist unreadable: %s", exc)
            result.error = str(exc)
            return result

        if not items:
            logger.debug("No items in watchlist to check")
            return result

        logger.info("Firing started for %d item(s)", len(items))
        outcomes = await asyncio.gather(
            *(self._check_item(item) for item in items),
            return_exceptions=True,
        )

        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, ItemOutcome):
                result.outcomes.append(outcome)
            elif isinstance(outcome, Exception):
                logger.error(
                    "Unexpected error checking item %d: %s",
                    item.id,
                    outcome,
                    exc_info=outcome,
                )
                result.outcomes.append(ItemOutcome(
                    item_id=item.id,
                    owner=item.owner,
                    url=item.url,
                    status=FAILED,
                    old_price=item.last_price,
                    error=str(outcome),
                ))

        logger.info(
            "Firing finished: %d updated, %d notified, %d failed, "
            "%d unchanged",
            result.count(UPDATED),
            result.count(NOTIFIED),
            result.count(FAILED),
            result.count(UNCHANGED),
        )
        return result
