# src/services/notification_evaluator.py

"""Decides whether a fresh reading is stored and whether it alerts."""

import html
from dataclasses import dataclass

from src.models.price_reading import PriceReading
from src.models.tracked_item import TrackedItem


@dataclass(frozen=True)
class Evaluation:
    """Outcome of comparing a reading with the stored price."""

    should_persist: bool
    should_notify: bool


def evaluate(item: TrackedItem, reading: PriceReading) -> Evaluation:
    """Compare *reading* with *item*'s stored price.

    Any change is persisted, a drop to ``0`` included.  Only a strict
    decrease notifies; increases are stored silently.
    """
    changed = reading.price != item.last_price
    return Evaluation(
        should_persist=changed,
        should_notify=changed and reading.price < item.last_price,
    )


def format_price_drop(item: TrackedItem, reading: PriceReading) -> str:
    """HTML alert carrying the URL, the old price and the new price."""
    return (
        "🔔 <b>Price Drop!</b>\n\n"
        f"<b>URL: {html.escape(item.url)}</b>\n"
        f"<b>Old: {html.escape(item.currency)}{item.last_price}</b>\n"
        f"<b>New: {html.escape(reading.display())}</b>"
    )
