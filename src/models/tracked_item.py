# src/models/tracked_item.py

"""Watchlist row model shared by the store, poller and command router."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass
class TrackedItem:
    """A product URL one owner is watching, with its last known price."""

    id: int
    owner: int
    url: str
    site: str
    last_price: Decimal
    currency: str = ""
