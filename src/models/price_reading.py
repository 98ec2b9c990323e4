# src/models/price_reading.py

"""Ephemeral extraction result, folded into a TrackedItem by callers."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PriceReading:
    """A freshly extracted ``(price, currency)`` pair for one page."""

    price: Decimal
    currency: str

    def display(self) -> str:
        """Render as the chat replies show prices, e.g. ``₹129900``."""
        return f"{self.currency}{self.price}"
