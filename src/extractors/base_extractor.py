# src/extractors/base_extractor.py

"""Abstract base class for all site price extractors."""

import logging
import re
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation

from bs4 import BeautifulSoup

from src.errors import ParseError
from src.extractors.selector_registry import SelectorSpec
from src.models.price_reading import PriceReading

# Digits plus every separator; the site decides which ones group
_NUMBER_RE = re.compile(r"\d[\d.,]*")


class BaseExtractor(ABC):
    """Abstract base class for all site price extractors.

    Subclasses pick the site's numeric convention through
    ``GROUPING_CHARS`` (characters stripped from the price text before
    parsing; a separator left in place is read as the decimal point)
    and the symbol used when the page shows no currency.
    """

    GROUPING_CHARS: str = ",."
    FALLBACK_CURRENCY: str = ""

    def __init__(self, site_id: str, selectors: SelectorSpec) -> None:
        self.site_id = site_id
        self.selectors = selectors
        self.logger = logging.getLogger(
            f"price_watch.extractors.{site_id}"
        )

    def parse_price(self, text: str | None) -> Decimal:
        """Turn price text such as ``'₹1,299.00'`` into a Decimal.

        Grouping punctuation is removed rather than interpreted, so
        ``'1,299.00'`` yields ``129900``.  Empty text yields ``0``.
        """
        if not text or not text.strip():
            return Decimal(0)
        match = _NUMBER_RE.search(text)
        if match is None:
            raise ParseError(
                f"[{self.site_id}] No digits in price text {text!r}"
            )
        digits = match.group().translate(
            str.maketrans("", "", self.GROUPING_CHARS)
        ).replace(",", ".")
        try:
            return Decimal(digits)
        except InvalidOperation as exc:
            raise ParseError(
                f"[{self.site_id}] Unparsable price text {text!r}"
            ) from exc

    def extract(self, soup: BeautifulSoup) -> PriceReading:
        """Locate the first price and currency elements and read them."""
        price_text = self._price_text(soup)
        currency_el = (
            soup.select_one(self.selectors.currency)
            if self.selectors.currency
            else None
        )
        currency = (
            currency_el.get_text(strip=True)
            if currency_el is not None
            else self.FALLBACK_CURRENCY
        )
        price = self.parse_price(price_text)
        if price == 0:
            self.logger.warning(
                "[%s] No price found with selector '%s'",
                self.site_id,
                self.selectors.price,
            )
        return PriceReading(price=price, currency=currency)

    def _price_text(self, soup: BeautifulSoup) -> str:
        """Text of the first element matching the price selector."""
        if not self.selectors.price:
            return ""
        price_el = soup.select_one(self.selectors.price)
        return price_el.get_text(strip=True) if price_el else ""

    @abstractmethod
    def get_homepage(self) -> str:
        """Return the site homepage, sent as the Referer header."""
        ...
