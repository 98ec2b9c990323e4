# src/extractors/amazon_extractor.py

"""Price extractor for amazon.in product pages."""

from src.extractors.base_extractor import BaseExtractor
from src.extractors.selector_registry import SelectorSpec


class AmazonExtractor(BaseExtractor):
    """Price extractor for amazon.in product pages.

    The whole-price span renders as ``1,299.`` so both separators are
    stripped; the symbol span is read verbatim.
    """

    GROUPING_CHARS = ",."
    FALLBACK_CURRENCY = "₹"

    def __init__(self, selectors: SelectorSpec) -> None:
        super().__init__("amazon", selectors)

    def get_homepage(self) -> str:
        """Return the Amazon.in homepage URL."""
        return "https://www.amazon.in/"
