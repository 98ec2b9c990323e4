# src/extractors/pipeline.py

"""Dispatches product page markup to the extractor for its site."""

import importlib
import logging
from collections.abc import Callable
from typing import Any

from bs4 import BeautifulSoup

from src.config.settings import Settings
from src.errors import UnsupportedSiteError
from src.extractors.base_extractor import BaseExtractor
from src.extractors.selector_registry import SelectorRegistry, SelectorSpec
from src.models.price_reading import PriceReading

logger = logging.getLogger("price_watch.pipeline")

ExtractorFactory = Callable[[SelectorSpec], BaseExtractor]


def _load_extractor_class(dotted_path: str) -> type[Any]:
    """Dynamically import an extractor class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


class ExtractionPipeline:
    """Turns product page markup into a :class:`PriceReading`.

    A site is supported only when it has both an extractor and a
    :class:`SelectorSpec`.  Extractors named in ``Settings.AVAILABLE_SITES``
    are imported lazily on first use; :meth:`register` adds more.
    """

    def __init__(
        self,
        registry: SelectorRegistry | None = None,
        sites: list[dict[str, str]] | None = None,
    ) -> None:
        self.registry = registry or SelectorRegistry.from_file()
        self._factories: dict[str, ExtractorFactory] = {}
        self._dotted_paths: dict[str, str] = {
            s["id"]: s["extractor"]
            for s in (
                sites if sites is not None else Settings.AVAILABLE_SITES
            )
        }
        self._extractors: dict[str, BaseExtractor] = {}

    def register(
        self,
        site_id: str,
        factory: ExtractorFactory,
        selectors: SelectorSpec | None = None,
    ) -> None:
        """Wire in a new site, optionally with its selectors."""
        if selectors is not None:
            self.registry.register(site_id, selectors)
        self._factories[site_id] = factory
        self._extractors.pop(site_id, None)
        logger.info("Registered extractor for site '%s'", site_id)

    def supports(self, site_id: str) -> bool:
        """True when *site_id* has both an extractor and selectors."""
        has_extractor = (
            site_id in self._factories or site_id in self._dotted_paths
        )
        return has_extractor and site_id in self.registry

    def site_ids(self) -> list[str]:
        """Sorted identifiers of every supported site."""
        candidates = set(self._factories) | set(self._dotted_paths)
        return sorted(s for s in candidates if self.supports(s))

    def extractor_for(self, site_id: str) -> BaseExtractor:
        """Return the (cached) extractor for *site_id*."""
        cached = self._extractors.get(site_id)
        if cached is not None:
            return cached

        selectors = self.registry.lookup(site_id)
        if selectors is None:
            raise UnsupportedSiteError(site_id)

        factory = self._factories.get(site_id)
        if factory is None:
            dotted_path = self._dotted_paths.get(site_id)
            if dotted_path is None:
                raise UnsupportedSiteError(site_id)
            factory = _load_extractor_class(dotted_path)

        extractor = factory(selectors)
        self._extractors[site_id] = extractor
        return extractor

    def homepage(self, site_id: str) -> str:
        """Homepage of *site_id*, used as the fetch Referer."""
        return self.extractor_for(site_id).get_homepage()

    def extract(self, markup: str, site_id: str) -> PriceReading:
        """Extract a price reading from *markup* for *site_id*.

        Raises:
            UnsupportedSiteError: *site_id* is not registered.
            ParseError: the price element holds text with no number.
        """
        extractor = self.extractor_for(site_id)
        soup = BeautifulSoup(markup, "lxml")
        reading = extractor.extract(soup)
        logger.debug(
            "[%s] Extracted price %s%s",
            site_id,
            reading.currency,
            reading.price,
        )
        return reading
