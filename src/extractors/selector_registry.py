# src/extractors/selector_registry.py

"""Per-site CSS selectors used to locate price and currency text."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from src.config.settings import Settings

logger = logging.getLogger("price_watch.selectors")


@dataclass(frozen=True)
class SelectorSpec:
    """CSS selectors for one site's product page."""

    price: str
    currency: str


class SelectorRegistry:
    """Read-only mapping from site identifier to :class:`SelectorSpec`.

    Entries come from ``selectors.json``; :meth:`register` exists so a new
    site can be wired in at startup without touching any call site.
    """

    def __init__(
        self, selectors: dict[str, SelectorSpec] | None = None,
    ) -> None:
        self._selectors: dict[str, SelectorSpec] = dict(selectors or {})

    @classmethod
    def from_file(cls, path: Path | None = None) -> "SelectorRegistry":
        """Load every site's selectors from a JSON file."""
        source = path or Settings.SELECTORS_PATH
        with open(source, encoding="utf-8") as f:
            raw: dict[str, Any] = json.load(f)

        selectors: dict[str, SelectorSpec] = {}
        for site_id, entry in raw.items():
            if not isinstance(entry, dict):
                logger.warning(
                    "Ignoring malformed selector entry for '%s'", site_id,
                )
                continue
            selectors[site_id] = SelectorSpec(
                price=str(entry.get("price", "")),
                currency=str(entry.get("currency", "")),
            )
        logger.debug(
            "Loaded selectors for %d site(s) from %s",
            len(selectors),
            source,
        )
        return cls(selectors)

    def lookup(self, site_id: str) -> SelectorSpec | None:
        """Return the selectors for *site_id*, or ``None`` if unknown."""
        return self._selectors.get(site_id)

    def register(self, site_id: str, spec: SelectorSpec) -> None:
        """Add or replace the selectors for *site_id*."""
        self._selectors[site_id] = spec

    def site_ids(self) -> list[str]:
        """Sorted identifiers of every site with selectors."""
        return sorted(self._selectors)

    def __contains__(self, site_id: object) -> bool:
        return site_id in self._selectors
