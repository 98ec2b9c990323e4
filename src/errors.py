# src/errors.py

"""Exception hierarchy shared by the extraction, polling and chat layers."""


class PriceWatchError(Exception):
    """Base class for all price_watch failures."""


class UnsupportedSiteError(PriceWatchError):
    """Raised when a site identifier has no registered extractor."""

    def __init__(self, site_id: str) -> None:
        super().__init__(f"Unsupported site: {site_id!r}")
        self.site_id = site_id


class ParseError(PriceWatchError):
    """Raised when page text cannot be turned into a price."""


class FetchError(PriceWatchError):
    """Raised when a product page cannot be retrieved."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class PersistenceError(PriceWatchError):
    """Raised when the watchlist store fails to read or write."""


class UnknownSessionStepError(PriceWatchError):
    """Raised when a conversation session holds an unrecognised step.

    Indicates a programming error; never shown to users.
    """
