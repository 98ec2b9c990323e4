# src/storage/watchlist_db.py

"""SQLite-backed watchlist of tracked product URLs."""

import logging
import sqlite3
import threading
from decimal import Decimal
from pathlib import Path

from src.config.settings import Settings
from src.errors import PersistenceError
from src.models.tracked_item import TrackedItem

logger = logging.getLogger("price_watch.watchlist")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS price_tracker (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    chat_id    INTEGER NOT NULL,
    url        TEXT    NOT NULL,
    site       TEXT    NOT NULL,
    last_price TEXT    NOT NULL,
    currency   TEXT
);

CREATE INDEX IF NOT EXISTS idx_price_tracker_chat
    ON price_tracker(chat_id);
"""

_COLUMNS = "id, chat_id, url, site, last_price, currency"


def _row_to_item(row: tuple[object, ...]) -> TrackedItem:
    return TrackedItem(
        id=int(str(row[0])),
        owner=int(str(row[1])),
        url=str(row[2]),
        site=str(row[3]),
        last_price=Decimal(str(row[4])),
        currency=str(row[5] or ""),
    )


class WatchlistDB:
    """SQLite store behind the narrow watchlist interface.

    Every method is blocking; async callers go through
    ``asyncio.to_thread``.  A lock serialises use of the shared
    connection across those worker threads.
    """

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.WATCHLIST_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(
                str(path), check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Cannot open watchlist at {path}: {exc}"
            ) from exc
        logger.debug("WatchlistDB opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Reads ────────────────────────────────────────────

    def list_all(self) -> list[TrackedItem]:
        """Every tracked item across all owners."""
        try:
            with self._lock:
                rows = self._conn.execute(
                    f"SELECT {_COLUMNS} FROM price_tracker ORDER BY id",
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Watchlist query failed: {exc}") from exc
        logger.debug("Found %d items in the watchlist", len(rows))
        return [_row_to_item(r) for r in rows]

    def list_by_owner(self, owner: int) -> list[TrackedItem]:
        """Items tracked by *owner*, oldest first."""
        try:
            with self._lock:
                rows = self._conn.execute(
                    f"SELECT {_COLUMNS} FROM price_tracker "
                    "WHERE chat_id = ? ORDER BY id",
                    (owner,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Watchlist query failed: {exc}") from exc
        logger.debug("Found %d items for owner %s", len(rows), owner)
        return [_row_to_item(r) for r in rows]

    # ── Writes ───────────────────────────────────────────

    def insert(
        self,
        owner: int,
        url: str,
        site: str,
        price: Decimal,
        currency: str,
    ) -> int:
        """Add an item and return its new id."""
        try:
            with self._lock:
                cur = self._conn.execute(
                    "INSERT INTO price_tracker "
                    "(chat_id, url, site, last_price, currency) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (owner, url, site, str(price), currency),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Watchlist insert failed: {exc}") from exc
        item_id = cur.lastrowid
        if item_id is None:
            raise PersistenceError("Watchlist insert returned no id")
        logger.info("Item %d added for owner %s", item_id, owner)
        return item_id

    def update_price(
        self, item_id: int, price: Decimal, currency: str,
    ) -> int:
        """Store a new price for *item_id* and return its owner."""
        try:
            with self._lock:
                row = self._conn.execute(
                    "UPDATE price_tracker SET last_price = ?, currency = ? "
                    "WHERE id = ? RETURNING chat_id",
                    (str(price), currency, item_id),
                ).fetchone()
                self._conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Watchlist update failed: {exc}") from exc
        if row is None:
            raise PersistenceError(f"No watchlist item with id {item_id}")
        owner = int(row[0])
        logger.info("Item %d updated for owner %s", item_id, owner)
        return owner

    def delete_by_id(self, owner: int, item_id: int) -> int:
        """Remove one of *owner*'s items; returns rows deleted."""
        try:
            with self._lock:
                cur = self._conn.execute(
                    "DELETE FROM price_tracker WHERE chat_id = ? AND id = ?",
                    (owner, item_id),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Watchlist delete failed: {exc}") from exc
        logger.debug(
            "Deleted %d item(s) for owner %s", cur.rowcount, owner,
        )
        return cur.rowcount

    def delete_by_owner(self, owner: int) -> int:
        """Remove all of *owner*'s items; returns rows deleted."""
        try:
            with self._lock:
                cur = self._conn.execute(
                    "DELETE FROM price_tracker WHERE chat_id = ?",
                    (owner,),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Watchlist delete failed: {exc}") from exc
        logger.debug(
            "Cleared %d item(s) for owner %s", cur.rowcount, owner,
        )
        return cur.rowcount
