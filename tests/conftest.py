# tests/conftest.py

"""Shared pytest fixtures for all price_watch tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from src.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_paths(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Keep databases and run logs out of the working tree."""
    monkeypatch.setattr(
        Settings, "WATCHLIST_DB_PATH", tmp_path / "price_tracker.db",
    )
    monkeypatch.setattr(Settings, "LOGS_DIR", tmp_path / "logs")
    yield
