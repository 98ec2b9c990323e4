# tests/test_selector_registry.py

"""Tests for the per-site selector registry."""

import json
import tempfile
import unittest
from pathlib import Path

from src.extractors.selector_registry import SelectorRegistry, SelectorSpec


class TestSelectorRegistry(unittest.TestCase):
    """Lookup, registration and file loading."""

    def setUp(self) -> None:
        self.tmp_dir = Path(tempfile.mkdtemp())

    def _write(self, payload: object) -> Path:
        path = self.tmp_dir / "selectors.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_from_file_loads_specs(self) -> None:
        path = self._write({
            "shop": {"price": ".p", "currency": ".c"},
        })
        registry = SelectorRegistry.from_file(path)
        self.assertEqual(
            registry.lookup("shop"), SelectorSpec(price=".p", currency=".c")
        )

    def test_from_file_skips_malformed_entries(self) -> None:
        path = self._write({
            "good": {"price": ".p", "currency": ".c"},
            "bad": ".p",
        })
        registry = SelectorRegistry.from_file(path)
        self.assertIn("good", registry)
        self.assertNotIn("bad", registry)

    def test_lookup_unknown_returns_none(self) -> None:
        self.assertIsNone(SelectorRegistry().lookup("nowhere"))

    def test_register_adds_site(self) -> None:
        registry = SelectorRegistry()
        registry.register("shop", SelectorSpec(".p", ".c"))
        self.assertEqual(registry.site_ids(), ["shop"])

    def test_default_file_has_amazon(self) -> None:
        registry = SelectorRegistry.from_file()
        spec = registry.lookup("amazon")
        self.assertIsNotNone(spec)
        assert spec is not None
        self.assertEqual(spec.price, ".a-price-whole")


if __name__ == "__main__":
    unittest.main()
