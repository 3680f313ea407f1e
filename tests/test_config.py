"""Tests for settings loading and the default source configurations."""

import os
import unittest
from unittest import mock

from news_scraper.config import Settings, load_settings
from news_scraper.models import SourceKind
from news_scraper.sources import (
    API_SOURCE_CONFIGS,
    FEED_SOURCE_CONFIGS,
    WEB_SOURCE_CONFIGS,
    api_source_configs,
    default_source_configs,
)


class TestLoadSettings(unittest.TestCase):
    """Verify environment variables feed Settings."""

    def test_defaults_without_environment(self):
        """Missing variables fall back to the dataclass defaults."""
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(load_settings(), Settings())

    def test_values_from_environment(self):
        """Each variable maps onto its field."""
        env = {
            "NEWS_API_KEY": "abc",
            "NEWS_SCRAPER_MAX_CONCURRENT": "5",
            "NEWS_SCRAPER_MIN_DELAY_MS": "250",
            "NEWS_SCRAPER_MAX_WORKERS": "2",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_settings()
        self.assertEqual(settings.news_api_key, "abc")
        self.assertEqual(settings.max_concurrent, 5)
        self.assertEqual(settings.min_delay_ms, 250)
        self.assertEqual(settings.max_workers, 2)

    def test_blank_values_are_ignored(self):
        """Empty strings count as unset."""
        with mock.patch.dict(os.environ, {"NEWS_API_KEY": "", "NEWS_SCRAPER_MAX_WORKERS": " "}, clear=True):
            settings = load_settings()
        self.assertIsNone(settings.news_api_key)
        self.assertEqual(settings.max_workers, 8)


class TestDefaultSources(unittest.TestCase):
    """Verify the static source lists."""

    def test_kinds_per_list(self):
        """Each list only holds sources of its own kind."""
        self.assertTrue(all(c.kind is SourceKind.FEED for c in FEED_SOURCE_CONFIGS))
        self.assertTrue(all(c.kind is SourceKind.API for c in API_SOURCE_CONFIGS))
        self.assertTrue(all(c.kind is SourceKind.WEB for c in WEB_SOURCE_CONFIGS))

    def test_ids_are_unique(self):
        """No two default sources share an id."""
        ids = [c.id for c in default_source_configs()]
        self.assertEqual(len(ids), len(set(ids)))

    def test_news_api_follows_key(self):
        """NewsAPI is enabled exactly when a key is supplied."""
        without = {c.id: c for c in api_source_configs()}
        with_key = {c.id: c for c in api_source_configs("k")}
        self.assertFalse(without["newsapi"].enabled)
        self.assertTrue(with_key["newsapi"].enabled)
        self.assertTrue(with_key["hackernews"].enabled)

    def test_web_sources_have_selectors(self):
        """Every web preset carries a selector set and a page URL."""
        for config in WEB_SOURCE_CONFIGS:
            self.assertIsNotNone(config.selectors)
            self.assertTrue(config.url)


if __name__ == "__main__":
    unittest.main()
