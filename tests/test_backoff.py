"""Tests for the BackoffStrategy class."""

import unittest

from news_scraper.backoff import BackoffStrategy


class TestBackoffStrategy(unittest.TestCase):
    """Verify exponential backoff produces correct sleep durations."""

    def test_first_attempt_returns_base(self):
        """First retry should sleep approximately the base duration."""
        backoff = BackoffStrategy(base_seconds=1.0, max_seconds=30.0)
        sleep = backoff.get_sleep(attempt=1)
        # base * 2^0 = 1.0, plus up to 10% jitter
        self.assertGreaterEqual(sleep, 1.0)
        self.assertLessEqual(sleep, 1.1)

    def test_exponential_growth(self):
        """Each subsequent attempt should roughly double the sleep time."""
        backoff = BackoffStrategy(base_seconds=0.5, max_seconds=100.0)
        sleeps = [backoff.get_sleep(attempt=n) for n in (1, 2, 3)]
        # Without jitter: 0.5, 1.0, 2.0
        self.assertLess(sleeps[0], sleeps[1])
        self.assertLess(sleeps[1], sleeps[2])

    def test_respects_max_seconds(self):
        """Sleep duration should never exceed max_seconds (plus jitter)."""
        backoff = BackoffStrategy(base_seconds=1.0, max_seconds=5.0)
        self.assertLessEqual(backoff.get_sleep(attempt=20), 5.5)

    def test_defaults_are_short(self):
        """Default retry delays stay within a few seconds."""
        backoff = BackoffStrategy()
        self.assertLessEqual(backoff.get_sleep(attempt=1), 0.55)
        self.assertLessEqual(backoff.get_sleep(attempt=10), 5.5)

    def test_error_kind_is_accepted(self):
        """Passing an error kind should not change the contract."""
        backoff = BackoffStrategy()
        self.assertGreater(backoff.get_sleep(attempt=1, error_kind="API_RATE_LIMIT"), 0)


if __name__ == "__main__":
    unittest.main()
