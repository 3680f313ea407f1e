"""Tests for the ArticleProcessor class."""

import unittest

from helpers import NOW, days_ago, make_article

from news_scraper.config import CATEGORY_IMAGES
from news_scraper.models import ScrapeRequest, SourceRef
from news_scraper.processor import ArticleProcessor


class TestValidity(unittest.TestCase):
    """Verify the emission invariant drops incomplete items."""

    def setUp(self):
        self.processor = ArticleProcessor(clock=lambda: NOW)

    def test_short_title_is_dropped(self):
        """Titles of ten characters or fewer are rejected."""
        self.assertEqual(self.processor.process("s", [make_article(title="Ten chars!")]), [])

    def test_short_description_is_dropped(self):
        """Descriptions of twenty characters or fewer are rejected."""
        self.assertEqual(self.processor.process("s", [make_article(description="x" * 20)]), [])

    def test_missing_fields_are_dropped(self):
        """Articles without url, source name or publish date are rejected."""
        raw = [
            make_article(url=""),
            make_article(source_name=""),
            make_article(published_at=None),
        ]
        self.assertEqual(self.processor.process("s", raw), [])

    def test_valid_article_passes(self):
        """A complete article is emitted."""
        self.assertEqual(len(self.processor.process("s", [make_article()])), 1)


class TestEnhancement(unittest.TestCase):
    """Verify ids, images, tags and scores are filled in."""

    def setUp(self):
        self.processor = ArticleProcessor(clock=lambda: NOW)

    def test_missing_id_is_generated_from_source_and_hash(self):
        """Generated ids start with the source id and differ per title/url."""
        a, b = self.processor.process(
            "feed", [make_article(title="First headline here"), make_article(title="Second headline here")]
        )
        self.assertTrue(a.id.startswith("feed-"))
        self.assertNotEqual(a.id.split("-")[1], b.id.split("-")[1])

    def test_existing_id_is_kept(self):
        """An id assigned by the source is left alone."""
        article = make_article()
        article.id = "hackernews-1"
        self.assertEqual(self.processor.process("s", [article])[0].id, "hackernews-1")

    def test_placeholder_image_by_category(self):
        """Articles without an image get the placeholder for their category."""
        out = self.processor.process("s", [make_article(category="robotics")])
        self.assertEqual(out[0].image_url, CATEGORY_IMAGES["robotics"])

    def test_source_category_is_backfilled(self):
        """The source reference inherits the article category when missing."""
        out = self.processor.process("s", [make_article(category="nlp")])
        self.assertEqual(out[0].source, SourceRef(name="Example", category="nlp"))

    def test_tags_follow_keyword_order_and_cap(self):
        """Tags are matched case-insensitively, in list order, at most five."""
        article = make_article(
            title="OpenAI and Nvidia push Machine Learning",
            description="Deep Learning, neural network research, GPT and LLM news from Microsoft.",
        )
        tags = self.processor.process("s", [article])[0].tags
        self.assertEqual(len(tags), 5)
        self.assertEqual(tags[:3], ["machine learning", "deep learning", "neural network"])

    def test_supplied_tags_are_capped(self):
        """Tags provided by the source are trimmed to five."""
        article = make_article()
        article.tags = ["a", "b", "c", "d", "e", "f"]
        self.assertEqual(self.processor.process("s", [article])[0].tags, ["a", "b", "c", "d", "e"])


class TestRelevanceScore(unittest.TestCase):
    """Verify the relevance formula and its bounds."""

    def setUp(self):
        self.processor = ArticleProcessor(clock=lambda: NOW)

    def test_baseline_for_old_plain_article(self):
        """No keywords and an old date leave the 0.5 baseline."""
        article = make_article(
            title="Quiet afternoon in the park",
            description="Nothing much happened at all, people walked dogs.",
            published_at=days_ago(30),
        )
        self.assertAlmostEqual(self.processor.relevance_score(article, NOW), 0.5)

    def test_recency_bonuses(self):
        """Under a day adds 0.2, under a week adds 0.1."""
        kwargs = dict(title="Quiet afternoon in the park", description="Nothing much happened at all today.")
        fresh = make_article(published_at=days_ago(0.5), **kwargs)
        week = make_article(published_at=days_ago(3), **kwargs)
        self.assertAlmostEqual(self.processor.relevance_score(fresh, NOW), 0.7)
        self.assertAlmostEqual(self.processor.relevance_score(week, NOW), 0.6)

    def test_keywords_add_up(self):
        """High-value keywords, gpt/llm and company names each add to the score."""
        article = make_article(
            title="Team releases parser",
            description="A parser for gpt output, written by hand over months.",
            published_at=days_ago(30),
        )
        # 0.5 + 0.1 (releases) + 0.2 (gpt)
        self.assertAlmostEqual(self.processor.relevance_score(article, NOW), 0.8)

    def test_score_is_clamped(self):
        """Heavily matching fresh articles never exceed 1.0."""
        article = make_article(
            title="OpenAI announces breakthrough GPT",
            description="Anthropic, DeepMind, Nvidia and Microsoft react to the new LLM release.",
            published_at=NOW,
        )
        score = self.processor.process("s", [article])[0].relevance_score
        self.assertEqual(score, 1.0)

    def test_supplied_score_is_kept_within_bounds(self):
        """Scores set by the source are kept but clamped to [0, 1]."""
        high = make_article(title="First headline here", relevance_score=3.0)
        low = make_article(title="Second headline here", relevance_score=-1.0)
        out = {a.title: a.relevance_score for a in self.processor.process("s", [high, low])}
        self.assertEqual(out["First headline here"], 1.0)
        self.assertEqual(out["Second headline here"], 0.0)


class TestOrdering(unittest.TestCase):
    """Verify category filtering, ranking and truncation."""

    def setUp(self):
        self.processor = ArticleProcessor(clock=lambda: NOW)

    def test_category_filter(self):
        """Only articles in a requested category survive."""
        raw = [make_article(title="Robots everywhere now", category="robotics"), make_article(category="nlp")]
        out = self.processor.process("s", raw, ScrapeRequest(categories=["robotics"]))
        self.assertEqual([a.category for a in out], ["robotics"])

    def test_sorted_by_weighted_rank(self):
        """Relevance and recency combine 0.7/0.3 for ordering."""
        stale_relevant = make_article(title="Stale but relevant", relevance_score=0.9, published_at=days_ago(60))
        fresh_plain = make_article(title="Fresh and plain story", relevance_score=0.6, published_at=NOW)
        out = self.processor.process("s", [stale_relevant, fresh_plain])
        # 0.63 vs 0.72
        self.assertEqual([a.title for a in out], ["Fresh and plain story", "Stale but relevant"])

    def test_future_date_counts_as_today(self):
        """A publish date ahead of the clock gets recency 1, never more."""
        future = make_article(title="Dated tomorrow by mistake", relevance_score=0.5, published_at=days_ago(-3))
        today = make_article(title="Published right now", relevance_score=0.5, published_at=NOW)
        self.assertEqual(ArticleProcessor.days_old(future, NOW), 0.0)
        self.assertAlmostEqual(self.processor.rank_key(future, NOW), self.processor.rank_key(today, NOW))
        self.assertAlmostEqual(self.processor.rank_key(future, NOW), 0.65)

    def test_truncates_after_sorting(self):
        """max_articles keeps the best ranked items."""
        raw = [make_article(title=f"Headline number {i}", relevance_score=i / 10) for i in range(6)]
        out = self.processor.process("s", raw, ScrapeRequest(max_articles=2))
        self.assertEqual([a.title for a in out], ["Headline number 5", "Headline number 4"])


if __name__ == "__main__":
    unittest.main()
