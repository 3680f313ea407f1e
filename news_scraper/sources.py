"""Statically known sources, grouped by kind."""

from __future__ import annotations

from typing import List, Optional

from .config import HACKER_NEWS_API_BASE, NEWS_API_BASE
from .models import SelectorConfig, SourceConfig, SourceKind

FEED_SOURCE_CONFIGS: List[SourceConfig] = [
    SourceConfig(
        id="mit-tech-review-rss",
        name="MIT Technology Review AI",
        kind=SourceKind.FEED,
        priority=1,
        categories=("artificial-intelligence", "tech-news"),
        feed_urls=("https://www.technologyreview.com/feed/",),
        rate_limit_ms=1000,
        timeout_ms=10000,
        keyword_filter=True,
    ),
    SourceConfig(
        id="venturebeat-ai-rss",
        name="VentureBeat AI",
        kind=SourceKind.FEED,
        priority=1,
        categories=("industry", "artificial-intelligence"),
        feed_urls=("https://venturebeat.com/ai/feed/",),
        rate_limit_ms=1000,
        timeout_ms=10000,
        keyword_filter=True,
    ),
    SourceConfig(
        id="ai-news-rss",
        name="AI News RSS",
        kind=SourceKind.FEED,
        priority=2,
        categories=("artificial-intelligence",),
        feed_urls=("https://artificialintelligence-news.com/feed/",),
        rate_limit_ms=1500,
        timeout_ms=10000,
        keyword_filter=True,
    ),
]


def api_source_configs(news_api_key: Optional[str] = None) -> List[SourceConfig]:
    """API sources; NewsAPI is only enabled when a key is available."""
    return [
        SourceConfig(
            id="newsapi",
            name="NewsAPI",
            kind=SourceKind.API,
            priority=1,
            categories=("tech-news", "artificial-intelligence"),
            base_url=NEWS_API_BASE,
            api_key=news_api_key,
            endpoints={"everything": "/everything", "top_headlines": "/top-headlines"},
            rate_limit_ms=1000,
            timeout_ms=10000,
            enabled=bool(news_api_key),
        ),
        SourceConfig(
            id="hackernews",
            name="Hacker News",
            kind=SourceKind.API,
            priority=2,
            categories=("tech-news",),
            base_url=HACKER_NEWS_API_BASE,
            endpoints={"top_stories": "/topstories.json", "item": "/item"},
            rate_limit_ms=500,
            timeout_ms=10000,
            keyword_filter=True,
        ),
    ]


API_SOURCE_CONFIGS: List[SourceConfig] = api_source_configs()

WEB_SOURCE_CONFIGS: List[SourceConfig] = [
    SourceConfig(
        id="techcrunch",
        name="TechCrunch AI",
        kind=SourceKind.WEB,
        priority=1,
        categories=("artificial-intelligence", "tech-news"),
        url="https://techcrunch.com/category/artificial-intelligence/",
        selectors=SelectorConfig(
            container=".post-block",
            title=".post-block__title__link",
            description=".post-block__content",
            link=".post-block__title__link",
            image=".post-block__media img",
            author=".post-block__author",
            published_at=".post-block__time",
        ),
        rate_limit_ms=2000,
        timeout_ms=15000,
        keyword_filter=True,
    ),
    SourceConfig(
        id="theverge",
        name="The Verge AI",
        kind=SourceKind.WEB,
        priority=1,
        categories=("artificial-intelligence", "tech-news"),
        url="https://www.theverge.com/ai-artificial-intelligence",
        selectors=SelectorConfig(
            container=".c-entry-box--compact",
            title=".c-entry-box--compact__title a",
            description=".c-entry-box--compact__dek",
            link=".c-entry-box--compact__title a",
            image=".c-entry-box--compact__image img",
            author=".c-byline__author-name",
            published_at=".c-byline__item time",
        ),
        rate_limit_ms=2000,
        timeout_ms=15000,
        keyword_filter=True,
    ),
]


def default_source_configs(news_api_key: Optional[str] = None) -> List[SourceConfig]:
    return [*FEED_SOURCE_CONFIGS, *api_source_configs(news_api_key), *WEB_SOURCE_CONFIGS]
