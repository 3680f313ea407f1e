"""News scraping core package.

Fetches articles from RSS/Atom feeds, JSON APIs and scraped web pages,
normalizes and scores them, and merges them into one ranked feed.

Key modules:
    models      -- SourceConfig, Article, ScrapingResult and other dataclasses
    errors      -- ScraperError taxonomy and classify_error
    transport   -- HttpTransport (requests / curl_cffi) with retrying GETs
    backoff     -- BackoffStrategy for exponential retry delays
    throttle    -- RequestThrottle: priority queues and per-source spacing
    processor   -- ArticleProcessor: validation, tags, relevance, ranking
    base        -- BaseScraper abstract class and SourceRuntime helper
    strategies  -- FeedStrategy, ApiStrategy, WebPageStrategy
    scrapers    -- RSS, Hacker News, NewsAPI, generic API and selector web sources
    sources     -- statically known source configurations
    factory     -- ScraperFactory for creating sources by kind
    controller  -- ThreadPoolController for settle-all fan-out
    metrics     -- MetricsCollector for per-source activity
    manager     -- ScraperManager coordinating every registered source
"""
