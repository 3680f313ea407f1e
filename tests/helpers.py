"""Shared fakes for the test suite: a scripted transport and a stub source."""

from __future__ import annotations

import copy
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple, Union

from news_scraper.base import BaseScraper
from news_scraper.errors import FetchTimeoutError
from news_scraper.models import Article, SourceConfig, SourceKind, SourceRef
from news_scraper.transport import Response

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

RSS_BODY = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example AI</title>
    <item>
      <title>OpenAI ships a new reasoning model</title>
      <link>https://news.example.com/a</link>
      <description>&lt;p&gt;A long description about machine learning progress.&lt;/p&gt;</description>
      <pubDate>Sun, 01 Mar 2026 10:00:00 GMT</pubDate>
      <category>Machine Learning</category>
      <enclosure url="https://cdn.example.com/a.jpg" type="image/jpeg" length="1" />
    </item>
    <item>
      <title>Robots learn to sort recycling</title>
      <link>https://news.example.com/b</link>
      <description>Researchers trained a robot arm to sort mixed waste streams.</description>
      <pubDate>Sun, 01 Mar 2026 09:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Chip makers race for AI demand</title>
      <link>https://news.example.com/c</link>
      <description>Nvidia and others expand production to meet demand for accelerators.</description>
      <pubDate>Sun, 01 Mar 2026 08:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""

Outcome = Union[Response, BaseException]


class FakeTransport:
    """Answers GET/HEAD from a url -> Response (or exception) table.

    ``delays`` maps a url to how long the remote side takes to answer. The
    wait is real and, like a socket timeout, ends with FetchTimeoutError
    once the request timeout (cut to the deadline) is reached.
    """

    def __init__(
        self,
        routes: Optional[Dict[str, Outcome]] = None,
        head_routes: Optional[Dict[str, Outcome]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.routes: Dict[str, Outcome] = dict(routes or {})
        self.head_routes: Dict[str, Outcome] = dict(head_routes or {})
        self.delays: Dict[str, float] = dict(delays or {})
        self.calls: List[Tuple[str, str, dict]] = []
        self._lock = threading.Lock()

    def get(self, url, params=None, headers=None, timeout_ms=10000, max_retries=0, deadline=None):
        if deadline is not None:
            deadline.check(f"GET {url}")
            timeout_ms = deadline.limit_ms(timeout_ms)
        with self._lock:
            self.calls.append(
                ("GET", url, {"params": params, "headers": headers, "max_retries": max_retries, "deadline": deadline})
            )
        self._wait(url, timeout_ms)
        return self._answer(self.routes, url)

    def head(self, url, timeout_ms=5000, headers=None, deadline=None):
        with self._lock:
            self.calls.append(("HEAD", url, {"headers": headers}))
        return self._answer(self.head_routes, url)

    def _wait(self, url: str, timeout_ms: Optional[int]) -> None:
        delay = self.delays.get(url, 0.0)
        if not delay:
            return
        if timeout_ms and delay * 1000 > timeout_ms:
            threading.Event().wait(timeout_ms / 1000)
            raise FetchTimeoutError(f"GET {url} timed out after {timeout_ms}ms")
        threading.Event().wait(delay)

    @staticmethod
    def _answer(table: Dict[str, Outcome], url: str) -> Response:
        if url not in table:
            raise AssertionError(f"unexpected request to {url}")
        outcome = table[url]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def response(body: Union[str, bytes] = b"", status: int = 200, content_type: str = "text/html", url: str = "") -> Response:
    if isinstance(body, str):
        body = body.encode("utf-8")
    return Response(status=status, headers={"Content-Type": content_type}, body=body, url=url)


def make_config(source_id: str = "stub", **overrides) -> SourceConfig:
    fields = {
        "id": source_id,
        "name": source_id.title(),
        "kind": SourceKind.API,
        "priority": 1,
        "categories": ("tech-news",),
        "rate_limit_ms": 0,
        "max_retries": 0,
        "timeout_ms": 2000,
        "base_url": "https://api.example.com",
    }
    fields.update(overrides)
    return SourceConfig(**fields)


def make_article(
    title: str = "A perfectly ordinary headline",
    url: str = "https://example.com/story",
    description: str = "A description that is comfortably longer than twenty characters.",
    source_name: str = "Example",
    published_at: Optional[datetime] = NOW,
    category: str = "tech-news",
    relevance_score: Optional[float] = None,
) -> Article:
    return Article(
        title=title,
        description=description,
        url=url,
        source=SourceRef(name=source_name),
        published_at=published_at,
        category=category,
        relevance_score=relevance_score,
    )


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


class StubScraper(BaseScraper):
    """Source returning canned articles, raising a canned error, or sleeping."""

    kind = SourceKind.API

    def __init__(self, config, articles=(), error=None, delay_s=0.0, healthy=True, **kwargs):
        kwargs.setdefault("transport", FakeTransport())
        super().__init__(config, **kwargs)
        self.articles = list(articles)
        self.error = error
        self.delay_s = delay_s
        self.healthy = healthy
        self.fetch_count = 0
        self.probe_count = 0

    def fetch_articles(self, request, deadline=None):
        self.fetch_count += 1
        if self.delay_s:
            threading.Event().wait(self.delay_s)
        if self.error is not None:
            raise self.error
        # Processing mutates articles; hand out fresh copies each time.
        return copy.deepcopy(self.articles)

    def can_handle(self, url):
        return url.startswith(self.config.base_url or "")

    def check_health(self):
        self.probe_count += 1
        if isinstance(self.healthy, BaseException):
            raise self.healthy
        return self.healthy
