from __future__ import annotations

import logging
from abc import abstractmethod
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Dict, List, Mapping, Optional

from .base import BaseScraper
from .config import DEFAULT_USER_AGENT, HEALTH_PROBE_TIMEOUT_MS
from .deadline import Deadline
from .errors import FetchTimeoutError, InvalidSourceConfigError, ScraperError, TransformError, as_scraper_error
from .models import Article, ScrapeRequest, SourceKind

logger = logging.getLogger(__name__)


class FeedStrategy(BaseScraper):
    """Source backed by one or more RSS/Atom feeds.

    Feeds are fetched concurrently against the scrape deadline. A feed that
    fails or is still running when the deadline passes is logged and
    skipped; the scrape only fails when no feed finished.
    """

    kind = SourceKind.FEED
    max_feed_workers = 4

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.feed_urls: List[str] = list(self.config.feed_urls)
        if not self.feed_urls:
            raise InvalidSourceConfigError(f"feed source {self.id} requires at least one feed URL")

    def can_handle(self, url: str) -> bool:
        return bool(url) and any(url in feed_url or feed_url in url for feed_url in self.feed_urls)

    def fetch_articles(self, request: ScrapeRequest, deadline: Optional[Deadline] = None) -> List[Article]:
        deadline = deadline or Deadline()
        pool = ThreadPoolExecutor(
            max_workers=min(len(self.feed_urls), self.max_feed_workers), thread_name_prefix=f"feed-{self.id}"
        )
        futures = [pool.submit(self.parse_feed, feed_url, deadline) for feed_url in self.feed_urls]
        try:
            done, _ = wait(futures, timeout=deadline.remaining_s())
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        articles: List[Article] = []
        errors: List[BaseException] = []
        for feed_url, future in zip(self.feed_urls, futures):
            if future not in done:
                exc: Optional[BaseException] = FetchTimeoutError(
                    f"feed {feed_url} unfinished after {deadline.timeout_ms}ms", source_id=self.id
                )
            else:
                exc = future.exception()
            if exc is None:
                articles.extend(future.result())
                continue
            errors.append(exc)
            logger.warning("source %s: feed %s skipped: %s", self.id, feed_url, exc)
        if len(errors) == len(self.feed_urls):
            raise as_scraper_error(errors[-1], self.id)
        return articles

    @abstractmethod
    def parse_feed(self, feed_url: str, deadline: Optional[Deadline] = None) -> List[Article]:
        ...

    def validate_feed(self, feed_url: str) -> bool:
        """True when a HEAD probe answers with an XML/RSS/Atom content type."""
        response = self._transport.head(feed_url, timeout_ms=HEALTH_PROBE_TIMEOUT_MS, headers=self.request_headers())
        content_type = response.content_type
        return any(marker in content_type for marker in ("xml", "rss", "atom"))

    def check_health(self) -> bool:
        last_error: Optional[ScraperError] = None
        for feed_url in self.feed_urls:
            try:
                if self.validate_feed(feed_url):
                    return True
            except ScraperError as exc:
                last_error = exc
        if last_error is not None:
            raise last_error
        return False


class ApiStrategy(BaseScraper):
    """Source backed by a JSON HTTP API.

    Subclasses supply ``transform_response``; ``default_base_url`` and
    ``default_endpoints`` fill in when the config leaves them out.
    """

    kind = SourceKind.API
    default_base_url = ""
    default_endpoints: Mapping[str, str] = {}

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.base_url: str = (self.config.base_url or self.default_base_url).rstrip("/")
        self.endpoints: Dict[str, str] = dict(self.config.endpoints or self.default_endpoints)
        if not self.base_url:
            raise InvalidSourceConfigError(f"API source {self.id} requires a base_url")

    @property
    def api_key(self) -> Optional[str]:
        return self.config.api_key

    def can_handle(self, url: str) -> bool:
        return bool(url) and url.startswith(self.base_url)

    def fetch_articles(self, request: ScrapeRequest, deadline: Optional[Deadline] = None) -> List[Article]:
        endpoint = self.endpoints.get("articles") or self.endpoints.get("default")
        if endpoint is None:
            return []
        payload = self.api_request(endpoint, params=self.build_request_params(request), deadline=deadline)
        return self.transform(payload)

    def transform(self, payload: Any) -> List[Article]:
        try:
            return list(self.transform_response(payload))
        except ScraperError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise TransformError(f"{self.id}: unexpected response shape: {exc}", source_id=self.id) from exc

    @abstractmethod
    def transform_response(self, payload: Any) -> List[Article]:
        ...

    def api_request(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout_ms: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> Any:
        url = endpoint if endpoint.startswith("http") else f"{self.base_url}{endpoint}"
        merged = self.request_headers(dict(headers or {}))
        if self.api_key:
            merged["Authorization"] = f"Bearer {self.api_key}"
        response = self._transport.get(
            url,
            params=params,
            headers=merged,
            timeout_ms=timeout_ms or self.config.timeout_ms,
            max_retries=self.config.max_retries,
            deadline=deadline,
        )
        return response.json()

    def build_request_params(self, request: ScrapeRequest) -> Dict[str, Any]:
        return {
            "limit": request.max_articles or 20,
            "category": ",".join(request.categories) if request.categories else None,
        }

    def check_health(self) -> bool:
        endpoint = self.endpoints.get("health") or self.endpoints.get("default")
        if endpoint is None:
            return False
        self.api_request(endpoint, timeout_ms=HEALTH_PROBE_TIMEOUT_MS)
        return True


class WebPageStrategy(BaseScraper):
    """Source scraped from a single configured HTML page."""

    kind = SourceKind.WEB

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        if not self.config.url:
            raise InvalidSourceConfigError(f"web source {self.id} requires a url")
        self.url: str = self.config.url

    def can_handle(self, url: str) -> bool:
        return bool(url) and self.url in url

    def default_user_agent(self) -> str:
        return DEFAULT_USER_AGENT

    def fetch_articles(self, request: ScrapeRequest, deadline: Optional[Deadline] = None) -> List[Article]:
        html = self.fetch_html(self.url, deadline)
        return list(self.extract_content(html, self.url))

    def fetch_html(self, url: str, deadline: Optional[Deadline] = None) -> str:
        response = self._transport.get(
            url,
            headers=self.request_headers(),
            timeout_ms=self.config.timeout_ms,
            max_retries=self.config.max_retries,
            deadline=deadline,
        )
        return response.text

    @abstractmethod
    def extract_content(self, html: str, url: str) -> List[Article]:
        ...

    def check_health(self) -> bool:
        self._transport.head(self.url, timeout_ms=HEALTH_PROBE_TIMEOUT_MS, headers=self.request_headers())
        return True
