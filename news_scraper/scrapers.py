from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import feedparser
from bs4 import BeautifulSoup

from .config import (
    HACKER_NEWS_API_BASE,
    HACKER_NEWS_ITEM_URL,
    MAX_ARTICLES_PER_SOURCE,
    MAX_HACKER_NEWS_PROCESS,
    MAX_HACKER_NEWS_STORIES,
    NEWS_API_BASE,
)
from .deadline import Deadline
from .errors import InvalidSourceConfigError, TransformError, as_scraper_error
from .models import Article, ScrapeRequest, SourceRef
from .strategies import ApiStrategy, FeedStrategy, WebPageStrategy
from .text import (
    clean_html,
    extract_image_from_content,
    is_ai_related,
    is_valid_image_url,
    map_category,
    parse_date,
    resolve_url,
)

logger = logging.getLogger(__name__)

_NO_DESCRIPTION = "No description available"


class RSSScraper(FeedStrategy):
    """Generic RSS/Atom reader built on feedparser."""

    def parse_feed(self, feed_url: str, deadline: Optional[Deadline] = None) -> List[Article]:
        response = self._transport.get(
            feed_url,
            headers=self.request_headers(),
            timeout_ms=self.config.timeout_ms,
            max_retries=self.config.max_retries,
            deadline=deadline,
        )
        parsed = feedparser.parse(response.body)
        if parsed.bozo and not parsed.entries:
            raise TransformError(f"unparseable feed {feed_url}: {parsed.get('bozo_exception')}", source_id=self.id)

        articles: List[Article] = []
        for index, entry in enumerate(parsed.entries):
            try:
                article = self._entry_to_article(entry, feed_url)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("source %s: entry %d of %s skipped: %s", self.id, index, feed_url, exc)
                continue
            if article is None:
                continue
            if self.config.keyword_filter and not is_ai_related(f"{article.title} {article.description}"):
                continue
            articles.append(article)
        return articles

    def _entry_to_article(self, entry: Any, feed_url: str) -> Optional[Article]:
        title = entry.get("title")
        link = entry.get("link")
        if not title or not link:
            return None

        description_html = entry.get("summary") or _first_content_value(entry) or ""
        terms = [t.get("term") for t in entry.get("tags") or [] if t.get("term")]
        category = map_category(terms[0] if terms else None, self.categories)
        image = _entry_image(entry) or extract_image_from_content(description_html)

        return Article(
            title=clean_html(title),
            description=clean_html(description_html) or _NO_DESCRIPTION,
            url=resolve_url(link, feed_url),
            image_url=image,
            published_at=parse_date(entry.get("published") or entry.get("updated")),
            source=SourceRef(id=self.id, name=self.name, category=category),
            author=clean_html(entry.get("author")) or self.name,
            category=category,
        )


def _first_content_value(entry: Any) -> Optional[str]:
    content = entry.get("content")
    if isinstance(content, list) and content:
        return content[0].get("value")
    return None


def _entry_image(entry: Any) -> Optional[str]:
    candidates: List[Optional[str]] = []
    for enclosure in entry.get("enclosures") or []:
        if str(enclosure.get("type", "")).startswith("image"):
            candidates.append(enclosure.get("href") or enclosure.get("url"))
    for thumb in entry.get("media_thumbnail") or []:
        candidates.append(thumb.get("url"))
    for media in entry.get("media_content") or []:
        if media.get("medium") == "image":
            candidates.append(media.get("url"))
    return next((url for url in candidates if is_valid_image_url(url)), None)


class HackerNewsScraper(ApiStrategy):
    """Top stories from the public Hacker News Firebase API."""

    default_base_url = HACKER_NEWS_API_BASE
    default_endpoints = {"top_stories": "/topstories.json", "item": "/item"}
    batch_size = 5

    @property
    def api_key(self) -> Optional[str]:
        return None

    def fetch_articles(self, request: ScrapeRequest, deadline: Optional[Deadline] = None) -> List[Article]:
        story_ids = self.api_request(self.endpoints["top_stories"], deadline=deadline)
        if not isinstance(story_ids, list):
            raise TransformError(f"{self.id}: top stories is not a list", source_id=self.id)
        limit = min(request.max_articles or MAX_HACKER_NEWS_PROCESS, MAX_HACKER_NEWS_STORIES)

        with ThreadPoolExecutor(max_workers=self.batch_size, thread_name_prefix="hn-item") as pool:
            stories = list(pool.map(self._fetch_story, story_ids[:limit], [deadline] * limit))
        return self.transform([s for s in stories if s is not None])

    def _fetch_story(self, story_id: int, deadline: Optional[Deadline] = None) -> Optional[Dict[str, Any]]:
        if deadline is not None and deadline.expired:
            return None
        try:
            return self.api_request(f"{self.endpoints['item']}/{story_id}.json", deadline=deadline)
        except Exception as exc:  # noqa: BLE001
            logger.warning("source %s: story %s skipped: %s", self.id, story_id, as_scraper_error(exc, self.id))
            return None

    def transform_response(self, payload: Iterable[Dict[str, Any]]) -> List[Article]:
        articles = []
        for story in payload:
            if not self._is_valid_story(story):
                continue
            text = story.get("text")
            category = self.categories[0] if self.categories else "tech-news"
            articles.append(
                Article(
                    id=f"{self.id}-{story['id']}",
                    title=story["title"],
                    description=clean_html(text) if text else "Discussion on Hacker News",
                    url=story.get("url") or HACKER_NEWS_ITEM_URL.format(id=story["id"]),
                    published_at=datetime.fromtimestamp(story["time"], tz=timezone.utc),
                    source=SourceRef(id=self.id, name=self.name, category=category),
                    author=story.get("by") or self.name,
                    category=category,
                )
            )
        return articles

    def _is_valid_story(self, story: Any) -> bool:
        if not isinstance(story, dict) or not story.get("title") or story.get("type") != "story":
            return False
        if story.get("deleted") or story.get("dead") or "time" not in story:
            return False
        if self.config.keyword_filter:
            return is_ai_related(f"{story['title']} {story.get('text') or ''}")
        return True

    def check_health(self) -> bool:
        story_ids = self.api_request(self.endpoints["top_stories"])
        return isinstance(story_ids, list) and len(story_ids) > 0


class NewsAPIScraper(ApiStrategy):
    """newsapi.org "everything" search, one query per topic.

    Without an API key the source contributes nothing rather than failing.
    """

    default_base_url = NEWS_API_BASE
    default_endpoints = {"everything": "/everything", "top_headlines": "/top-headlines"}

    SEARCH_QUERIES = (
        {
            "q": "artificial intelligence OR AI OR machine learning",
            "category": "artificial-intelligence",
            "domains": ("techcrunch.com", "theverge.com", "wired.com"),
        },
        {
            "q": "deep learning OR neural networks OR GPT",
            "category": "deep-learning",
            "domains": ("techcrunch.com", "venturebeat.com"),
        },
        {
            "q": "OpenAI OR ChatGPT OR Anthropic OR Claude",
            "category": "artificial-intelligence",
            "domains": ("techcrunch.com", "theverge.com"),
        },
        {
            "q": "computer vision OR NLP OR natural language processing",
            "category": "nlp",
            "domains": ("techcrunch.com", "venturebeat.com"),
        },
    )

    def fetch_articles(self, request: ScrapeRequest, deadline: Optional[Deadline] = None) -> List[Article]:
        if not self.api_key:
            logger.warning("source %s: no API key configured, skipping", self.id)
            return []

        queries = [
            q for q in self.SEARCH_QUERIES if not request.categories or q["category"] in request.categories
        ]
        articles: List[Article] = []
        errors: List[BaseException] = []
        for query in queries:
            if deadline is not None:
                deadline.check(f"{self.id} query {query['q']!r}")
            try:
                payload = self.api_request(
                    self.endpoints["everything"],
                    params={
                        "q": query["q"],
                        "domains": ",".join(query["domains"]),
                        "language": "en",
                        "sortBy": "publishedAt",
                        "pageSize": min(request.max_articles or 20, MAX_ARTICLES_PER_SOURCE),
                    },
                    deadline=deadline,
                )
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)
                logger.warning("source %s: query %r failed: %s", self.id, query["q"], exc)
                continue
            for article in self.transform(payload):
                article.category = query["category"]
                articles.append(article)
        if queries and len(errors) == len(queries):
            raise as_scraper_error(errors[-1], self.id)
        return articles

    def transform_response(self, payload: Any) -> List[Article]:
        if not isinstance(payload, dict) or not isinstance(payload.get("articles"), list):
            raise TransformError(f"{self.id}: response has no 'articles' list", source_id=self.id)
        articles = []
        for item in payload["articles"]:
            if not self._is_valid_item(item):
                continue
            articles.append(
                Article(
                    title=item["title"],
                    description=item.get("description") or _NO_DESCRIPTION,
                    url=item["url"],
                    image_url=item.get("urlToImage"),
                    published_at=parse_date(item["publishedAt"]),
                    source=SourceRef(id=item["source"].get("id") or "newsapi", name=item["source"]["name"]),
                    author=item.get("author") or item["source"]["name"],
                    category="tech-news",
                )
            )
        return articles

    @staticmethod
    def _is_valid_item(item: Any) -> bool:
        if not isinstance(item, dict):
            return False
        source = item.get("source") or {}
        if not (item.get("title") and item.get("url") and source.get("name") and item.get("publishedAt")):
            return False
        return "[Removed]" not in item["title"] and "[Removed]" not in (item.get("description") or "")

    def check_health(self) -> bool:
        if not self.api_key:
            return False
        self.api_request(self.endpoints["everything"], params={"q": "test", "pageSize": 1})
        return True


class GenericAPIScraper(ApiStrategy):
    """Any JSON API returning a list of items with title/url-like fields."""

    def transform_response(self, payload: Any) -> List[Article]:
        if isinstance(payload, list):
            items = payload
        elif isinstance(payload, dict):
            items = payload.get("articles") or payload.get("data") or payload.get("items") or []
        else:
            raise TransformError(f"{self.id}: unsupported payload type {type(payload).__name__}", source_id=self.id)

        category = self.categories[0] if self.categories else "tech-news"
        articles = []
        for item in items:
            url = item.get("url") or item.get("link")
            if not item.get("title") or not url:
                continue
            articles.append(
                Article(
                    title=item["title"],
                    description=item.get("description") or item.get("summary") or item.get("content") or _NO_DESCRIPTION,
                    url=url,
                    image_url=item.get("image") or item.get("thumbnail"),
                    published_at=parse_date(item.get("publishedAt") or item.get("published") or item.get("date")),
                    source=SourceRef(id=self.id, name=self.name, category=category),
                    author=item.get("author") or item.get("creator") or self.name,
                    category=category,
                )
            )
        return articles


class SelectorWebScraper(WebPageStrategy):
    """Extracts article cards from a listing page with CSS selectors."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        if self.config.selectors is None:
            raise InvalidSourceConfigError(f"web source {self.id} requires selectors")
        self.selectors = self.config.selectors

    def extract_content(self, html: str, url: str) -> List[Article]:
        soup = BeautifulSoup(html, "html.parser")
        articles = []
        for index, container in enumerate(soup.select(self.selectors.container)):
            try:
                article = self._extract_card(container, url)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("source %s: card %d skipped: %s", self.id, index, exc)
                continue
            if article is None:
                continue
            if self.config.keyword_filter and not is_ai_related(f"{article.title} {article.description}"):
                continue
            articles.append(article)
        return articles

    def _extract_card(self, container: Any, base_url: str) -> Optional[Article]:
        sel = self.selectors
        title = _select_text(container, sel.title)
        link_el = container.select_one(sel.link)
        link = link_el and (link_el.get("href") or link_el.get("data-href"))
        if not title or not link:
            return None

        description = _select_text(container, sel.description)
        category = map_category(_select_text(container, sel.category), self.categories)
        published = None
        if sel.published_at:
            time_el = container.select_one(sel.published_at)
            if time_el is not None:
                published = time_el.get("datetime") or time_el.get_text(strip=True)

        return Article(
            title=title,
            description=description or _NO_DESCRIPTION,
            url=resolve_url(link, base_url),
            image_url=self._image_url(container) or extract_image_from_content(description),
            published_at=parse_date(published),
            source=SourceRef(id=self.id, name=self.name, category=category),
            author=_select_text(container, sel.author) or self.name,
            category=category,
        )

    def _image_url(self, container: Any) -> Optional[str]:
        if not self.selectors.image:
            return None
        img = container.select_one(self.selectors.image)
        if img is None:
            return None
        for attr in ("src", "data-src", "data-lazy-src", "data-original"):
            value = img.get(attr)
            if value and is_valid_image_url(value):
                return value
        return None


def _select_text(container: Any, selector: Optional[str]) -> str:
    if not selector:
        return ""
    element = container.select_one(selector)
    return " ".join(element.get_text(" ").split()) if element is not None else ""
