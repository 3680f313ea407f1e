from __future__ import annotations

import hashlib
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from .config import (
    CATEGORY_IMAGES,
    COMPANY_KEYWORDS,
    DEFAULT_CATEGORY,
    HIGH_VALUE_KEYWORDS,
    MAX_TAGS_PER_ARTICLE,
    PRIMARY_KEYWORDS,
    TECHNOLOGY_KEYWORDS,
)
from .models import Article, ScrapeRequest

_TAG_KEYWORDS = PRIMARY_KEYWORDS + COMPANY_KEYWORDS + TECHNOLOGY_KEYWORDS
_SECONDS_PER_DAY = 86400.0


class ArticleProcessor:
    """Turns raw per-source items into validated, tagged and scored articles.

    ``clock`` returns the current aware datetime; tests pin it.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def process(self, source_id: str, raw: Iterable[Article], request: Optional[ScrapeRequest] = None) -> List[Article]:
        now = self._clock()
        articles = [self.enhance(source_id, a, now) for a in raw if self.is_valid(a)]

        if request is not None and request.categories:
            wanted = set(request.categories)
            articles = [a for a in articles if a.category in wanted]

        articles.sort(key=lambda a: self.rank_key(a, now), reverse=True)

        if request is not None and request.max_articles:
            articles = articles[: request.max_articles]
        return articles

    @staticmethod
    def is_valid(article: Article) -> bool:
        return bool(
            article.title
            and len(article.title) > 10
            and article.description
            and len(article.description) > 20
            and article.url
            and article.source is not None
            and article.source.name
            and article.published_at is not None
        )

    def enhance(self, source_id: str, article: Article, now: Optional[datetime] = None) -> Article:
        now = now or self._clock()
        if not article.id:
            article.id = self.generate_id(source_id, article)
        if not article.image_url:
            article.image_url = CATEGORY_IMAGES.get(article.category, CATEGORY_IMAGES[DEFAULT_CATEGORY])
        if not article.tags:
            article.tags = self.extract_tags(f"{article.title} {article.description}")
        else:
            article.tags = list(article.tags)[:MAX_TAGS_PER_ARTICLE]
        if article.relevance_score is None:
            article.relevance_score = self.relevance_score(article, now)
        else:
            article.relevance_score = _clamp(article.relevance_score)
        if not article.source.category:
            article.source = replace(article.source, category=article.category)
        return article

    @staticmethod
    def generate_id(source_id: str, article: Article) -> str:
        digest = hashlib.sha1(f"{article.title}{article.url}".encode("utf-8")).hexdigest()[:12]
        return f"{source_id}-{digest}-{int(time.time() * 1000)}"

    @staticmethod
    def extract_tags(content: str) -> List[str]:
        lowered = content.lower()
        return [kw for kw in _TAG_KEYWORDS if kw in lowered][:MAX_TAGS_PER_ARTICLE]

    def relevance_score(self, article: Article, now: Optional[datetime] = None) -> float:
        content = f"{article.title} {article.description}".lower()
        score = 0.5
        score += 0.1 * sum(1 for kw in HIGH_VALUE_KEYWORDS if kw in content)
        if "gpt" in content or "llm" in content:
            score += 0.2
        score += 0.15 * sum(1 for company in COMPANY_KEYWORDS if company in content)

        days_old = self.days_old(article, now or self._clock())
        if days_old < 1:
            score += 0.2
        elif days_old < 7:
            score += 0.1
        return _clamp(score)

    def rank_key(self, article: Article, now: datetime) -> float:
        recency = max(0.0, 1 - self.days_old(article, now) / 30)
        return (article.relevance_score or 0.0) * 0.7 + recency * 0.3

    @staticmethod
    def days_old(article: Article, now: datetime) -> float:
        if article.published_at is None:
            return float("inf")
        published = article.published_at
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        return max(0.0, (now - published).total_seconds() / _SECONDS_PER_DAY)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))
