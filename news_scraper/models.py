from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .errors import ClassifiedError, InvalidSourceConfigError


class SourceKind(str, Enum):
    FEED = "feed"
    API = "api"
    WEB = "web"


class HealthState(str, Enum):
    ACTIVE = "active"
    DEGRADED = "degraded"
    DOWN = "down"


class EventType(str, Enum):
    SCRAPING_STARTED = "scraping_started"
    SCRAPING_COMPLETED = "scraping_completed"
    SCRAPING_ERROR = "scraping_error"
    HEALTH_CHECK = "health_check"


@dataclass(frozen=True)
class SelectorConfig:
    """CSS selectors used by the selector-driven web page scraper."""

    container: str
    title: str
    description: str
    link: str
    image: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class SourceConfig:
    """Static description of one content source.

    Validated on construction; strategies keep and hand out deep copies.
    """

    id: str
    name: str
    kind: SourceKind
    priority: int = 1
    categories: Tuple[str, ...] = ()
    rate_limit_ms: int = 1000
    max_retries: int = 3
    timeout_ms: int = 10000
    enabled: bool = True
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    url: Optional[str] = None
    feed_urls: Tuple[str, ...] = ()
    endpoints: Dict[str, str] = field(default_factory=dict)
    selectors: Optional[SelectorConfig] = None
    user_agent: Optional[str] = None
    keyword_filter: bool = False

    def __post_init__(self) -> None:
        # Accept plain strings and lists from static configuration.
        object.__setattr__(self, "kind", SourceKind(self.kind))
        object.__setattr__(self, "categories", tuple(self.categories))
        object.__setattr__(self, "feed_urls", tuple(self.feed_urls))
        if not self.id:
            raise InvalidSourceConfigError("source id is required")
        if not self.name:
            raise InvalidSourceConfigError(f"source {self.id}: name is required")
        for attr in ("priority", "rate_limit_ms", "max_retries", "timeout_ms"):
            if getattr(self, attr) < 0:
                raise InvalidSourceConfigError(f"source {self.id}: {attr} must be non-negative")

    def copy(self) -> "SourceConfig":
        return copy.deepcopy(self)


@dataclass(frozen=True)
class SourceRef:
    name: str
    id: Optional[str] = None
    category: Optional[str] = None


@dataclass
class Article:
    """Normalized unit of content.

    Built by a strategy's fetch step, enhanced once by ArticleProcessor and
    treated as read-only afterwards.
    """

    title: str
    description: str
    url: str
    source: SourceRef
    published_at: Optional[datetime]
    category: str = "tech-news"
    id: Optional[str] = None
    image_url: Optional[str] = None
    author: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    relevance_score: Optional[float] = None

    @property
    def dedup_key(self) -> Tuple[str, str]:
        return (self.title, self.url)


@dataclass(frozen=True)
class ScrapeRequest:
    categories: Optional[Tuple[str, ...]] = None
    max_articles: Optional[int] = None
    timeout_ms: Optional[int] = None
    parallel: bool = True

    def __post_init__(self) -> None:
        if self.categories is not None:
            object.__setattr__(self, "categories", tuple(self.categories))


@dataclass(frozen=True)
class ScrapingError:
    source_id: str
    error: ClassifiedError
    timestamp: datetime
    retry_count: int = 0


@dataclass
class ScrapingResult:
    articles: List[Article] = field(default_factory=list)
    sources_used: List[str] = field(default_factory=list)
    total_processed: int = 0
    success_count: int = 0
    error_count: int = 0
    errors: List[ScrapingError] = field(default_factory=list)
    duration_ms: float = 0.0


@dataclass(frozen=True)
class HealthStatus:
    healthy: bool
    status: HealthState
    response_time_ms: float
    last_checked_at: datetime
    errors: Tuple[ClassifiedError, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HealthCheckResult:
    source_id: str
    status: HealthStatus
    timestamp: datetime


@dataclass
class SourceStats:
    total_requests: int = 0
    successful_requests: int = 0
    total_articles: int = 0
    average_response_time_ms: float = 0.0
    last_active_at: Optional[datetime] = None


@dataclass
class SourceActivity:
    articles_scraped: int = 0
    success_rate: float = 0.0
    average_response_time_ms: float = 0.0
    last_active_at: Optional[datetime] = None


@dataclass
class ScrapingStats:
    total_sources: int
    active_sources: int
    total_articles_scraped: int
    average_response_time_ms: float
    success_rate: float
    last_updated: datetime
    source_stats: Dict[str, SourceActivity] = field(default_factory=dict)


@dataclass(frozen=True)
class ScraperEvent:
    """Lifecycle notification delivered to manager listeners.

    Only the payload field matching ``type`` is set.
    """

    type: EventType
    source_id: str
    timestamp: datetime
    request: Optional[ScrapeRequest] = None
    result: Optional[ScrapingResult] = None
    error: Optional[ClassifiedError] = None
    status: Optional[HealthStatus] = None
    retry_count: int = 0
