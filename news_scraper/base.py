from __future__ import annotations

import copy
import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple, TypeVar

from .deadline import Deadline
from .errors import FetchTimeoutError, ScraperError, SourceDisabledError, as_scraper_error, classify_error
from .models import Article, HealthState, HealthStatus, ScrapeRequest, SourceConfig, SourceKind, SourceStats
from .processor import ArticleProcessor
from .throttle import RequestThrottle
from .transport import HttpTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RESPONSE_TIME_ALPHA = 0.2

HARVEST_GRACE_MS = 250


def call_with_deadline(fn: Callable[[], T], deadline: Deadline, label: str = "operation") -> T:
    """Run fn on a helper thread and wait for it until the deadline.

    When the budget runs out the deadline is cancelled, so fn starts no
    further requests, and fn gets a short grace period to hand back what
    it finished in time. Past that the caller gets FetchTimeoutError.
    An unlimited deadline runs fn inline.
    """
    remaining = deadline.remaining_s()
    if remaining is None:
        return fn()
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scrape")
    future = executor.submit(fn)
    try:
        try:
            return future.result(timeout=remaining)
        except FuturesTimeoutError:
            if future.done():
                raise
        deadline.cancel()
        try:
            return future.result(timeout=HARVEST_GRACE_MS / 1000)
        except FuturesTimeoutError:
            if future.done():
                raise
            raise FetchTimeoutError(f"{label} timed out after {deadline.timeout_ms}ms") from None
    finally:
        executor.shutdown(wait=False)


class SourceRuntime:
    """State every strategy carries: config copy, stats, last health check.

    Strategies own one of these instead of inheriting the bookkeeping.
    """

    def __init__(self, config: SourceConfig, processor: Optional[ArticleProcessor] = None) -> None:
        self.config = config.copy()
        self.processor = processor or ArticleProcessor()
        self.last_health: Optional[HealthStatus] = None
        self._stats = SourceStats()
        self._lock = threading.Lock()

    def begin_attempt(self) -> None:
        with self._lock:
            self._stats.total_requests += 1

    def record_attempt(self, article_count: int, duration_ms: float, success: bool) -> None:
        with self._lock:
            if success:
                self._stats.successful_requests += 1
                self._stats.total_articles += article_count
            self._stats.average_response_time_ms = (
                self._stats.average_response_time_ms * (1 - _RESPONSE_TIME_ALPHA) + duration_ms * _RESPONSE_TIME_ALPHA
            )
            self._stats.last_active_at = datetime.now(timezone.utc)

    def stats(self) -> SourceStats:
        with self._lock:
            return replace(self._stats)


class BaseScraper(ABC):
    """Contract shared by every source strategy.

    scrape() is the fixed pipeline: enabled check, throttle slot, timeout,
    source-specific fetch, article processing and stats. Subclasses only
    provide fetch_articles(), can_handle() and check_health().
    """

    kind: SourceKind

    def __init__(
        self,
        config: SourceConfig,
        transport: Optional[HttpTransport] = None,
        throttle: Optional[RequestThrottle] = None,
        processor: Optional[ArticleProcessor] = None,
    ) -> None:
        self._runtime = SourceRuntime(config, processor)
        self._transport = transport or HttpTransport()
        self._throttle = throttle or RequestThrottle()

    @property
    def config(self) -> SourceConfig:
        return self._runtime.config

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def priority(self) -> int:
        return self.config.priority

    @property
    def categories(self) -> Tuple[str, ...]:
        return self.config.categories

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def last_health(self) -> Optional[HealthStatus]:
        return self._runtime.last_health

    def scrape(self, request: Optional[ScrapeRequest] = None) -> List[Article]:
        request = request or ScrapeRequest()
        if not self.enabled:
            raise SourceDisabledError(f"source {self.id} is disabled", source_id=self.id)

        timeout_ms = request.timeout_ms or self.config.timeout_ms
        start = time.perf_counter()
        self._runtime.begin_attempt()
        try:
            raw = self._throttle.submit(
                self.priority,
                lambda: self._fetch_within(request, timeout_ms),
                source_id=self.id,
                min_interval_ms=self.config.rate_limit_ms,
            )
            articles = self._runtime.processor.process(self.id, raw, request)
        except ScraperError as exc:
            exc.source_id = exc.source_id or self.id
            self._fail(start, exc)
            raise
        except Exception as exc:  # noqa: BLE001
            err = as_scraper_error(exc, self.id)
            self._fail(start, err)
            raise err from exc

        self._runtime.record_attempt(len(articles), _elapsed_ms(start), True)
        logger.debug("source %s returned %d articles", self.id, len(articles))
        return articles

    def _fetch_within(self, request: ScrapeRequest, timeout_ms: Optional[int]) -> List[Article]:
        deadline = Deadline(timeout_ms)
        return call_with_deadline(
            lambda: self.fetch_articles(request, deadline), deadline, f"scrape of {self.id}"
        )

    def _fail(self, start: float, exc: ScraperError) -> None:
        self._runtime.record_attempt(0, _elapsed_ms(start), False)
        logger.warning("source %s failed: %s (%s)", self.id, exc, exc.kind)

    def health_check(self) -> HealthStatus:
        """Probe the source; never raises."""
        if not self.enabled:
            status = HealthStatus(
                healthy=False,
                status=HealthState.DEGRADED,
                response_time_ms=0.0,
                last_checked_at=datetime.now(timezone.utc),
                metadata=self._health_metadata(),
            )
            self._runtime.last_health = status
            return status

        start = time.perf_counter()
        try:
            healthy = bool(self.check_health())
        except Exception as exc:  # noqa: BLE001
            status = HealthStatus(
                healthy=False,
                status=HealthState.DOWN,
                response_time_ms=_elapsed_ms(start),
                last_checked_at=datetime.now(timezone.utc),
                errors=(classify_error(exc),),
                metadata=self._health_metadata(),
            )
        else:
            status = HealthStatus(
                healthy=healthy,
                status=HealthState.ACTIVE if healthy else HealthState.DEGRADED,
                response_time_ms=_elapsed_ms(start),
                last_checked_at=datetime.now(timezone.utc),
                metadata=self._health_metadata(),
            )
        self._runtime.last_health = status
        return status

    def _health_metadata(self) -> dict:
        return {
            "stats": self.get_stats(),
            "config": {"id": self.id, "name": self.name, "kind": self.config.kind.value, "enabled": self.enabled},
        }

    def get_stats(self) -> SourceStats:
        return self._runtime.stats()

    def get_config(self) -> SourceConfig:
        return copy.deepcopy(self.config)

    def request_headers(self, extra: Optional[dict] = None) -> dict:
        headers = {"User-Agent": self.config.user_agent or self.default_user_agent()}
        headers.update(self.config.headers)
        headers.update(extra or {})
        return headers

    def default_user_agent(self) -> str:
        return "AI News Aggregator"

    @abstractmethod
    def fetch_articles(self, request: ScrapeRequest, deadline: Optional[Deadline] = None) -> List[Article]:
        """Fetch raw articles from the source; processing happens afterwards.

        Network calls should pass ``deadline`` on to the transport so they
        stop once the scrape has run out of time.
        """

    @abstractmethod
    def can_handle(self, url: str) -> bool:
        ...

    @abstractmethod
    def check_health(self) -> bool:
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id!r} priority={self.priority}>"


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
