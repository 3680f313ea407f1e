"""Scraper Manager: the one component that sees every registered source.

Sources fail independently. scrape_all() turns each source failure into a
ScrapingError entry on the result, and health_check_all() turns each probe
failure into a ``down`` status. Listener errors are logged and dropped.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Dict, List, Optional, Set, Tuple

from .base import BaseScraper
from .controller import Settled, ThreadPoolController
from .errors import UnknownSourceError, classify_error
from .factory import ScraperFactory
from .metrics import MetricsCollector
from .models import (
    Article,
    EventType,
    HealthCheckResult,
    HealthState,
    HealthStatus,
    ScraperEvent,
    ScrapeRequest,
    ScrapingError,
    ScrapingResult,
    ScrapingStats,
)

logger = logging.getLogger(__name__)

EventListener = Callable[[ScraperEvent], None]

MANAGER_SOURCE_ID = "manager"


class ScraperManager:
    def __init__(
        self,
        factory: Optional[ScraperFactory] = None,
        controller: Optional[ThreadPoolController] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.factory = factory or ScraperFactory()
        if controller is None:
            controller = ThreadPoolController(max_workers=self.factory.settings.max_workers)
        if not controller.running:
            controller.start()
        self._controller = controller
        self._metrics = metrics or MetricsCollector()
        self._sources: Dict[str, BaseScraper] = {}
        self._listeners: List[EventListener] = []
        self._lock = threading.Lock()

    def close(self) -> None:
        self._controller.stop(wait=True)

    def __enter__(self) -> "ScraperManager":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Registry

    def register(self, scraper: BaseScraper) -> None:
        with self._lock:
            self._sources[scraper.id] = scraper
        logger.info("registered source %s (%s, priority %d)", scraper.id, scraper.config.kind.value, scraper.priority)
        now = _now()
        self._emit(
            ScraperEvent(
                type=EventType.HEALTH_CHECK,
                source_id=scraper.id,
                timestamp=now,
                status=HealthStatus(healthy=True, status=HealthState.ACTIVE, response_time_ms=0.0, last_checked_at=now),
            )
        )

    def unregister(self, source_id: str) -> None:
        with self._lock:
            if source_id not in self._sources:
                raise UnknownSourceError(f"no registered source with id {source_id!r}", source_id=source_id)
            del self._sources[source_id]
        self._metrics.forget(source_id)
        logger.info("unregistered source %s", source_id)

    def get(self, source_id: str) -> BaseScraper:
        with self._lock:
            try:
                return self._sources[source_id]
            except KeyError:
                raise UnknownSourceError(f"no registered source with id {source_id!r}", source_id=source_id) from None

    def get_all(self) -> List[BaseScraper]:
        with self._lock:
            return list(self._sources.values())

    def get_active(self) -> List[BaseScraper]:
        return [s for s in self.get_all() if s.enabled]

    def get_by_category(self, category: str) -> List[BaseScraper]:
        return [s for s in self.get_all() if category in s.categories]

    def register_all_defaults(self) -> List[BaseScraper]:
        scrapers = self.factory.create_all_defaults()
        for scraper in scrapers:
            self.register(scraper)
        return scrapers

    # Scraping

    def select_sources(self, request: ScrapeRequest) -> List[BaseScraper]:
        """Enabled sources matching the category filter, highest priority first."""
        selected = self.get_active()
        if request.categories:
            wanted = set(request.categories)
            selected = [s for s in selected if wanted.intersection(s.categories)]
        return sorted(selected, key=lambda s: s.priority, reverse=True)

    def scrape_all(self, request: Optional[ScrapeRequest] = None) -> ScrapingResult:
        request = request or ScrapeRequest()
        start = time.perf_counter()
        sources = self.select_sources(request)
        logger.info("scraping %d sources (%s)", len(sources), "parallel" if request.parallel else "sequential")

        calls = [partial(self._scrape_one, scraper, request) for scraper in sources]
        if request.parallel:
            outcomes = self._controller.settle_all(calls)
        else:
            outcomes = [_settle(call) for call in calls]

        result = ScrapingResult()
        for scraper, outcome in zip(sources, outcomes):
            result.total_processed += 1
            if outcome.ok:
                articles: List[Article] = outcome.value or []
                result.articles.extend(articles)
                result.sources_used.append(scraper.name)
                result.success_count += 1
                self._metrics.record_attempt(scraper.id, len(articles), True)
            else:
                result.error_count += 1
                result.errors.append(
                    ScrapingError(source_id=scraper.id, error=classify_error(outcome.error), timestamp=_now())
                )
                self._metrics.record_attempt(scraper.id, 0, False)

        articles = sorted(
            deduplicate(result.articles),
            key=lambda a: a.relevance_score or 0.0,
            reverse=True,
        )
        if request.max_articles:
            articles = articles[: request.max_articles]
        result.articles = articles
        result.duration_ms = (time.perf_counter() - start) * 1000

        logger.info(
            "scrape finished: %d articles, %d ok, %d failed in %.0fms",
            len(result.articles),
            result.success_count,
            result.error_count,
            result.duration_ms,
        )
        self._emit(
            ScraperEvent(type=EventType.SCRAPING_COMPLETED, source_id=MANAGER_SOURCE_ID, timestamp=_now(), result=result)
        )
        return result

    def _scrape_one(self, scraper: BaseScraper, request: ScrapeRequest) -> List[Article]:
        self._emit(ScraperEvent(type=EventType.SCRAPING_STARTED, source_id=scraper.id, timestamp=_now(), request=request))
        try:
            return scraper.scrape(request)
        except Exception as exc:
            self._emit(
                ScraperEvent(
                    type=EventType.SCRAPING_ERROR,
                    source_id=scraper.id,
                    timestamp=_now(),
                    error=classify_error(exc),
                )
            )
            raise

    # Health

    def health_check_all(self) -> List[HealthCheckResult]:
        sources = self.get_all()
        outcomes = self._controller.settle_all([scraper.health_check for scraper in sources])

        results: List[HealthCheckResult] = []
        for scraper, outcome in zip(sources, outcomes):
            if outcome.ok:
                status = outcome.value
            else:
                status = HealthStatus(
                    healthy=False,
                    status=HealthState.DOWN,
                    response_time_ms=0.0,
                    last_checked_at=_now(),
                    errors=(classify_error(outcome.error),),
                )
            results.append(HealthCheckResult(source_id=scraper.id, status=status, timestamp=_now()))
            self._emit(ScraperEvent(type=EventType.HEALTH_CHECK, source_id=scraper.id, timestamp=_now(), status=status))
        return results

    def refresh_all(self) -> List[str]:
        """Health check every source; returns the ids that are not healthy."""
        unhealthy = [r.source_id for r in self.health_check_all() if not r.status.healthy]
        for source_id in unhealthy:
            logger.warning("source %s is unhealthy", source_id)
        return unhealthy

    # Stats

    def get_stats(self) -> ScrapingStats:
        sources = self.get_all()
        return self._metrics.snapshot(
            total_sources=len(sources),
            active_sources=sum(1 for s in sources if s.enabled),
            response_times={s.id: s.get_stats().average_response_time_ms for s in sources},
        )

    # Events

    def add_event_listener(self, listener: EventListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_event_listener(self, listener: EventListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _emit(self, event: ScraperEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                logger.exception("event listener failed on %s for %s", event.type.value, event.source_id)


def deduplicate(articles: List[Article]) -> List[Article]:
    """Drop repeated (title, url) pairs, keeping the first occurrence."""
    seen: Set[Tuple[str, str]] = set()
    unique = []
    for article in articles:
        key = article.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(article)
    return unique


def _settle(call: Callable[[], List[Article]]) -> Settled:
    try:
        return Settled(ok=True, value=call())
    except Exception as exc:  # noqa: BLE001
        return Settled(ok=False, error=exc)


def _now() -> datetime:
    return datetime.now(timezone.utc)
