from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, Mapping, Optional

from .models import ScrapingStats, SourceActivity

SUCCESS_RATE_ALPHA = 0.1


class MetricsCollector:
    """Thread-safe per-source activity counters kept by the manager.

    Success rate is an exponential moving average (alpha 0.1) of the
    outcome of each scrape attempt, 1 for success and 0 for failure."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._lock = Lock()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._sources: Dict[str, SourceActivity] = {}

    def record_attempt(self, source_id: str, article_count: int, success: bool) -> None:
        """Fold one scrape outcome into the source's counters."""
        with self._lock:
            activity = self._sources.setdefault(source_id, SourceActivity())
            activity.articles_scraped += article_count
            activity.last_active_at = self._clock()
            sample = 1.0 if success else 0.0
            activity.success_rate = activity.success_rate * (1 - SUCCESS_RATE_ALPHA) + sample * SUCCESS_RATE_ALPHA

    def forget(self, source_id: str) -> None:
        with self._lock:
            self._sources.pop(source_id, None)

    def activity(self, source_id: str) -> Optional[SourceActivity]:
        with self._lock:
            activity = self._sources.get(source_id)
            return replace(activity) if activity is not None else None

    def snapshot(
        self,
        total_sources: int,
        active_sources: int,
        response_times: Mapping[str, float],
    ) -> ScrapingStats:
        """Aggregate view; response_times maps source id to its own latency average."""
        with self._lock:
            per_source = {source_id: replace(a) for source_id, a in self._sources.items()}

        for source_id, activity in per_source.items():
            activity.average_response_time_ms = response_times.get(source_id, 0.0)

        count = len(per_source)
        return ScrapingStats(
            total_sources=total_sources,
            active_sources=active_sources,
            total_articles_scraped=sum(a.articles_scraped for a in per_source.values()),
            average_response_time_ms=(
                sum(a.average_response_time_ms for a in per_source.values()) / count if count else 0.0
            ),
            success_rate=(sum(a.success_rate for a in per_source.values()) / count if count else 0.0),
            last_updated=self._clock(),
            source_stats=per_source,
        )
