from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .base import BaseScraper
from .config import Settings, load_settings
from .errors import UnknownSourceKindError
from .models import SourceConfig, SourceKind
from .processor import ArticleProcessor
from .scrapers import GenericAPIScraper, HackerNewsScraper, NewsAPIScraper, RSSScraper, SelectorWebScraper
from .sources import WEB_SOURCE_CONFIGS, api_source_configs, default_source_configs
from .throttle import RequestThrottle
from .transport import HttpTransport

logger = logging.getLogger(__name__)

Constructor = Callable[..., BaseScraper]

# API sources share one kind; the concrete provider is picked by source id.
API_PROVIDERS: Dict[str, Constructor] = {
    "newsapi": NewsAPIScraper,
    "hackernews": HackerNewsScraper,
}


def create_api_source(config: SourceConfig, **deps: Any) -> BaseScraper:
    constructor = API_PROVIDERS.get(config.id, GenericAPIScraper)
    return constructor(config, **deps)


DEFAULT_CONSTRUCTORS: Dict[SourceKind, Constructor] = {
    SourceKind.FEED: RSSScraper,
    SourceKind.API: create_api_source,
    SourceKind.WEB: SelectorWebScraper,
}


class ScraperFactory:
    """Builds source strategies from their configuration.

    Construction is a lookup in a kind -> constructor table. Every strategy
    built by one factory shares its throttle, processor and transports;
    scraped web pages go through a browser-impersonating transport.
    """

    def __init__(
        self,
        transport: Optional[HttpTransport] = None,
        web_transport: Optional[HttpTransport] = None,
        throttle: Optional[RequestThrottle] = None,
        processor: Optional[ArticleProcessor] = None,
        settings: Optional[Settings] = None,
        constructors: Optional[Mapping[SourceKind, Constructor]] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.transport = transport or HttpTransport()
        self.web_transport = web_transport or HttpTransport(impersonate="chrome120")
        self.throttle = throttle or RequestThrottle(
            max_concurrent=self.settings.max_concurrent,
            min_delay_ms=self.settings.min_delay_ms,
        )
        self.processor = processor or ArticleProcessor()
        self._registry: Dict[SourceKind, Constructor] = dict(
            DEFAULT_CONSTRUCTORS if constructors is None else constructors
        )

    def register_type(self, kind: Union[SourceKind, str], constructor: Constructor) -> None:
        self._registry[SourceKind(kind)] = constructor

    def available_kinds(self) -> List[SourceKind]:
        return list(self._registry)

    def create(self, kind: Union[SourceKind, str], config: SourceConfig) -> BaseScraper:
        try:
            constructor = self._registry[SourceKind(kind)]
        except (ValueError, KeyError):
            raise UnknownSourceKindError(f"Unknown source kind: {kind}") from None
        return constructor(config, **self._deps_for(SourceKind(kind)))

    def _deps_for(self, kind: SourceKind) -> Dict[str, Any]:
        return {
            "transport": self.web_transport if kind is SourceKind.WEB else self.transport,
            "throttle": self.throttle,
            "processor": self.processor,
        }

    def default_configs(self) -> List[SourceConfig]:
        return default_source_configs(self.settings.news_api_key)

    def find_strategy_for_url(self, url: str) -> Optional[BaseScraper]:
        """First default source whose strategy claims the URL, else None."""
        for config in self.default_configs():
            scraper = self.create(config.kind, config)
            if scraper.can_handle(url):
                return scraper
        return None

    def create_all_defaults(self) -> List[BaseScraper]:
        scrapers: List[BaseScraper] = []
        for config in self.default_configs():
            try:
                scrapers.append(self.create(config.kind, config))
            except Exception as exc:  # noqa: BLE001
                logger.warning("failed to create %s source %s: %s", config.kind.value, config.id, exc)
        logger.info("created %d default sources", len(scrapers))
        return scrapers

    # Convenience constructors

    def create_rss_scraper(self, config: SourceConfig) -> RSSScraper:
        return RSSScraper(config, **self._deps_for(SourceKind.FEED))

    def create_hacker_news_scraper(self, **overrides: Any) -> HackerNewsScraper:
        return HackerNewsScraper(self._api_default("hackernews", overrides), **self._deps_for(SourceKind.API))

    def create_news_api_scraper(self, **overrides: Any) -> NewsAPIScraper:
        if "api_key" in overrides and "enabled" not in overrides:
            overrides["enabled"] = bool(overrides["api_key"])
        return NewsAPIScraper(self._api_default("newsapi", overrides), **self._deps_for(SourceKind.API))

    def create_web_scraper(self, config: SourceConfig) -> SelectorWebScraper:
        return SelectorWebScraper(config, **self._deps_for(SourceKind.WEB))

    def create_techcrunch_scraper(self, **overrides: Any) -> SelectorWebScraper:
        return self.create_web_scraper(_preset(WEB_SOURCE_CONFIGS, "techcrunch", overrides))

    def create_the_verge_scraper(self, **overrides: Any) -> SelectorWebScraper:
        return self.create_web_scraper(_preset(WEB_SOURCE_CONFIGS, "theverge", overrides))

    def _api_default(self, source_id: str, overrides: Dict[str, Any]) -> SourceConfig:
        return _preset(api_source_configs(self.settings.news_api_key), source_id, overrides)


def _preset(configs: List[SourceConfig], source_id: str, overrides: Dict[str, Any]) -> SourceConfig:
    config = next(c for c in configs if c.id == source_id)
    return replace(config, **overrides) if overrides else config
