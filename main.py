from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from typing import Any, List, Optional

from dotenv import load_dotenv

from news_scraper.config import load_settings
from news_scraper.factory import ScraperFactory
from news_scraper.manager import ScraperManager
from news_scraper.models import ScrapeRequest


def _dump(value: Any) -> None:
    print(json.dumps(value, indent=2, default=str))


def _build_manager() -> ScraperManager:
    settings = load_settings()
    manager = ScraperManager(ScraperFactory(settings=settings))
    manager.register_all_defaults()
    return manager


def run_scrape(
    manager: ScraperManager,
    categories: Optional[List[str]],
    max_articles: Optional[int],
    timeout_ms: Optional[int],
    sequential: bool,
    as_json: bool,
) -> int:
    request = ScrapeRequest(
        categories=categories or None,
        max_articles=max_articles,
        timeout_ms=timeout_ms,
        parallel=not sequential,
    )
    result = manager.scrape_all(request)

    if as_json:
        _dump(asdict(result))
    else:
        for article in result.articles:
            score = article.relevance_score or 0.0
            print(f"[{score:.2f}] {article.title}\n       {article.source.name} | {article.url}")
        for error in result.errors:
            print(f"error source={error.source_id} kind={error.error.kind} message={error.error.message}")
        print(
            f"\nDONE: articles={len(result.articles)} success={result.success_count} "
            f"fail={result.error_count} duration_ms={result.duration_ms:.0f}"
        )
    return 0 if result.success_count or not result.total_processed else 1


def run_health(manager: ScraperManager, as_json: bool) -> int:
    results = manager.health_check_all()
    if as_json:
        _dump([{"source_id": r.source_id, **asdict(r.status)} for r in results])
    else:
        for r in results:
            errors = "; ".join(e.message for e in r.status.errors)
            print(
                f"source={r.source_id} status={r.status.status.value} healthy={r.status.healthy} "
                f"response_ms={r.status.response_time_ms:.0f} {errors}".rstrip()
            )
    return 0 if all(r.status.healthy for r in results) else 1


def run_stats(manager: ScraperManager) -> int:
    _dump(asdict(manager.get_stats()))
    return 0


def run_find_url(manager: ScraperManager, url: str) -> int:
    scraper = manager.factory.find_strategy_for_url(url)
    if scraper is None:
        print(f"no source handles {url}")
        return 1
    print(f"{scraper.id} ({scraper.config.kind.value}): {scraper.name}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Fetch and rank AI/tech news from configured sources")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...)")
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Scrape all enabled sources once")
    scrape.add_argument("--category", action="append", dest="categories", help="Only sources tagged with this category")
    scrape.add_argument("--max-articles", type=int, default=None, help="Global article limit")
    scrape.add_argument("--timeout-ms", type=int, default=None, help="Per-source timeout override")
    scrape.add_argument("--sequential", action="store_true", help="Scrape sources one after another")
    scrape.add_argument("--json", action="store_true", help="Print the full result as JSON")

    health = sub.add_parser("health", help="Probe every registered source")
    health.add_argument("--json", action="store_true", help="Print statuses as JSON")

    sub.add_parser("stats", help="Print manager statistics after registration")

    find = sub.add_parser("find-url", help="Find the default source that handles a URL")
    find.add_argument("url")

    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    with _build_manager() as manager:
        if args.command == "scrape":
            return run_scrape(
                manager,
                categories=args.categories,
                max_articles=args.max_articles,
                timeout_ms=args.timeout_ms,
                sequential=args.sequential,
                as_json=args.json,
            )
        if args.command == "health":
            return run_health(manager, as_json=args.json)
        if args.command == "stats":
            return run_stats(manager)
        return run_find_url(manager, args.url)


if __name__ == "__main__":
    raise SystemExit(main())
