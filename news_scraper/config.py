from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

NEWS_CATEGORIES: Tuple[str, ...] = (
    "artificial-intelligence",
    "machine-learning",
    "deep-learning",
    "tech-news",
    "nlp",
    "computer-vision",
    "robotics",
    "research",
    "industry",
    "startups",
)
DEFAULT_CATEGORY = "tech-news"

# Keyword lists used for tagging and relevance scoring. Order matters: tags
# are emitted in list order.
PRIMARY_KEYWORDS: Tuple[str, ...] = (
    "artificial intelligence",
    "machine learning",
    "deep learning",
    "neural network",
    "ai",
    "ml",
    "gpt",
    "llm",
    "large language model",
)
COMPANY_KEYWORDS: Tuple[str, ...] = (
    "openai",
    "google ai",
    "deepmind",
    "anthropic",
    "meta",
    "microsoft",
    "nvidia",
)
TECHNOLOGY_KEYWORDS: Tuple[str, ...] = (
    "computer vision",
    "natural language processing",
    "nlp",
    "robotics",
    "automation",
    "algorithm",
    "chatbot",
    "transformer",
    "bert",
    "tensorflow",
    "pytorch",
)
HIGH_VALUE_KEYWORDS: Tuple[str, ...] = (
    "breakthrough",
    "new",
    "launches",
    "releases",
    "announces",
    "revolutionary",
)
AI_TOPIC_KEYWORDS: Tuple[str, ...] = (
    "artificial intelligence", "machine learning", "deep learning", "neural network",
    "ai", "ml", "gpt", "llm", "openai", "anthropic", "google ai", "deepmind",
    "computer vision", "nlp", "natural language", "robotics", "automation",
    "algorithm", "chatbot", "transformer", "tensorflow", "pytorch",
)
MAX_TAGS_PER_ARTICLE = 5

_UNSPLASH = "?w=400&h=200&fit=crop&crop=center&auto=format"
CATEGORY_IMAGES: Dict[str, str] = {
    "artificial-intelligence": "https://images.unsplash.com/photo-1677442136019-21780ecad995" + _UNSPLASH,
    "machine-learning": "https://images.unsplash.com/photo-1555949963-aa79dcee981c" + _UNSPLASH,
    "deep-learning": "https://images.unsplash.com/photo-1620712943543-bcc4688e7485" + _UNSPLASH,
    "nlp": "https://images.unsplash.com/photo-1516110833967-0b5716ca1387" + _UNSPLASH,
    "computer-vision": "https://images.unsplash.com/photo-1507146153580-69a1fe6d8aa1" + _UNSPLASH,
    "robotics": "https://images.unsplash.com/photo-1485827404703-89b55fcc595e" + _UNSPLASH,
    "research": "https://images.unsplash.com/photo-1532094349884-543bc11b234d" + _UNSPLASH,
    "industry": "https://images.unsplash.com/photo-1460925895917-afdab827c52f" + _UNSPLASH,
    "startups": "https://images.unsplash.com/photo-1559136555-9303baea8ebd" + _UNSPLASH,
    "tech-news": "https://images.unsplash.com/photo-1518770660439-4636190af475" + _UNSPLASH,
}

NEWS_API_BASE = "https://newsapi.org/v2"
HACKER_NEWS_API_BASE = "https://hacker-news.firebaseio.com/v0"
HACKER_NEWS_ITEM_URL = "https://news.ycombinator.com/item?id={id}"

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; AI News Aggregator)"
HEALTH_PROBE_TIMEOUT_MS = 5000
MAX_ARTICLES_PER_SOURCE = 10
MAX_HACKER_NEWS_STORIES = 50
MAX_HACKER_NEWS_PROCESS = 20

RETRY_BASE_SECONDS = 0.5
RETRY_MAX_SECONDS = 5.0


@dataclass(frozen=True)
class Settings:
    """Process-wide settings read once at start-up."""

    news_api_key: Optional[str] = None
    max_concurrent: int = 3
    min_delay_ms: int = 100
    max_workers: int = 8


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def load_settings() -> Settings:
    """Build Settings from the environment (call load_dotenv() first if wanted)."""
    return Settings(
        news_api_key=os.getenv("NEWS_API_KEY") or None,
        max_concurrent=_int_env("NEWS_SCRAPER_MAX_CONCURRENT", 3),
        min_delay_ms=_int_env("NEWS_SCRAPER_MIN_DELAY_MS", 100),
        max_workers=_int_env("NEWS_SCRAPER_MAX_WORKERS", 8),
    )
