"""Text helpers shared by the concrete sources."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from .config import AI_TOPIC_KEYWORDS, DEFAULT_CATEGORY

_RELATIVE_DATE = re.compile(r"(\d+)\s*(minute|hour|day|week|month)s?\s*ago", re.IGNORECASE)
_IMAGE_EXT = re.compile(r"\.(jpg|jpeg|png|gif|webp|svg)$", re.IGNORECASE)

# Checked in order; the first hint found in the lower-cased text wins.
_CATEGORY_HINTS = (
    (("ai", "artificial"), "artificial-intelligence"),
    (("machine", "ml"), "machine-learning"),
    (("deep", "neural"), "deep-learning"),
    (("nlp", "language"), "nlp"),
    (("vision",), "computer-vision"),
    (("robot",), "robotics"),
    (("research", "paper"), "research"),
    (("industry", "business"), "industry"),
    (("startup",), "startups"),
)


def clean_html(html: Optional[str]) -> str:
    if not html:
        return ""
    text = BeautifulSoup(html, "html.parser").get_text(separator=" ")
    return re.sub(r"\s+", " ", text).strip()


def resolve_url(url: Optional[str], base_url: str) -> str:
    if not url:
        return base_url
    if url.startswith("http"):
        return url
    return urljoin(base_url, url)


def parse_date(value: Optional[str], now: Optional[datetime] = None) -> datetime:
    """Parse a feed/page date; unparseable or missing values mean "now".

    Understands absolute dates in any format dateutil accepts and relative
    ones such as "3 hours ago". Naive results are taken as UTC.
    """
    now = now or datetime.now(timezone.utc)
    if not value:
        return now
    match = _RELATIVE_DATE.search(value)
    if match:
        amount = int(match.group(1))
        unit = match.group(2).lower()
        if unit == "month":
            return now - relativedelta(months=amount)
        return now - timedelta(**{f"{unit}s": amount})
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        return now
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def map_category(text: Optional[str], categories: Iterable[str] = ()) -> str:
    """Map a free-text category label onto one of NEWS_CATEGORIES."""
    fallback = next(iter(categories), DEFAULT_CATEGORY)
    if not text:
        return fallback
    lowered = text.lower()
    for hints, category in _CATEGORY_HINTS:
        if any(hint in lowered for hint in hints):
            return category
    return fallback


def is_ai_related(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in AI_TOPIC_KEYWORDS)


def is_valid_image_url(url: Optional[str]) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return False
    return bool(_IMAGE_EXT.search(parsed.path)) or any(
        marker in url for marker in ("images.", "cdn.", "img.")
    )


def extract_image_from_content(html: Optional[str]) -> Optional[str]:
    """First usable <img src> inside an HTML snippet, if any."""
    if not html:
        return None
    img = BeautifulSoup(html, "html.parser").find("img", src=True)
    if img is not None and is_valid_image_url(img["src"]):
        return img["src"]
    return None
