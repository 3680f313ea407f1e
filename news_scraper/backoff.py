from __future__ import annotations

import random
from typing import Optional

from .config import RETRY_BASE_SECONDS, RETRY_MAX_SECONDS


class BackoffStrategy:
    """Exponential backoff with jitter between transport retries.

    Sleep is base * 2^(attempt-1), capped at max_seconds, plus up to 10%
    jitter. The error kind is accepted so callers can pass it through, but
    every retryable failure currently backs off the same way."""

    def __init__(self, base_seconds: float = RETRY_BASE_SECONDS, max_seconds: float = RETRY_MAX_SECONDS) -> None:
        self._base = base_seconds
        self._max = max_seconds

    def get_sleep(self, attempt: int, error_kind: Optional[str] = None) -> float:
        """Seconds to wait before retry number ``attempt`` (1-based)."""
        exp = min(self._max, self._base * (2 ** max(attempt - 1, 0)))
        return exp + random.uniform(0, exp * 0.1)
