from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from .errors import FetchTimeoutError


class Deadline:
    """Time budget of one scrape, shared with every thread working for it.

    A zero or missing budget never runs out. cancel() ends the budget
    early; sleeping threads wake up and no new request is started.
    """

    def __init__(self, timeout_ms: Optional[int] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.timeout_ms = timeout_ms or None
        self._clock = clock
        self._expires_at = clock() + timeout_ms / 1000 if timeout_ms else None
        self._cancelled = threading.Event()

    def remaining_s(self) -> Optional[float]:
        """Seconds left, None when unlimited."""
        if self._cancelled.is_set():
            return 0.0
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining_s()
        return remaining is not None and remaining <= 0

    def cancel(self) -> None:
        self._cancelled.set()

    def check(self, label: str = "operation") -> None:
        if self.expired:
            raise FetchTimeoutError(f"{label} not started, {self.timeout_ms}ms budget used up")

    def limit_ms(self, timeout_ms: Optional[int]) -> Optional[int]:
        """timeout_ms shortened to what is left of the budget."""
        remaining = self.remaining_s()
        if remaining is None:
            return timeout_ms
        left_ms = max(1, int(round(remaining * 1000)))
        return min(timeout_ms, left_ms) if timeout_ms else left_ms

    def sleep(self, seconds: float) -> bool:
        """Sleep unless the budget ends first; False when it did."""
        remaining = self.remaining_s()
        if remaining is not None and remaining <= seconds:
            return False
        self._cancelled.wait(seconds)
        return not self.expired
