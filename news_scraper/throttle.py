from __future__ import annotations

import itertools
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class _Ticket:
    seq: int
    priority: int
    source_id: Optional[str]
    min_interval: float
    enqueued_at: float


class RequestThrottle:
    """Priority-aware gate in front of every outbound fetch.

    One FIFO queue per priority tier; higher tiers are served first. At most
    ``max_concurrent`` tasks run at a time, and each source is held to its own
    minimum spacing between task starts. Spacing is keyed by source id, so a
    rate-limited source never delays a different one: when the head of the
    highest tier is still cooling down, the next eligible ticket runs.

    submit() runs the task on the calling thread once it is granted a slot,
    so errors reach the caller exactly as the task raised them.
    """

    def __init__(self, max_concurrent: int = 3, min_delay_ms: int = 0) -> None:
        self._max_concurrent = max(1, int(max_concurrent))
        self._global_gap = max(0, min_delay_ms) / 1000
        self._cv = threading.Condition()
        self._queues: Dict[int, Deque[_Ticket]] = {}
        self._next_allowed: Dict[str, float] = {}
        self._last_start = 0.0
        self._active = 0
        self._seq = itertools.count()
        self._starts: Deque[float] = deque(maxlen=1000)

    def submit(
        self,
        priority: int,
        task: Callable[[], T],
        source_id: Optional[str] = None,
        min_interval_ms: int = 0,
    ) -> T:
        """Block until the task may run, run it and return its result."""
        ticket = _Ticket(
            seq=next(self._seq),
            priority=int(priority),
            source_id=source_id,
            min_interval=max(0, min_interval_ms) / 1000,
            enqueued_at=time.monotonic(),
        )
        with self._cv:
            self._queues.setdefault(ticket.priority, deque()).append(ticket)
            try:
                while True:
                    now = time.monotonic()
                    chosen, wait_s = self._select(now)
                    if chosen is ticket:
                        self._grant(ticket, now)
                        break
                    self._cv.wait(timeout=wait_s)
            except BaseException:
                self._discard(ticket)
                raise

        try:
            return task()
        finally:
            with self._cv:
                self._active -= 1
                self._cv.notify_all()

    def _select(self, now: float):
        """Pick the next ticket to run, or say how long until one could."""
        if self._active >= self._max_concurrent:
            return None, None
        global_wait = self._last_start + self._global_gap - now
        if global_wait > 0:
            return None, global_wait
        wait_s: Optional[float] = None
        for priority in sorted(self._queues, reverse=True):
            for ticket in self._queues[priority]:
                ready_at = self._next_allowed.get(ticket.source_id, 0.0) if ticket.source_id else 0.0
                if ready_at <= now:
                    return ticket, None
                remaining = ready_at - now
                wait_s = remaining if wait_s is None else min(wait_s, remaining)
        return None, wait_s

    def _grant(self, ticket: _Ticket, now: float) -> None:
        queue = self._queues[ticket.priority]
        queue.remove(ticket)
        if not queue:
            del self._queues[ticket.priority]
        self._active += 1
        self._last_start = now
        if ticket.source_id:
            self._next_allowed[ticket.source_id] = now + ticket.min_interval
        self._starts.append(now)
        # Other waiters may now be eligible (a different tier or source).
        self._cv.notify_all()

    def _discard(self, ticket: _Ticket) -> None:
        queue = self._queues.get(ticket.priority)
        if queue is not None and ticket in queue:
            queue.remove(ticket)
            if not queue:
                del self._queues[ticket.priority]
        self._cv.notify_all()

    def get_stats(self) -> Dict[str, object]:
        with self._cv:
            now = time.monotonic()
            queue_sizes: List[Dict[str, int]] = [
                {"priority": p, "size": len(q)} for p, q in sorted(self._queues.items(), reverse=True)
            ]
            return {
                "total_queued": sum(item["size"] for item in queue_sizes),
                "active_requests": self._active,
                "queue_sizes": queue_sizes,
                "recent_request_rate": sum(1 for ts in self._starts if now - ts < 60),
            }
