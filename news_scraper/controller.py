from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")


class ControllerStoppedError(RuntimeError):
    pass


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one fanned-out call: either a value or the exception it raised."""

    ok: bool
    value: Optional[T] = None
    error: Optional[BaseException] = None


class ThreadPoolController:
    """Runs callables on a bounded thread pool.

    At most ``max_workers`` calls are in flight; submit() blocks the
    caller until a slot frees up. settle_all() waits for every call regardless of
    individual failures and returns outcomes in submission order.
    """

    def __init__(self, max_workers: int) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fanout")

        self._lock = threading.Lock()
        self._cv = threading.Condition(self._lock)

        self._limit = max(1, max_workers)
        self._active = 0
        self._running = False

    def start(self) -> None:
        self._running = True

    def stop(self, wait: bool = True) -> None:
        with self._cv:
            self._running = False
            self._cv.notify_all()
        self._executor.shutdown(wait=wait, cancel_futures=False)

    @property
    def running(self) -> bool:
        return self._running

    def submit(self, fn: Callable[[], T]) -> Future:
        """Schedule fn, blocking while the concurrency limit is reached."""
        with self._cv:
            while self._running and self._active >= self._limit:
                self._cv.wait(timeout=0.5)

            if not self._running:
                stopped: Future = Future()
                stopped.set_exception(ControllerStoppedError("controller is stopped"))
                return stopped

            self._active += 1

        return self._executor.submit(self._wrap_task, fn)

    def _wrap_task(self, fn: Callable[[], T]) -> T:
        try:
            return fn()
        finally:
            with self._cv:
                self._active = max(0, self._active - 1)
                self._cv.notify_all()

    def settle_all(self, calls: Sequence[Callable[[], Any]]) -> List[Settled]:
        futures = [self.submit(fn) for fn in calls]
        settled: List[Settled] = []
        for future in futures:
            try:
                settled.append(Settled(ok=True, value=future.result()))
            except Exception as exc:  # noqa: BLE001
                settled.append(Settled(ok=False, error=exc))
        return settled
