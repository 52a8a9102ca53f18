"""Cancellable delayed-task scheduling on a real or virtual clock"""

import asyncio
import heapq
import itertools
import time
from typing import Any, Callable, List, Optional, Tuple


class TaskHandle:
    """Handle to a scheduled callback; cancel() is idempotent"""

    def __init__(self) -> None:
        self._cancelled = False
        self._on_cancel: Optional[Callable[[], None]] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()
            self._on_cancel = None


class Scheduler:
    """
    Clock plus delayed execution.

    now_ms() returns epoch milliseconds so it can also stamp cache entries.
    """

    def now_ms(self) -> float:
        raise NotImplementedError

    def call_later(self, delay_ms: float, fn: Callable[..., Any], *args: Any) -> TaskHandle:
        raise NotImplementedError

    def call_every(self, interval_ms: float, fn: Callable[[], Any]) -> TaskHandle:
        """Run fn every interval_ms until the returned handle is cancelled"""
        handle = TaskHandle()
        current: List[Optional[TaskHandle]] = [None]

        def tick() -> None:
            if handle.cancelled:
                return
            current[0] = self.call_later(interval_ms, tick)
            fn()

        def stop() -> None:
            if current[0] is not None:
                current[0].cancel()

        handle._on_cancel = stop
        current[0] = self.call_later(interval_ms, tick)
        return handle


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop"""

    def now_ms(self) -> float:
        return time.time() * 1000

    def call_later(self, delay_ms: float, fn: Callable[..., Any], *args: Any) -> TaskHandle:
        loop = asyncio.get_running_loop()
        timer = loop.call_later(max(delay_ms, 0) / 1000, fn, *args)
        handle = TaskHandle()
        handle._on_cancel = timer.cancel
        return handle


class VirtualScheduler(Scheduler):
    """Deterministic scheduler for tests: time only moves on advance()"""

    def __init__(self, start_ms: float = 0.0):
        self._now = start_ms
        self._sequence = itertools.count()
        self._queue: List[Tuple[float, int, TaskHandle, Callable[..., Any], Tuple[Any, ...]]] = []

    def now_ms(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, fn: Callable[..., Any], *args: Any) -> TaskHandle:
        handle = TaskHandle()
        heapq.heappush(self._queue, (self._now + max(delay_ms, 0), next(self._sequence), handle, fn, args))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry[2].cancelled)

    def advance(self, delta_ms: float) -> None:
        """Move the clock forward, firing due callbacks in order"""
        target = self._now + delta_ms
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, fn, args = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            fn(*args)
        self._now = target
